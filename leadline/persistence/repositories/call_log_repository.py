"""Call log repository."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.persistence.models.call_log import CallLog
from leadline.persistence.repositories.base import BaseRepository


class CallLogRepository(BaseRepository[CallLog]):
    """Repository for call logs, keyed by the provider's CallSid."""

    def __init__(self, session: AsyncSession):
        super().__init__(CallLog, session)

    async def get_by_call_sid(
        self,
        tenant_id: int,
        call_sid: str,
        for_update: bool = False,
    ) -> CallLog | None:
        """Fetch a call; ``for_update`` locks the row until the transaction ends."""
        stmt = select(CallLog).where(
            CallLog.tenant_id == tenant_id,
            CallLog.call_sid == call_sid,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tenant_id_for_call(self, call_sid: str) -> int | None:
        """Owning tenant of a call. Runs before any tenant scope is opened."""
        stmt = select(CallLog.tenant_id).where(CallLog.call_sid == call_sid)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        tenant_id: int,
        call_sid: str,
        lock: bool = False,
        **values: Any,
    ) -> CallLog:
        """Create the call row if it does not exist yet, then return it.

        ``values`` only seed a new row; an existing row is returned untouched.
        With ``lock`` the returned row stays locked until commit, which
        serializes concurrent deliveries for the same call.
        """
        await self.insert_if_absent("call_sid", tenant_id=tenant_id, call_sid=call_sid, **values)
        call_log = await self.get_by_call_sid(tenant_id, call_sid, for_update=lock)
        if call_log is None:
            # Row exists under a different tenant
            raise LookupError(f"Call {call_sid} is not owned by tenant {tenant_id}")
        return call_log
