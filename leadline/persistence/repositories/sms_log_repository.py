"""SMS log repository."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.persistence.models.sms_log import SmsLog
from leadline.persistence.repositories.base import BaseRepository


class SmsLogRepository(BaseRepository[SmsLog]):
    """Repository for SMS logs, keyed by the provider's MessageSid."""

    def __init__(self, session: AsyncSession):
        super().__init__(SmsLog, session)

    async def get_by_message_sid(self, tenant_id: int, message_sid: str) -> SmsLog | None:
        stmt = select(SmsLog).where(
            SmsLog.tenant_id == tenant_id,
            SmsLog.message_sid == message_sid,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tenant_id_for_message(self, message_sid: str) -> int | None:
        """Owning tenant of a message. Runs before any tenant scope is opened."""
        stmt = select(SmsLog.tenant_id).where(SmsLog.message_sid == message_sid)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_auto_response_for(self, tenant_id: int, message_sid: str) -> SmsLog | None:
        """The auto-response logged for an inbound message, if any."""
        stmt = select(SmsLog).where(
            SmsLog.tenant_id == tenant_id,
            SmsLog.triggered_by_message_sid == message_sid,
            SmsLog.is_auto_response.is_(True),
        ).order_by(SmsLog.id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def log_inbound(self, tenant_id: int, message_sid: str, **values: Any) -> tuple[SmsLog, bool]:
        """Record an inbound message once.

        The insert itself decides `created`; the pre-read only saves a
        round trip for the common retry.

        Returns:
            (row, created) where created is False for a repeat delivery
        """
        existing = await self.get_by_message_sid(tenant_id, message_sid)
        if existing is not None:
            return existing, False
        created = await self.insert_if_absent(
            "message_sid",
            tenant_id=tenant_id,
            message_sid=message_sid,
            direction="inbound",
            status="received",
            **values,
        )
        row = await self.get_by_message_sid(tenant_id, message_sid)
        if row is None:
            raise LookupError(f"Message {message_sid} is not owned by tenant {tenant_id}")
        return row, created
