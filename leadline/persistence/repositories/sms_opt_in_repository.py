"""SMS opt-in repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.persistence.models.sms_opt_in import SmsOptIn
from leadline.persistence.repositories.base import BaseRepository


class SmsOptInRepository(BaseRepository[SmsOptIn]):
    """Repository for SMS subscription state."""

    def __init__(self, session: AsyncSession):
        super().__init__(SmsOptIn, session)

    async def get_by_phone(self, tenant_id: int, phone_number: str) -> SmsOptIn | None:
        stmt = select(SmsOptIn).where(
            SmsOptIn.tenant_id == tenant_id,
            SmsOptIn.phone_number == phone_number,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
