"""Lead repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.core.phone import normalize_phone_e164
from leadline.persistence.models.lead import Lead
from leadline.persistence.repositories.base import BaseRepository


class LeadRepository(BaseRepository[Lead]):
    """Repository for leads."""

    def __init__(self, session: AsyncSession):
        super().__init__(Lead, session)

    async def list_by_phone(self, tenant_id: int, phone: str) -> list[Lead]:
        """All leads recorded for a phone number within a tenant, oldest first."""
        stmt = (
            select(Lead)
            .where(Lead.tenant_id == tenant_id, Lead.phone == normalize_phone_e164(phone))
            .order_by(Lead.created_at, Lead.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
