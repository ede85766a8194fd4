"""Tenant repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.persistence.models.tenant import Tenant


class TenantRepository:
    """Lookups for tenants. Tenants are global rows, so nothing here is tenant-scoped."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, tenant_id: int) -> Tenant | None:
        stmt = select(Tenant).where(Tenant.id == tenant_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_phone_numbers(self, numbers: list[str]) -> Tenant | None:
        """Tenant whose Twilio number matches any of the given forms."""
        if not numbers:
            return None
        stmt = select(Tenant).where(Tenant.twilio_phone_number.in_(numbers)).order_by(Tenant.id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_slug(self, slug: str) -> Tenant | None:
        stmt = select(Tenant).where(Tenant.slug == slug)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_custom_domain(self, domain: str) -> Tenant | None:
        stmt = select(Tenant).where(Tenant.custom_domain == domain)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **data) -> Tenant:
        tenant = Tenant(**data)
        self.session.add(tenant)
        await self.session.flush()
        await self.session.refresh(tenant)
        return tenant
