"""Resolve inbound requests to a tenant."""

import ipaddress
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from leadline.core.phone import phone_number_variants
from leadline.infrastructure.redis import RedisClient, redis_client
from leadline.persistence.models.tenant import Tenant
from leadline.persistence.repositories.tenant_repository import TenantRepository
from leadline.settings import settings

logger = logging.getLogger(__name__)

_NUMBER_CACHE_PREFIX = "tenant:number:"


@dataclass(frozen=True)
class ParsedHost:
    domain: str
    subdomain: str | None


def parse_host(host: str | None) -> ParsedHost | None:
    """Split a Host header into its domain and first-label subdomain.

    "acme.nevermisslead.com:443" -> domain "acme.nevermisslead.com",
    subdomain "acme". Localhost and IP addresses never carry a subdomain.
    """
    if not host:
        return None
    domain = host.strip().lower()
    if domain.startswith("[") and "]" in domain:
        domain = domain[1:domain.index("]")]
    elif domain.count(":") == 1:
        domain = domain.split(":", 1)[0]
    if not domain:
        return None

    try:
        ipaddress.ip_address(domain)
        return ParsedHost(domain=domain, subdomain=None)
    except ValueError:
        pass

    labels = domain.split(".")
    if domain == "localhost" or labels[-1] == "localhost" or len(labels) < 3:
        return ParsedHost(domain=domain, subdomain=None)
    return ParsedHost(domain=domain, subdomain=labels[0])


class TenantResolver:
    """Maps a dialed number, slug, host or id to a resolvable tenant.

    Every method returns ``None`` for "not found", including tenants that
    exist but are inactive or suspended. Database errors propagate.
    """

    def __init__(self, session: AsyncSession, cache: RedisClient | None = None) -> None:
        self.session = session
        self.tenant_repo = TenantRepository(session)
        self.cache = cache or redis_client

    @staticmethod
    def _usable(tenant: Tenant | None) -> Tenant | None:
        if tenant is None or not tenant.is_resolvable:
            return None
        return tenant

    async def resolve_by_id(self, tenant_id: int) -> Tenant | None:
        return self._usable(await self.tenant_repo.get_by_id(tenant_id))

    async def resolve_by_phone_number(self, number: str | None) -> Tenant | None:
        """Resolve the tenant that owns a dialed Twilio number."""
        if not number or not number.strip():
            return None

        cache_key = f"{_NUMBER_CACHE_PREFIX}{number.strip()}"
        cached_id = await self.cache.get(cache_key)
        if cached_id and cached_id.isdigit():
            tenant = await self.resolve_by_id(int(cached_id))
            if tenant is not None:
                return tenant
            await self.cache.delete(cache_key)

        tenant = self._usable(
            await self.tenant_repo.get_by_phone_numbers(phone_number_variants(number))
        )
        if tenant is None:
            logger.warning("No tenant for dialed number", extra={"dialed_number": number})
            return None

        await self.cache.set(cache_key, str(tenant.id), ttl=settings.tenant_cache_ttl_seconds)
        return tenant

    async def resolve_by_slug(self, slug: str | None) -> Tenant | None:
        if not slug or not slug.strip():
            return None
        return self._usable(await self.tenant_repo.get_by_slug(slug.strip().lower()))

    async def resolve_by_host(self, host: str | None, slug_header: str | None = None) -> Tenant | None:
        """Resolve from the request host: subdomain slug, then custom domain, then an explicit slug header."""
        parsed = parse_host(host)
        if parsed is not None:
            if parsed.subdomain and parsed.subdomain != "www":
                tenant = await self.resolve_by_slug(parsed.subdomain)
                if tenant is not None:
                    return tenant
            tenant = self._usable(await self.tenant_repo.get_by_custom_domain(parsed.domain))
            if tenant is not None:
                return tenant

        if slug_header:
            return await self.resolve_by_slug(slug_header)
        return None
