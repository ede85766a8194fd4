"""Tests for tenant resolution."""

import pytest

from leadline.core.phone import normalize_phone_e164, phone_number_variants
from leadline.domain.services.tenant_resolver import ParsedHost, TenantResolver, parse_host
from leadline.infrastructure.redis import RedisClient


class FakeCache(RedisClient):
    """Dict-backed cache standing in for Redis."""

    def __init__(self):
        super().__init__(enabled=False)
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ttl=None):
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


class TestParseHost:
    @pytest.mark.parametrize(
        "host,expected",
        [
            ("acme.nevermisslead.com", ParsedHost("acme.nevermisslead.com", "acme")),
            ("Acme.NeverMissLead.com:443", ParsedHost("acme.nevermisslead.com", "acme")),
            ("acmeplumbing.com", ParsedHost("acmeplumbing.com", None)),
            ("localhost:8000", ParsedHost("localhost", None)),
            ("127.0.0.1:8000", ParsedHost("127.0.0.1", None)),
            ("[::1]:8000", ParsedHost("::1", None)),
        ],
    )
    def test_parse(self, host, expected):
        assert parse_host(host) == expected

    def test_empty_host(self):
        assert parse_host(None) is None
        assert parse_host("") is None


def test_phone_variants_cover_stored_forms():
    variants = phone_number_variants("+15551234567")
    assert variants == ["+15551234567", "15551234567"]
    assert "+15551234567" in phone_number_variants("5551234567")
    assert normalize_phone_e164("(555) 123-4567") == "+15551234567"


class TestResolveByPhoneNumber:
    async def test_exact_match(self, db_session, tenant):
        resolver = TenantResolver(db_session, cache=FakeCache())
        resolved = await resolver.resolve_by_phone_number(tenant.twilio_phone_number)
        assert resolved.id == tenant.id

    async def test_number_stored_without_plus(self, db_session, make_tenant):
        tenant = await make_tenant(twilio_phone_number="15557770000")
        resolver = TenantResolver(db_session, cache=FakeCache())
        resolved = await resolver.resolve_by_phone_number("+15557770000")
        assert resolved.id == tenant.id

    async def test_unknown_number(self, db_session, tenant):
        resolver = TenantResolver(db_session, cache=FakeCache())
        assert await resolver.resolve_by_phone_number("+19999999999") is None
        assert await resolver.resolve_by_phone_number("") is None

    @pytest.mark.parametrize("status", ["inactive", "suspended"])
    async def test_inactive_tenant_is_not_found(self, db_session, make_tenant, status):
        tenant = await make_tenant(status=status)
        resolver = TenantResolver(db_session, cache=FakeCache())
        assert await resolver.resolve_by_phone_number(tenant.twilio_phone_number) is None
        assert await resolver.resolve_by_id(tenant.id) is None

    async def test_trial_tenant_resolves(self, db_session, make_tenant):
        tenant = await make_tenant(status="trial")
        resolver = TenantResolver(db_session, cache=FakeCache())
        assert (await resolver.resolve_by_phone_number(tenant.twilio_phone_number)).id == tenant.id

    async def test_result_is_cached(self, db_session, tenant):
        cache = FakeCache()
        resolver = TenantResolver(db_session, cache=cache)
        await resolver.resolve_by_phone_number(tenant.twilio_phone_number)
        assert cache.store[f"tenant:number:{tenant.twilio_phone_number}"] == str(tenant.id)

    async def test_stale_cache_entry_is_dropped(self, db_session, make_tenant):
        tenant = await make_tenant(status="suspended")
        cache = FakeCache()
        cache.store[f"tenant:number:{tenant.twilio_phone_number}"] = str(tenant.id)
        resolver = TenantResolver(db_session, cache=cache)
        assert await resolver.resolve_by_phone_number(tenant.twilio_phone_number) is None
        assert cache.store == {}


class TestResolveByHost:
    async def test_subdomain(self, db_session, make_tenant):
        tenant = await make_tenant(slug="acme")
        resolver = TenantResolver(db_session, cache=FakeCache())
        assert (await resolver.resolve_by_host("acme.nevermisslead.com")).id == tenant.id

    async def test_custom_domain(self, db_session, make_tenant):
        tenant = await make_tenant(custom_domain="acmeplumbing.com")
        resolver = TenantResolver(db_session, cache=FakeCache())
        assert (await resolver.resolve_by_host("acmeplumbing.com")).id == tenant.id

    async def test_www_is_not_a_slug(self, db_session, make_tenant):
        tenant = await make_tenant(slug="www", custom_domain="www.acmeplumbing.com")
        resolver = TenantResolver(db_session, cache=FakeCache())
        # Falls through to the custom domain lookup
        assert (await resolver.resolve_by_host("www.acmeplumbing.com")).id == tenant.id

    async def test_slug_header_fallback(self, db_session, make_tenant):
        tenant = await make_tenant(slug="bobs-hvac")
        resolver = TenantResolver(db_session, cache=FakeCache())
        assert (await resolver.resolve_by_host("localhost:8000", slug_header="bobs-hvac")).id == tenant.id
        assert await resolver.resolve_by_host("localhost:8000") is None
