"""Tests for the tenant scope guard."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from leadline.core.tenant_context import get_tenant_context, tenant_scope
from leadline.persistence.models.lead import Lead
from leadline.persistence.repositories.lead_repository import LeadRepository


def _postgres_session() -> MagicMock:
    session = MagicMock()
    session.bind.dialect.name = "postgresql"
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


class TestTenantScope:
    """Context is set inside the scope and released on every exit path."""

    async def test_context_set_inside_and_cleared_after(self, db_session, tenant):
        assert get_tenant_context() is None
        async with tenant_scope(db_session, tenant.id):
            assert get_tenant_context() == tenant.id
        assert get_tenant_context() is None

    async def test_commits_on_success(self, db_session, session_factory, tenant):
        async with tenant_scope(db_session, tenant.id):
            await LeadRepository(db_session).create(tenant.id, phone="+15551112222", source="phone")

        async with session_factory() as other:
            leads = (await other.execute(select(Lead))).scalars().all()
        assert len(leads) == 1

    async def test_rolls_back_and_clears_on_failure(self, db_session, session_factory, tenant):
        with pytest.raises(RuntimeError):
            async with tenant_scope(db_session, tenant.id):
                await LeadRepository(db_session).create(tenant.id, phone="+15551112222", source="phone")
                raise RuntimeError("boom")

        assert get_tenant_context() is None
        async with session_factory() as other:
            leads = (await other.execute(select(Lead))).scalars().all()
        assert leads == []

    async def test_nested_scope_is_rejected(self, db_session, make_tenant):
        outer = await make_tenant()
        inner = await make_tenant()
        async with tenant_scope(db_session, outer.id):
            with pytest.raises(RuntimeError):
                async with tenant_scope(db_session, inner.id):
                    pass
            assert get_tenant_context() == outer.id
        assert get_tenant_context() is None


class TestPostgresSessionSetting:
    """On PostgreSQL the transaction-local setting follows the scope."""

    async def test_sets_and_releases_session_tenant(self):
        session = _postgres_session()

        async with tenant_scope(session, 42):
            first_call = session.execute.await_args_list[0]
            assert first_call.args[1] == {"tenant_id": "42"}

        last_call = session.execute.await_args_list[-1]
        assert last_call.args[1] == {"tenant_id": ""}
        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    async def test_failure_rolls_back(self):
        session = _postgres_session()

        with pytest.raises(ValueError):
            async with tenant_scope(session, 7):
                raise ValueError("bad")

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()
        assert get_tenant_context() is None

    async def test_sqlite_issues_no_set_config(self):
        session = _postgres_session()
        session.bind.dialect.name = "sqlite"

        async with tenant_scope(session, 3):
            pass

        session.execute.assert_not_awaited()
        session.commit.assert_awaited_once()
