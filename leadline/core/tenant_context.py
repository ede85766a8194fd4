"""Tenant context for row-level isolation.

Every tenant-scoped read or write runs inside ``tenant_scope``. The scope
marks the tenant as active in two places: a ``ContextVar`` that application
code and logging read, and (on PostgreSQL) the transaction-local
``app.current_tenant_id`` setting that the row-level security policies
compare against. Both are released on every exit path, so a session that
goes back to the pool never carries a tenant with it.
"""

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.persistence.database import dialect_name

logger = logging.getLogger(__name__)

# Context variable for tenant_id
tenant_id_var: ContextVar[Optional[int]] = ContextVar("tenant_id", default=None)

_SET_TENANT_SQL = text("SELECT set_config('app.current_tenant_id', :tenant_id, true)")


def get_tenant_context() -> int | None:
    """Get the current tenant context."""
    return tenant_id_var.get()


async def _apply_session_tenant(session: AsyncSession, tenant_id: int | None) -> None:
    if dialect_name(session) != "postgresql":
        return
    value = "" if tenant_id is None else str(tenant_id)
    await session.execute(_SET_TENANT_SQL, {"tenant_id": value})


@asynccontextmanager
async def tenant_scope(session: AsyncSession, tenant_id: int) -> AsyncIterator[AsyncSession]:
    """Run a unit of work as ``tenant_id``.

    Commits when the block exits normally; rolls back and re-raises when it
    does not. The tenant is released from both the context variable and the
    database session either way.

    Scopes do not nest: leaving an inner scope would clear the database
    setting while the outer block is still running, so opening one while
    another tenant is active raises ``RuntimeError``.

    Usage:
        async with tenant_scope(db, tenant.id):
            await CallLogRepository(db).upsert(...)
    """
    active = tenant_id_var.get()
    if active is not None:
        raise RuntimeError(f"Tenant scope for {tenant_id} opened inside the scope of tenant {active}")
    token = tenant_id_var.set(tenant_id)
    try:
        await _apply_session_tenant(session, tenant_id)
        yield session
        await _apply_session_tenant(session, None)
        await session.commit()
    except BaseException:
        logger.debug("Rolling back tenant scope", extra={"scope_tenant_id": tenant_id})
        await session.rollback()
        raise
    finally:
        tenant_id_var.reset(token)
