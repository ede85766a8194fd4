"""Base repository with tenant-scoped queries."""

from typing import Any, Generic, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.persistence.database import Base, dialect_name

ModelType = TypeVar("ModelType", bound=Base)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class BaseRepository(Generic[ModelType]):
    """Base repository with tenant-scoped query methods.

    Repositories flush but never commit; the surrounding ``tenant_scope``
    owns the transaction.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """Initialize repository with model and session."""
        self.model = model
        self.session = session

    async def get_by_id(self, tenant_id: int | None, id: int) -> ModelType | None:
        """Get entity by ID, scoped to tenant."""
        if tenant_id is None:
            stmt = select(self.model).where(self.model.id == id)
        else:
            stmt = select(self.model).where(
                self.model.id == id,
                self.model.tenant_id == tenant_id,
            )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, tenant_id: int | None, **data: Any) -> ModelType:
        """Create new entity with tenant_id."""
        if tenant_id is not None:
            data["tenant_id"] = tenant_id
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, tenant_id: int | None, id: int, **data: Any) -> ModelType | None:
        """Update entity, scoped to tenant."""
        instance = await self.get_by_id(tenant_id, id)
        if instance is None:
            return None

        for key, value in data.items():
            setattr(instance, key, value)

        await self.session.flush()
        return instance

    async def insert_if_absent(self, conflict_column: str, **values: Any) -> bool:
        """INSERT ... ON CONFLICT DO NOTHING on a unique column.

        Two deliveries racing to create the same provider row both succeed;
        exactly one insert wins and the caller re-reads the row.

        Returns:
            True only for the statement that actually inserted the row
        """
        name = dialect_name(self.session)
        insert = _INSERT_BY_DIALECT.get(name)
        if insert is None:
            raise NotImplementedError(f"Conflict-free insert not supported for dialect {name!r}")
        stmt = insert(self.model).values(**values).on_conflict_do_nothing(
            index_elements=[conflict_column]
        ).returning(self.model.id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None
