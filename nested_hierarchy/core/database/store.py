"""Generic SQLAlchemy store used by the hierarchy engine.

Point reads and writes take an explicit session, like any repository method.
Bulk statements go straight to SQLAlchemy Core (``UPDATE ... WHERE`` /
``DELETE ... WHERE``) without loading rows, which is what nested set
maintenance needs: one statement shifts every node right of a boundary.

Example:
    store = NodeStore(Category, session_factory)

    async with store.transaction() as session:
        node = await store.get_or_raise(session, 4)
        await store.bulk_update(
            session,
            {"rgt": Category.rgt + 2},
            Category.rgt >= node.rgt,
        )
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast, Generic, TypeVar

from sqlalchemy import delete as sql_delete
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select, update
from sqlalchemy.orm.attributes import set_committed_value

from nested_hierarchy.core.database.exceptions import NotFoundError
from nested_hierarchy.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping, Sequence

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.orm import InstrumentedAttribute


T = TypeVar("T")


class NodeStore(Generic[T]):
    """Tabular storage for one mapped model.

    Provides:
        - session() / transaction() -> AsyncSession context managers
        - get(session, id) -> T | None (always re-read from the database)
        - get_or_raise(session, id) -> T (raises NotFoundError)
        - create(session, instance) -> T
        - save(session, instance) -> T
        - reload(instance) -> T (refresh a possibly detached instance in place)
        - bulk_update(session, values, predicate) -> int
        - bulk_delete(session, predicate) -> int
        - query(session, predicate, order_by) -> Sequence[T]
    """

    __slots__ = ("model", "session_factory", "_logger", "_lazy")

    def __init__(self, model: type[T], session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize store with model class and session factory.

        Args:
            model: SQLAlchemy model class (e.g., Category)
            session_factory: Factory producing AsyncSession instances
        """
        self.model = model
        self.session_factory = session_factory
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session for reads; closed (and rolled back) on exit."""
        async with self.session_factory() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Open a session inside ``begin()``.

        Commits when the body completes, rolls back when it raises. Every
        statement issued through the yielded session is part of the same
        all-or-nothing unit.
        """
        async with self.session_factory() as session, session.begin():
            yield session

    async def get(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
    ) -> T | None:
        """Get entity by primary key, overwriting any cached identity-map state.

        Args:
            session: Database session
            id: Primary key value

        Returns:
            Entity if found, None otherwise
        """
        instance = await session.get(self.model, id, populate_existing=True)
        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_or_raise(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
    ) -> T:
        """Get entity by primary key or raise NotFoundError.

        Raises:
            NotFoundError: If entity doesn't exist
        """
        instance = await self.get(session, id)
        if instance is None:
            self._logger.info(
                "Entity not found",
                extra={
                    "entity": self.model.__name__,
                    "id": str(id),
                    "operation": "db.get_or_raise",
                },
            )
            raise NotFoundError(self.model.__name__, {"id": id})
        return instance

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist a new entity and flush to obtain generated values (like id)."""
        session.add(instance)
        await session.flush()

        entity_id = self.identity_of(instance)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance

    async def save(self, session: AsyncSession, instance: T) -> T:
        """Flush the scalar changes made to ``instance``."""
        session.add(instance)
        await session.flush()
        self._lazy.debug(
            lambda: f"db.save: {self.model.__name__}(id={self.identity_of(instance)})"
        )
        return instance

    async def reload(self, instance: T) -> T:
        """Refresh ``instance`` from current persisted state, in place.

        Works on detached instances returned from earlier sessions: column
        values are copied over as committed state, so nothing is marked
        dirty.

        Raises:
            NotFoundError: The row no longer exists
        """
        entity_id = self.identity_of(instance)
        async with self.session() as session:
            fresh = await self.get(session, entity_id)
            if fresh is None:
                raise NotFoundError(self.model.__name__, {"id": entity_id})
            values = {key: getattr(fresh, key) for key in self._column_keys()}

        for key, value in values.items():
            set_committed_value(instance, key, value)
        return instance

    async def bulk_update(
        self,
        session: AsyncSession,
        values: Mapping[str, Any],
        predicate: ColumnElement[bool],
    ) -> int:
        """Execute ``UPDATE model SET values WHERE predicate``.

        Right-hand sides may be SQL expressions (``Model.lft + 2``); they are
        evaluated against the row's pre-update values. Instances already in
        the session are not synchronized; re-read them with ``get``.

        Args:
            session: Database session
            values: Attribute name -> new value or expression
            predicate: Rows to update

        Returns:
            Number of rows updated
        """
        stmt = (
            update(self.model)
            .where(predicate)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        affected: int = result.rowcount if hasattr(result, "rowcount") else 0
        self._lazy.debug(
            lambda: f"db.bulk_update: {self.model.__name__} set {sorted(values)} -> {affected} rows"
        )
        return affected

    async def bulk_delete(self, session: AsyncSession, predicate: ColumnElement[bool]) -> int:
        """Execute ``DELETE FROM model WHERE predicate``.

        Returns:
            Number of rows deleted
        """
        stmt = sql_delete(self.model).where(predicate).execution_options(
            synchronize_session=False
        )
        result = await session.execute(stmt)
        deleted: int = result.rowcount if hasattr(result, "rowcount") else 0

        # WARNING level for bulk deletes > 10 (audit-worthy)
        if deleted > 10:
            self._logger.warning(
                "Bulk delete executed",
                extra={
                    "entity": self.model.__name__,
                    "deleted": deleted,
                    "operation": "db.bulk_delete",
                },
            )
        else:
            self._lazy.debug(lambda: f"db.bulk_delete: {self.model.__name__} -> {deleted} deleted")
        return deleted

    async def query(
        self,
        session: AsyncSession,
        predicate: ColumnElement[bool],
        order_by: Sequence[Any] = (),
    ) -> Sequence[T]:
        """Select rows matching ``predicate`` in the given order.

        Rows already in the identity map are overwritten with fresh values.
        """
        stmt = (
            select(self.model)
            .where(predicate)
            .order_by(*order_by)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        items = result.scalars().all()
        self._lazy.debug(lambda: f"db.query: {self.model.__name__} -> {len(items)} items")
        return items

    def identity_of(self, instance: T) -> Any:
        """Primary key value of ``instance``.

        Read from the instance's identity key when it has one, so expired
        detached instances can still be identified without a lazy load.
        """
        state = sa_inspect(instance, raiseerr=False)
        if state is not None and state.identity is not None:
            return state.identity[0]
        return getattr(instance, self._pk_attr().key)

    def _column_keys(self) -> list[str]:
        mapper = sa_inspect(self.model)
        return [attr.key for attr in mapper.column_attrs]

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        """Get primary key attribute.

        Inspects the model to find the primary key column.
        Falls back to 'id' if inspection fails.
        """
        mapper = sa_inspect(self.model, raiseerr=False)
        if mapper is not None and mapper.primary_key:
            prop = mapper.get_property_by_column(mapper.primary_key[0])
            return cast("InstrumentedAttribute[Any]", getattr(self.model, prop.key))

        attr = getattr(self.model, "id", None)
        if attr is None:
            raise AttributeError(f"{self.model.__name__} has no 'id' attribute")
        return cast("InstrumentedAttribute[Any]", attr)


__all__ = [
    "NodeStore",
]
