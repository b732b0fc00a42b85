"""Async store client - row-level select/insert/update/delete keyed by table name.

Rows go in and come out as plain dicts so the reconciliation code never holds
ORM instances. Every call commits on its own, like a request against a hosted
backend; inside ``transaction()`` calls only flush and the block commits or
rolls back as a whole.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator

from sqlalchemy import Date, DateTime, Integer, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import EntityNotFound, StoreError
from ..models import Base

log = logging.getLogger(__name__)


def _table_registry() -> dict[str, type[Base]]:
    return {m.class_.__tablename__: m.class_ for m in Base.registry.mappers}


def row_to_dict(obj: Base) -> dict[str, Any]:
    return {attr.key: getattr(obj, attr.key) for attr in inspect(type(obj)).column_attrs}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_row(model: type[Base], row: dict[str, Any]) -> dict[str, Any]:
    """Parse ISO strings for date/datetime columns and digit strings for integer
    columns; '' becomes NULL there. Unparseable numbers are left for validation."""
    columns = inspect(model).columns
    out: dict[str, Any] = {}
    for key, value in row.items():
        column = columns.get(key)
        if column is not None and isinstance(value, str):
            if isinstance(column.type, DateTime):
                value = datetime.fromisoformat(value.replace("Z", "+00:00")) if value else None
            elif isinstance(column.type, Date):
                value = date.fromisoformat(value[:10]) if value else None
            elif isinstance(column.type, Integer):
                if not value.strip():
                    value = None
                elif value.strip().lstrip("-").isdigit():
                    value = int(value)
        out[key] = value
    return out


class StoreClient:
    def __init__(self, db: AsyncSession, *, autocommit: bool = True):
        self.db = db
        self.autocommit = autocommit
        self._tables = _table_registry()

    def model_for(self, table: str) -> type[Base]:
        try:
            return self._tables[table]
        except KeyError:
            raise StoreError("resolve", table, LookupError(f"unknown table {table!r}")) from None

    def coerce(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Row values as the store will hold them (ISO date strings parsed)."""
        try:
            return coerce_row(self.model_for(table), row)
        except ValueError as exc:
            raise StoreError("coerce", table, exc) from exc

    def columns(self, table: str) -> set[str]:
        return {attr.key for attr in inspect(self.model_for(table)).column_attrs}

    @property
    def in_transaction(self) -> bool:
        return not self.autocommit

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreClient]:
        """Group several calls into one commit; roll back everything on error."""
        previous = self.autocommit
        self.autocommit = False
        try:
            yield self
            await self.db.commit()
        except BaseException:
            await self.db.rollback()
            raise
        finally:
            self.autocommit = previous

    async def _finish(self) -> None:
        if self.autocommit:
            await self.db.commit()
        else:
            await self.db.flush()

    async def _fail(self, operation: str, table: str, exc: BaseException) -> StoreError:
        log.error("Store %s on %s failed: %s", operation, table, exc)
        if self.autocommit:
            await self.db.rollback()
        return StoreError(operation, table, exc)

    async def _load(self, model: type[Base], row_id: str) -> Base | None:
        result = await self.db.execute(select(model).where(model.id == row_id))
        return result.scalar_one_or_none()

    # ── Reads ───────────────────────────────────────────────

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Rows matching every filter. Lists mean IN, None means IS NULL."""
        model = self.model_for(table)
        stmt = select(model)
        for column, value in (filters or {}).items():
            attr = getattr(model, column)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(attr.in_(list(value)))
            elif value is None:
                stmt = stmt.where(attr.is_(None))
            else:
                stmt = stmt.where(attr == value)
        if order_by:
            desc = order_by.startswith("-")
            attr = getattr(model, order_by.lstrip("-"))
            stmt = stmt.order_by(attr.desc() if desc else attr)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise await self._fail("select", table, exc) from exc
        return [row_to_dict(obj) for obj in result.scalars().all()]

    async def get(self, table: str, row_id: str) -> dict[str, Any] | None:
        rows = await self.select(table, {"id": row_id}, limit=1)
        return rows[0] if rows else None

    # ── Writes ──────────────────────────────────────────────

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return it with its persistent id."""
        model = self.model_for(table)
        try:
            obj = model(**coerce_row(model, row))
            self.db.add(obj)
            await self._finish()
            await self.db.refresh(obj)
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            raise await self._fail("insert", table, exc) from exc
        return row_to_dict(obj)

    async def update(self, table: str, row: dict[str, Any], row_id: str) -> dict[str, Any]:
        """Apply a partial update to one row; ``updated_at`` is stamped when the table has it."""
        model = self.model_for(table)
        try:
            obj = await self._load(model, row_id)
            if obj is None:
                raise EntityNotFound(table, row_id)
            for key, value in coerce_row(model, row).items():
                if key == "id":
                    continue
                if not hasattr(model, key):
                    raise TypeError(f"{table} has no column {key!r}")
                setattr(obj, key, value)
            if hasattr(model, "updated_at"):
                obj.updated_at = utcnow()
            await self._finish()
            await self.db.refresh(obj)
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            raise await self._fail("update", table, exc) from exc
        return row_to_dict(obj)

    async def delete(self, table: str, row_id: str) -> None:
        """Delete one row. Deleting a row that is already gone is a no-op."""
        model = self.model_for(table)
        try:
            obj = await self._load(model, row_id)
            if obj is None:
                log.debug("Delete on %s skipped, %s already gone", table, row_id)
                return
            await self.db.delete(obj)
            await self._finish()
        except SQLAlchemyError as exc:
            raise await self._fail("delete", table, exc) from exc
