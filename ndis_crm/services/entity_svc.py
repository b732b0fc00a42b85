"""Entity service - create, list, archive, delete and detail for root entities.

``participant_svc``, ``staff_svc`` and ``house_svc`` bind these to a model.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import EntityNotFound, StorageError, ValidationFailed
from ..models import Base
from ..store import FileStorage, StoreClient
from ..store.client import coerce_row
from ..validation import validate_form
from . import activity_svc
from .commit_svc import entity_spec

log = logging.getLogger(__name__)


async def create_entity(
    db: AsyncSession,
    model: type[Base],
    entity_type: str,
    *,
    user_name: str | None = None,
    **fields: Any,
) -> Base:
    """Create a root entity. Drafts may leave most fields empty."""
    errors = validate_form(entity_type, {"status": "draft", **fields})
    if errors:
        raise ValidationFailed(errors)
    entity = model(**coerce_row(model, fields))
    db.add(entity)
    await db.commit()
    await db.refresh(entity)
    await activity_svc.log_activity(
        StoreClient(db),
        activity_type="create",
        entity_type=entity_type,
        entity_id=entity.id,
        entity_name=getattr(entity, "name", None),
        user_name=user_name,
    )
    return entity


async def get_entity(db: AsyncSession, model: type[Base], entity_id: str) -> Base | None:
    result = await db.execute(select(model).where(model.id == entity_id))
    return result.scalar_one_or_none()


async def list_entities(
    db: AsyncSession,
    model: type[Base],
    *,
    search_columns: tuple[str, ...] = ("name",),
    search: str | None = None,
    status: str | None = None,
    filters: dict[str, Any] | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Base], int]:
    """List entities with optional search and status filter. Returns (rows, total)."""
    stmt = select(model)
    for column, value in (filters or {}).items():
        stmt = stmt.where(getattr(model, column) == value)
    if search:
        q = f"%{search}%"
        stmt = stmt.where(or_(*(getattr(model, c).ilike(q) for c in search_columns)))
    if status:
        stmt = stmt.where(model.status == status)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = stmt.order_by(model.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def archive_entity(
    db: AsyncSession,
    model: type[Base],
    entity_type: str,
    entity_id: str,
    *,
    user_name: str | None = None,
) -> Base | None:
    """Soft delete by flipping the status to archived."""
    entity = await get_entity(db, model, entity_id)
    if entity is None:
        return None
    old_status = entity.status
    if old_status != "archived":
        entity.status = "archived"
        await db.commit()
        await db.refresh(entity)
        await activity_svc.log_activity(
            StoreClient(db),
            activity_type="update",
            entity_type=entity_type,
            entity_id=entity.id,
            entity_name=getattr(entity, "name", None),
            changes={"status": {"old": old_status, "new": "archived"}},
            user_name=user_name,
        )
    return entity


async def _child_rows(store: StoreClient, entity_type: str, entity_id: str) -> dict[str, list[dict]]:
    spec = entity_spec(entity_type)
    children: dict[str, list[dict]] = {}
    for coll in spec.collections:
        if coll.kind == "residency":
            children[coll.name] = await store.select("participants", {"house_id": entity_id}, order_by="name")
        elif coll.fk:
            children[coll.name] = await store.select(coll.table, {coll.fk: entity_id}, order_by="created_at")
    for coll in spec.collections:
        for column, parent in coll.refs.items():
            if coll.fk is None:
                parent_ids = [row["id"] for row in children.get(parent, [])]
                children[coll.name] = (
                    await store.select(coll.table, {column: parent_ids}, order_by="created_at")
                    if parent_ids else []
                )
    return children


async def get_entity_detail(
    db: AsyncSession,
    entity_type: str,
    entity_id: str,
    storage: FileStorage | None = None,
) -> dict[str, Any]:
    """The root row plus every dependent collection, as plain dicts."""
    spec = entity_spec(entity_type)
    store = StoreClient(db)
    entity = await store.get(spec.table, entity_id)
    if entity is None:
        raise EntityNotFound(entity_type, entity_id)
    children = await _child_rows(store, entity_type, entity_id)
    if storage is not None:
        for coll in spec.collections:
            if not coll.bucket:
                continue
            for row in children.get(coll.name, []):
                if row.get("file_path"):
                    row["url"] = storage.get_public_url(coll.bucket, row["file_path"])
    return {"entity": entity, **children}


async def delete_entity(
    db: AsyncSession,
    entity_type: str,
    entity_id: str,
    storage: FileStorage,
    *,
    user_name: str | None = None,
) -> bool:
    """Hard delete with every child row and stored file. Returns False if not found."""
    spec = entity_spec(entity_type)
    store = StoreClient(db)
    entity = await store.get(spec.table, entity_id)
    if entity is None:
        return False
    children = await _child_rows(store, entity_type, entity_id)

    objects: list[tuple[str, str]] = []
    async with store.transaction():
        # Nested collections first so no row is left pointing at a deleted parent.
        for coll in sorted(spec.collections, key=lambda c: c.fk is not None):
            for row in children.get(coll.name, []):
                if coll.kind == "residency":
                    await store.update("participants", {"house_id": None}, row["id"])
                    continue
                if coll.bucket and row.get("file_path"):
                    objects.append((coll.bucket, row["file_path"]))
                await store.delete(coll.table, row["id"])
        await store.delete(spec.table, entity_id)

    for bucket, path in objects:
        try:
            await storage.remove(bucket, [path])
        except StorageError:
            log.warning("Could not remove %s/%s for deleted %s %s", bucket, path, entity_type, entity_id)

    await activity_svc.log_activity(
        store,
        activity_type="delete",
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity.get(spec.name_field),
        user_name=user_name,
    )
    return True
