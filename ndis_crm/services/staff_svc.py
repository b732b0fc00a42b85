"""Staff service - CRUD, search, archive."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.staff import Staff
from ..store import FileStorage
from . import entity_svc


async def create_staff(db: AsyncSession, *, user_name: str | None = None, **fields: Any) -> Staff:
    fields.setdefault("status", "draft")
    return await entity_svc.create_entity(db, Staff, "staff", user_name=user_name, **fields)


async def get_staff(db: AsyncSession, staff_id: str) -> Staff | None:
    return await entity_svc.get_entity(db, Staff, staff_id)


async def list_staff(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: str | None = None,
    department: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Staff], int]:
    return await entity_svc.list_entities(
        db,
        Staff,
        search_columns=("name", "email", "phone", "department"),
        search=search,
        status=status,
        filters={"department": department} if department else None,
        offset=offset,
        limit=limit,
    )


async def archive_staff(
    db: AsyncSession, staff_id: str, *, user_name: str | None = None
) -> Staff | None:
    return await entity_svc.archive_entity(db, Staff, "staff", staff_id, user_name=user_name)


async def delete_staff(
    db: AsyncSession, staff_id: str, storage: FileStorage, *, user_name: str | None = None
) -> bool:
    return await entity_svc.delete_entity(db, "staff", staff_id, storage, user_name=user_name)


async def get_staff_detail(
    db: AsyncSession, staff_id: str, storage: FileStorage | None = None
) -> dict[str, Any]:
    return await entity_svc.get_entity_detail(db, "staff", staff_id, storage)
