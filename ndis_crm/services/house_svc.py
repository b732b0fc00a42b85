"""House service - CRUD, search, archive."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.house import House
from ..store import FileStorage
from . import entity_svc


async def create_house(db: AsyncSession, *, user_name: str | None = None, **fields: Any) -> House:
    """Create a house. Houses have no draft state; a name is always required."""
    return await entity_svc.create_entity(db, House, "house", user_name=user_name, **fields)


async def get_house(db: AsyncSession, house_id: str) -> House | None:
    return await entity_svc.get_entity(db, House, house_id)


async def list_houses(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[House], int]:
    return await entity_svc.list_entities(
        db,
        House,
        search_columns=("name", "address", "house_manager"),
        search=search,
        status=status,
        offset=offset,
        limit=limit,
    )


async def archive_house(
    db: AsyncSession, house_id: str, *, user_name: str | None = None
) -> House | None:
    return await entity_svc.archive_entity(db, House, "house", house_id, user_name=user_name)


async def delete_house(
    db: AsyncSession, house_id: str, storage: FileStorage, *, user_name: str | None = None
) -> bool:
    """Hard delete. Residents stay on file with their house cleared."""
    return await entity_svc.delete_entity(db, "house", house_id, storage, user_name=user_name)


async def get_house_detail(
    db: AsyncSession, house_id: str, storage: FileStorage | None = None
) -> dict[str, Any]:
    return await entity_svc.get_entity_detail(db, "house", house_id, storage)
