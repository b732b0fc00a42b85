"""Participant service - CRUD, search, archive."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.participant import Participant
from ..store import FileStorage
from . import entity_svc

SEARCH_COLUMNS = ("name", "email", "phone", "ndis_number")


async def create_participant(
    db: AsyncSession, *, user_name: str | None = None, **fields: Any
) -> Participant:
    """Create a participant; new participants start as drafts."""
    fields.setdefault("status", "draft")
    return await entity_svc.create_entity(
        db, Participant, "participant", user_name=user_name, **fields
    )


async def get_participant(db: AsyncSession, participant_id: str) -> Participant | None:
    return await entity_svc.get_entity(db, Participant, participant_id)


async def list_participants(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: str | None = None,
    house_id: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Participant], int]:
    """List participants with optional search, status and house filters."""
    return await entity_svc.list_entities(
        db,
        Participant,
        search_columns=SEARCH_COLUMNS,
        search=search,
        status=status,
        filters={"house_id": house_id} if house_id else None,
        offset=offset,
        limit=limit,
    )


async def archive_participant(
    db: AsyncSession, participant_id: str, *, user_name: str | None = None
) -> Participant | None:
    return await entity_svc.archive_entity(
        db, Participant, "participant", participant_id, user_name=user_name
    )


async def delete_participant(
    db: AsyncSession, participant_id: str, storage: FileStorage, *, user_name: str | None = None
) -> bool:
    """Hard delete with goals, documents, medications, contacts, funding and shift notes."""
    return await entity_svc.delete_entity(
        db, "participant", participant_id, storage, user_name=user_name
    )


async def get_participant_detail(
    db: AsyncSession, participant_id: str, storage: FileStorage | None = None
) -> dict[str, Any]:
    return await entity_svc.get_entity_detail(db, "participant", participant_id, storage)
