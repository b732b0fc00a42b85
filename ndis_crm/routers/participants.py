"""Participant routes - list, create, detail, save, archive, delete."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.participant import ParticipantCreate, ParticipantResponse
from ..schemas.save import ParticipantSaveRequest, SaveResponse
from ..services import participant_svc
from ..session import save_entity
from ..store import FileStorage, StoreClient, get_storage

router = APIRouter(prefix="/participants", tags=["participants"])


@router.get("/")
async def participant_list(
    db: AsyncSession = Depends(get_db),
    search: str | None = None,
    status: str | None = None,
    house_id: str | None = None,
    offset: int = 0,
    limit: int = 50,
):
    participants, total = await participant_svc.list_participants(
        db, search=search, status=status, house_id=house_id, offset=offset, limit=limit
    )
    return {
        "items": [ParticipantResponse.model_validate(p) for p in participants],
        "total": total,
    }


@router.post("/", status_code=201, response_model=ParticipantResponse)
async def participant_create(
    body: ParticipantCreate,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    return await participant_svc.create_participant(
        db, user_name=user_name, **body.model_dump(exclude_unset=True)
    )


@router.get("/{participant_id}")
async def participant_detail(
    participant_id: str,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    return await participant_svc.get_participant_detail(db, participant_id, storage)


@router.post("/{participant_id}/save", response_model=SaveResponse)
async def participant_save(
    participant_id: str,
    body: ParticipantSaveRequest,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    result = await save_entity(
        StoreClient(db),
        storage,
        "participant",
        participant_id,
        form_data=body.form_data,
        pending=body.pending_changes,
        user_name=body.user_name,
        transactional=body.transactional,
    )
    return SaveResponse.from_result(result)


@router.post("/{participant_id}/archive", response_model=ParticipantResponse)
async def participant_archive(
    participant_id: str,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    participant = await participant_svc.archive_participant(db, participant_id, user_name=user_name)
    if participant is None:
        raise HTTPException(status_code=404, detail="Participant not found")
    return participant


@router.delete("/{participant_id}", status_code=204)
async def participant_delete(
    participant_id: str,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    if not await participant_svc.delete_participant(db, participant_id, storage, user_name=user_name):
        raise HTTPException(status_code=404, detail="Participant not found")
    return Response(status_code=204)
