"""Activity log routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.activity import ActivityResponse
from ..services import activity_svc

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("/", response_model=list[ActivityResponse])
async def activity_list(
    db: AsyncSession = Depends(get_db),
    entity_type: str | None = None,
    entity_id: str | None = None,
    limit: int = Query(50, ge=1, le=500),
):
    return await activity_svc.list_activities(
        db, entity_type=entity_type, entity_id=entity_id, limit=limit
    )
