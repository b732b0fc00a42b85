"""Staff routes - list, create, detail, save, archive, delete."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.save import SaveResponse, StaffSaveRequest
from ..schemas.staff import StaffCreate, StaffResponse
from ..services import staff_svc
from ..session import save_entity
from ..store import FileStorage, StoreClient, get_storage

router = APIRouter(prefix="/staff", tags=["staff"])


@router.get("/")
async def staff_list(
    db: AsyncSession = Depends(get_db),
    search: str | None = None,
    status: str | None = None,
    department: str | None = None,
    offset: int = 0,
    limit: int = 50,
):
    members, total = await staff_svc.list_staff(
        db, search=search, status=status, department=department, offset=offset, limit=limit
    )
    return {"items": [StaffResponse.model_validate(s) for s in members], "total": total}


@router.post("/", status_code=201, response_model=StaffResponse)
async def staff_create(
    body: StaffCreate,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    return await staff_svc.create_staff(db, user_name=user_name, **body.model_dump(exclude_unset=True))


@router.get("/{staff_id}")
async def staff_detail(
    staff_id: str,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    return await staff_svc.get_staff_detail(db, staff_id, storage)


@router.post("/{staff_id}/save", response_model=SaveResponse)
async def staff_save(
    staff_id: str,
    body: StaffSaveRequest,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    result = await save_entity(
        StoreClient(db),
        storage,
        "staff",
        staff_id,
        form_data=body.form_data,
        pending=body.pending_changes,
        user_name=body.user_name,
        transactional=body.transactional,
    )
    return SaveResponse.from_result(result)


@router.post("/{staff_id}/archive", response_model=StaffResponse)
async def staff_archive(
    staff_id: str,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    member = await staff_svc.archive_staff(db, staff_id, user_name=user_name)
    if member is None:
        raise HTTPException(status_code=404, detail="Staff member not found")
    return member


@router.delete("/{staff_id}", status_code=204)
async def staff_delete(
    staff_id: str,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    if not await staff_svc.delete_staff(db, staff_id, storage, user_name=user_name):
        raise HTTPException(status_code=404, detail="Staff member not found")
    return Response(status_code=204)
