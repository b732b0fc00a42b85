"""House routes - list, create, detail, save, archive, delete."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.house import HouseCreate, HouseResponse
from ..schemas.save import HouseSaveRequest, SaveResponse
from ..services import house_svc
from ..session import save_entity
from ..store import FileStorage, StoreClient, get_storage

router = APIRouter(prefix="/houses", tags=["houses"])


@router.get("/")
async def house_list(
    db: AsyncSession = Depends(get_db),
    search: str | None = None,
    status: str | None = None,
    offset: int = 0,
    limit: int = 50,
):
    houses, total = await house_svc.list_houses(
        db, search=search, status=status, offset=offset, limit=limit
    )
    return {"items": [HouseResponse.model_validate(h) for h in houses], "total": total}


@router.post("/", status_code=201, response_model=HouseResponse)
async def house_create(
    body: HouseCreate,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    return await house_svc.create_house(db, user_name=user_name, **body.model_dump(exclude_unset=True))


@router.get("/{house_id}")
async def house_detail(
    house_id: str,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    return await house_svc.get_house_detail(db, house_id, storage)


@router.post("/{house_id}/save", response_model=SaveResponse)
async def house_save(
    house_id: str,
    body: HouseSaveRequest,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    result = await save_entity(
        StoreClient(db),
        storage,
        "house",
        house_id,
        form_data=body.form_data,
        pending=body.pending_changes,
        user_name=body.user_name,
        transactional=body.transactional,
    )
    return SaveResponse.from_result(result)


@router.post("/{house_id}/archive", response_model=HouseResponse)
async def house_archive(
    house_id: str,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    house = await house_svc.archive_house(db, house_id, user_name=user_name)
    if house is None:
        raise HTTPException(status_code=404, detail="House not found")
    return house


@router.delete("/{house_id}", status_code=204)
async def house_delete(
    house_id: str,
    user_name: str | None = None,
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    if not await house_svc.delete_house(db, house_id, storage, user_name=user_name):
        raise HTTPException(status_code=404, detail="House not found")
    return Response(status_code=204)
