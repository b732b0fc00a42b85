"""House schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class HouseCreate(BaseModel):
    name: str
    status: str = "active"
    address: str | None = None
    phone: str | None = None
    capacity: int | None = None
    current_occupancy: int | None = None
    house_manager: str | None = None
    notes: str | None = None


class HouseResponse(HouseCreate):
    id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
