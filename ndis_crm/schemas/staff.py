"""Staff schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


class StaffCreate(BaseModel):
    name: str | None = None
    status: str = "draft"
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    department: str | None = None
    employment_type: str | None = None
    hire_date: date | None = None
    qualifications: str | None = None
    notes: str | None = None


class StaffResponse(StaffCreate):
    id: str
    photo_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
