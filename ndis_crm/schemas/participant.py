"""Participant schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


class ParticipantCreate(BaseModel):
    name: str | None = None
    status: str = "draft"
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: date | None = None
    ndis_number: str | None = None
    house_id: str | None = None
    move_in_date: date | None = None
    support_level: str | None = None
    support_coordinator: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    primary_diagnosis: str | None = None
    allergies: str | None = None
    mealtime_plan_required: bool = False
    mealtime_plan_details: str | None = None
    general_notes: str | None = None


class ParticipantResponse(ParticipantCreate):
    id: str
    photo_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
