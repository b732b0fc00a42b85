"""Pending changes for the participant detail page."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import Field

from .base import (
    ChangeSet,
    DocumentChangeSet,
    PendingChangesBase,
    PendingItem,
    PendingUpdate,
)

FundingStatus = Literal["Active", "Near Depletion", "Expired", "Inactive"]


class PendingGoal(PendingItem):
    goal_type: str
    description: str | None = None
    is_active: bool = True


class GoalUpdate(PendingUpdate):
    goal_type: str | None = None
    description: str | None = None
    is_active: bool | None = None


class PendingMedication(PendingItem):
    medication_id: str
    dosage: str | None = None
    frequency: str | None = None
    is_active: bool = True


class MedicationUpdate(PendingUpdate):
    medication_id: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    is_active: bool | None = None


class PendingContact(PendingItem):
    contact_name: str
    contact_type_id: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None
    is_active: bool = True


class ContactUpdate(PendingUpdate):
    contact_name: str | None = None
    contact_type_id: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None
    is_active: bool | None = None


class PendingFunding(PendingItem):
    funding_source_id: str
    funding_type_id: str
    code: str | None = None
    invoice_recipient: str | None = None
    allocated_amount: float = 0.0
    used_amount: float = 0.0
    remaining_amount: float | None = None
    status: FundingStatus = "Active"
    end_date: date | None = None
    notes: str | None = None


class FundingUpdate(PendingUpdate):
    funding_source_id: str | None = None
    funding_type_id: str | None = None
    code: str | None = None
    invoice_recipient: str | None = None
    allocated_amount: float | None = None
    used_amount: float | None = None
    remaining_amount: float | None = None
    status: FundingStatus | None = None
    end_date: date | None = None
    notes: str | None = None


class PendingShiftNote(PendingItem):
    shift_date: date
    shift_time: str | None = None
    staff_id: str | None = None
    full_note: str
    tags: list[str] = Field(default_factory=list)


class ShiftNoteUpdate(PendingUpdate):
    shift_date: date | None = None
    shift_time: str | None = None
    staff_id: str | None = None
    full_note: str | None = None
    tags: list[str] | None = None


class ParticipantPendingChanges(PendingChangesBase):
    goals: ChangeSet[PendingGoal, GoalUpdate] = Field(default_factory=ChangeSet[PendingGoal, GoalUpdate])
    documents: DocumentChangeSet = Field(default_factory=DocumentChangeSet)
    medications: ChangeSet[PendingMedication, MedicationUpdate] = Field(
        default_factory=ChangeSet[PendingMedication, MedicationUpdate]
    )
    contacts: ChangeSet[PendingContact, ContactUpdate] = Field(
        default_factory=ChangeSet[PendingContact, ContactUpdate]
    )
    funding: ChangeSet[PendingFunding, FundingUpdate] = Field(
        default_factory=ChangeSet[PendingFunding, FundingUpdate]
    )
    shift_notes: ChangeSet[PendingShiftNote, ShiftNoteUpdate] = Field(
        default_factory=ChangeSet[PendingShiftNote, ShiftNoteUpdate], alias="shiftNotes"
    )
