"""Pending changes for the house detail page.

Two collections can point at rows that are still pending: checklist items
reference their checklist and form assignments reference their form. Either
reference may be a temporary id until the parent is committed.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import Field

from .base import (
    ChangeSet,
    DocumentChangeSet,
    PendingChangesBase,
    PendingItem,
    PendingUpdate,
)


class PendingResidency(PendingItem):
    """Moving an existing participant into the house."""

    participant_id: str
    move_in_date: date | None = None
    is_active: bool = True


class ResidencyUpdate(PendingUpdate):
    """Keyed by participant id."""

    move_in_date: date | None = None
    is_active: bool | None = None


class PendingStaffAssignment(PendingItem):
    staff_id: str
    is_primary: bool = False
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None


class StaffAssignmentUpdate(PendingUpdate):
    is_primary: bool | None = None
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None


class PendingCalendarEvent(PendingItem):
    title: str
    event_type: str = Field(alias="type")
    description: str | None = None
    event_date: date
    start_time: str | None = None
    end_time: str | None = None
    participant_id: str | None = None
    assigned_staff_id: str | None = None
    status: str | None = None
    location: str | None = None
    notes: str | None = None


class CalendarEventUpdate(PendingUpdate):
    title: str | None = None
    event_type: str | None = Field(default=None, alias="type")
    description: str | None = None
    event_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    participant_id: str | None = None
    assigned_staff_id: str | None = None
    status: str | None = None
    location: str | None = None
    notes: str | None = None


class PendingChecklistItem(PendingItem):
    # Empty when the item is embedded in a pending checklist.
    checklist_id: str | None = None
    title: str
    instructions: str | None = None
    priority: str = "medium"
    is_required: bool = False
    sort_order: int = 0


class ChecklistItemUpdate(PendingUpdate):
    title: str | None = None
    instructions: str | None = None
    priority: str | None = None
    is_required: bool | None = None
    sort_order: int | None = None


class PendingChecklist(PendingItem):
    name: str
    frequency: str
    description: str | None = None
    is_global: bool = False
    master_id: str | None = None
    items: list[PendingChecklistItem] = Field(default_factory=list)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(exclude={"temp_id", "items"})


class ChecklistUpdate(PendingUpdate):
    name: str | None = None
    frequency: str | None = None
    description: str | None = None
    is_global: bool | None = None


class ChecklistChangeSet(ChangeSet[PendingChecklist, ChecklistUpdate]):
    checklist_items: ChangeSet[PendingChecklistItem, ChecklistItemUpdate] = Field(
        default_factory=ChangeSet[PendingChecklistItem, ChecklistItemUpdate],
        alias="checklistItems",
    )

    def count(self) -> int:
        return super().count() + self.checklist_items.count()

    def stage_remove(self, item_id: str) -> bool:
        """Removing a checklist also drops pending items that point at it."""
        items = self.checklist_items
        items.to_add = [i for i in items.to_add if i.checklist_id != item_id]
        return super().stage_remove(item_id)


class PendingForm(PendingItem):
    name: str
    form_type: str = Field(alias="type")
    description: str | None = None
    frequency: str
    is_global: bool = False
    status: str = "active"


class FormUpdate(PendingUpdate):
    name: str | None = None
    form_type: str | None = Field(default=None, alias="type")
    description: str | None = None
    frequency: str | None = None
    is_global: bool | None = None
    status: str | None = None


class PendingFormAssignment(PendingItem):
    # Persistent id or the temp id of a pending form.
    form_id: str
    participant_id: str | None = None
    staff_id: str | None = None
    due_date: date | None = None
    status: str = "pending"
    notes: str | None = None


class FormAssignmentUpdate(PendingUpdate):
    participant_id: str | None = None
    staff_id: str | None = None
    due_date: date | None = None
    status: str | None = None
    notes: str | None = None


class PendingResource(PendingItem):
    title: str
    category: str
    resource_type: str = Field(alias="type")
    description: str | None = None
    priority: str = "medium"
    phone: str | None = None
    address: str | None = None
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    notes: str | None = None


class ResourceUpdate(PendingUpdate):
    title: str | None = None
    category: str | None = None
    resource_type: str | None = Field(default=None, alias="type")
    description: str | None = None
    priority: str | None = None
    phone: str | None = None
    address: str | None = None
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    notes: str | None = None


class HousePendingChanges(PendingChangesBase):
    participants: ChangeSet[PendingResidency, ResidencyUpdate] = Field(
        default_factory=ChangeSet[PendingResidency, ResidencyUpdate]
    )
    staff: ChangeSet[PendingStaffAssignment, StaffAssignmentUpdate] = Field(
        default_factory=ChangeSet[PendingStaffAssignment, StaffAssignmentUpdate]
    )
    calendar_events: ChangeSet[PendingCalendarEvent, CalendarEventUpdate] = Field(
        default_factory=ChangeSet[PendingCalendarEvent, CalendarEventUpdate],
        alias="calendarEvents",
    )
    documents: DocumentChangeSet = Field(default_factory=DocumentChangeSet)
    checklists: ChecklistChangeSet = Field(default_factory=ChecklistChangeSet)
    forms: ChangeSet[PendingForm, FormUpdate] = Field(
        default_factory=ChangeSet[PendingForm, FormUpdate]
    )
    form_assignments: ChangeSet[PendingFormAssignment, FormAssignmentUpdate] = Field(
        default_factory=ChangeSet[PendingFormAssignment, FormAssignmentUpdate],
        alias="formAssignments",
    )
    resources: ChangeSet[PendingResource, ResourceUpdate] = Field(
        default_factory=ChangeSet[PendingResource, ResourceUpdate]
    )

    def stage_remove_form(self, form_id: str) -> bool:
        """Remove a form together with the pending assignments that point at it."""
        assignments = self.form_assignments
        assignments.to_add = [a for a in assignments.to_add if a.form_id != form_id]
        return self.forms.stage_remove(form_id)
