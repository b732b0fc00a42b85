"""Models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, StoredFileMixin
from .participant import (
    Participant,
    ParticipantGoal,
    ParticipantMedication,
    ParticipantContact,
    ParticipantFunding,
    ShiftNote,
    ParticipantDocument,
)
from .staff import Staff, StaffCompliance, StaffTraining, StaffDocument
from .house import (
    House,
    HouseStaffAssignment,
    HouseCalendarEvent,
    HouseFile,
    HouseChecklist,
    HouseChecklistItem,
    HouseForm,
    HouseFormAssignment,
    HouseResource,
)
from .activity import ActivityLog

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "StoredFileMixin",
    "Participant",
    "ParticipantGoal",
    "ParticipantMedication",
    "ParticipantContact",
    "ParticipantFunding",
    "ShiftNote",
    "ParticipantDocument",
    "Staff",
    "StaffCompliance",
    "StaffTraining",
    "StaffDocument",
    "House",
    "HouseStaffAssignment",
    "HouseCalendarEvent",
    "HouseFile",
    "HouseChecklist",
    "HouseChecklistItem",
    "HouseForm",
    "HouseFormAssignment",
    "HouseResource",
    "ActivityLog",
]
