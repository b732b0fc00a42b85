"""Pending changes for the staff detail page."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import Field

from .base import (
    ChangeSet,
    DocumentChangeSet,
    FileChangeSet,
    FileContentMixin,
    PendingChangesBase,
    PendingItem,
    PendingUpdate,
)


class PendingCompliance(PendingItem):
    compliance_name: str
    completion_date: date | None = None
    expiry_date: date | None = None
    status: str | None = None


class ComplianceUpdate(PendingUpdate):
    compliance_name: str | None = None
    completion_date: date | None = None
    expiry_date: date | None = None
    status: str | None = None


class PendingTraining(FileContentMixin, PendingItem):
    """A training record, optionally with a certificate to upload."""

    title: str
    category: str
    description: str | None = None
    provider: str | None = None
    date_completed: date | None = None
    expiry_date: date | None = None
    file_name: str | None = Field(default=None, alias="fileName")

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(exclude={"temp_id", "content", "content_type"})


class TrainingUpdate(PendingUpdate):
    title: str | None = None
    category: str | None = None
    description: str | None = None
    provider: str | None = None
    date_completed: date | None = None
    expiry_date: date | None = None


class StaffPendingChanges(PendingChangesBase):
    documents: DocumentChangeSet = Field(default_factory=DocumentChangeSet)
    compliance: ChangeSet[PendingCompliance, ComplianceUpdate] = Field(
        default_factory=ChangeSet[PendingCompliance, ComplianceUpdate]
    )
    training: FileChangeSet[PendingTraining, TrainingUpdate] = Field(
        default_factory=FileChangeSet[PendingTraining, TrainingUpdate]
    )
