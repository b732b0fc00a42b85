"""Save request/response schemas shared by the entity routers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..pending import HousePendingChanges, ParticipantPendingChanges, StaffPendingChanges
from ..services.commit_svc import CommitResult


class SaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    form_data: dict[str, Any] | None = Field(default=None, alias="formData")
    user_name: str | None = Field(default=None, alias="userName")
    transactional: bool | None = None


class ParticipantSaveRequest(SaveRequest):
    pending_changes: ParticipantPendingChanges = Field(
        default_factory=ParticipantPendingChanges, alias="pendingChanges"
    )


class StaffSaveRequest(SaveRequest):
    pending_changes: StaffPendingChanges = Field(
        default_factory=StaffPendingChanges, alias="pendingChanges"
    )


class HouseSaveRequest(SaveRequest):
    pending_changes: HousePendingChanges = Field(
        default_factory=HousePendingChanges, alias="pendingChanges"
    )


class SaveResponse(BaseModel):
    entity: dict[str, Any]
    pending_changes: dict[str, Any]
    id_map: dict[str, str]
    applied: dict[str, int]
    activities_logged: int = 0

    @classmethod
    def from_result(cls, result: CommitResult) -> SaveResponse:
        return cls(
            entity=result.entity,
            pending_changes=result.pending.model_dump(mode="json", by_alias=True),
            id_map=result.id_map,
            applied=result.applied,
            activities_logged=result.activities_logged,
        )
