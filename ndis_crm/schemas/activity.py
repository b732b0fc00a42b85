"""Activity log schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ActivityResponse(BaseModel):
    id: str
    activity_type: str
    entity_type: str
    entity_id: str
    entity_name: str | None = None
    description: str
    user_name: str | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
