"""ActivityLog - append-only audit trail of creates, updates and deletes."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin


class ActivityLog(UUIDMixin, Base):
    __tablename__ = "activity_log"

    # create | update | delete | submit | approve | reject | archive | activate
    activity_type: Mapped[str] = mapped_column(String(20), index=True)
    # participant | staff | house | ...
    entity_type: Mapped[str] = mapped_column(String(50), index=True)
    entity_id: Mapped[str] = mapped_column(String(36), index=True)
    entity_name: Mapped[str | None] = mapped_column(String(200), default=None)
    description: Mapped[str] = mapped_column(Text)
    user_name: Mapped[str | None] = mapped_column(String(200), default=None)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<ActivityLog {self.activity_type} {self.entity_type}>"
