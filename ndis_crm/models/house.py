"""House model and the collections managed from the house detail page."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, StoredFileMixin, TimestampMixin, UUIDMixin


class House(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "houses"

    name: Mapped[str] = mapped_column(String(200), index=True)
    # active | inactive | maintenance | archived
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)
    address: Mapped[str | None] = mapped_column(String(255), default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    capacity: Mapped[int | None] = mapped_column(Integer, default=None)
    current_occupancy: Mapped[int | None] = mapped_column(Integer, default=None)
    house_manager: Mapped[str | None] = mapped_column(String(200), default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)

    def __repr__(self) -> str:
        return f"<House {self.name!r}>"


class HouseStaffAssignment(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "house_staff_assignments"

    house_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="CASCADE"), index=True
    )
    staff_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("staff.id", ondelete="CASCADE"), index=True
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    start_date: Mapped[date | None] = mapped_column(Date, default=None)
    end_date: Mapped[date | None] = mapped_column(Date, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)


class HouseCalendarEvent(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "house_calendar_events"

    house_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(200))
    event_type: Mapped[str] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    event_date: Mapped[date] = mapped_column(Date)
    start_time: Mapped[str | None] = mapped_column(String(10), default=None)
    end_time: Mapped[str | None] = mapped_column(String(10), default=None)
    participant_id: Mapped[str | None] = mapped_column(String(36), default=None)
    assigned_staff_id: Mapped[str | None] = mapped_column(String(36), default=None)
    status: Mapped[str | None] = mapped_column(String(30), default=None)
    location: Mapped[str | None] = mapped_column(String(255), default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)


class HouseFile(UUIDMixin, TimestampMixin, StoredFileMixin, Base):
    __tablename__ = "house_files"

    house_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="CASCADE"), index=True
    )
    uploaded_by: Mapped[str | None] = mapped_column(String(200), default=None)


class HouseChecklist(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "house_checklists"

    house_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(200))
    frequency: Mapped[str] = mapped_column(String(30))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_global: Mapped[bool] = mapped_column(Boolean, default=False)
    master_id: Mapped[str | None] = mapped_column(String(36), default=None)


class HouseChecklistItem(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "house_checklist_items"

    checklist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("house_checklists.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(200))
    instructions: Mapped[str | None] = mapped_column(Text, default=None)
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)


class HouseForm(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "house_forms"

    house_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(200))
    form_type: Mapped[str] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    frequency: Mapped[str] = mapped_column(String(30))
    is_global: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(30), default="active")


class HouseFormAssignment(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "house_form_assignments"

    house_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="CASCADE"), index=True
    )
    form_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("house_forms.id", ondelete="CASCADE"), index=True
    )
    participant_id: Mapped[str | None] = mapped_column(String(36), default=None)
    staff_id: Mapped[str | None] = mapped_column(String(36), default=None)
    due_date: Mapped[date | None] = mapped_column(Date, default=None)
    status: Mapped[str] = mapped_column(String(30), default="pending")
    notes: Mapped[str | None] = mapped_column(Text, default=None)


class HouseResource(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "house_resources"

    house_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(50))
    resource_type: Mapped[str] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    address: Mapped[str | None] = mapped_column(String(255), default=None)
    file_url: Mapped[str | None] = mapped_column(String(500), default=None)
    file_name: Mapped[str | None] = mapped_column(String(255), default=None)
    file_size: Mapped[int | None] = mapped_column(Integer, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
