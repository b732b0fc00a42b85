"""Participant model and the collections owned by a participant."""

from __future__ import annotations

from datetime import date

from sqlalchemy import JSON, Boolean, Date, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, StoredFileMixin, TimestampMixin, UUIDMixin


class Participant(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "participants"

    # Drafts may be saved before the name is known.
    name: Mapped[str | None] = mapped_column(String(200), default=None, index=True)
    status: Mapped[str] = mapped_column(String(20), default="draft", index=True)
    photo_url: Mapped[str | None] = mapped_column(String(500), default=None)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    address: Mapped[str | None] = mapped_column(String(255), default=None)
    date_of_birth: Mapped[date | None] = mapped_column(Date, default=None)
    ndis_number: Mapped[str | None] = mapped_column(String(20), default=None)
    house_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("houses.id", ondelete="SET NULL"), default=None, index=True
    )
    move_in_date: Mapped[date | None] = mapped_column(Date, default=None)
    support_level: Mapped[str | None] = mapped_column(String(50), default=None)
    support_coordinator: Mapped[str | None] = mapped_column(String(200), default=None)
    emergency_contact_name: Mapped[str | None] = mapped_column(String(200), default=None)
    emergency_contact_phone: Mapped[str | None] = mapped_column(String(50), default=None)
    primary_diagnosis: Mapped[str | None] = mapped_column(Text, default=None)
    allergies: Mapped[str | None] = mapped_column(Text, default=None)
    mealtime_plan_required: Mapped[bool] = mapped_column(Boolean, default=False)
    mealtime_plan_details: Mapped[str | None] = mapped_column(Text, default=None)
    general_notes: Mapped[str | None] = mapped_column(Text, default=None)

    def __repr__(self) -> str:
        return f"<Participant {self.name!r} {self.status}>"


class ParticipantGoal(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "participant_goals"

    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), index=True
    )
    goal_type: Mapped[str] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class ParticipantMedication(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "participant_medications"

    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), index=True
    )
    medication_id: Mapped[str] = mapped_column(String(36))
    dosage: Mapped[str | None] = mapped_column(String(100), default=None)
    frequency: Mapped[str | None] = mapped_column(String(100), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class ParticipantContact(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "participant_contacts"

    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), index=True
    )
    contact_name: Mapped[str] = mapped_column(String(200))
    contact_type_id: Mapped[str | None] = mapped_column(String(36), default=None)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    address: Mapped[str | None] = mapped_column(String(255), default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class ParticipantFunding(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "participant_funding"

    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), index=True
    )
    funding_source_id: Mapped[str] = mapped_column(String(36))
    funding_type_id: Mapped[str] = mapped_column(String(36))
    code: Mapped[str | None] = mapped_column(String(50), default=None)
    invoice_recipient: Mapped[str | None] = mapped_column(String(200), default=None)
    allocated_amount: Mapped[float] = mapped_column(Float, default=0.0)
    used_amount: Mapped[float] = mapped_column(Float, default=0.0)
    remaining_amount: Mapped[float | None] = mapped_column(Float, default=None)
    status: Mapped[str] = mapped_column(String(30), default="Active")
    end_date: Mapped[date | None] = mapped_column(Date, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)


class ShiftNote(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "shift_notes"

    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), index=True
    )
    shift_date: Mapped[date] = mapped_column(Date)
    shift_time: Mapped[str | None] = mapped_column(String(20), default=None)
    staff_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("staff.id", ondelete="SET NULL"), default=None
    )
    full_note: Mapped[str] = mapped_column(Text)
    tags: Mapped[list] = mapped_column(JSON, default=list)


class ParticipantDocument(UUIDMixin, TimestampMixin, StoredFileMixin, Base):
    __tablename__ = "participant_documents"

    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), index=True
    )
