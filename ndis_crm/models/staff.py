"""Staff model, compliance records, training and documents."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, StoredFileMixin, TimestampMixin, UUIDMixin


class Staff(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "staff"

    name: Mapped[str | None] = mapped_column(String(200), default=None, index=True)
    status: Mapped[str] = mapped_column(String(20), default="draft", index=True)
    email: Mapped[str | None] = mapped_column(String(255), default=None, unique=True)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    address: Mapped[str | None] = mapped_column(String(255), default=None)
    photo_url: Mapped[str | None] = mapped_column(String(500), default=None)
    department: Mapped[str | None] = mapped_column(String(100), default=None)
    employment_type: Mapped[str | None] = mapped_column(String(50), default=None)
    hire_date: Mapped[date | None] = mapped_column(Date, default=None)
    qualifications: Mapped[str | None] = mapped_column(Text, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)

    def __repr__(self) -> str:
        return f"<Staff {self.name!r} {self.status}>"


class StaffCompliance(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "staff_compliance"

    staff_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("staff.id", ondelete="CASCADE"), index=True
    )
    compliance_name: Mapped[str] = mapped_column(String(200))
    completion_date: Mapped[date | None] = mapped_column(Date, default=None)
    expiry_date: Mapped[date | None] = mapped_column(Date, default=None)
    status: Mapped[str | None] = mapped_column(String(30), default=None)


class StaffTraining(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "staff_training"

    staff_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("staff.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    provider: Mapped[str | None] = mapped_column(String(200), default=None)
    date_completed: Mapped[date | None] = mapped_column(Date, default=None)
    expiry_date: Mapped[date | None] = mapped_column(Date, default=None)
    # Certificate upload is optional for training records.
    file_name: Mapped[str | None] = mapped_column(String(255), default=None)
    file_path: Mapped[str | None] = mapped_column(String(500), default=None)


class StaffDocument(UUIDMixin, TimestampMixin, StoredFileMixin, Base):
    __tablename__ = "staff_documents"

    staff_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("staff.id", ondelete="CASCADE"), index=True
    )
