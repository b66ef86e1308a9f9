"""
Permission Form Models

A teacher publishes a PermissionForm; each (parent, student) pairing it is
distributed to gets a FormSubmission that starts PENDING and becomes SIGNED
or DECLINED when the parent responds.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from permission_please.modules.shared import BaseModel

if TYPE_CHECKING:
    from permission_please.modules.schools.models import School
    from permission_please.modules.students.models import Student
    from permission_please.modules.users.models import User


class FormStatus(str, Enum):
    """Lifecycle of a permission form."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    CLOSED = "closed"


class SubmissionStatus(str, Enum):
    """A parent's response to a form."""

    PENDING = "pending"
    SIGNED = "signed"
    DECLINED = "declined"


class PermissionForm(BaseModel):
    """Consent form distributed to parents."""

    __tablename__ = "permission_forms"

    school_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=True,
    )
    teacher_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[FormStatus] = mapped_column(
        ENUM(FormStatus, name="form_status", create_type=True),
        nullable=False,
        default=FormStatus.DRAFT,
    )

    # Reminders: JSON array of {"value": int, "unit": "days" | "hours"}
    # NULL means the default schedule (7, 3 and 1 days before the deadline)
    reminders_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    reminder_schedule: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    # Relationships
    teacher: Mapped["User"] = relationship("User", lazy="joined")
    school: Mapped["School | None"] = relationship("School", lazy="joined")
    submissions: Mapped[list["FormSubmission"]] = relationship(
        "FormSubmission",
        back_populates="form",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_permission_forms_status_deadline", "status", "deadline"),
    )

    def __repr__(self) -> str:
        return f"<PermissionForm(id={self.id}, title={self.title}, status={self.status.value})>"


class FormSubmission(BaseModel):
    """One parent's response slot for one student on one form."""

    __tablename__ = "form_submissions"

    form_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("permission_forms.id", ondelete="CASCADE"),
        nullable=False,
    )
    parent_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )

    status: Mapped[SubmissionStatus] = mapped_column(
        ENUM(SubmissionStatus, name="submission_status", create_type=True),
        nullable=False,
        default=SubmissionStatus.PENDING,
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    form: Mapped["PermissionForm"] = relationship("PermissionForm", back_populates="submissions")
    parent: Mapped["User"] = relationship("User", lazy="joined")
    student: Mapped["Student"] = relationship("Student", lazy="joined")

    __table_args__ = (
        Index("ix_form_submissions_form_status", "form_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<FormSubmission(id={self.id}, form_id={self.form_id}, status={self.status.value})>"
