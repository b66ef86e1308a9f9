"""
Forms Repository

Read-only queries used by the reminder job.

Design Principles:
- All queries are parameterized (no SQL injection)
- Single responsibility - only database operations, no business logic
- Timezone-aware datetime handling (UTC)
"""

from datetime import datetime, time, timedelta

from sqlalchemy import Select, and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from permission_please.modules.forms.models import (
    FormStatus,
    FormSubmission,
    PermissionForm,
    SubmissionStatus,
)
from permission_please.modules.reminders.schemas import FormWindow, PendingRecipient
from permission_please.modules.schools.models import School
from permission_please.modules.students.models import Student
from permission_please.modules.users.models import User


def lookahead_cutoff(now: datetime, lookahead_days: int) -> datetime:
    """
    Latest deadline considered by a run: the end of the day ``lookahead_days`` from now.

    The default of 8 days covers the 7-day reminder with a day of buffer.
    """
    day = (now + timedelta(days=lookahead_days)).date()
    return datetime.combine(day, time.max, tzinfo=now.tzinfo)


def forms_due_for_reminder_query(now: datetime, lookahead_days: int) -> Select:
    """Active forms with reminders enabled whose deadline is between now and the cutoff."""
    return (
        select(
            PermissionForm.id,
            PermissionForm.title,
            PermissionForm.deadline,
            PermissionForm.event_date,
            PermissionForm.reminder_schedule,
            User.name.label("teacher_name"),
            School.name.label("school_name"),
        )
        .join(User, PermissionForm.teacher_id == User.id)
        .outerjoin(School, PermissionForm.school_id == School.id)
        .where(
            and_(
                PermissionForm.status == FormStatus.ACTIVE,
                PermissionForm.reminders_enabled.is_(True),
                PermissionForm.deadline >= now,
                PermissionForm.deadline <= lookahead_cutoff(now, lookahead_days),
            )
        )
        .order_by(PermissionForm.deadline)
    )


def pending_recipients_query(form_id: str) -> Select:
    """Submissions of a form still awaiting a response, with display fields."""
    return (
        select(
            FormSubmission.id.label("submission_id"),
            User.email.label("parent_email"),
            User.name.label("parent_name"),
            Student.name.label("student_name"),
        )
        .join(User, FormSubmission.parent_id == User.id)
        .join(Student, FormSubmission.student_id == Student.id)
        .where(
            and_(
                FormSubmission.form_id == form_id,
                FormSubmission.status == SubmissionStatus.PENDING,
            )
        )
        .order_by(FormSubmission.created_at)
    )


async def list_forms_due_for_reminder(
    db: AsyncSession,
    now: datetime,
    lookahead_days: int,
) -> list[FormWindow]:
    """
    Get the forms a reminder run should consider.

    Args:
        db: Database session
        now: Invocation time (timezone-aware)
        lookahead_days: How many days ahead deadlines are considered

    Returns:
        Candidate forms ordered by deadline
    """
    result = await db.execute(forms_due_for_reminder_query(now, lookahead_days))
    return [FormWindow.model_validate(dict(row)) for row in result.mappings().all()]


async def list_pending_recipients(db: AsyncSession, form_id: str) -> list[PendingRecipient]:
    """
    Get every parent/student pairing that has neither signed nor declined.

    Args:
        db: Database session
        form_id: Form to look up

    Returns:
        Pending recipients in submission order
    """
    result = await db.execute(pending_recipients_query(form_id))
    return [PendingRecipient.model_validate(dict(row)) for row in result.mappings().all()]
