"""
Reminder Schemas

Pydantic models exchanged between the form store, the reminder run and the
cron endpoint. All of them are rebuilt on every run and never persisted.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FormWindow(BaseModel):
    """A form whose deadline falls inside the lookahead window."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    deadline: datetime
    event_date: datetime | None = None
    reminder_schedule: Any = None
    teacher_name: str | None = None
    school_name: str | None = None


class PendingRecipient(BaseModel):
    """A parent/student pairing that has neither signed nor declined."""

    model_config = ConfigDict(from_attributes=True)

    submission_id: str
    parent_email: str
    parent_name: str | None = None
    student_name: str


class FormRunResult(BaseModel):
    """Outcome for one form that triggered a reminder."""

    form_id: str
    sent: int
    errors: int
    matched_interval: str


class RunResult(BaseModel):
    """Totals for one invocation of the reminder job."""

    executed_at: datetime
    total_sent: int = 0
    total_errors: int = 0
    per_form: list[FormRunResult] = Field(default_factory=list)


class RunStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


class ReminderRunResponse(BaseModel):
    """Response body of the cron endpoint."""

    status: RunStatus
    message: str
    executed_at: datetime
    total_sent: int = 0
    total_errors: int = 0
    per_form: list[FormRunResult] = Field(default_factory=list)
