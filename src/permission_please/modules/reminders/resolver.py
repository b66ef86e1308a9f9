"""
Form Store for the Reminder Job

The reminder run reads current state through a small store interface so it
can be exercised without a database. ``DatabaseReminderStore`` opens a fresh
session per call, so each form's recipients reflect the state at the time
that form is processed.
"""

import logging
from datetime import datetime
from typing import Protocol

from permission_please.core.database import async_session_maker
from permission_please.modules.forms import repository
from permission_please.modules.reminders.schemas import FormWindow, PendingRecipient

logger = logging.getLogger(__name__)


class ReminderStore(Protocol):
    """Read-only view of forms and submissions."""

    async def list_forms_due_for_reminder(
        self, now: datetime, lookahead_days: int
    ) -> list[FormWindow]: ...

    async def list_pending_recipients(self, form_id: str) -> list[PendingRecipient]: ...


class DatabaseReminderStore:
    """ReminderStore backed by the application database."""

    def __init__(self, session_maker=async_session_maker):
        self._session_maker = session_maker

    async def list_forms_due_for_reminder(
        self, now: datetime, lookahead_days: int
    ) -> list[FormWindow]:
        async with self._session_maker() as db:
            forms = await repository.list_forms_due_for_reminder(db, now, lookahead_days)
        logger.info(f"Found {len(forms)} form(s) with deadlines in the next {lookahead_days} days")
        return forms

    async def list_pending_recipients(self, form_id: str) -> list[PendingRecipient]:
        async with self._session_maker() as db:
            return await repository.list_pending_recipients(db, form_id)
