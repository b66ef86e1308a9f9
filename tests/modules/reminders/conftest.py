"""
Fixtures for reminders tests.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from permission_please.modules.reminders.schemas import FormWindow, PendingRecipient


class FakeReminderStore:
    """In-memory ReminderStore recording what the run asked for."""

    def __init__(self, forms=None, recipients=None, failing_forms=()):
        self.forms = list(forms or [])
        self.recipients = dict(recipients or {})
        self.failing_forms = set(failing_forms)
        self.form_queries = []
        self.recipient_queries = []

    async def list_forms_due_for_reminder(self, now, lookahead_days):
        self.form_queries.append((now, lookahead_days))
        return self.forms

    async def list_pending_recipients(self, form_id):
        self.recipient_queries.append(form_id)
        if form_id in self.failing_forms:
            raise RuntimeError(f"lookup failed for {form_id}")
        return self.recipients.get(form_id, [])


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def now():
    """Fixed invocation time."""
    return datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def make_form(now):
    """Factory for forms whose deadline is ``hours`` from now."""

    def _make(hours: float, reminder_schedule=None, title="Zoo Field Trip") -> FormWindow:
        return FormWindow(
            id=str(uuid4()),
            title=title,
            deadline=now + timedelta(hours=hours),
            event_date=now + timedelta(days=10),
            reminder_schedule=reminder_schedule,
            teacher_name="Ms. Rivera",
            school_name="Lincoln Elementary",
        )

    return _make


@pytest.fixture
def make_recipients():
    """Factory for ``count`` pending recipients."""

    def _make(count: int) -> list[PendingRecipient]:
        return [
            PendingRecipient(
                submission_id=str(uuid4()),
                parent_email=f"parent{i}@example.com",
                parent_name=f"Parent {i}",
                student_name=f"Student {i}",
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_store():
    """Factory for in-memory reminder stores."""
    return FakeReminderStore
