"""
Deadline Reminder Service

One reminder run:
1. Load active forms with reminders enabled and a deadline inside the lookahead window
2. Parse each form's schedule and match it against the hours left (tolerance window)
3. For a matched form, resolve the parents who have not responded yet
4. Email them in paced batches, isolating per-recipient failures
5. Summarize sent/error counts per form and overall

Error Handling:
- Channel not configured: the run is skipped, not failed
- A single recipient failure is counted and logged, never retried
- A failure while resolving one form's recipients is logged and the form skipped
- Failing to load the candidate forms raises ReminderRunError
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from functools import partial
from typing import Any

from permission_please.core.config import settings
from permission_please.core.email import (
    build_sign_url,
    is_email_configured,
    send_reminder_email,
)
from permission_please.modules.reminders.dispatcher import BatchedDispatcher
from permission_please.modules.reminders.matcher import hours_until, match_interval
from permission_please.modules.reminders.resolver import DatabaseReminderStore, ReminderStore
from permission_please.modules.reminders.schedule import (
    ReminderInterval,
    ReminderUnit,
    parse_schedule,
)
from permission_please.modules.reminders.schemas import (
    FormWindow,
    PendingRecipient,
    ReminderRunResponse,
    RunResult,
    RunStatus,
)
from permission_please.modules.reminders.summary import RunSummary

logger = logging.getLogger(__name__)

ReminderSender = Callable[[FormWindow, ReminderInterval, PendingRecipient], Awaitable[bool]]


# ============================================
# Custom Exceptions
# ============================================


class ReminderServiceError(Exception):
    """Base exception for reminder service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 500):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ReminderRunError(ReminderServiceError):
    """Raised when the candidate forms of a run cannot be loaded."""

    def __init__(self, message: str = "Failed to load forms for the reminder run"):
        super().__init__(message=message, error_code="REMINDER_RUN_FAILED")


async def send_form_reminder(
    form: FormWindow,
    interval: ReminderInterval,
    recipient: PendingRecipient,
) -> bool:
    """Email one pending parent about ``form``, worded after the matched interval."""
    return await send_reminder_email(
        to_email=recipient.parent_email,
        parent_name=recipient.parent_name or "Parent",
        student_name=recipient.student_name,
        form_title=form.title,
        deadline=form.deadline,
        event_date=form.event_date,
        sign_url=build_sign_url(form.id),
        teacher_name=form.teacher_name or "Teacher",
        school_name=form.school_name,
        days_remaining=interval.value if interval.unit == ReminderUnit.DAYS else None,
        hours_remaining=interval.value if interval.unit == ReminderUnit.HOURS else None,
    )


async def send_deadline_reminders(
    store: ReminderStore | None = None,
    send: ReminderSender | None = None,
    now: datetime | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> RunResult:
    """
    Send every reminder that is due at ``now``.

    Args:
        store: Source of forms and pending recipients (database by default)
        send: Delivers one reminder (email by default)
        now: Invocation time, defaults to the current UTC time
        sleep: Pause used between batches

    Returns:
        RunResult listing only the forms that triggered sends

    Raises:
        ReminderRunError: If the candidate forms cannot be loaded
    """
    store = store or DatabaseReminderStore()
    send = send or send_form_reminder
    executed_at = now or datetime.now(UTC)
    tolerance_hours = settings.reminder_tolerance_hours

    logger.info(f"Starting deadline reminder run at {executed_at.isoformat()}")

    try:
        forms = await store.list_forms_due_for_reminder(
            executed_at, settings.reminder_lookahead_days
        )
    except Exception as e:
        logger.error(f"Error loading forms for reminder run: {e}", exc_info=True)
        raise ReminderRunError() from e

    summary = RunSummary()

    for form in forms:
        schedule = parse_schedule(form.reminder_schedule)
        interval = match_interval(
            hours_until(form.deadline, executed_at),
            schedule,
            tolerance_hours,
        )
        if interval is None:
            continue

        try:
            recipients = await store.list_pending_recipients(form.id)
        except Exception as e:
            logger.error(f"Error resolving recipients for form {form.id}: {e}", exc_info=True)
            continue

        if not recipients:
            logger.debug(f"No pending recipients for form {form.id}")
            continue

        dispatcher: BatchedDispatcher[PendingRecipient] = BatchedDispatcher(
            partial(send, form, interval),
            batch_size=settings.reminder_batch_size,
            inter_batch_delay=settings.reminder_batch_delay_seconds,
            sleep=sleep,
            describe=lambda r, form_id=form.id: f"{r.parent_email} (form {form_id})",
        )
        dispatch = await dispatcher.dispatch(recipients)
        summary.record(form.id, interval, dispatch)

        logger.info(
            f"Sent {dispatch.sent} reminder(s) for form {form.id} "
            f"({interval.label} remaining), errors: {dispatch.errors}"
        )

    result = summary.to_result(executed_at)
    logger.info(
        f"Deadline reminder run completed: {result.total_sent} sent, "
        f"{result.total_errors} errors, {len(result.per_form)} form(s)"
    )
    return result


async def run_reminder_job(
    store: ReminderStore | None = None,
    send: ReminderSender | None = None,
    now: datetime | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> ReminderRunResponse:
    """
    Entry point shared by the cron endpoint and the scheduled job.

    Skips the run when no email channel is configured; otherwise reports the
    run's counts, including when nothing was due.
    """
    executed_at = now or datetime.now(UTC)

    if not is_email_configured():
        logger.warning("Reminder run skipped: RESEND_API_KEY not configured")
        return ReminderRunResponse(
            status=RunStatus.SKIPPED,
            message="Skipped - email service not configured",
            executed_at=executed_at,
        )

    result = await send_deadline_reminders(store=store, send=send, now=executed_at, sleep=sleep)

    return ReminderRunResponse(
        status=RunStatus.COMPLETED,
        message=f"Sent {result.total_sent} reminder(s)",
        executed_at=result.executed_at,
        total_sent=result.total_sent,
        total_errors=result.total_errors,
        per_form=result.per_form,
    )
