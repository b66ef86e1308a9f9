"""
Reminder Background Jobs

In-process alternative to the external cron runner. The reminder run is
always registered, so the debug endpoints can trigger it; it is scheduled on
the configured interval only when REMINDER_SCHEDULER_ENABLED is set.

Schedule:
- Every REMINDER_INTERVAL_HOURS (2 hours by default)
- The interval must not exceed the matching tolerance, or reminder windows
  can be skipped entirely
- The job can also be triggered manually via the debug endpoints
"""

import logging
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from permission_please.core.config import settings
from permission_please.core.scheduler import register_job
from permission_please.modules.reminders import service

logger = logging.getLogger(__name__)

# Job ID for registration and manual triggering
JOB_ID_SEND_REMINDERS = "forms_send_deadline_reminders"


async def send_deadline_reminders_job() -> dict[str, Any]:
    """Scheduled entry point; returns the run response as JSON-ready data."""
    response = await service.run_reminder_job()
    return response.model_dump(mode="json")


def register_reminder_jobs() -> bool:
    """
    Register the reminder job, scheduling it if in-process scheduling is enabled.

    Call during application startup, before the scheduler is started.

    Returns:
        True if the job was scheduled, False if it is available for manual
        triggering only
    """
    if not settings.reminder_scheduler_enabled:
        register_job(job_id=JOB_ID_SEND_REMINDERS, func=send_deadline_reminders_job, trigger=None)
        logger.info("In-process reminder scheduling disabled, expecting an external cron trigger")
        return False

    interval_hours = settings.reminder_interval_hours
    if interval_hours > settings.reminder_tolerance_hours:
        logger.warning(
            f"Reminder interval ({interval_hours}h) exceeds the matching tolerance "
            f"({settings.reminder_tolerance_hours}h); some reminders will be missed"
        )

    register_job(
        job_id=JOB_ID_SEND_REMINDERS,
        func=send_deadline_reminders_job,
        trigger=IntervalTrigger(hours=interval_hours),
    )
    logger.info(f"Registered job: {JOB_ID_SEND_REMINDERS} (interval: {interval_hours} hours)")
    return True
