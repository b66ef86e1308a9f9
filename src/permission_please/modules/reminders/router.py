"""
Reminders Router

Cron-triggered endpoint that runs one deadline reminder pass.

Endpoints:
- GET  /cron/reminders - Run the reminder job (for runners that only issue GETs)
- POST /cron/reminders - Run the reminder job

Security:
- Bearer CRON_SECRET required (see core.auth)
- Rate limited per client IP
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from permission_please.core.auth import verify_cron_secret
from permission_please.core.config import settings
from permission_please.core.rate_limit import RateLimiter
from permission_please.modules.reminders import service
from permission_please.modules.reminders.schemas import ReminderRunResponse
from permission_please.modules.reminders.service import ReminderServiceError

logger = logging.getLogger(__name__)

router = APIRouter()

cron_rate_limiter = RateLimiter(
    limit=settings.cron_rate_limit,
    window_seconds=settings.cron_rate_limit_window_seconds,
)


@router.api_route(
    "/reminders",
    methods=["GET", "POST"],
    response_model=ReminderRunResponse,
    dependencies=[Depends(verify_cron_secret), Depends(cron_rate_limiter)],
    summary="Send due deadline reminders",
    responses={
        401: {"description": "Missing or invalid cron credentials"},
        429: {"description": "Too many trigger calls"},
        500: {"description": "Reminder run failed"},
    },
)
async def send_reminders() -> ReminderRunResponse:
    """
    Send reminder emails for every active form whose deadline matches one of
    its reminder intervals right now.

    Returns status "skipped" when no email service is configured, otherwise
    "completed" with sent/error counts per form.
    """
    try:
        return await service.run_reminder_job()
    except ReminderServiceError as e:
        logger.error(f"Reminder service error: {e.message}")
        raise HTTPException(
            status_code=e.status_code,
            detail={
                "error": e.error_code,
                "message": e.message,
            },
        ) from e
    except Exception as e:
        logger.exception(f"Unexpected error during reminder run: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "REMINDER_RUN_FAILED",
                "message": "Failed to send reminders",
            },
        ) from e
