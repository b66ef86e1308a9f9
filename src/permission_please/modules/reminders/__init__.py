"""
Reminders Module

Deadline reminders for permission forms:
1. Per-form reminder schedules (default 7, 3 and 1 days before the deadline)
2. Tolerance-window matching against a periodic trigger
3. Pending-recipient resolution (parents who have not signed or declined)
4. Batched, paced email delivery with per-recipient failure isolation
5. Per-form and overall run summaries

API Endpoints:
- GET/POST /cron/reminders - Run one reminder pass (Bearer CRON_SECRET)

Background Jobs (via APScheduler, optional):
- forms_send_deadline_reminders: Runs every REMINDER_INTERVAL_HOURS
"""

from .jobs import register_reminder_jobs
from .router import router

__all__ = ["router", "register_reminder_jobs"]
