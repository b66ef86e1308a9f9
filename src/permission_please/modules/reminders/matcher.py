"""
Tolerance-Window Matching

The reminder job runs periodically, not continuously, so a reminder "7 days
before the deadline" cannot wait for the exact instant. Instead each interval
owns a window of ``tolerance_hours`` ending at its target:

    target - tolerance < hours_remaining <= target

As long as the job runs at least once every ``tolerance_hours``, every
interval's window is visited exactly once per form.

Tie-break: intervals are checked in schedule order and the first match wins.
Overlapping windows only arise from hand-crafted schedules (e.g. "24 hours"
next to "1 days"); reordering a schedule can change which one fires.
"""

from datetime import datetime

from permission_please.modules.reminders.schedule import (
    ReminderInterval,
    ReminderSchedule,
    to_hours,
)

DEFAULT_TOLERANCE_HOURS = 2.0

SECONDS_PER_HOUR = 3600


def hours_until(deadline: datetime, now: datetime) -> float:
    """Fractional hours from ``now`` to ``deadline`` (negative once passed)."""
    return (deadline - now).total_seconds() / SECONDS_PER_HOUR


def match_interval(
    hours_remaining: float,
    schedule: ReminderSchedule,
    tolerance_hours: float = DEFAULT_TOLERANCE_HOURS,
) -> ReminderInterval | None:
    """
    Return the interval that should fire now, or None.

    The upper bound is inclusive and the lower bound exclusive. Past
    deadlines are not special-cased: a negative ``hours_remaining`` only
    matches an interval shorter than the tolerance.
    """
    for interval in schedule:
        target = to_hours(interval)
        if target - tolerance_hours < hours_remaining <= target:
            return interval
    return None
