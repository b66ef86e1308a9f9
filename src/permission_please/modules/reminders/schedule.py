"""
Reminder Schedules

A form's schedule is an ordered list of "remind N days/hours before the
deadline" rules, stored as JSON on the form. Order matters: the matcher
checks intervals front to back and the first match wins.
"""

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24


class ReminderUnit(str, Enum):
    DAYS = "days"
    HOURS = "hours"


@dataclass(frozen=True)
class ReminderInterval:
    """Remind ``value`` days or hours before the deadline."""

    value: int
    unit: ReminderUnit

    @property
    def hours(self) -> int:
        return to_hours(self)

    @property
    def label(self) -> str:
        return f"{self.value} {self.unit.value}"


ReminderSchedule = tuple[ReminderInterval, ...]

DEFAULT_SCHEDULE: ReminderSchedule = (
    ReminderInterval(7, ReminderUnit.DAYS),
    ReminderInterval(3, ReminderUnit.DAYS),
    ReminderInterval(1, ReminderUnit.DAYS),
)


def to_hours(interval: ReminderInterval) -> int:
    """Normalize an interval to hours."""
    if interval.unit == ReminderUnit.DAYS:
        return interval.value * HOURS_PER_DAY
    return interval.value


def _parse_interval(item: Any) -> ReminderInterval | None:
    if not isinstance(item, Mapping):
        return None

    value = item.get("value")
    # bool is an int subclass; True must not read as "1 day"
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        return None

    try:
        unit = ReminderUnit(item.get("unit"))
    except ValueError:
        return None

    return ReminderInterval(value, unit)


def parse_schedule(raw: Any) -> ReminderSchedule:
    """
    Build a schedule from stored configuration.

    Accepts a sequence of ``{"value": int, "unit": "days" | "hours"}`` mappings
    or a JSON string encoding one. Entries that fail validation are dropped.
    Falls back to DEFAULT_SCHEDULE when the input is missing, empty, cannot
    be parsed, or has no valid entry left. Never raises.
    """
    if raw is None or raw == "" or raw == []:
        return DEFAULT_SCHEDULE

    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError):
            logger.debug("Reminder schedule is not valid JSON, using default")
            return DEFAULT_SCHEDULE

    if not isinstance(data, Sequence) or isinstance(data, (str, bytes)):
        logger.debug(f"Reminder schedule has unexpected type {type(data).__name__}, using default")
        return DEFAULT_SCHEDULE

    schedule = tuple(
        interval for interval in (_parse_interval(item) for item in data) if interval is not None
    )

    if len(schedule) < len(data):
        logger.debug(f"Dropped {len(data) - len(schedule)} malformed reminder interval(s)")

    return schedule or DEFAULT_SCHEDULE
