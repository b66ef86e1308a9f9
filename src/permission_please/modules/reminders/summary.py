"""
Run Summary

Accumulates per-form dispatch outcomes into the RunResult of one invocation.
"""

from datetime import datetime

from permission_please.modules.reminders.dispatcher import DispatchResult
from permission_please.modules.reminders.schedule import ReminderInterval
from permission_please.modules.reminders.schemas import FormRunResult, RunResult


class RunSummary:
    """Per-form and overall sent/error counts for a reminder run."""

    def __init__(self) -> None:
        self.total_sent = 0
        self.total_errors = 0
        self.per_form: list[FormRunResult] = []

    def record(
        self,
        form_id: str,
        interval: ReminderInterval,
        dispatch: DispatchResult,
    ) -> FormRunResult | None:
        """
        Add one form's outcome.

        Dispatches that attempted nothing (no pending recipients) are ignored
        so the summary only lists forms that triggered work.
        """
        if dispatch.attempted == 0:
            return None

        entry = FormRunResult(
            form_id=form_id,
            sent=dispatch.sent,
            errors=dispatch.errors,
            matched_interval=interval.label,
        )
        self.per_form.append(entry)
        self.total_sent += dispatch.sent
        self.total_errors += dispatch.errors
        return entry

    def to_result(self, executed_at: datetime) -> RunResult:
        return RunResult(
            executed_at=executed_at,
            total_sent=self.total_sent,
            total_errors=self.total_errors,
            per_form=list(self.per_form),
        )
