from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta


@dataclass(frozen=True)
class ReminderPolicy:
    """Fixed offsets used to derive reminder times from a task."""

    lead_minutes: int = 30
    evening_before: time = time(20, 0)
    morning_of: time = time(9, 0)
    clock_lead_minutes: int = 15

    def lead_before_due(self, due: datetime) -> datetime:
        return due - timedelta(minutes=self.lead_minutes)

    def evening_before_due(self, due: datetime) -> datetime:
        return datetime.combine(
            (due - timedelta(days=1)).date(), self.evening_before, tzinfo=due.tzinfo
        )

    def morning_of_due(self, due: datetime) -> datetime:
        return datetime.combine(due.date(), self.morning_of, tzinfo=due.tzinfo)

    def lead_before_clock(self, at: datetime) -> datetime:
        return at - timedelta(minutes=self.clock_lead_minutes)
