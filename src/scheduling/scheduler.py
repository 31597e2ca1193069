from __future__ import annotations

import re
from datetime import datetime, time, timedelta
from typing import List, Optional, Tuple

from scheduling.policy import ReminderPolicy
from taskmelt.models import ReminderTrigger, TaskItem, TriggerPayload

DEFAULT_DUMP_ID = "default"

# slot numbers double as identifier suffixes, so a slot keeps its id across passes
SLOT_LEAD = 0
SLOT_EVENING_BEFORE = 1
SLOT_MORNING_OF = 2
SLOTS = (SLOT_LEAD, SLOT_EVENING_BEFORE, SLOT_MORNING_OF)

_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")


def trigger_prefix(dump_id: str, task_id: str) -> str:
    """Every identifier planned for one task starts with this prefix.

    The trailing dash keeps task "1" from matching the triggers of task "10".
    """
    return f"task-{dump_id}-{task_id}-"


def trigger_id(dump_id: str, task_id: str, slot: int) -> str:
    return f"{trigger_prefix(dump_id, task_id)}{slot}"


def _align(due: datetime, now: datetime) -> datetime:
    """Express ``due`` in the same clock as ``now`` so wall times line up."""
    if due.tzinfo is None and now.tzinfo is not None:
        return due.replace(tzinfo=now.tzinfo)
    if due.tzinfo is not None and now.tzinfo is None:
        return due.astimezone().replace(tzinfo=None)
    if due.tzinfo is not None:
        return due.astimezone(now.tzinfo)
    return due


def parse_clock(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    m = _CLOCK_RE.search(value)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


class Scheduler:
    """Derives the reminder triggers of a single task. Pure: no registration."""

    def __init__(self, policy: Optional[ReminderPolicy] = None):
        self.policy = policy or ReminderPolicy()

    def due_slots(self, due: datetime, now: datetime) -> List[Tuple[int, datetime]]:
        if due <= now:
            return []

        slots: List[Tuple[int, datetime]] = []

        lead = self.policy.lead_before_due(due)
        if lead > now:
            slots.append((SLOT_LEAD, lead))

        evening = self.policy.evening_before_due(due)
        if now < evening < due:
            slots.append((SLOT_EVENING_BEFORE, evening))

        morning = self.policy.morning_of_due(due)
        if now < morning < due:
            slots.append((SLOT_MORNING_OF, morning))

        return slots

    def clock_slots(self, clock: time, now: datetime) -> List[Tuple[int, datetime]]:
        at = datetime.combine(now.date(), clock, tzinfo=now.tzinfo)
        if at <= now:
            return []
        reminder = self.policy.lead_before_clock(at)
        if reminder <= now:
            return []
        return [(SLOT_LEAD, reminder)]

    @staticmethod
    def due_wording(fire_at: datetime, due: datetime) -> Tuple[str, str]:
        if due - fire_at < timedelta(hours=1):
            return "Due soon", "is due within the hour"
        if due.date() == fire_at.date():
            return "Due today", "is due today"
        return "Due tomorrow", "is due tomorrow"

    def plan(
        self,
        task: TaskItem,
        now: datetime,
        dump_id: str = DEFAULT_DUMP_ID,
        category_name: str = "",
        category_emoji: str = "",
    ) -> List[ReminderTrigger]:
        if task.completed:
            return []

        payload = TriggerPayload(task_id=task.id, dump_id=dump_id, category_name=category_name)
        triggers: List[ReminderTrigger] = []

        due = _align(task.due_date, now) if task.due_date is not None else None
        if due is not None and due > now:
            for slot, fire_at in self.due_slots(due, now):
                headline, phrase = self.due_wording(fire_at, due)
                triggers.append(
                    ReminderTrigger(
                        identifier=trigger_id(dump_id, task.id, slot),
                        fire_at=fire_at,
                        title=f"{category_emoji} {headline}".strip(),
                        body=f"{task.task} {phrase}",
                        payload=payload,
                    )
                )
            return triggers

        clock = parse_clock(task.time_estimate)
        if clock is not None:
            for slot, fire_at in self.clock_slots(clock, now):
                triggers.append(
                    ReminderTrigger(
                        identifier=trigger_id(dump_id, task.id, slot),
                        fire_at=fire_at,
                        title=f"{category_emoji} Upcoming: {task.time_estimate}".strip(),
                        body=task.task,
                        payload=payload,
                    )
                )

        return triggers


_default_scheduler = Scheduler()


def plan_triggers(
    task: TaskItem,
    now: datetime,
    dump_id: str = DEFAULT_DUMP_ID,
    category_name: str = "",
    category_emoji: str = "",
) -> List[ReminderTrigger]:
    return _default_scheduler.plan(task, now, dump_id, category_name, category_emoji)
