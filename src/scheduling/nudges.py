from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import List, Optional, Sequence

from taskmelt.models import CategoryCount, NotificationContent, NudgeState, UrgentTask

MORNING_NUDGE_ID = "smart-nudge-morning"
EVENING_NUDGE_ID = "smart-nudge-evening"
NUDGE_IDS = (MORNING_NUDGE_ID, EVENING_NUDGE_ID)

DEADLINE_ALERT_ID = "urgent-deadline"
DEADLINE_ALERT_DELAY = timedelta(minutes=5)

MORNING_AT = time(9, 0)
EVENING_AT = time(20, 0)


@dataclass(frozen=True)
class DailyNudge:
    identifier: str
    at: time
    content: NotificationContent


@dataclass(frozen=True)
class DeadlineAlert:
    identifier: str
    fire_at: datetime
    content: NotificationContent


def _tasks(count: int) -> str:
    return f"{count} task{'s' if count != 1 else ''}"


def top_category(breakdown: Sequence[CategoryCount]) -> Optional[CategoryCount]:
    """The caller orders the breakdown; its first entry is the one summarized."""
    return breakdown[0] if breakdown else None


def compose_nudges(state: NudgeState) -> List[DailyNudge]:
    if state.pending_count == 0:
        return []

    morning_body = f"You have {_tasks(state.pending_count)} to complete."
    top = top_category(state.category_breakdown)
    if top is not None:
        morning_body += f" {top.emoji} {top.count} in {top.name}".replace("  ", " ")

    data = {"type": "smart-nudge"}
    return [
        DailyNudge(
            identifier=MORNING_NUDGE_ID,
            at=MORNING_AT,
            content=NotificationContent(title="🌅 Good morning!", body=morning_body, data=data),
        ),
        DailyNudge(
            identifier=EVENING_NUDGE_ID,
            at=EVENING_AT,
            content=NotificationContent(
                title="🌙 Evening check-in",
                body=f"{_tasks(state.pending_count)} still pending. Finish strong!",
                data=data,
            ),
        ),
    ]


def compose_deadline_alert(urgent: Sequence[UrgentTask], now: datetime) -> Optional[DeadlineAlert]:
    """One-shot alert for the most pressing task, five minutes from now."""
    if not urgent:
        return None

    first = urgent[0]
    hours = int(first.hours_until_due)
    if first.hours_until_due < 1:
        hours_text = "less than an hour"
    else:
        hours_text = f"{hours} hour{'s' if hours > 1 else ''}"

    return DeadlineAlert(
        identifier=DEADLINE_ALERT_ID,
        fire_at=now + DEADLINE_ALERT_DELAY,
        content=NotificationContent(
            title=f"🚨 {first.category_emoji} Urgent deadline".replace("  ", " "),
            body=f'"{first.task.task}" is due in {hours_text}!',
            data={"type": "urgent", "taskId": first.task.id},
        ),
    )
