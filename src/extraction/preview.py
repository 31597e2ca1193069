from __future__ import annotations

from typing import List

from classification.task_classifier import CONTEXT_EMOJI
from taskmelt.models import ParsedTask

PRIORITY_EMOJI = {"high": "🔴", "medium": "🟡", "low": "🟢"}
DEFAULT_CONTEXT_EMOJI = "📍"


def format_clock(hhmm: str) -> str:
    """'15:05' -> '3:05 PM'."""
    hours, minutes = (int(part) for part in hhmm.split(":"))
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {period}"


def format_duration(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


def preview_chips(parsed: ParsedTask) -> List[str]:
    """One short chip per populated field, always in the same order:
    date, time, duration, priority, context, tags, recurrence."""
    chips: List[str] = []

    if parsed.scheduled_date is not None:
        d = parsed.scheduled_date
        chips.append(f"📅 {d.strftime('%a')}, {d.strftime('%b')} {d.day}")
    if parsed.scheduled_time:
        chips.append(f"⏰ {format_clock(parsed.scheduled_time)}")
    if parsed.duration:
        chips.append(f"⏱️ {format_duration(parsed.duration)}")
    if parsed.priority:
        chips.append(f"{PRIORITY_EMOJI[parsed.priority]} {parsed.priority}")
    if parsed.context:
        emoji = CONTEXT_EMOJI.get(parsed.context, DEFAULT_CONTEXT_EMOJI)
        chips.append(f"{emoji} {parsed.context}")
    if parsed.tags:
        chips.append("🏷️ " + " ".join(f"#{tag}" for tag in parsed.tags))
    if parsed.recurring is not None:
        chips.append(f"🔁 {parsed.recurring.frequency}")

    return chips
