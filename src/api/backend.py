import uuid
from datetime import datetime, time
from typing import Optional

from extraction.preview import preview_chips
from extraction.task_parser import TaskParser
from integration.reminder_registrar import ReminderRegistrar
from scheduling.scheduler import DEFAULT_DUMP_ID, parse_clock
from taskmelt.models import ParsedTask, TaskItem


def to_task_item(parsed: ParsedTask, task_id: str, now: datetime) -> TaskItem:
    """Shape a parse result the way the task store stores it.

    A date with a time becomes the due date; a time alone becomes a clock
    time estimate for today; otherwise the duration is the estimate.
    """
    due_date = None
    scheduled_date = None
    time_estimate = None

    clock = parse_clock(parsed.scheduled_time)
    if parsed.scheduled_date is not None:
        scheduled_date = datetime.combine(parsed.scheduled_date, time(12, 0), tzinfo=now.tzinfo)
        if clock is not None:
            due_date = datetime.combine(parsed.scheduled_date, clock, tzinfo=now.tzinfo)
    elif clock is not None:
        time_estimate = parsed.scheduled_time

    if time_estimate is None and parsed.duration:
        time_estimate = f"{parsed.duration} min"

    return TaskItem(
        id=task_id,
        task=parsed.clean_text or parsed.text,
        due_date=due_date,
        scheduled_date=scheduled_date,
        scheduled_time=parsed.scheduled_time,
        time_estimate=time_estimate,
        priority=parsed.priority,
        context=parsed.context,
        tags=parsed.tags,
    )


class BackendAPI:
    """Central orchestration component: capture line -> task -> reminders."""

    def __init__(self, parser: Optional[TaskParser] = None):
        self.parser = parser or TaskParser()

    def preview(self, text: str, now: datetime) -> dict:
        """Live feedback while typing. Pure."""
        parsed = self.parser.parse(text, now)
        return {"parsed": parsed, "chips": preview_chips(parsed)}

    async def submit(
        self,
        text: str,
        now: datetime,
        registrar: ReminderRegistrar,
        task_id: Optional[str] = None,
        dump_id: str = DEFAULT_DUMP_ID,
        category_name: str = "",
        category_emoji: str = "",
    ) -> dict:
        """Accepts a captured line and registers its reminders."""

        # 1. Extract fields from the text
        parsed = self.parser.parse(text, now)

        # 2. Shape it as a task
        task = to_task_item(parsed, task_id or uuid.uuid4().hex[:12], now)

        # 3. Plan and register reminders
        report = await registrar.sync(task, now, dump_id, category_name, category_emoji)

        return {
            "task": task,
            "chips": preview_chips(parsed),
            "reminders": report,
        }
