"""
Reminder registration against the notification service.

The planner decides *what* should fire; this module makes the service
agree with that plan. Identifiers are deterministic, so the diff is a set
comparison on the task's identifier prefix and a second pass over an
unchanged task issues no calls at all.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

from integration.notifications import NotificationService
from scheduling.nudges import DEADLINE_ALERT_ID, NUDGE_IDS, compose_deadline_alert, compose_nudges
from scheduling.scheduler import DEFAULT_DUMP_ID, SLOTS, Scheduler, trigger_id, trigger_prefix
from taskmelt.models import (
    Category,
    NotificationContent,
    NudgeState,
    ReminderTrigger,
    ScheduledNotification,
    TaskItem,
    UrgentTask,
)

logger = logging.getLogger(__name__)

TASK_REMINDER_CATEGORY = "task-reminder"


@dataclass
class SyncReport:
    """Outcome of one registration pass. Failures are collected, never raised."""

    prefix: str
    available: bool = True
    scheduled: List[str] = field(default_factory=list)
    cancelled: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "prefix": self.prefix,
            "status": "ok" if self.available else "unavailable",
            "scheduled": self.scheduled,
            "cancelled": self.cancelled,
            "unchanged": self.unchanged,
            "failed": [{"identifier": i, "error": e} for i, e in self.failed],
        }


def trigger_content(trigger: ReminderTrigger) -> NotificationContent:
    return NotificationContent(
        title=trigger.title,
        body=trigger.body,
        data={
            "taskId": trigger.payload.task_id,
            "dumpId": trigger.payload.dump_id,
            "categoryName": trigger.payload.category_name,
        },
        category_identifier=TASK_REMINDER_CATEGORY,
    )


class _Registrar:
    def __init__(self, service: NotificationService):
        self.service = service

    async def _permitted(self) -> bool:
        try:
            return await self.service.request_permission()
        except Exception as e:
            logger.warning(f"Notification permission check failed: {e}")
            return False

    async def _cancel(self, identifier: str, report: SyncReport) -> None:
        try:
            await self.service.cancel(identifier)
            report.cancelled.append(identifier)
        except Exception as e:
            logger.warning(f"Failed to cancel notification {identifier}: {e}")
            report.failed.append((identifier, str(e)))

    async def _registered(self, prefix: str, report: SyncReport) -> Optional[Dict[str, ScheduledNotification]]:
        """Registrations under ``prefix``, or None when the service cannot list them."""
        try:
            scheduled = await self.service.list_scheduled()
        except Exception as e:
            logger.warning(f"Could not list scheduled notifications for {prefix}: {e}")
            report.failed.append((prefix, f"listing failed: {e}"))
            return None
        return {n.identifier: n for n in scheduled if n.identifier.startswith(prefix)}


class ReminderRegistrar(_Registrar):
    """Keeps each task's registered reminders equal to its planned triggers.

    Work for one task is serialized on a lock keyed by its identifier prefix,
    so cancellations always complete before replacements are scheduled.
    Different tasks proceed concurrently.
    """

    def __init__(self, service: NotificationService, scheduler: Optional[Scheduler] = None):
        super().__init__(service)
        self.scheduler = scheduler or Scheduler()
        # prefix -> (lock, number of passes using it); dropped when unused
        self._locks: Dict[str, List] = {}

    @asynccontextmanager
    async def _serialized(self, prefix: str) -> AsyncIterator[None]:
        entry = self._locks.get(prefix)
        if entry is None:
            entry = self._locks[prefix] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[prefix]

    def _known_ids(self, dump_id: str, task_id: str, registered) -> List[str]:
        """Registered identifiers of a task, or every slot id when listing failed."""
        if registered is None:
            return [trigger_id(dump_id, task_id, slot) for slot in SLOTS]
        return sorted(registered)

    async def sync(
        self,
        task: TaskItem,
        now: datetime,
        dump_id: str = DEFAULT_DUMP_ID,
        category_name: str = "",
        category_emoji: str = "",
    ) -> SyncReport:
        prefix = trigger_prefix(dump_id, task.id)
        report = SyncReport(prefix=prefix)

        if not await self._permitted():
            logger.info(f"Notifications not permitted, skipping reminders for {prefix}")
            report.available = False
            return report

        planned = self.scheduler.plan(task, now, dump_id, category_name, category_emoji)
        planned_ids = {t.identifier for t in planned}

        async with self._serialized(prefix):
            registered = await self._registered(prefix, report)
            existing = registered or {}

            for identifier in self._known_ids(dump_id, task.id, registered):
                if identifier not in planned_ids:
                    await self._cancel(identifier, report)

            for trigger in planned:
                if trigger.fire_at <= now:
                    continue

                content = trigger_content(trigger)
                current = existing.get(trigger.identifier)
                if current is not None and current.fire_at == trigger.fire_at and current.content == content:
                    report.unchanged.append(trigger.identifier)
                    continue

                try:
                    await self.service.schedule_at(trigger.identifier, content, trigger.fire_at)
                    report.scheduled.append(trigger.identifier)
                except Exception as e:
                    logger.warning(f"Failed to schedule notification {trigger.identifier}: {e}")
                    report.failed.append((trigger.identifier, str(e)))

        if report.scheduled or report.cancelled:
            logger.info(
                f"Reminders for {task.task[:30]!r}: {len(report.scheduled)} scheduled, "
                f"{len(report.cancelled)} cancelled"
            )
        return report

    async def sync_category(self, category: Category, now: datetime, dump_id: str = DEFAULT_DUMP_ID) -> List[SyncReport]:
        return list(
            await asyncio.gather(
                *(self.sync(item, now, dump_id, category.name, category.emoji) for item in category.items)
            )
        )

    async def cancel_task(self, dump_id: str, task_id: str) -> SyncReport:
        """Drop every reminder of a deleted task."""
        prefix = trigger_prefix(dump_id, task_id)
        report = SyncReport(prefix=prefix)

        async with self._serialized(prefix):
            registered = await self._registered(prefix, report)
            for identifier in self._known_ids(dump_id, task_id, registered):
                await self._cancel(identifier, report)

        logger.info(f"Cancelled {len(report.cancelled)} notifications for {prefix}")
        return report

    async def cancel_all(self) -> SyncReport:
        report = SyncReport(prefix="")
        try:
            await self.service.cancel_all()
        except Exception as e:
            logger.warning(f"Failed to cancel all notifications: {e}")
            report.failed.append(("*", str(e)))
        return report


class NudgeRegistrar(_Registrar):
    """Registers the two daily smart nudges and the urgent-deadline alert."""

    async def plan(self, state: NudgeState) -> SyncReport:
        report = SyncReport(prefix="smart-nudge-")

        if not await self._permitted():
            report.available = False
            return report

        for identifier in NUDGE_IDS:
            await self._cancel(identifier, report)

        for nudge in compose_nudges(state):
            try:
                await self.service.schedule_daily(nudge.identifier, nudge.content, nudge.at.hour, nudge.at.minute)
                report.scheduled.append(nudge.identifier)
            except Exception as e:
                logger.warning(f"Failed to schedule nudge {nudge.identifier}: {e}")
                report.failed.append((nudge.identifier, str(e)))

        logger.info(f"Smart nudges: {len(report.scheduled)} scheduled for {state.pending_count} pending tasks")
        return report

    async def alert_deadline(self, urgent: Sequence[UrgentTask], now: datetime) -> SyncReport:
        report = SyncReport(prefix=DEADLINE_ALERT_ID)

        if not await self._permitted():
            report.available = False
            return report

        await self._cancel(DEADLINE_ALERT_ID, report)

        alert = compose_deadline_alert(urgent, now)
        if alert is None:
            return report

        try:
            await self.service.schedule_at(alert.identifier, alert.content, alert.fire_at)
            report.scheduled.append(alert.identifier)
        except Exception as e:
            logger.warning(f"Failed to schedule deadline alert: {e}")
            report.failed.append((alert.identifier, str(e)))
        return report
