import logging
import time
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_notification_service, get_nudge_registrar, get_reminder_registrar, resolve_now
from api.metrics import REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS, SCHEDULED_NOTIFICATIONS, record_sync
from integration.notifications import NotificationService
from integration.reminder_registrar import NudgeRegistrar, ReminderRegistrar
from scheduling.scheduler import DEFAULT_DUMP_ID, plan_triggers
from taskmelt.models import NudgeState, TaskItem, UrgentTask

router = APIRouter()
logger = logging.getLogger(__name__)


class ReminderIn(BaseModel):
    task: TaskItem
    now: Optional[datetime] = None
    dump_id: str = DEFAULT_DUMP_ID
    category_name: str = ""
    category_emoji: str = ""


class DeadlineIn(BaseModel):
    urgent: List[UrgentTask]
    now: Optional[datetime] = None


async def _update_gauge(service: NotificationService) -> None:
    try:
        SCHEDULED_NOTIFICATIONS.set(len(await service.list_scheduled()))
    except Exception:
        pass


@router.post("/reminders/plan")
async def plan_reminders(payload: ReminderIn) -> dict:
    """Preview the triggers a task would get, without registering them."""
    triggers = plan_triggers(
        payload.task,
        resolve_now(payload.now),
        payload.dump_id,
        payload.category_name,
        payload.category_emoji,
    )
    return {"triggers": triggers}


@router.post("/reminders/sync")
async def sync_reminders(
    payload: ReminderIn,
    registrar: ReminderRegistrar = Depends(get_reminder_registrar),
) -> dict:
    start = time.time()
    report = await registrar.sync(
        payload.task,
        resolve_now(payload.now),
        payload.dump_id,
        payload.category_name,
        payload.category_emoji,
    )

    record_sync(report)
    await _update_gauge(registrar.service)
    try:
        REQUESTS_TOTAL.labels(endpoint="/reminders/sync", status=report.as_dict()["status"]).inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint="/reminders/sync").observe(time.time() - start)
    except Exception:
        pass

    return report.as_dict()


@router.get("/reminders")
async def list_reminders(
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    scheduled = await service.list_scheduled()
    return {"scheduled": scheduled, "total": len(scheduled)}


@router.delete("/reminders/{dump_id}/{task_id}")
async def cancel_task_reminders(
    dump_id: str,
    task_id: str,
    registrar: ReminderRegistrar = Depends(get_reminder_registrar),
) -> dict:
    """Called when a task is deleted."""
    report = await registrar.cancel_task(dump_id, task_id)
    record_sync(report)
    await _update_gauge(registrar.service)
    return report.as_dict()


@router.delete("/reminders")
async def cancel_all_reminders(
    registrar: ReminderRegistrar = Depends(get_reminder_registrar),
) -> dict:
    """Called on logout."""
    report = await registrar.cancel_all()
    await _update_gauge(registrar.service)
    return report.as_dict()


@router.post("/nudges")
async def plan_nudges(
    payload: NudgeState,
    registrar: NudgeRegistrar = Depends(get_nudge_registrar),
) -> dict:
    report = await registrar.plan(payload)
    record_sync(report)
    await _update_gauge(registrar.service)
    return report.as_dict()


@router.post("/nudges/deadline")
async def deadline_alert(
    payload: DeadlineIn,
    registrar: NudgeRegistrar = Depends(get_nudge_registrar),
) -> dict:
    report = await registrar.alert_deadline(payload.urgent, resolve_now(payload.now))
    record_sync(report)
    await _update_gauge(registrar.service)
    return report.as_dict()
