import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from api.backend import BackendAPI
from api.dependencies import get_reminder_registrar, resolve_now
from api.metrics import REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS, TASKS_PARSED_TOTAL, record_sync
from integration.reminder_registrar import ReminderRegistrar
from scheduling.scheduler import DEFAULT_DUMP_ID

router = APIRouter()
logger = logging.getLogger(__name__)
backend = BackendAPI()


class ParseIn(BaseModel):
    text: str
    now: Optional[datetime] = None


class SubmitIn(BaseModel):
    text: str
    now: Optional[datetime] = None
    task_id: Optional[str] = None
    dump_id: str = DEFAULT_DUMP_ID
    category_name: str = ""
    category_emoji: str = ""


@router.post("/parse")
async def parse_text(payload: ParseIn) -> dict:
    """Parse one capture line and return the preview chips for it."""
    start = time.time()
    result = backend.preview(payload.text, resolve_now(payload.now))

    try:
        TASKS_PARSED_TOTAL.inc()
        REQUESTS_TOTAL.labels(endpoint="/parse", status="ok").inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint="/parse").observe(time.time() - start)
    except Exception:
        pass

    return result


@router.post("/tasks/submit")
async def submit_task(
    payload: SubmitIn,
    registrar: ReminderRegistrar = Depends(get_reminder_registrar),
) -> dict:
    """Turn a capture line into a task and register its reminders."""
    start = time.time()
    logger.info(f"Received capture: {payload.text[:50]}...")

    try:
        result = await backend.submit(
            payload.text,
            resolve_now(payload.now),
            registrar,
            task_id=payload.task_id,
            dump_id=payload.dump_id,
            category_name=payload.category_name,
            category_emoji=payload.category_emoji,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Nothing to create a task from: {e.error_count()} error(s)")

    report = result["reminders"]
    record_sync(report)
    try:
        REQUESTS_TOTAL.labels(endpoint="/tasks/submit", status="ok").inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint="/tasks/submit").observe(time.time() - start)
    except Exception:
        pass

    return {"task": result["task"], "chips": result["chips"], "reminders": report.as_dict()}
