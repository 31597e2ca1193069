import logging
import time
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import CALENDAR_DAYS_AHEAD, get_calendar_importer, get_reminder_registrar, resolve_now
from api.metrics import EVENTS_IMPORTED_TOTAL, REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS, record_sync
from integration.calendar_integration import CalendarImporter, to_dump_session
from integration.reminder_registrar import ReminderRegistrar

router = APIRouter()
logger = logging.getLogger(__name__)


class ImportIn(BaseModel):
    calendar_ids: List[str] = Field(default_factory=list)
    days_ahead: int = Field(CALENDAR_DAYS_AHEAD, ge=0, le=366)
    now: Optional[datetime] = None
    sync_reminders: bool = False


@router.get("/calendar/calendars")
async def list_calendars(
    importer: CalendarImporter = Depends(get_calendar_importer),
) -> dict:
    if not await importer.has_permission():
        return {"status": "unavailable", "calendars": []}
    return {"status": "ok", "calendars": await importer.list_calendars()}


@router.post("/calendar/import")
async def import_calendar(
    payload: ImportIn,
    importer: CalendarImporter = Depends(get_calendar_importer),
    registrar: ReminderRegistrar = Depends(get_reminder_registrar),
) -> dict:
    """Import upcoming events as a dump session, one category per calendar."""
    start = time.time()
    if not payload.calendar_ids:
        raise HTTPException(status_code=400, detail="No calendars selected")

    if not await importer.has_permission():
        REQUESTS_TOTAL.labels(endpoint="/calendar/import", status="unavailable").inc()
        return {"status": "unavailable", "session": None}

    now = resolve_now(payload.now)
    categories = await importer.import_calendar(payload.calendar_ids, now, payload.days_ahead)
    session = to_dump_session(categories, now)

    reminders = []
    if payload.sync_reminders:
        for category in categories:
            for report in await registrar.sync_category(category, now, session.id):
                record_sync(report)
                reminders.append(report.as_dict())

    imported = sum(len(c.items) for c in categories)
    logger.info(f"Imported {imported} calendar events into {len(categories)} categories")
    try:
        EVENTS_IMPORTED_TOTAL.inc(imported)
        REQUESTS_TOTAL.labels(endpoint="/calendar/import", status="ok").inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint="/calendar/import").observe(time.time() - start)
    except Exception:
        pass

    return {"status": "ok", "session": session, "reminders": reminders}
