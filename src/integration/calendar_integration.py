from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Dict, List, Optional, Sequence, Tuple

from googleapiclient.discovery import build

from taskmelt.models import CalendarEvent, CalendarInfo, Category, DumpSession, TaskItem

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_COLOR = "#6366F1"
CALENDAR_EMOJI = "📅"
DEFAULT_DAYS_AHEAD = 30
ALL_DAY = "All day"


class CalendarProvider(ABC):
    """Boundary to an external calendar. Read-only for this core."""

    @abstractmethod
    async def request_permission(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def list_calendars(self) -> List[CalendarInfo]:
        raise NotImplementedError

    @abstractmethod
    async def list_events(self, calendar_ids: Sequence[str], start: datetime, end: datetime) -> List[CalendarEvent]:
        raise NotImplementedError


def _parse_google_time(raw: Dict[str, str]) -> Tuple[Optional[datetime], bool]:
    """Google sends {"dateTime": ...} for timed events and {"date": ...} for all-day ones."""
    if raw.get("dateTime"):
        return datetime.fromisoformat(raw["dateTime"].replace("Z", "+00:00")), False
    if raw.get("date"):
        return datetime.combine(date.fromisoformat(raw["date"]), time.min), True
    return None, False


def _rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.isoformat()


class GoogleCalendarProvider(CalendarProvider):
    """Calendar provider backed by the Google Calendar v3 API.

    Without credentials the provider reports permission as denied, which the
    importer treats as "no events available".
    """

    def __init__(self, credentials=None):
        self.credentials = credentials
        self._service = None
        self._calendars: Dict[str, CalendarInfo] = {}

    def _client(self):
        if self._service is None:
            self._service = build(
                "calendar",
                "v3",
                credentials=self.credentials,
                cache_discovery=False,
            )
        return self._service

    async def request_permission(self) -> bool:
        return self.credentials is not None

    def _fetch_calendars(self) -> List[CalendarInfo]:
        service = self._client()
        calendars: List[CalendarInfo] = []
        page_token = None
        while True:
            resp = service.calendarList().list(pageToken=page_token).execute()
            for item in resp.get("items", []):
                calendars.append(
                    CalendarInfo(
                        id=item["id"],
                        title=item.get("summaryOverride") or item.get("summary", item["id"]),
                        source="google",
                        color=item.get("backgroundColor"),
                        is_primary=bool(item.get("primary", False)),
                        allows_modifications=item.get("accessRole") in {"owner", "writer"},
                    )
                )
            page_token = resp.get("nextPageToken")
            if not page_token:
                return calendars

    def _fetch_events(self, calendar_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        service = self._client()
        items: List[Dict[str, Any]] = []
        page_token = None
        while True:
            resp = (
                service.events()
                .list(
                    calendarId=calendar_id,
                    timeMin=_rfc3339(start),
                    timeMax=_rfc3339(end),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                )
                .execute()
            )
            items.extend(resp.get("items", []))
            page_token = resp.get("nextPageToken")
            if not page_token:
                return items

    async def list_calendars(self) -> List[CalendarInfo]:
        calendars = await asyncio.to_thread(self._fetch_calendars)
        self._calendars = {c.id: c for c in calendars}
        return calendars

    async def list_events(self, calendar_ids: Sequence[str], start: datetime, end: datetime) -> List[CalendarEvent]:
        if not self._calendars:
            await self.list_calendars()

        events: List[CalendarEvent] = []
        for calendar_id in calendar_ids:
            raw_events = await asyncio.to_thread(self._fetch_events, calendar_id, start, end)
            info = self._calendars.get(calendar_id)
            for e in raw_events:
                if e.get("status") == "cancelled":
                    continue
                event = self._to_event(e, calendar_id, info)
                if event is not None:
                    events.append(event)
        return events

    @staticmethod
    def _to_event(raw: Dict[str, Any], calendar_id: str, info: Optional[CalendarInfo]) -> Optional[CalendarEvent]:
        try:
            start, all_day = _parse_google_time(raw.get("start", {}))
            end, _ = _parse_google_time(raw.get("end", {}))
        except ValueError as e:
            logger.warning(f"Skipping event {raw.get('id')} with unparseable time: {e}")
            return None
        if start is None:
            return None

        return CalendarEvent(
            id=raw["id"],
            title=raw.get("summary", ""),
            start_date=start,
            end_date=end or start,
            all_day=all_day,
            location=raw.get("location") or None,
            notes=raw.get("description") or None,
            calendar_id=calendar_id,
            calendar_title=info.title if info else "Unknown Calendar",
            calendar_color=info.color if info else None,
        )


def event_key(event: CalendarEvent) -> Tuple[str, float, bool]:
    """Events sharing title, start instant and all-day flag are the same event."""
    return (event.title, event.start_date.timestamp(), event.all_day)


def dedupe_events(events: Sequence[CalendarEvent]) -> List[CalendarEvent]:
    unique: Dict[Tuple[str, float, bool], CalendarEvent] = {}
    for event in events:
        unique.setdefault(event_key(event), event)
    return sorted(unique.values(), key=lambda e: e.start_date.timestamp())


class CalendarImporter:
    """Turns external calendar events into categories of tasks."""

    def __init__(
        self,
        provider: CalendarProvider,
        default_color: str = DEFAULT_CALENDAR_COLOR,
        tz: Optional[tzinfo] = None,
    ):
        self.provider = provider
        self.default_color = default_color
        self.tz = tz

    async def has_permission(self) -> bool:
        try:
            return await self.provider.request_permission()
        except Exception as e:
            logger.warning(f"Calendar permission request failed: {e}")
            return False

    async def list_calendars(self) -> List[CalendarInfo]:
        if not await self.has_permission():
            return []
        try:
            return await self.provider.list_calendars()
        except Exception as e:
            logger.error(f"Error fetching calendars: {e}")
            return []

    @staticmethod
    def window(now: datetime, days_ahead: int = DEFAULT_DAYS_AHEAD) -> Tuple[datetime, datetime]:
        start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        end = datetime.combine(now.date() + timedelta(days=days_ahead), time.max, tzinfo=now.tzinfo)
        return start, end

    async def fetch_events(
        self,
        calendar_ids: Sequence[str],
        now: datetime,
        days_ahead: int = DEFAULT_DAYS_AHEAD,
    ) -> List[CalendarEvent]:
        if not calendar_ids:
            return []
        if not await self.has_permission():
            logger.info("Calendar permission not granted, no events imported")
            return []

        start, end = self.window(now, days_ahead)
        try:
            events = await self.provider.list_events(list(calendar_ids), start, end)
        except Exception as e:
            logger.error(f"Error fetching calendar events: {e}")
            return []

        unique = dedupe_events(events)
        logger.info(f"Fetched {len(events)} calendar events, {len(unique)} after de-duplication")
        return unique

    def convert_event(self, event: CalendarEvent) -> TaskItem:
        start = event.start_date
        if self.tz is not None and start.tzinfo is not None:
            start = start.astimezone(self.tz)

        # noon keeps the day stable when the value is serialized in another timezone
        scheduled_date = datetime.combine(start.date(), time(12, 0), tzinfo=start.tzinfo)

        if event.all_day:
            time_estimate = ALL_DAY
            scheduled_time = None
        else:
            minutes = round((event.end_date.timestamp() - event.start_date.timestamp()) / 60)
            time_estimate = f"{max(minutes, 0)} min"
            scheduled_time = start.strftime("%H:%M")

        return TaskItem(
            id=f"calendar_{event.id}",
            task=event.title.strip() or "Untitled event",
            completed=False,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            time_estimate=time_estimate,
            notes=event.notes,
            context="anywhere" if event.location else None,
        )

    def convert_events(self, events: Sequence[CalendarEvent]) -> List[Category]:
        groups: Dict[str, Category] = {}
        for event in events:
            category = groups.get(event.calendar_id)
            if category is None:
                category = groups[event.calendar_id] = Category(
                    name=event.calendar_title,
                    emoji=CALENDAR_EMOJI,
                    color=event.calendar_color or self.default_color,
                )
            category.items.append(self.convert_event(event))
        return list(groups.values())

    async def import_calendar(
        self,
        calendar_ids: Sequence[str],
        now: datetime,
        days_ahead: int = DEFAULT_DAYS_AHEAD,
    ) -> List[Category]:
        events = await self.fetch_events(calendar_ids, now, days_ahead)
        return self.convert_events(events)


def to_dump_session(categories: Sequence[Category], now: datetime) -> DumpSession:
    count = sum(len(c.items) for c in categories)
    return DumpSession(
        id=f"calendar_import_{int(now.timestamp() * 1000)}",
        raw_text=f"Imported {count} events from calendar",
        categories=list(categories),
        created_at=now,
        summary=f"Calendar import with {count} events",
    )
