import asyncio
from datetime import datetime

import pytest

from integration.calendar_integration import CalendarProvider
from integration.notifications import InMemoryNotificationService
from taskmelt.models import CalendarEvent, CalendarInfo

# Monday
NOW = datetime(2026, 10, 19, 10, 0)


class FlakyNotificationService(InMemoryNotificationService):
    def __init__(self, failing_ids=(), failing_cancel_ids=(), fail_listing: bool = False, granted: bool = True):
        super().__init__(granted=granted)
        self.failing_ids = set(failing_ids)
        self.failing_cancel_ids = set(failing_cancel_ids)
        self.fail_listing = fail_listing
        self.calls = []

    async def list_scheduled(self):
        await asyncio.sleep(0)
        if self.fail_listing:
            raise RuntimeError("notification engine unreachable")
        return await super().list_scheduled()

    async def schedule_at(self, identifier, content, fire_at):
        self.calls.append(("schedule", identifier))
        await asyncio.sleep(0)
        if identifier in self.failing_ids:
            raise RuntimeError("notification engine rejected the request")
        await super().schedule_at(identifier, content, fire_at)

    async def cancel(self, identifier):
        self.calls.append(("cancel", identifier))
        await asyncio.sleep(0)
        if identifier in self.failing_cancel_ids:
            raise RuntimeError("notification engine rejected the cancel")
        await super().cancel(identifier)


class FakeCalendarProvider(CalendarProvider):
    def __init__(self, events=(), calendars=(), granted: bool = True, fail: bool = False):
        self.events = list(events)
        self.calendars = list(calendars)
        self.granted = granted
        self.fail = fail
        self.requests = []

    async def request_permission(self) -> bool:
        return self.granted

    async def list_calendars(self):
        return self.calendars

    async def list_events(self, calendar_ids, start, end):
        self.requests.append((list(calendar_ids), start, end))
        if self.fail:
            raise RuntimeError("calendar backend unavailable")
        return [e for e in self.events if e.calendar_id in calendar_ids]


def make_event(event_id, title, start, end, calendar_id="work", all_day=False, **kwargs):
    titles = {"work": "Work", "personal": "Personal"}
    return CalendarEvent(
        id=event_id,
        title=title,
        start_date=start,
        end_date=end,
        all_day=all_day,
        calendar_id=calendar_id,
        calendar_title=titles.get(calendar_id, calendar_id),
        **kwargs,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def sample_events():
    return [
        make_event(
            "standup-work",
            "Standup",
            datetime(2026, 10, 20, 9, 0),
            datetime(2026, 10, 20, 9, 15),
            calendar_color="#FF0000",
        ),
        make_event(
            "offsite",
            "Offsite",
            datetime(2026, 10, 22),
            datetime(2026, 10, 23),
            all_day=True,
            calendar_color="#FF0000",
        ),
        make_event(
            "standup-personal",
            "Standup",
            datetime(2026, 10, 20, 9, 0),
            datetime(2026, 10, 20, 9, 15),
            calendar_id="personal",
        ),
        make_event(
            "dinner",
            "Dinner with Sam",
            datetime(2026, 10, 19, 19, 0),
            datetime(2026, 10, 19, 20, 30),
            calendar_id="personal",
            location="Cafe Central",
        ),
    ]


@pytest.fixture
def fake_calendar_factory(sample_events):
    def _make(**kwargs):
        kwargs.setdefault("events", sample_events)
        kwargs.setdefault(
            "calendars",
            [
                CalendarInfo(id="work", title="Work", color="#FF0000", is_primary=True),
                CalendarInfo(id="personal", title="Personal"),
            ],
        )
        return FakeCalendarProvider(**kwargs)
    return _make
