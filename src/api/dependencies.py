import logging
import os
from datetime import datetime
from typing import Optional

from google.oauth2.credentials import Credentials

from api import state
from integration.calendar_integration import CalendarImporter, GoogleCalendarProvider
from integration.notifications import InMemoryNotificationService, NotificationService
from integration.reminder_registrar import NudgeRegistrar, ReminderRegistrar
from storage.notification_store import NotificationStore

logger = logging.getLogger(__name__)

# Configuration
NOTIFICATION_STORE_PATH = os.getenv("NOTIFICATION_STORE_PATH", "").strip()
GOOGLE_CREDENTIALS_FILE = os.getenv("GOOGLE_CREDENTIALS_FILE", "").strip()
CALENDAR_DAYS_AHEAD = int(os.getenv("CALENDAR_DAYS_AHEAD", "30"))

GOOGLE_CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]

_reminder_registrar: Optional[ReminderRegistrar] = None


def build_notification_service() -> NotificationService:
    if NOTIFICATION_STORE_PATH:
        logger.info(f"Using JSON notification store at {NOTIFICATION_STORE_PATH}")
        return NotificationStore(path=NOTIFICATION_STORE_PATH)
    logger.info("Using in-memory notification service")
    return InMemoryNotificationService()


def load_google_credentials():
    """Authorized-user credentials from GOOGLE_CREDENTIALS_FILE, or None."""
    if not GOOGLE_CREDENTIALS_FILE:
        return None
    try:
        return Credentials.from_authorized_user_file(GOOGLE_CREDENTIALS_FILE, GOOGLE_CALENDAR_SCOPES)
    except Exception as e:
        logger.error(f"Could not load Google credentials from {GOOGLE_CREDENTIALS_FILE}: {e}")
        return None


def build_calendar_provider() -> GoogleCalendarProvider:
    return GoogleCalendarProvider(credentials=load_google_credentials())


def get_notification_service() -> NotificationService:
    return state.notification_service


def get_reminder_registrar() -> ReminderRegistrar:
    # one registrar per service so per-task locks are shared across requests
    global _reminder_registrar
    if _reminder_registrar is None or _reminder_registrar.service is not state.notification_service:
        _reminder_registrar = ReminderRegistrar(state.notification_service)
    return _reminder_registrar


def get_nudge_registrar() -> NudgeRegistrar:
    return NudgeRegistrar(state.notification_service)


def get_calendar_importer() -> CalendarImporter:
    if state.calendar_provider is None:
        state.calendar_provider = build_calendar_provider()
    return CalendarImporter(state.calendar_provider)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    """Requests may pin "now"; otherwise the wall clock is read here, at the edge."""
    if now is None:
        return datetime.now().astimezone()
    return now
