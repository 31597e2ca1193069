from typing import Optional

from integration.calendar_integration import CalendarProvider
from integration.notifications import InMemoryNotificationService, NotificationService

# Global instances, replaced at startup from configuration
notification_service: NotificationService = InMemoryNotificationService()
calendar_provider: Optional[CalendarProvider] = None
