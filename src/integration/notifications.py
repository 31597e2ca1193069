from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, time
from typing import Dict, List

from taskmelt.models import NotificationContent, ScheduledNotification


class NotificationService(ABC):
    """Boundary to the host's local notification engine.

    Scheduling with an identifier that is already registered replaces it.
    Cancelling an identifier that is not registered is not an error.
    """

    async def request_permission(self) -> bool:
        return True

    @abstractmethod
    async def schedule_at(self, identifier: str, content: NotificationContent, fire_at: datetime) -> None:
        raise NotImplementedError

    @abstractmethod
    async def schedule_daily(self, identifier: str, content: NotificationContent, hour: int, minute: int) -> None:
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, identifier: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_scheduled(self) -> List[ScheduledNotification]:
        raise NotImplementedError

    async def cancel_all(self) -> None:
        for item in await self.list_scheduled():
            await self.cancel(item.identifier)


class InMemoryNotificationService(NotificationService):
    """Keeps registrations in a dict. Used for local runs and tests."""

    def __init__(self, granted: bool = True):
        self.granted = granted
        self._scheduled: Dict[str, ScheduledNotification] = {}

    async def request_permission(self) -> bool:
        return self.granted

    async def schedule_at(self, identifier: str, content: NotificationContent, fire_at: datetime) -> None:
        self._scheduled[identifier] = ScheduledNotification(
            identifier=identifier, content=content, fire_at=fire_at
        )

    async def schedule_daily(self, identifier: str, content: NotificationContent, hour: int, minute: int) -> None:
        self._scheduled[identifier] = ScheduledNotification(
            identifier=identifier, content=content, daily=time(hour, minute)
        )

    async def cancel(self, identifier: str) -> None:
        self._scheduled.pop(identifier, None)

    async def list_scheduled(self) -> List[ScheduledNotification]:
        return list(self._scheduled.values())

    async def cancel_all(self) -> None:
        self._scheduled.clear()
