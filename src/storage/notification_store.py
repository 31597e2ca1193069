from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, time
from pathlib import Path
from typing import Dict, List

from pydantic import ValidationError

from integration.notifications import NotificationService
from taskmelt.models import NotificationContent, ScheduledNotification

logger = logging.getLogger(__name__)


class NotificationStore(NotificationService):
    """Notification registrations persisted to a JSON file.

    Stands in for the device notification engine when the core runs as a
    service, so registrations survive a restart.
    """

    def __init__(self, path: str = "data/notifications.json"):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def load(self) -> Dict[str, ScheduledNotification]:
        """
        Load registrations from disk. Returns an empty set if the file is missing or invalid.
        """
        try:
            if not self.path.exists():
                return {}

            data = json.loads(self.path.read_text(encoding="utf-8"))
        except Exception as e:
            logger.warning(f"Ignoring unreadable notification store {self.path}: {e}")
            return {}

        items: Dict[str, ScheduledNotification] = {}
        for raw in data.get("notifications", []) if isinstance(data, dict) else []:
            try:
                item = ScheduledNotification.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed notification record: {e}")
                continue
            items[item.identifier] = item
        return items

    def save(self, items: Dict[str, ScheduledNotification]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        data = {"notifications": [item.model_dump(mode="json") for item in items.values()]}

        self.path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    async def _put(self, item: ScheduledNotification) -> None:
        async with self._lock:
            items = await asyncio.to_thread(self.load)
            items[item.identifier] = item
            await asyncio.to_thread(self.save, items)

    async def schedule_at(self, identifier: str, content: NotificationContent, fire_at: datetime) -> None:
        await self._put(ScheduledNotification(identifier=identifier, content=content, fire_at=fire_at))

    async def schedule_daily(self, identifier: str, content: NotificationContent, hour: int, minute: int) -> None:
        await self._put(ScheduledNotification(identifier=identifier, content=content, daily=time(hour, minute)))

    async def cancel(self, identifier: str) -> None:
        async with self._lock:
            items = await asyncio.to_thread(self.load)
            if items.pop(identifier, None) is not None:
                await asyncio.to_thread(self.save, items)

    async def list_scheduled(self) -> List[ScheduledNotification]:
        async with self._lock:
            items = await asyncio.to_thread(self.load)
        return list(items.values())

    async def cancel_all(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self.save, {})
