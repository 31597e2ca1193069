import asyncio
import json
from datetime import datetime, time

from integration.reminder_registrar import ReminderRegistrar
from storage.notification_store import NotificationStore
from taskmelt.models import NotificationContent, TaskItem


def test_notification_store_roundtrip(tmp_path):
    path = str(tmp_path / "notifications.json")
    store = NotificationStore(path=path)
    content = NotificationContent(title="Due soon", body="Pay rent is due today", data={"taskId": "t1"})

    asyncio.run(store.schedule_at("task-default-t1-0", content, datetime(2026, 10, 21, 14, 30)))
    asyncio.run(store.schedule_daily("smart-nudge-morning", content, 9, 0))

    loaded = {n.identifier: n for n in asyncio.run(NotificationStore(path=path).list_scheduled())}
    assert loaded["task-default-t1-0"].fire_at == datetime(2026, 10, 21, 14, 30)
    assert loaded["task-default-t1-0"].content == content
    assert loaded["smart-nudge-morning"].daily == time(9, 0)
    assert loaded["smart-nudge-morning"].fire_at is None


def test_notification_store_cancel(tmp_path):
    store = NotificationStore(path=str(tmp_path / "n.json"))
    content = NotificationContent(title="t", body="b")
    asyncio.run(store.schedule_at("a", content, datetime(2026, 10, 21, 9, 0)))
    asyncio.run(store.schedule_at("b", content, datetime(2026, 10, 21, 9, 0)))

    asyncio.run(store.cancel("a"))
    asyncio.run(store.cancel("never-registered"))
    assert [n.identifier for n in asyncio.run(store.list_scheduled())] == ["b"]

    asyncio.run(store.cancel_all())
    assert asyncio.run(store.list_scheduled()) == []


def test_notification_store_missing_file(tmp_path):
    store = NotificationStore(path=str(tmp_path / "nested" / "missing.json"))
    assert asyncio.run(store.list_scheduled()) == []


def test_notification_store_corrupted_file(tmp_path):
    p = tmp_path / "n.json"
    p.write_text("{not valid json")
    store = NotificationStore(path=str(p))
    assert asyncio.run(store.list_scheduled()) == []


def test_notification_store_skips_malformed_records(tmp_path):
    p = tmp_path / "n.json"
    p.write_text(json.dumps({
        "notifications": [
            {"identifier": "ok", "content": {"title": "t", "body": "b"}, "fire_at": "2026-10-21T09:00:00"},
            {"identifier": "broken"},
        ]
    }))
    store = NotificationStore(path=str(p))
    assert [n.identifier for n in asyncio.run(store.list_scheduled())] == ["ok"]


def test_registrar_is_idempotent_against_the_store(tmp_path, now):
    store = NotificationStore(path=str(tmp_path / "n.json"))
    registrar = ReminderRegistrar(store)
    task = TaskItem(id="t1", task="Finish report", due_date=datetime(2026, 10, 21, 15, 0))

    first = asyncio.run(registrar.sync(task, now, "d1", "Work", "💼"))
    second = asyncio.run(ReminderRegistrar(NotificationStore(path=str(tmp_path / "n.json"))).sync(
        task, now, "d1", "Work", "💼"
    ))

    assert len(first.scheduled) == 3
    assert second.scheduled == []
    assert len(second.unchanged) == 3
