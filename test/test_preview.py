from datetime import date

from extraction.preview import format_clock, format_duration, preview_chips
from extraction.task_parser import parse_task
from taskmelt.models import ParsedTask, Recurrence


def test_chips_follow_field_order(now):
    parsed = parse_task("Call mom tomorrow at 3pm urgent @calls #family for 30 min", now)
    assert parsed.clean_text == "Call mom"
    assert preview_chips(parsed) == [
        "📅 Tue, Oct 20",
        "⏰ 3:00 PM",
        "⏱️ 30m",
        "🔴 high",
        "📱 calls",
        "🏷️ #family",
    ]


def test_order_does_not_depend_on_input_order(now):
    a = preview_chips(parse_task("#x someday Fix tap @home", now))
    b = preview_chips(parse_task("Fix tap @home someday #x", now))
    assert a == b == ["🟢 low", "🏠 home", "🏷️ #x"]


def test_no_fields_no_chips():
    assert preview_chips(ParsedTask(text="Plain", clean_text="Plain")) == []


def test_unknown_context_and_recurrence():
    parsed = ParsedTask(
        clean_text="Sort",
        scheduled_date=date(2026, 10, 24),
        context="garage",
        recurring=Recurrence(frequency="weekly", days_of_week=[5]),
    )
    assert preview_chips(parsed) == ["📅 Sat, Oct 24", "📍 garage", "🔁 weekly"]


def test_format_clock():
    assert format_clock("15:05") == "3:05 PM"
    assert format_clock("00:30") == "12:30 AM"
    assert format_clock("12:00") == "12:00 PM"


def test_format_duration():
    assert format_duration(90) == "1h 30m"
    assert format_duration(120) == "2h"
    assert format_duration(45) == "45m"
