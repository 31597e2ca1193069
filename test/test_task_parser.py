from datetime import date, datetime

import pytest

from extraction.task_parser import TaskParser, parse_task, strip_spans, tidy
from taskmelt.models import ParsedTask


def test_call_mom_tomorrow_at_3pm(now):
    parsed = parse_task("Call mom tomorrow at 3pm", now)
    assert parsed.scheduled_date == date(2026, 10, 20)
    assert parsed.scheduled_time == "15:00"
    assert parsed.clean_text == "Call mom"
    assert parsed.priority is None
    assert parsed.context is None
    assert parsed.tags == []


def test_no_fragments_leaves_trimmed_text(now):
    parsed = parse_task("  Water the plants  ", now)
    assert parsed.clean_text == "Water the plants"
    assert parsed.scheduled_date is None
    assert parsed.scheduled_time is None
    assert parsed.duration is None
    assert parsed.priority is None
    assert parsed.context is None
    assert parsed.tags == []
    assert parsed.recurring is None


def test_empty_string(now):
    parsed = parse_task("", now)
    assert parsed == ParsedTask(text="", clean_text="")


@pytest.mark.parametrize("text", [None, 42, "   ", "!!!???", "@", "#", "////", "12:99pm"])
def test_parse_is_total(now, text):
    parsed = parse_task(text, now)
    assert isinstance(parsed, ParsedTask)


@pytest.mark.parametrize(
    "text",
    [
        "Submit report, urgent, by friday at 5pm #q4",
        "Call mom tomorrow at 3pm",
        "Call mom (tomorrow), asap",
        "Pay rent next friday",
        "Pay rent March 3",
        "Pay rent 3/10",
        "Pay rent 2/30",
        "Stand-up at 9:30am",
        "Stand-up in 30 min",
        "Stand-up tonight",
        "Write essay 1h30m",
        "Write essay for 2 hours",
        "Fix login bug ASAP",
        "Read that book someday",
        "Buy milk #groceries #errands urgent @home for 30 min",
        "Gym every monday at 7am",
    ],
)
def test_clean_text_is_stable_on_reparse(now, text):
    first = parse_task(text, now)
    second = parse_task(first.clean_text, now)
    assert second.clean_text == first.clean_text
    assert second.scheduled_date is None
    assert second.scheduled_time is None
    assert second.duration is None
    assert second.priority is None
    assert second.context is None
    assert second.tags == []
    assert second.recurring is None


def test_all_fields(now):
    parsed = parse_task("Buy milk #groceries #errands urgent @home for 30 min", now)
    assert parsed.clean_text == "Buy milk"
    assert parsed.duration == 30
    assert parsed.priority == "high"
    assert parsed.context == "home"
    assert parsed.tags == ["groceries", "errands"]


def test_stripping_leaves_no_dangling_punctuation(now):
    parsed = parse_task("Call mom (tomorrow), asap", now)
    assert parsed.clean_text == "Call mom"
    assert parsed.scheduled_date == date(2026, 10, 20)
    assert parsed.priority == "high"


def test_matched_fragments_are_removed(now):
    parsed = parse_task("Email Dana at 9am about the budget whenever #finance", now)
    for fragment in ("9am", "whenever", "#finance"):
        assert fragment not in parsed.clean_text
    assert "  " not in parsed.clean_text
    assert parsed.clean_text == "Email Dana about the budget"
    assert parsed.priority == "low"


@pytest.mark.parametrize(
    "text, priority",
    [
        ("Fix login bug ASAP", "high"),
        ("Fix login bug !!", "high"),
        ("Read that book someday", "low"),
        ("Tidy desk p2", "medium"),
        ("Plan trip whenever, not urgent", "low"),
    ],
)
def test_priority_keywords(now, text, priority):
    assert parse_task(text, now).priority == priority


@pytest.mark.parametrize(
    "text, context",
    [
        ("Ring the dentist on the phone", "calls"),
        ("Ring the dentist @call", "calls"),
        ("Print tickets @office", "work"),
        ("Sort the shed @garage", "garage"),
        ("Read anywhere", "anywhere"),
    ],
)
def test_context(now, text, context):
    assert parse_task(text, now).context == context


def test_email_address_is_not_a_context(now):
    parsed = parse_task("Mail bob@example.com the draft", now)
    assert parsed.context is None
    assert parsed.clean_text == "Mail bob@example.com the draft"


def test_tags_are_deduplicated(now):
    parsed = parse_task("#Work plan roadmap #work #ideas", now)
    assert parsed.tags == ["Work", "ideas"]
    assert parsed.clean_text == "plan roadmap"


@pytest.mark.parametrize(
    "text, minutes",
    [
        ("Write essay 1h30m", 90),
        ("Write essay for 2 hours", 120),
        ("Write essay 45 mins", 45),
        ("Write essay 1.5h", 90),
    ],
)
def test_durations(now, text, minutes):
    parsed = parse_task(text, now)
    assert parsed.duration == minutes
    assert parsed.clean_text == "Write essay"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Pay rent today", date(2026, 10, 19)),
        ("Pay rent day after tomorrow", date(2026, 10, 21)),
        ("Pay rent next friday", date(2026, 10, 23)),
        ("Pay rent on monday", date(2026, 10, 26)),
        ("Pay rent this weekend", date(2026, 10, 24)),
        ("Pay rent in 3 days", date(2026, 10, 22)),
        ("Pay rent next week", date(2026, 10, 26)),
        ("Pay rent Oct 20", date(2026, 10, 20)),
        ("Pay rent March 3", date(2027, 3, 3)),
        ("Pay rent 3rd of March 2026", date(2026, 3, 3)),
        ("Pay rent 2026-11-05", date(2026, 11, 5)),
        ("Pay rent 3/10", date(2027, 3, 10)),
        ("Pay rent 12/1/27", date(2027, 12, 1)),
    ],
)
def test_dates(now, text, expected):
    parsed = parse_task(text, now)
    assert parsed.scheduled_date == expected
    assert parsed.clean_text == "Pay rent"


def test_invalid_date_is_ignored(now):
    parsed = parse_task("Pay rent 2/30", now)
    assert parsed.scheduled_date is None
    assert parsed.clean_text == "Pay rent 2/30"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Stand-up at 9:30am", "09:30"),
        ("Stand-up at 12am", "00:00"),
        ("Stand-up 15:00", "15:00"),
        ("Stand-up at noon", "12:00"),
        ("Stand-up tonight", "18:00"),
        ("Stand-up in 30 min", "10:30"),
        ("Stand-up in 2 hours", "12:00"),
    ],
)
def test_times(now, text, expected):
    parsed = parse_task(text, now)
    assert parsed.scheduled_time == expected
    assert parsed.clean_text == "Stand-up"


def test_ambiguous_hour_picks_nearest_future(now):
    assert parse_task("Meeting at 3", now).scheduled_time == "15:00"
    early = datetime(2026, 10, 19, 2, 0)
    assert parse_task("Meeting at 3", early).scheduled_time == "03:00"
    assert parse_task("Meeting at 11", now).scheduled_time == "11:00"


def test_date_and_time_do_not_share_characters(now):
    parsed = parse_task("Dinner 12/20 at 7pm", now)
    assert parsed.scheduled_date == date(2026, 12, 20)
    assert parsed.scheduled_time == "19:00"
    assert parsed.clean_text == "Dinner"


def test_recurrence_wins_over_weekday(now):
    parsed = parse_task("Gym every monday at 7am", now)
    assert parsed.recurring is not None
    assert parsed.recurring.frequency == "weekly"
    assert parsed.recurring.days_of_week == [0]
    assert parsed.scheduled_date is None
    assert parsed.scheduled_time == "07:00"
    assert parsed.clean_text == "Gym"


def test_daily_recurrence(now):
    parsed = parse_task("Water plants every day", now)
    assert parsed.recurring.frequency == "daily"
    assert parsed.clean_text == "Water plants"


def test_parse_returns_new_value_each_call(now):
    parser = TaskParser()
    a = parser.parse("Call mom tomorrow", now)
    b = parser.parse("Call mom tomorrow", now)
    assert a == b
    assert a is not b


def test_parser_falls_back_when_a_rule_breaks(now):
    class BrokenExtractor:
        def extract(self, text, now, claimed=()):
            raise KeyError("boom")

    parsed = TaskParser(extractor=BrokenExtractor()).parse("  Call mom tomorrow ", now)
    assert parsed.clean_text == "Call mom tomorrow"
    assert parsed.scheduled_date is None


def test_tidy():
    assert tidy("  Call  mom ,  , ") == "Call mom"
    assert tidy("Buy ( ) bread ;; now") == "Buy bread; now"
    assert tidy("-- Plan trip --") == "Plan trip"


def test_strip_spans():
    text = "Call mom tomorrow at 3pm"
    assert strip_spans(text, [(18, 24), (9, 17)]) == "Call mom"
