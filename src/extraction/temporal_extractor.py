"""
Temporal expression extraction.

Recognizes dates, clock times and durations in a line of captured text.
Everything is resolved against a caller-supplied ``now`` so results are
deterministic; nothing in here reads the wall clock.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

from extraction.matching import FieldMatch, Rule, Span, leftmost_match

_FLAGS = re.IGNORECASE

WEEKDAYS = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tues": 1, "tue": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thurs": 3, "thur": 3, "thu": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}

MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}


def _alternation(words) -> str:
    # longest first so "tuesday" is tried before "tue"
    return "|".join(sorted(words, key=len, reverse=True))


_WEEKDAY_RE = _alternation(WEEKDAYS)
_MONTH_RE = _alternation(MONTHS)

_DATE_LEAD = r"(?:\b(?:on|by|due)\s+)?"
_TIME_LEAD = r"(?:\b(?:at|by|around)\s+)?"
_DURATION_LEAD = r"(?:\bfor\s+)?"

_HOURS_UNIT = r"(?:hours?|hrs?|h)"
_MINUTES_UNIT = r"(?:minutes?|mins?|m)"


# ---------------------------------------------------------------------------
# dates
# ---------------------------------------------------------------------------

def _next_weekday(today: date, weekday: int) -> date:
    days_until = weekday - today.weekday()
    if days_until <= 0:
        days_until += 7
    return today + timedelta(days=days_until)


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _full_year(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    year = int(raw)
    return 2000 + year if year < 100 else year


def _month_day(today: date, month: int, day: int, year: Optional[int]) -> Optional[date]:
    if year is not None:
        return _safe_date(year, month, day)
    candidate = _safe_date(today.year, month, day)
    if candidate is not None and candidate < today:
        candidate = _safe_date(today.year + 1, month, day)
    return candidate


def _offset(days: int, m: re.Match, today: date) -> date:
    return today + timedelta(days=days)


def _in_units(m: re.Match, today: date) -> Optional[date]:
    count = int(m.group(1))
    unit = m.group(2).lower()
    days = count * 7 if unit.startswith("week") else count
    return today + timedelta(days=days)


def _weekend(m: re.Match, today: date) -> date:
    return _next_weekday(today, 5)


def _weekday(m: re.Match, today: date) -> date:
    return _next_weekday(today, WEEKDAYS[m.group(1).lower()])


def _month_name_first(m: re.Match, today: date) -> Optional[date]:
    return _month_day(today, MONTHS[m.group(1).lower()], int(m.group(2)), _full_year(m.group(3)))


def _day_first(m: re.Match, today: date) -> Optional[date]:
    return _month_day(today, MONTHS[m.group(2).lower()], int(m.group(1)), _full_year(m.group(3)))


def _numeric(m: re.Match, today: date) -> Optional[date]:
    # US order, month first
    return _month_day(today, int(m.group(1)), int(m.group(2)), _full_year(m.group(3)))


def _iso(m: re.Match, today: date) -> Optional[date]:
    return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))


_DATE_RULES: List[Tuple[re.Pattern, Callable[[re.Match, date], Optional[date]]]] = [
    (re.compile(_DATE_LEAD + r"\btoday\b", _FLAGS), partial(_offset, 0)),
    (re.compile(_DATE_LEAD + r"\b(?:tomorrow|tmrw|tmw|tmr)\b", _FLAGS), partial(_offset, 1)),
    (re.compile(_DATE_LEAD + r"\b(?:the\s+)?day\s+after\s+tomorrow\b", _FLAGS), partial(_offset, 2)),
    (re.compile(_DATE_LEAD + r"\bnext\s+week\b", _FLAGS), partial(_offset, 7)),
    (re.compile(r"\bin\s+a\s+week\b", _FLAGS), partial(_offset, 7)),
    (re.compile(r"\bin\s+(\d{1,3})\s+(days?|weeks?)\b", _FLAGS), _in_units),
    (re.compile(_DATE_LEAD + r"\b(?:(?:this|next)\s+)?weekend\b", _FLAGS), _weekend),
    (re.compile(_DATE_LEAD + r"\b(?:(?:this|next)\s+)?(" + _WEEKDAY_RE + r")\b", _FLAGS), _weekday),
    (
        re.compile(
            _DATE_LEAD + r"\b(" + _MONTH_RE + r")\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s+(\d{4})\b)?",
            _FLAGS,
        ),
        _month_name_first,
    ),
    (
        re.compile(
            _DATE_LEAD + r"\b(\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?(" + _MONTH_RE + r")\b(?:,?\s+(\d{4})\b)?",
            _FLAGS,
        ),
        _day_first,
    ),
    (re.compile(_DATE_LEAD + r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b", _FLAGS), _iso),
    (re.compile(_DATE_LEAD + r"\b(\d{1,2})-(\d{1,2})-(\d{4})\b", _FLAGS), _numeric),
    (re.compile(_DATE_LEAD + r"\b(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?\b", _FLAGS), _numeric),
]


# ---------------------------------------------------------------------------
# clock times
# ---------------------------------------------------------------------------

def _fmt(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def resolve_ambiguous_hour(hour: int, minute: int, now: datetime) -> str:
    """Pick the nearest future occurrence of an hour given without am/pm.

    ``3`` at 10:00 means 15:00; at 02:00 it means 03:00. When both the
    morning and the afternoon reading have passed, the morning one (i.e.
    tomorrow's first occurrence) is used.
    """
    current = now.time().replace(second=0, microsecond=0)
    morning = time(hour % 12, minute)
    afternoon = time(hour % 12 + 12, minute)
    for candidate in sorted((morning, afternoon)):
        if candidate > current:
            return _fmt(candidate.hour, candidate.minute)
    return _fmt(min(morning, afternoon).hour, minute)


def _hour_minute(hour: int, minute: int, now: datetime, *, ambiguous: bool) -> Optional[str]:
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    if ambiguous and 1 <= hour <= 12:
        return resolve_ambiguous_hour(hour, minute, now)
    return _fmt(hour, minute)


def _meridiem(m: re.Match, now: datetime) -> Optional[str]:
    hour = int(m.group(1))
    minute = int(m.group(2)) if m.group(2) else 0
    if not (1 <= hour <= 12 and 0 <= minute <= 59):
        return None
    period = m.group(3).lower().replace(".", "")
    if period == "pm" and hour < 12:
        hour += 12
    if period == "am" and hour == 12:
        hour = 0
    return _fmt(hour, minute)


def _clock(m: re.Match, now: datetime) -> Optional[str]:
    raw_hour = m.group(1)
    # "09:30" or "15:00" are unambiguous; "3:30" is not
    ambiguous = not raw_hour.startswith("0")
    return _hour_minute(int(raw_hour), int(m.group(2)), now, ambiguous=ambiguous)


def _bare_hour(m: re.Match, now: datetime) -> Optional[str]:
    raw_hour = m.group(1)
    return _hour_minute(int(raw_hour), 0, now, ambiguous=not raw_hour.startswith("0"))


def _fixed(value: str, m: re.Match, now: datetime) -> str:
    return value


def _relative_time(m: re.Match, now: datetime) -> Optional[str]:
    amount = int(m.group(1))
    unit = m.group(2).lower()
    delta = timedelta(hours=amount) if unit.startswith("h") else timedelta(minutes=amount)
    target = now + delta
    # a bare clock time cannot express "tomorrow", leave it to the duration rules
    if target.date() != now.date():
        return None
    return _fmt(target.hour, target.minute)


_TIME_RULES: List[Tuple[re.Pattern, Callable[[re.Match, datetime], Optional[str]]]] = [
    (
        re.compile(_TIME_LEAD + r"\b(\d{1,2})(?::(\d{2}))?\s*(a\.?m\.?|p\.?m\.?)(?!\w)", _FLAGS),
        _meridiem,
    ),
    (re.compile(_TIME_LEAD + r"\b(\d{1,2}):(\d{2})\b", _FLAGS), _clock),
    (re.compile(r"\b(?:at|by|around)\s+(\d{1,2})\b(?![:/.\-]?\d)", _FLAGS), _bare_hour),
    (
        re.compile(r"\bin\s+(\d{1,3})\s*(" + _HOURS_UNIT + r"|" + _MINUTES_UNIT + r")\b", _FLAGS),
        _relative_time,
    ),
    (re.compile(_TIME_LEAD + r"\b(?:noon|midday)\b", _FLAGS), partial(_fixed, "12:00")),
    (re.compile(_TIME_LEAD + r"\bmidnight\b", _FLAGS), partial(_fixed, "00:00")),
    (re.compile(r"\b(?:(?:in\s+the|this)\s+)?morning\b", _FLAGS), partial(_fixed, "09:00")),
    (re.compile(r"\b(?:(?:in\s+the|this)\s+)?afternoon\b", _FLAGS), partial(_fixed, "14:00")),
    (re.compile(r"\b(?:(?:in\s+the|this)\s+)?evening\b|\btonight\b", _FLAGS), partial(_fixed, "18:00")),
]


# ---------------------------------------------------------------------------
# durations
# ---------------------------------------------------------------------------

def _positive(minutes: int) -> Optional[int]:
    return minutes if minutes > 0 else None


def _hours_and_minutes(m: re.Match) -> Optional[int]:
    minutes = int(m.group(2))
    if minutes > 59:
        return None
    return _positive(int(m.group(1)) * 60 + minutes)


def _hours(m: re.Match) -> Optional[int]:
    return _positive(round(float(m.group(1)) * 60))


def _minutes(m: re.Match) -> Optional[int]:
    return _positive(int(m.group(1)))


_DURATION_RULES = [
    Rule(
        re.compile(
            _DURATION_LEAD
            + r"\b(\d{1,2})\s*" + _HOURS_UNIT + r"\s*(?:and\s+)?(\d{1,2})\s*" + _MINUTES_UNIT + r"\b",
            _FLAGS,
        ),
        _hours_and_minutes,
    ),
    Rule(re.compile(_DURATION_LEAD + r"\b(\d{1,2}(?:\.\d+)?)\s*" + _HOURS_UNIT + r"\b", _FLAGS), _hours),
    Rule(re.compile(_DURATION_LEAD + r"\b(\d{1,4})\s*" + _MINUTES_UNIT + r"\b", _FLAGS), _minutes),
]


class TemporalExtractor:
    """Finds at most one date, one time and one duration in a text.

    Categories are matched in the order date, time, duration; each may only
    use characters not already claimed, so a time embedded in a date loses.
    """

    def date_rules(self, now: datetime) -> List[Rule]:
        today = now.date()
        return [Rule(p, partial(_bind_today, fn, today)) for p, fn in _DATE_RULES]

    def time_rules(self, now: datetime) -> List[Rule]:
        return [Rule(p, partial(_bind_now, fn, now)) for p, fn in _TIME_RULES]

    def duration_rules(self) -> List[Rule]:
        return _DURATION_RULES

    def extract(
        self,
        text: str,
        now: datetime,
        claimed: Sequence[Span] = (),
    ) -> List[FieldMatch]:
        taken: List[Span] = list(claimed)
        found: List[FieldMatch] = []

        for kind, rules in (
            ("date", self.date_rules(now)),
            ("time", self.time_rules(now)),
            ("duration", self.duration_rules()),
        ):
            match = leftmost_match(kind, text, rules, taken)
            if match is not None:
                found.append(match)
                taken.append(match.span)

        return sorted(found, key=lambda fm: fm.start)


def _bind_today(fn, today: date, m: re.Match):
    return fn(m, today)


def _bind_now(fn, now: datetime, m: re.Match):
    return fn(m, now)


_default_extractor = TemporalExtractor()


def extract_temporal(text: str, now: datetime, claimed: Sequence[Span] = ()) -> List[FieldMatch]:
    return _default_extractor.extract(text, now, claimed)
