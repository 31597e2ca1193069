from __future__ import annotations

import re
from functools import partial
from typing import Dict, List, Optional, Sequence

from extraction.matching import FieldMatch, Rule, Span, leftmost_match, overlaps
from extraction.temporal_extractor import WEEKDAYS
from taskmelt.models import Recurrence

_FLAGS = re.IGNORECASE

PRIORITY_KEYWORDS: Dict[str, List[str]] = {
    "high": [
        r"urgent", r"asap", r"important", r"critical", r"p1",
        r"priority\s*1", r"high\s+priority",
    ],
    "medium": [r"soon", r"p2", r"priority\s*2", r"medium\s+priority"],
    "low": [
        r"someday", r"whenever", r"eventually", r"p3",
        r"priority\s*3", r"low\s+priority",
    ],
}

# "@word" forms are handled by the marker rule below; these are the
# spelled-out phrases and the known @-aliases.
CONTEXT_KEYWORDS: Dict[str, List[str]] = {
    "home": [r"at\s+home"],
    "work": [r"at\s+work", r"at\s+(?:the\s+)?office"],
    "errands": [r"while\s+out"],
    "computer": [r"on\s+(?:the\s+)?computer"],
    "calls": [r"on\s+(?:the\s+)?phone"],
    "anywhere": [r"anywhere"],
}

CONTEXT_ALIASES: Dict[str, str] = {
    "home": "home",
    "work": "work",
    "office": "work",
    "errands": "errands",
    "out": "errands",
    "computer": "computer",
    "pc": "computer",
    "laptop": "computer",
    "calls": "calls",
    "call": "calls",
    "phone": "calls",
    "anywhere": "anywhere",
}

CONTEXT_EMOJI: Dict[str, str] = {
    "home": "🏠",
    "work": "💼",
    "errands": "🛒",
    "computer": "💻",
    "calls": "📱",
    "anywhere": "🌍",
}

_TAG_RE = re.compile(r"(?<![\w#&])#(\w[\w\-]*)")
_CONTEXT_MARKER_RE = re.compile(r"(?<![\w@.])@([A-Za-z][\w\-]*)\b(?!@|\.\w)")
_BANG_RE = re.compile(r"!{2,}")


def _words(patterns: Sequence[str]) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(patterns) + r")\b", _FLAGS)


def _const(value, m: re.Match):
    return value


def _context_marker(m: re.Match) -> str:
    word = m.group(1).lower()
    return CONTEXT_ALIASES.get(word, word)


def _every_weekday(m: re.Match) -> Recurrence:
    return Recurrence(frequency="weekly", days_of_week=[WEEKDAYS[m.group(1).lower()]])


_WEEKDAY_NAMES = "|".join(
    sorted((w for w in WEEKDAYS if len(w) > 3), key=len, reverse=True)
)

_RECURRENCE_RULES = [
    Rule(re.compile(r"\bevery\s+(" + _WEEKDAY_NAMES + r")s?\b", _FLAGS), _every_weekday),
    Rule(_words([r"every\s*day", r"daily"]), partial(_const, Recurrence(frequency="daily"))),
    Rule(_words([r"every\s*week", r"weekly"]), partial(_const, Recurrence(frequency="weekly"))),
    Rule(_words([r"every\s*month", r"monthly"]), partial(_const, Recurrence(frequency="monthly"))),
]

# Rule order breaks ties between candidates starting at the same offset.
_PRIORITY_RULES = [Rule(_BANG_RE, partial(_const, "high"))] + [
    Rule(_words(patterns), partial(_const, level)) for level, patterns in PRIORITY_KEYWORDS.items()
]

_CONTEXT_RULES = [
    Rule(_words(patterns), partial(_const, name)) for name, patterns in CONTEXT_KEYWORDS.items()
] + [Rule(_CONTEXT_MARKER_RE, _context_marker)]


class TaskClassifier:
    """Keyword rules for the non-temporal task fields.

    Each ``match_*`` method returns the leftmost fragment of its category
    that does not overlap ``claimed``; ``match_tags`` returns every tag.
    """

    def match_recurrence(self, text: str, claimed: Sequence[Span] = ()) -> Optional[FieldMatch]:
        return leftmost_match("recurring", text, _RECURRENCE_RULES, claimed)

    def match_priority(self, text: str, claimed: Sequence[Span] = ()) -> Optional[FieldMatch]:
        return leftmost_match("priority", text, _PRIORITY_RULES, claimed)

    def match_context(self, text: str, claimed: Sequence[Span] = ()) -> Optional[FieldMatch]:
        return leftmost_match("context", text, _CONTEXT_RULES, claimed)

    def match_tags(self, text: str, claimed: Sequence[Span] = ()) -> List[FieldMatch]:
        tags: List[FieldMatch] = []
        for m in _TAG_RE.finditer(text):
            if overlaps(m.span(), claimed):
                continue
            tags.append(
                FieldMatch(kind="tag", start=m.start(), end=m.end(), text=m.group(0), value=m.group(1))
            )
        return tags

    def classify(self, text: str, claimed: Sequence[Span] = ()) -> List[FieldMatch]:
        """Priority, context and tags, each claiming its span in that order.

        Recurrence is matched separately because it has to win over the
        weekday dates it contains ("every monday").
        """
        taken: List[Span] = list(claimed)
        found: List[FieldMatch] = []

        for matcher in (self.match_priority, self.match_context):
            match = matcher(text, taken)
            if match is not None:
                found.append(match)
                taken.append(match.span)

        found.extend(self.match_tags(text, taken))
        return found
