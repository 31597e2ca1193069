from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

Span = Tuple[int, int]

# A resolver turns a regex match into a field value, or None when the
# matched text does not describe a valid value (e.g. "2/30").
Resolver = Callable[[re.Match], Any]


@dataclass(frozen=True)
class FieldMatch:
    """One recognized fragment of the input text."""

    kind: str
    start: int
    end: int
    text: str
    value: Any

    @property
    def span(self) -> Span:
        return (self.start, self.end)


@dataclass(frozen=True)
class Rule:
    pattern: re.Pattern
    resolve: Resolver


def overlaps(span: Span, claimed: Iterable[Span]) -> bool:
    start, end = span
    return any(start < c_end and c_start < end for c_start, c_end in claimed)


def leftmost_match(
    kind: str,
    text: str,
    rules: Sequence[Rule],
    claimed: Sequence[Span] = (),
) -> Optional[FieldMatch]:
    """Leftmost-greedy selection across all rules of one category.

    Candidates are ordered by start offset, longer spans first on a tie.
    The first candidate that resolves to a value and does not touch an
    already claimed span wins.
    """
    candidates: List[Tuple[int, int, int, re.Match, Rule]] = []
    for order, rule in enumerate(rules):
        for m in rule.pattern.finditer(text):
            if m.end() > m.start():
                candidates.append((m.start(), -(m.end() - m.start()), order, m, rule))

    candidates.sort(key=lambda c: (c[0], c[1], c[2]))

    for _start, _neg_len, _order, m, rule in candidates:
        if overlaps(m.span(), claimed):
            continue
        try:
            value = rule.resolve(m)
        except (ValueError, OverflowError):
            value = None
        if value is None:
            continue
        return FieldMatch(kind=kind, start=m.start(), end=m.end(), text=m.group(0), value=value)

    return None
