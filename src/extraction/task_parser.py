from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from classification.task_classifier import TaskClassifier
from extraction.matching import FieldMatch, Span
from extraction.temporal_extractor import TemporalExtractor
from taskmelt.models import ParsedTask

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,.;:!?)\]])")
_SPACE_AFTER_OPEN_RE = re.compile(r"([(\[])\s+")
_EMPTY_BRACKETS_RE = re.compile(r"\(\s*\)|\[\s*\]")
_REPEATED_SEP_RE = re.compile(r"([,;:])(?:\s*[,;:])+")
_EDGE_CHARS = " ,;:-–"


def tidy(text: str) -> str:
    """Collapse the gaps left behind after fragments were cut out."""
    previous = None
    while previous != text:
        previous = text
        text = _WS_RE.sub(" ", text)
        text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
        text = _SPACE_AFTER_OPEN_RE.sub(r"\1", text)
        text = _EMPTY_BRACKETS_RE.sub("", text)
        text = _REPEATED_SEP_RE.sub(r"\1", text)
        text = text.strip(_EDGE_CHARS)
    return text


def strip_spans(text: str, spans: Sequence[Span]) -> str:
    pieces: List[str] = []
    cursor = 0
    for start, end in sorted(spans):
        pieces.append(text[cursor:start])
        cursor = max(cursor, end)
    pieces.append(text[cursor:])
    return tidy(" ".join(pieces))


class TaskParser:
    """Turns one line of captured text into a ParsedTask.

    Fragments are claimed in the order recurrence, date, time, duration,
    priority, context, tags and cut out of the text. Cutting can bring two
    words together that form a new fragment ("at tomorrow home"), so the
    cleaned text is scanned again until nothing more is recognized. Values
    found in later passes only fill fields that are still empty.
    """

    def __init__(
        self,
        extractor: Optional[TemporalExtractor] = None,
        classifier: Optional[TaskClassifier] = None,
    ):
        self.extractor = extractor or TemporalExtractor()
        self.classifier = classifier or TaskClassifier()

    def recognize(self, text: str, now: datetime) -> List[FieldMatch]:
        found: List[FieldMatch] = []

        recurrence = self.classifier.match_recurrence(text)
        if recurrence is not None:
            found.append(recurrence)

        found.extend(self.extractor.extract(text, now, [fm.span for fm in found]))
        found.extend(self.classifier.classify(text, [fm.span for fm in found]))
        return found

    def parse(self, text: str, now: datetime) -> ParsedTask:
        source = text if isinstance(text, str) else ""
        try:
            return self._parse(source, now)
        except Exception as e:
            logger.warning(f"Falling back to unparsed text for {source[:30]!r}: {e}")
            return ParsedTask(text=source, clean_text=source.strip())

    def _parse(self, source: str, now: datetime) -> ParsedTask:
        fields: Dict[str, Any] = {}
        tags: List[str] = []
        seen_tags = set()

        current = source.strip()
        while current:
            matches = self.recognize(current, now)
            if not matches:
                break
            for fm in matches:
                if fm.kind == "tag":
                    if fm.value.lower() not in seen_tags:
                        seen_tags.add(fm.value.lower())
                        tags.append(fm.value)
                else:
                    fields.setdefault(fm.kind, fm.value)
            current = strip_spans(current, [fm.span for fm in matches])

        return ParsedTask(
            text=source,
            clean_text=current,
            scheduled_date=fields.get("date"),
            scheduled_time=fields.get("time"),
            duration=fields.get("duration"),
            priority=fields.get("priority"),
            context=fields.get("context"),
            tags=tags,
            recurring=fields.get("recurring"),
        )


_default_parser = TaskParser()


def parse_task(text: str, now: datetime) -> ParsedTask:
    return _default_parser.parse(text, now)
