"""Intent Classifier - ordered, deterministic intent table.

The table is a priority list: rules are evaluated top to bottom against the
lower-cased query and the first match wins. Trigger vocabulary covers
English and German.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from logchat.models.records import LifeArea
from logchat.services.areas import topic_word
from logchat.services.time_window import extract_specific_day


class Intent(str, Enum):
    STREAK = "streak"
    SPECIFIC_DATE = "specific_date"
    COUNT = "count"
    XP_SUM = "xp_sum"
    AVG_DURATION = "avg_duration"
    TOTAL_DURATION = "total_duration"
    TOP_AREAS = "top_areas"
    FOCUS = "focus"
    SUMMARIZE_AREA = "summarize_area"
    LEARNED_FROM_SOURCE = "learned_from_source"
    RECENT_LIST = "recent_list"


STREAK_RE = re.compile(r"streak|serie|tage\s*in\s*folge|days\s+in\s+a\s+row")
COUNT_RE = re.compile(r"\b(?:wie\s*viele|anzahl|wieviel|how\s+many|how\s+much|count)")
TOTAL_RE = re.compile(r"\b(?:insgesamt|total|overall)\b")
XP_RE = re.compile(r"\bxp\b|punkte|erfahr|\bpoints?\b|experience")
AVG_RE = re.compile(r"durchschnitt|ø\s*dauer|\baverage\b|\bavg\b")
TOTAL_DURATION_RE = re.compile(
    r"\b(?:gesamt|insgesamt|total|overall)\b.*(?:dauer|duration)|gesamtdauer|wie\s*lange|how\s+long"
    r"|summe\s*dauer|sum\s+(?:of\s+)?(?:the\s+)?duration|gesamtmin|stunden\b|\bhours\b"
)
TOP_RE = re.compile(r"\btop\b|meist|welcher\s*bereich|welche\s*bereiche|\bmost\b|which\s+areas?")
DURATION_METRIC_RE = re.compile(r"dauer|min|std|duration|hours?|time|zeit")
FOCUS_RE = re.compile(
    r"fokus|focus|woran\s*habe\s*ich\s*gearbeitet|worauf\s*habe\s*ich\s*.*fokus"
    r"|what\s+did\s+i\s+work\s+on|what\s+have\s+i\s+been\s+working\s+on"
)
SUMMARIZE_RE = re.compile(r"fasse|zusammenfassung|zusammen|summari[sz]e|summary")
LEARNED_RE = re.compile(r"gelernt|\blearn(?:ed|t)?\b")

_QUOTES = "\"'„“”‚‘’"
_BOOK_RE = re.compile(r"\b(?:buch|book)\b\s*", re.IGNORECASE)
_FROM_RE = re.compile(r"\b(?:from|aus)\b\s+(?:(?:dem|der|den|the)\s+)?", re.IGNORECASE)
_QUOTED_RE = re.compile(rf"\s*[{_QUOTES}]([^{_QUOTES}\n]+)[{_QUOTES}]")
_TRAILING_RE = re.compile(r"\s+(?:gelernt|learned|learnt|learn)\b.*$", re.IGNORECASE)

# Words that mark a question about the user's own data
DATA_KEYWORDS = (
    "aktiv", "activit", "log", "tage", "woche", "monat", "day", "week", "month",
    "xp", "streak", "zuletzt", "last", "datum", "date", "anzahl", "wie viele",
    "count", "liste", "list", "zusammenfass", "fasse", "summar", "durchschnitt",
    "average", "summe", "sum", "statistik", "statistic", "notiz", "note", "buch",
    "book", "titel", "title", "heute", "today", "gestern", "yesterday",
)


def is_data_question(text: str) -> bool:
    """True when the query mentions at least one data keyword."""
    return any(keyword in text for keyword in DATA_KEYWORDS)


def is_total_count(text: str) -> bool:
    return bool(TOTAL_RE.search(text))


def wants_duration_metric(text: str) -> bool:
    """Top-areas ranking by duration instead of by count."""
    return bool(DURATION_METRIC_RE.search(text))


def extract_source_phrase(text: str) -> Optional[str]:
    """Title phrase after "book"/"buch" (preferred) or "from"/"aus".

    Case-insensitive, so the raw query can be passed to keep the original
    capitalization of the title.
    """
    for keyword_re in (_BOOK_RE, _FROM_RE):
        m = keyword_re.search(text)
        if not m:
            continue
        rest = text[m.end():]
        quoted = _QUOTED_RE.match(rest)
        if quoted:
            phrase = quoted.group(1)
        else:
            phrase = _TRAILING_RE.sub("", rest.split("\n")[0])
        phrase = phrase.strip(" \t?!.,:;" + _QUOTES)
        if phrase:
            return phrase
    return None


@dataclass(frozen=True)
class IntentRule:
    """One row of the intent table."""
    intent: Intent
    predicate: Callable[[str, Optional[LifeArea], datetime], bool]
    catch_all: bool = False


INTENT_RULES = (
    IntentRule(Intent.STREAK, lambda t, a, now: bool(STREAK_RE.search(t))),
    IntentRule(
        Intent.SPECIFIC_DATE,
        lambda t, a, now: extract_specific_day(t, tz=now.tzinfo, now=now) is not None,
    ),
    IntentRule(Intent.COUNT, lambda t, a, now: bool(COUNT_RE.search(t))),
    IntentRule(Intent.XP_SUM, lambda t, a, now: bool(XP_RE.search(t))),
    IntentRule(Intent.AVG_DURATION, lambda t, a, now: bool(AVG_RE.search(t))),
    IntentRule(Intent.TOTAL_DURATION, lambda t, a, now: bool(TOTAL_DURATION_RE.search(t))),
    IntentRule(Intent.TOP_AREAS, lambda t, a, now: bool(TOP_RE.search(t))),
    IntentRule(Intent.FOCUS, lambda t, a, now: bool(FOCUS_RE.search(t))),
    IntentRule(
        Intent.SUMMARIZE_AREA,
        lambda t, a, now: bool(SUMMARIZE_RE.search(t)) and (a is not None or topic_word(t) is not None),
    ),
    IntentRule(
        Intent.LEARNED_FROM_SOURCE,
        lambda t, a, now: bool(LEARNED_RE.search(t)) and extract_source_phrase(t) is not None,
    ),
    IntentRule(Intent.RECENT_LIST, lambda t, a, now: True, catch_all=True),
)


class IntentClassifier:
    """Evaluates the intent table against a normalized query."""

    def __init__(self, rules=INTENT_RULES):
        self.rules = tuple(rules)

    def classify(
        self,
        text: str,
        area: Optional[LifeArea] = None,
        allow_catch_all: bool = False,
        now: Optional[datetime] = None,
    ) -> Optional[Intent]:
        """First matching intent, or None for the retrieval fallback path.

        The catch-all recent-list rule only fires when ``allow_catch_all`` is
        set, i.e. when no retrieval/generation path exists. A date literal
        without a year takes the year of ``now`` in its own timezone.
        """
        now = now or datetime.now(timezone.utc)
        for rule in self.rules:
            if rule.catch_all and not allow_catch_all:
                continue
            if rule.predicate(text, area, now):
                return rule.intent
        return None


def normalize(query: str) -> str:
    """Lower-case and trim a raw query."""
    return query.strip().lower()
