"""Life area resolution for scoping aggregations.

Matching is plain substring containment in the lower-cased query, first
area wins. Very short area names can therefore match inside unrelated words
(an area called "Ich" matches most German questions). That is a known
limitation of the heuristic and kept as-is.
"""
import re
from typing import Iterable, Optional

from logchat.models.records import LifeArea

# Topic words accepted by the summary intent when no user area matches
TOPIC_WORDS = (
    "fitness", "lesen", "reading", "bildung", "education", "ernährung", "nutrition",
    "sport", "karriere", "career", "beziehungen", "relationships", "meditation",
)
_TOPIC_RE = re.compile("|".join(TOPIC_WORDS))


def resolve_area(text: str, areas: Iterable[LifeArea]) -> Optional[LifeArea]:
    """Return the first area whose name (or, failing that, category) occurs in ``text``."""
    for area in areas:
        name = (area.name or "").lower()
        category = (area.category or "").lower()
        if name and name in text:
            return area
        if category and category in text:
            return area
    return None


def topic_word(text: str) -> Optional[str]:
    """First fixed topic word found in ``text``."""
    m = _TOPIC_RE.search(text)
    return m.group(0) if m else None
