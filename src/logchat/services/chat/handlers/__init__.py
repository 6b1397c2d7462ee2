"""Deterministic intent handlers."""
from logchat.services.chat.handlers.base import IntentHandler, QueryContext

# Activity handlers
from logchat.services.chat.handlers.activity import (
    StreakHandler,
    SpecificDateHandler,
    CountHandler,
    RecentListHandler,
)

# Metric handlers
from logchat.services.chat.handlers.metrics import (
    XpSumHandler,
    AverageDurationHandler,
    TotalDurationHandler,
)

# Area handlers
from logchat.services.chat.handlers.areas import (
    TopAreasHandler,
    FocusHandler,
    SummarizeAreaHandler,
)

from logchat.services.chat.handlers.learned import LearnedFromSourceHandler

__all__ = [
    # Base classes
    'IntentHandler',
    'QueryContext',
    # Activity handlers
    'StreakHandler',
    'SpecificDateHandler',
    'CountHandler',
    'RecentListHandler',
    # Metric handlers
    'XpSumHandler',
    'AverageDurationHandler',
    'TotalDurationHandler',
    # Area handlers
    'TopAreasHandler',
    'FocusHandler',
    'SummarizeAreaHandler',
    'LearnedFromSourceHandler',
]
