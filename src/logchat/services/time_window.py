"""Relative time window and date-literal extraction.

All window parsing lives here so every handler consumes the same value:

    window = extract_window("wie viele aktivitäten in den letzten 2 wochen?")
    window.days   # 14
    window.since  # now - 14 days

Rules: default 7 days; "last N days/weeks/months" (German: "letzten N
Tage/Wochen/Monate"), a month is exactly 30 days; "today"/"heute" means 1
day and "yesterday"/"gestern" 2 days, and those literals win over numbers.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

DEFAULT_DAYS = 7

# Windows that would start before this begin here instead
EARLIEST_SINCE = datetime(1, 1, 2, tzinfo=timezone.utc)

_PREFIX = r"(?:letzten|vergangenen|last|past)\s+(\d+)\s*"
_DAYS_RE = re.compile(_PREFIX + r"(?:tag(?:e|en)?|days?)")
_WEEKS_RE = re.compile(_PREFIX + r"(?:woche(?:n)?|weeks?)")
_MONTHS_RE = re.compile(_PREFIX + r"(?:monat(?:e|en)?|months?)")
_TODAY_RE = re.compile(r"heute|today")
_YESTERDAY_RE = re.compile(r"gestern|yesterday")

_ON_DATE_RE = re.compile(r"\b(?:am|on)\s*(\d{1,2})\.(\d{1,2})(?:\.(\d{2,4}))?")


@dataclass(frozen=True)
class TimeWindow:
    """Lookback window ``[since, now)`` with its nominal day count."""
    since: datetime
    days: int

    def widened(self, days: int, now: Optional[datetime] = None) -> "TimeWindow":
        """A window of at least ``days`` days ending at ``now``."""
        days = max(self.days, days)
        now = now or datetime.now(timezone.utc)
        return TimeWindow(since=since_for(now, days), days=days)


@dataclass(frozen=True)
class DayRange:
    """Exact calendar day ``[start, end)`` named in the query."""
    start: datetime
    end: datetime
    label: str


def since_for(now: datetime, days: int) -> datetime:
    """Start of a window of ``days`` days ending at ``now``, floored at EARLIEST_SINCE."""
    if days >= (now - EARLIEST_SINCE).days:
        return EARLIEST_SINCE
    return now - timedelta(days=days)


def window_days(text: str, default: int = DEFAULT_DAYS) -> int:
    """Nominal day count for a lower-cased query."""
    days = default
    m_days = _DAYS_RE.search(text)
    m_weeks = _WEEKS_RE.search(text)
    m_months = _MONTHS_RE.search(text)
    if m_days:
        days = max(1, int(m_days.group(1)))
    elif m_weeks:
        days = max(1, int(m_weeks.group(1))) * 7
    elif m_months:
        days = max(1, int(m_months.group(1))) * 30

    if _TODAY_RE.search(text):
        days = 1
    if _YESTERDAY_RE.search(text):
        days = 2
    return days


def extract_window(text: str, now: Optional[datetime] = None, default: int = DEFAULT_DAYS) -> TimeWindow:
    """Resolve the lookback window for a lower-cased query."""
    now = now or datetime.now(timezone.utc)
    days = window_days(text, default=default)
    return TimeWindow(since=since_for(now, days), days=days)


def extract_specific_day(text: str, tz: tzinfo = timezone.utc,
                         now: Optional[datetime] = None) -> Optional[DayRange]:
    """Find "on DD.MM[.YYYY]" / "am DD.MM[.YYYY]" and return that day's range.

    A missing year means the current year, a two-digit year is 20YY.
    Impossible dates (31.02.) do not match.
    """
    m = _ON_DATE_RE.search(text)
    if not m:
        return None

    day, month = int(m.group(1)), int(m.group(2))
    if m.group(3):
        year = int(m.group(3))
        if year < 100:
            year += 2000
    else:
        year = (now or datetime.now(tz)).astimezone(tz).year

    try:
        start = datetime(year, month, day, tzinfo=tz)
    except ValueError:
        return None
    return DayRange(start=start, end=start + timedelta(days=1), label=f"{day}.{month}.{year}")
