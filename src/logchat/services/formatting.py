"""Text formatting for deterministic answers."""
from datetime import datetime, timezone, tzinfo


def format_minutes(minutes: int) -> str:
    """0 -> "0 Min", 45 -> "45 Min", 135 -> "2 Std 15 Min"."""
    if not minutes or minutes <= 0:
        return "0 Min"
    hours, rest = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours} Std {rest} Min"
    return f"{minutes} Min"


def activities(n: int) -> str:
    """German noun for n activities."""
    return "Aktivität" if n == 1 else "Aktivitäten"


def days_word(n: int) -> str:
    return "Tag" if n == 1 else "Tage"


def day_str(dt: datetime, tz: tzinfo = timezone.utc) -> str:
    """YYYY-MM-DD in the given timezone."""
    return dt.astimezone(tz).strftime("%Y-%m-%d")


def minute_str(dt: datetime, tz: tzinfo = timezone.utc) -> str:
    """YYYY-MM-DD HH:MM in the given timezone."""
    return dt.astimezone(tz).strftime("%Y-%m-%d %H:%M")


def capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]
