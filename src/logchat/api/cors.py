"""Origin allow-list for browser callers."""
from typing import Dict, Iterable, Optional
from urllib.parse import urlsplit

ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
ALLOW_METHODS = "POST, OPTIONS"


def _origin_of(value: str) -> Optional[str]:
    """``scheme://host[:port]`` of a URL, or None when it is not one."""
    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}".lower()


class OriginPolicy:
    """Decides which request origins may call the API.

    ``*`` in the list allows any non-empty origin. A request without an
    Origin header is never allowed.
    """

    def __init__(self, allowed: Iterable[str]):
        self.allowed = [a.strip() for a in allowed if a and a.strip()]
        self.allow_any = "*" in self.allowed

    def is_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        if self.allow_any or origin in self.allowed:
            return True

        normalized = _origin_of(origin)
        if normalized is None:
            return False
        # Bare entries (no scheme) only ever match verbatim
        return any(_origin_of(entry) == normalized for entry in self.allowed)

    def headers(self, origin: Optional[str]) -> Dict[str, str]:
        """CORS headers for a response; the origin is echoed only when allowed."""
        return {
            "Access-Control-Allow-Origin": origin if self.is_allowed(origin) else "",
            "Vary": "Origin",
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Access-Control-Allow-Methods": ALLOW_METHODS,
        }
