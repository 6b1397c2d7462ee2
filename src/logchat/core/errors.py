"""Error taxonomy shared by the pipeline and the HTTP layer.

Every error carries the HTTP status it maps to; the API renders them all as
``{"error": message}``. Empty result sets are never errors.
"""


class LogChatError(Exception):
    """Base class for errors that end a request."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LogChatError):
    """Missing, malformed or oversized query."""

    status_code = 400


class AuthError(LogChatError):
    """No resolvable user identity for the request."""

    status_code = 401


class OriginForbiddenError(LogChatError):
    """Request origin is not on the allow-list."""

    status_code = 403


class UpstreamError(LogChatError):
    """Embedding, generation or store call failed. Not retried."""

    status_code = 500


class StoreError(UpstreamError):
    """The structured log store or the semantic index failed."""
