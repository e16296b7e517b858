"""
Exception taxonomy for the usage fetch path, plus the mapping from an
exception to the short tag written into the cache file.
"""

from typing import Literal

ErrorTag = Literal["session_expired", "fetch_error", "no_credentials"]

SESSION_INVALID_MARKER = "account_session_invalid"
BODY_PREFIX_LENGTH = 200


class ClaudeUsageError(Exception):
    """Base class for all claude-usage failures."""


class NoCredentialsError(ClaudeUsageError):
    def __init__(self, message: str = "No credentials found. Run: claude-usage setup"):
        super().__init__(message)


class StoreError(ClaudeUsageError):
    """The credential store refused a write."""


class NoResponseError(ClaudeUsageError):
    def __init__(self, message: str = "No response from usage API"):
        super().__init__(message)


class FetchTimeoutError(ClaudeUsageError):
    """A browser navigation exceeded its timeout."""


class BrowserError(ClaudeUsageError):
    """Playwright failed outside of a timeout (DNS, crashed page, ...)."""


class JsonParseError(ClaudeUsageError, ValueError):
    """The usage API body was not a JSON object."""


class HttpError(ClaudeUsageError):
    def __init__(self, status: int, body_prefix: str = ""):
        self.status = status
        self.body_prefix = body_prefix
        super().__init__(f"HTTP {status}: {body_prefix}")

    @classmethod
    def from_response(cls, status: int, body: str | None) -> "HttpError":
        """Build the right HttpError subclass for a non-200 response."""
        prefix = (body or "")[:BODY_PREFIX_LENGTH]
        if status == 403 or SESSION_INVALID_MARKER in (body or ""):
            return SessionExpiredError(status, prefix)
        return cls(status, prefix)


class SessionExpiredError(HttpError):
    """The sessionKey cookie was rejected (403 / account_session_invalid)."""


def classify_error(exc: BaseException) -> ErrorTag:
    if isinstance(exc, NoCredentialsError):
        return "no_credentials"
    if isinstance(exc, SessionExpiredError):
        return "session_expired"
    return "fetch_error"
