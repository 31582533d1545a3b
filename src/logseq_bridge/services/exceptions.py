"""Custom exceptions for logseq-bridge."""

from typing import Optional


class BridgeError(Exception):
    """Base class for every error raised by logseq-bridge."""


class GuidanceError(BridgeError):
    """Raised when the user has to fix something before we can continue.

    Typically missing or invalid configuration. The CLI reports only the
    message, never a traceback.
    """


class EmptyInputError(BridgeError, ValueError):
    """Raised when outline text or a JSON payload is empty or whitespace only."""

    def __init__(self, message: str = "No input provided"):
        super().__init__(message)


class FilterError(BridgeError, ValueError):
    """Raised when a --less/--only pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        """Initialize FilterError.

        Args:
            pattern: The offending pattern (after filter-name expansion)
            reason: Why it was rejected
        """
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid filter pattern {pattern!r}: {reason}")


class RemoteError(BridgeError):
    """Raised when a Logseq API call fails.

    Covers transport failures, non-2xx responses and application-level
    errors reported in the response body.

    Attributes:
        method: Logseq API method that failed (e.g. logseq.Editor.insertBlock)
        status_code: HTTP status code, when a response was received
    """

    def __init__(self, method: str, message: str, status_code: Optional[int] = None):
        self.method = method
        self.status_code = status_code
        super().__init__(f"{method}: {message}")


class PageNotFoundError(RemoteError):
    """Raised when the requested page does not exist in the graph."""

    def __init__(self, page_name: str, method: str = "logseq.Editor.getPageBlocksTree"):
        self.page_name = page_name
        super().__init__(method, f"Page not found: {page_name}")


class MalformedResponseError(RemoteError):
    """Raised when a Logseq API response cannot be decoded or validated."""
