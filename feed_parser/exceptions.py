"""
Custom exceptions for the feed parser.

Error philosophy:
  - ContainerNotFound → FAIL HARD: the page has no post listing, nothing to return.
  - SearchFailed      → LOCAL: a tree lookup came up empty. The extractor turns
                        these into empty fields; only the container lookup escalates.
  - FetchError        → FAIL HARD at the orchestrator level, carries the HTTP status.
  - InvalidOptionError → raised while building feed options (bad sort name, etc).

Per-field parse problems (bad integers, bad booleans) and skipped children
(spacers, ads) are not errors at all and never surface as exceptions.
"""

from typing import Optional


class FeedParserError(Exception):
    """Base exception for all feed parser errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- LOCAL: raised by the search engine, usually caught right away ---

class SearchFailed(FeedParserError):
    """Raised when a tree traversal is exhausted without finding a match."""

    def __init__(self, message: str = "failed to find HTML node with matching criteria",
                 details: Optional[dict] = None):
        super().__init__(message, details)


# --- FAIL HARD: stops extraction for the whole page ---

class ExtractionError(FeedParserError):
    """Base class for errors that abort extraction of a page."""
    pass


class ContainerNotFound(ExtractionError):
    """
    Raised when the posts container cannot be located in the document.

    Always raised from the underlying SearchFailed, so the traversal
    failure stays reachable through ``__cause__``.
    """

    def __init__(self, message: str = "site table not found", details: Optional[dict] = None):
        super().__init__(message, details)


# --- Transport collaborator ---

class FetchError(FeedParserError):
    """Raised when the listing page could not be downloaded."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        # None when the request never got a response (DNS, timeout, TLS...)
        self.status_code = status_code
        self.body = body

    def to_response(self) -> dict:
        """Convert to a JSON-friendly error payload."""
        return {
            "error": "FetchError",
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class DocumentError(FeedParserError):
    """Raised when no parser in the chain could build a document tree."""
    pass


class InvalidOptionError(FeedParserError):
    """Raised when a feed option is not recognized or out of range."""
    pass
