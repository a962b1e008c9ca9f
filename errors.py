# errors.py
"""Exception types raised by the fetch client and the extractors."""
from typing import Any, Optional


class CatalogError(Exception):
    """Base class for scraper errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class FetchError(CatalogError):
    """
    Raised when a page could not be fetched.

    Covers non-200 responses below 500 (raised immediately) and retry
    exhaustion for network errors, timeouts, 5xx and 429 responses.
    """

    def __init__(self, message: str, url: str, attempts: int = 1, status_code: Optional[int] = None):
        super().__init__(message, details={"url": url, "attempts": attempts})
        self.url = url
        self.attempts = attempts
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        return self.status_code is None or self.status_code >= 500 or self.status_code == 429


class ExtractionError(CatalogError):
    """Raised when a required field cannot be found in the fetched markup."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, details={"url": url} if url else None)
        self.url = url


class DeadlineExceeded(CatalogError):
    """Raised when an extraction does not finish before its deadline."""
