"""Error taxonomy for the FindMine integration layer.

Transport, response and API errors are raised by the upstream client and
retried there; after the retry budget is spent the last one propagates
unchanged through the service. ``InvalidInputError`` is raised before any
upstream call and is never retried.
"""
from __future__ import annotations


class FindMineError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FindMineTransportError(FindMineError):
    """Connection failure or timeout talking to the upstream."""


class FindMineResponseError(FindMineError):
    """Upstream body was not a JSON object of the expected shape."""


class FindMineAPIError(FindMineError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class InvalidInputError(ValueError):
    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.issues = issues or []
