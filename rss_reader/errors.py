"""
Exceptions raised by the feed reader.

None of these are fatal to a sync run: the orchestrator contains them at the
granularity they describe (one item, one feed, one search hit).
"""

from typing import Optional


class RssReaderError(Exception):
    """Base class for feed reader errors."""


class ParseFailure(RssReaderError):
    """A published-date string matched none of the configured formats."""

    def __init__(self, input: str):
        self.input = input
        super().__init__(f"failed to parse date/time {input!r}")


class FetchFailure(RssReaderError):
    """A feed could not be downloaded or parsed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"couldn't fetch {url}: {reason}")


class FetchTimeout(FetchFailure):
    """A feed download ran past its deadline."""

    def __init__(self, url: str, timeout: float):
        self.timeout = timeout
        super().__init__(url, f"timed out after {timeout}s")


class LookupFailure(RssReaderError):
    """An article id (usually from a stale index entry) is not in storage."""

    def __init__(self, article_id: int):
        self.article_id = article_id
        super().__init__(f"article {article_id} not found")


class StorageFailure(RssReaderError):
    """A database or index write/read failed."""

    def __init__(self, operation: str, cause: Optional[Exception] = None):
        self.operation = operation
        message = f"{operation} failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
