"""
Published-date normalization.

Feeds are loose about date formats, so each raw string is tried against an
ordered list of strptime patterns and the first match wins. Patterns ending
in ``%Z`` are resolved against the RFC 822 zone table, since strptime
consumes named zones without attaching an offset. Other zone
abbreviations (CET, AEST, ...) are accepted with a zero offset.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from rss_reader.constants import DEFAULT_DATE_FORMATS, NAMED_ZONE_OFFSETS
from rss_reader.errors import ParseFailure
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _looks_like_zone_abbreviation(zone: str) -> bool:
    return zone.isalpha() and zone.isupper() and 3 <= len(zone) <= 5


def _parse_named_zone(fmt: str, raw: str) -> Optional[datetime]:
    head, _, zone = raw.rpartition(" ")
    offset_hours = NAMED_ZONE_OFFSETS.get(zone.upper())
    if offset_hours is None and not _looks_like_zone_abbreviation(zone):
        return None
    parsed = datetime.strptime(head, fmt[: -len("%Z")].rstrip())
    if offset_hours is None:
        logger.warning(f"Unknown time zone {zone!r} in {raw!r}, assuming UTC")
        offset_hours = 0
    return parsed.replace(tzinfo=timezone(timedelta(hours=offset_hours)))


def _parse_with_format(fmt: str, raw: str) -> Optional[datetime]:
    """Parse ``raw`` with one pattern, returning None if it doesn't match."""
    try:
        if fmt.endswith("%Z"):
            parsed = _parse_named_zone(fmt, raw)
        else:
            parsed = datetime.strptime(raw, fmt)
    except ValueError:
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize(formats: Iterable[str], raw: str) -> datetime:
    """Parse a published-date string into an aware UTC datetime.

    Raises:
        ParseFailure: if no format in ``formats`` matches.
    """
    text = (raw or "").strip()
    if text:
        for fmt in formats:
            parsed = _parse_with_format(fmt, text)
            if parsed is not None:
                return parsed
    raise ParseFailure(raw)


def normalize_default(raw: str) -> datetime:
    """normalize() with the built-in format list."""
    return normalize(DEFAULT_DATE_FORMATS, raw)


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
