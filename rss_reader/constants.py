"""
Constants for the feed reader.
"""

from datetime import datetime, timezone
from pathlib import Path

MODULE_ROOT = Path(__file__).parent

DB_NAME = "rss.db"
INDEX_DB_NAME = "rss_index.db"

# Watermark for a feed that has never been checked
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Upper bound on a single feed download, in seconds
FETCH_TIMEOUT_SECONDS = 30

USER_AGENT = "rss-reader/0.1"

# Tried in order. %d accepts the day with or without a leading zero, and %z
# accepts "Z" as well as "+hhmm" / "+hh:mm".
DEFAULT_DATE_FORMATS = [
    "%a, %d %b %Y %H:%M:%S %Z",  # RFC 1123, named zone
    "%Y-%m-%dT%H:%M:%S%z",  # RFC 3339
    "%a, %d %b %Y %H:%M:%S %z",  # RFC 1123, numeric zone
    "%Y-%m-%dT%H:%M:%S.%f%z",  # RFC 3339 with fractional seconds
    "%d %b %Y %H:%M:%S %z",  # RFC 822 without the weekday
    "%d %b %Y %H:%M:%S %Z",
]

# RFC 822 zone names, as offsets from UTC in hours
NAMED_ZONE_OFFSETS = {
    "UT": 0,
    "UTC": 0,
    "GMT": 0,
    "Z": 0,
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
}

# Recency boost domain guards, in days
MIN_AGE_DAYS = 1e-6
UNIT_AGE_MARGIN_DAYS = 0.05

# Caps used by the CLI listings
MAX_INDEX_ARTICLES = 5000
MAX_LISTED_ARTICLES = 500
