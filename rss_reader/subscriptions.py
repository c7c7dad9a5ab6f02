"""
Importing feed subscriptions from a file.

Accepts either a plain text list (one URL per line, ``#`` comments) or a
YAML document of the form::

    feeds:
      - url: "https://example.com/feed.xml"
        name: "Example"
"""

from pathlib import Path
from typing import List

import yaml

from rss_reader.database import ArticleStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


def _load_yaml_urls(path: Path) -> List[str]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    urls = []
    for feed_data in data.get("feeds", []):
        if isinstance(feed_data, str):
            urls.append(feed_data)
        elif isinstance(feed_data, dict) and feed_data.get("url"):
            urls.append(feed_data["url"])
        else:
            logger.warning(f"Ignoring feed entry without a url: {feed_data!r}")
    return urls


def _load_text_urls(path: Path) -> List[str]:
    urls = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        urls.append(line)
    return urls


def load_feed_urls(path: Path) -> List[str]:
    """Read feed URLs from ``path``, dropping duplicates but keeping order."""
    if path.suffix.lower() in YAML_SUFFIXES:
        urls = _load_yaml_urls(path)
    else:
        urls = _load_text_urls(path)
    return list(dict.fromkeys(url.strip() for url in urls if url.strip()))


def import_feeds(path: Path, store: ArticleStore) -> List[int]:
    """Subscribe to every feed listed in ``path``.

    Feeds that are already subscribed are skipped. Returns the ids of the
    newly created feeds.
    """
    created = []
    for url in load_feed_urls(path):
        feed_id = store.add_feed(url)
        if feed_id is None:
            logger.info(f"Already subscribed to {url}")
            continue
        logger.info(f"Creating new feed from {url}")
        created.append(feed_id)
    return created
