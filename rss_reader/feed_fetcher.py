"""
Feed downloading and parsing.

Downloads with requests and hands the document to feedparser. The whole
fetch, parse included, runs under a hard deadline: requests' own timeout
only bounds the gap between socket reads, so a server trickling bytes could
otherwise hold a fetch open indefinitely.
"""

import threading
import time
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Callable, List, TypeVar

import feedparser  # type: ignore
import requests

from rss_reader.constants import FETCH_TIMEOUT_SECONDS, USER_AGENT
from rss_reader.errors import FetchFailure, FetchTimeout
from rss_reader.models import RawItem
from util.logging_util import setup_logger

logger = setup_logger(__name__)

CHUNK_SIZE = 4 * 1024

T = TypeVar("T")


def call_with_deadline(url: str, timeout: float, fn: Callable[[], T]) -> T:
    """
    Run ``fn`` on a helper thread and wait at most ``timeout`` seconds for it.

    A fetch that overruns is abandoned, not killed: its thread is a daemon
    and whatever it eventually returns is discarded.

    Raises:
        FetchTimeout: if ``fn`` hasn't finished in time.
    """
    future: Future = Future()

    def run():
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn())
        except Exception as e:
            future.set_exception(e)

    threading.Thread(target=run, name=f"fetch {url}", daemon=True).start()
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as e:
        future.cancel()
        raise FetchTimeout(url, timeout) from e


def _download(url: str, timeout: float, user_agent: str) -> bytes:
    """Download ``url``, stopping once ``timeout`` seconds have passed in total."""
    deadline = time.monotonic() + timeout
    try:
        with requests.get(
            url,
            headers={"User-Agent": user_agent},
            timeout=timeout,
            stream=True,
        ) as response:
            if response.status_code >= 400:
                raise FetchFailure(url, f"HTTP {response.status_code}")

            chunks = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if time.monotonic() > deadline:
                    raise FetchTimeout(url, timeout)
                chunks.append(chunk)
            return b"".join(chunks)
    except requests.Timeout as e:
        raise FetchTimeout(url, timeout) from e
    except requests.RequestException as e:
        raise FetchFailure(url, str(e)) from e


def _entry_to_raw_item(entry: dict) -> RawItem:
    """Pull the fields the synchronizer needs out of a feedparser entry.

    Atom entries often only carry ``updated``, so it stands in for a
    missing ``published``.
    """
    return RawItem(
        title=(entry.get("title") or "").strip(),
        link=entry.get("link") or "",
        description=entry.get("summary") or entry.get("description") or "",
        published_raw=entry.get("published") or entry.get("updated") or "",
    )


def parse_feed_document(url: str, content: bytes) -> List[RawItem]:
    """Parse a downloaded RSS/Atom document into raw items.

    Raises:
        FetchFailure: if the document isn't a recognizable feed.
    """
    parsed = feedparser.parse(content)
    entries = parsed.get("entries", [])
    if not entries and not parsed.get("version"):
        reason = parsed.get("bozo_exception") or "not a feed document"
        raise FetchFailure(url, f"malformed feed: {reason}")
    return [_entry_to_raw_item(entry) for entry in entries]


def fetch_feed_items(
    url: str,
    timeout: float = FETCH_TIMEOUT_SECONDS,
    user_agent: str = USER_AGENT,
) -> List[RawItem]:
    """
    Fetch and parse one feed.

    Args:
        url: Feed URL.
        timeout: Upper bound in seconds on the whole fetch, parsing included.
        user_agent: User-Agent header to send.

    Returns:
        The feed's entries as RawItems, in document order.

    Raises:
        FetchFailure: on network errors, HTTP errors or malformed documents.
        FetchTimeout: if the fetch runs past ``timeout``.
    """
    items = call_with_deadline(
        url,
        timeout,
        lambda: parse_feed_document(url, _download(url, timeout, user_agent)),
    )
    logger.debug(f"Fetched {len(items)} entries from {url}")
    return items
