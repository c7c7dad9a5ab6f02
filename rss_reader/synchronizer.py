"""
Incremental sync of a single feed against its watermark.
"""

from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from rss_reader.constants import DEFAULT_DATE_FORMATS
from rss_reader.dates import normalize, to_utc, utc_now
from rss_reader.errors import ParseFailure
from rss_reader.models import Article, Feed, FeedSyncResult, RawItem
from util.logging_util import setup_logger

logger = setup_logger(__name__)

FetchFn = Callable[[str], List[RawItem]]
Clock = Callable[[], datetime]


def sync_feed(
    feed: Feed,
    fetch: FetchFn,
    now: Clock = utc_now,
    date_formats: Optional[Sequence[str]] = None,
    verbose: bool = False,
) -> FeedSyncResult:
    """
    Fetch a feed and keep the items published after its watermark.

    The check time is taken before fetching; it stamps every new article's
    ``fetched`` field and becomes the feed's new watermark, whether or not
    anything new turned up. Items whose date can't be parsed are skipped.

    Args:
        feed: The feed to sync. Not modified.
        fetch: Callable taking the feed URL and returning its raw items.
        now: Clock returning an aware datetime.
        date_formats: Date formats to try, in order. Defaults to DEFAULT_DATE_FORMATS.
        verbose: Log every new article.

    Returns:
        The new articles and a copy of the feed with the advanced watermark.

    Raises:
        FetchFailure: if the fetch fails; nothing is returned and the
            watermark stays where it was.
    """
    formats = date_formats if date_formats is not None else DEFAULT_DATE_FORMATS
    watermark = to_utc(feed.last_checked_time)
    check_time = to_utc(now())

    raw_items = fetch(feed.url)

    articles = []
    skipped = 0
    for item in raw_items:
        try:
            published = normalize(formats, item.published_raw)
        except ParseFailure as e:
            logger.warning(f"Skipping item {item.title!r} from {feed.url}: {e}")
            skipped += 1
            continue

        # Strictly after: an item dated exactly at the watermark was already seen
        if published <= watermark:
            continue

        if verbose:
            logger.info(f"New article found: feed_id={feed.id} published={published} title={item.title}")
        articles.append(Article(
            title=item.title,
            link=item.link,
            description=item.description,
            published=published,
            fetched=check_time,
            read=False,
            feed_id=feed.id,
        ))

    if skipped:
        logger.info(f"{feed.url}: skipped {skipped} of {len(raw_items)} items with unparseable dates")

    updated = replace(feed, last_checked_time=max(watermark, check_time))
    return FeedSyncResult(new_articles=articles, feed=updated)
