"""
Concurrent sync of every subscribed feed.

Each feed gets its own worker. A worker fetches its feed under a hard
deadline, stores the new articles together with the advanced watermark in a
single transaction, and then indexes them. Whatever goes wrong in one worker
is recorded against that feed and never touches the others.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from functools import partial
from typing import Callable, List, Optional, Sequence

from rss_reader.config import Settings
from rss_reader.constants import FETCH_TIMEOUT_SECONDS, USER_AGENT
from rss_reader.database import ArticleStore
from rss_reader.dates import utc_now
from rss_reader.errors import FetchFailure, StorageFailure
from rss_reader.feed_fetcher import call_with_deadline, fetch_feed_items
from rss_reader.models import Feed, FeedOutcome, RawItem, SyncReport
from rss_reader.search_index import SearchIndex
from rss_reader.synchronizer import Clock, sync_feed
from util.logging_util import setup_logger

logger = setup_logger(__name__)

# fetch(url, timeout) -> raw items
TimedFetchFn = Callable[[str, float], List[RawItem]]


class FetchOrchestrator:
    """Fans feed syncs out over a thread pool and collects a SyncReport."""

    def __init__(
        self,
        store: ArticleStore,
        index: SearchIndex,
        fetch: TimedFetchFn = fetch_feed_items,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        max_workers: Optional[int] = None,
        date_formats: Optional[Sequence[str]] = None,
        clock: Clock = utc_now,
        verbose: bool = False,
    ):
        self.store = store
        self.index = index
        self.fetch = fetch
        self.timeout = timeout
        self.max_workers = max_workers
        self.date_formats = date_formats
        self.clock = clock
        self.verbose = verbose

    def _bounded_fetch(self, url: str) -> List[RawItem]:
        """Fetch ``url``, treating anything slower than ``timeout`` as a FetchTimeout."""
        fetch = partial(self.fetch, url, timeout=self.timeout)
        return call_with_deadline(url, self.timeout, fetch)

    def _sync_one(self, feed: Feed) -> FeedOutcome:
        """Sync, persist and index a single feed. Runs on a worker thread."""
        try:
            result = sync_feed(
                feed,
                self._bounded_fetch,
                now=self.clock,
                date_formats=self.date_formats,
                verbose=self.verbose,
            )
        except FetchFailure as e:
            logger.warning(f"Error checking new articles: {e}")
            return FeedOutcome(feed=feed, error=e)

        outcome = FeedOutcome(feed=feed)
        try:
            stored = self.store.store_sync_result(result)
        except StorageFailure as e:
            logger.error(f"Failed to store results for {feed.url}: {e}")
            outcome.error = e
            return outcome

        outcome.feed = result.feed
        outcome.new_articles = stored
        for article in stored:
            try:
                self.index.index_document(article.id, article)
            except StorageFailure as e:
                # Stored articles can be re-indexed later, so carry on
                logger.error(f"Failed to index article {article.id} from {feed.url}: {e}")
                outcome.index_errors.append(e)

        if outcome.new_articles:
            logger.info(f"Retrieved {len(outcome.new_articles)} articles from {feed.url}")
        return outcome

    def sync_all(self, feeds: Sequence[Feed]) -> SyncReport:
        """
        Sync every feed concurrently and wait for all of them.

        Returns:
            A SyncReport with one outcome per feed, in the order given.
        """
        report = SyncReport()
        if not feeds:
            return report

        workers = self.max_workers or len(feeds)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="feed-sync") as executor:
            # Each task gets its own copy of the feed
            futures = [(feed, executor.submit(self._sync_one, replace(feed))) for feed in feeds]
            for feed, future in futures:
                try:
                    outcome = future.result()
                except Exception as e:
                    logger.error(f"Unexpected error syncing {feed.url}: {e}")
                    outcome = FeedOutcome(feed=feed, error=e)
                report.outcomes.append(outcome)

        logger.info(
            f"All checks done: {len(report.succeeded)} feeds ok, {len(report.failed)} failed, "
            f"{report.new_article_count} new articles"
        )
        return report


def update_feeds(store: ArticleStore, index: SearchIndex, settings: Settings,
                 fetch: Optional[TimedFetchFn] = None) -> SyncReport:
    """Load every subscribed feed and sync them all."""
    feeds = store.load_feeds()
    logger.info(f"Updating {len(feeds)} feeds")

    if fetch is None:
        fetch = partial(fetch_feed_items, user_agent=settings.user_agent or USER_AGENT)
    orchestrator = FetchOrchestrator(
        store,
        index,
        fetch=fetch,
        timeout=settings.fetch_timeout_seconds,
        max_workers=settings.max_workers,
        date_formats=settings.date_formats,
        verbose=settings.verbose,
    )
    return orchestrator.sync_all(feeds)
