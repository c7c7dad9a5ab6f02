"""
Data models for the feed reader.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from rss_reader.constants import EPOCH


@dataclass
class Feed:
    """A subscribed feed and its sync watermark."""
    url: str
    id: Optional[int] = None
    last_checked_time: datetime = EPOCH


@dataclass
class RawItem:
    """One entry as returned by the feed fetcher, before date normalization."""
    title: str
    link: str
    description: str
    published_raw: str


@dataclass
class Article:
    """A feed item that has been (or is about to be) stored."""
    title: str
    link: str
    description: str
    published: datetime
    fetched: datetime
    read: bool = False
    feed_id: Optional[int] = None
    id: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.published.isoformat()}: {self.title}"


@dataclass
class ScoredResult:
    """A search hit with its recency-weighted score. Never persisted."""
    article: Article
    relevance: float
    age_days: float
    boost: float
    final_score: float


@dataclass
class FeedSyncResult:
    """New articles from one sync, plus the feed with its advanced watermark."""
    new_articles: List[Article]
    feed: Feed


@dataclass
class FeedOutcome:
    """What happened to one feed during an orchestrated sync."""
    feed: Feed
    new_articles: List[Article] = field(default_factory=list)
    error: Optional[Exception] = None
    index_errors: List[Exception] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncReport:
    """Per-feed outcomes of one orchestrated sync, in input order."""
    outcomes: List[FeedOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> List[FeedOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[FeedOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def new_article_count(self) -> int:
        return sum(len(o.new_articles) for o in self.outcomes)

    @property
    def new_articles(self) -> List[Article]:
        return [a for o in self.outcomes for a in o.new_articles]
