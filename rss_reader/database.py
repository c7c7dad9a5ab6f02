"""
Database operations for the feed reader.

Uses SQLAlchemy ORM for database access. The public API is the ArticleStore
class, which speaks the dataclass models from models.py; conversion to/from
ORM models is handled internally.

Every operation holds the store's lock, so a store can be shared by the sync
worker threads: writes are serialized and article ids are assigned one at a
time.
"""

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Generator, List, Optional

from sqlalchemy import Engine, delete, exists, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rss_reader.db_engine import create_db_engine, make_session_factory, session_scope
from rss_reader.errors import LookupFailure, StorageFailure
from rss_reader.models import Article, Feed, FeedSyncResult
from rss_reader.orm_models import (
    Base,
    ArticleORM,
    FeedORM,
    article_dataclass_to_orm,
    article_orm_to_dataclass,
    feed_dataclass_to_orm,
    feed_orm_to_dataclass,
    to_naive_utc,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def _advance_watermark(orm: FeedORM, feed: Feed):
    new_time = to_naive_utc(feed.last_checked_time)
    if new_time > orm.last_checked_time:
        orm.last_checked_time = new_time
    orm.url = feed.url


class ArticleStore:
    """Feed and article repository backed by SQLite."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = make_session_factory(engine)
        self._lock = threading.RLock()

    @classmethod
    def open(cls, db_path: str) -> "ArticleStore":
        """Open (and create if needed) the database at ``db_path``."""
        store = cls(create_db_engine(db_path))
        store.init_db()
        return store

    @contextmanager
    def _session(self, operation: str) -> Generator[Session, None, None]:
        with self._lock:
            try:
                with session_scope(self._session_factory) as session:
                    yield session
            except SQLAlchemyError as e:
                logger.error(f"Storage error during {operation}: {e}")
                raise StorageFailure(operation, e) from e

    def init_db(self):
        """Initialize the database schema."""
        with self._lock:
            try:
                Base.metadata.create_all(self.engine)
            except SQLAlchemyError as e:
                raise StorageFailure("init_db", e) from e

    def close(self):
        self.engine.dispose()

    # Feeds

    def load_feeds(self) -> List[Feed]:
        """Get all subscribed feeds."""
        with self._session("load_feeds") as session:
            orms = session.execute(select(FeedORM).order_by(FeedORM.id)).scalars().all()
            return [feed_orm_to_dataclass(orm) for orm in orms]

    def add_feed(self, url: str) -> Optional[int]:
        """Subscribe to a feed.

        Returns the feed id, or None if the URL is already subscribed.
        """
        with self._session("add_feed") as session:
            already = session.execute(
                select(exists().where(FeedORM.url == url))
            ).scalar()
            if already:
                return None

            orm = feed_dataclass_to_orm(Feed(url=url))
            session.add(orm)
            session.flush()
            return orm.id

    def get_feed(self, feed_id: int) -> Optional[Feed]:
        """Get a feed by its database ID."""
        with self._session("get_feed") as session:
            orm = session.get(FeedORM, feed_id)
            if orm is None:
                return None
            return feed_orm_to_dataclass(orm)

    def save_feed(self, feed: Feed):
        """Persist a feed's watermark.

        The stored watermark only moves forward; an older value is ignored.
        """
        with self._session("save_feed") as session:
            orm = session.get(FeedORM, feed.id)
            if orm is None:
                raise StorageFailure(f"save_feed (no feed with id {feed.id})")
            _advance_watermark(orm, feed)

    def store_sync_result(self, result: FeedSyncResult) -> List[Article]:
        """Insert a feed's new articles and advance its watermark together.

        Runs in one transaction: if any insert fails, none of the articles are
        kept and the watermark stays put, so the next sync picks the same
        items up again without duplicating them.

        Returns copies of the new articles carrying their assigned ids.
        """
        feed = result.feed
        with self._session("store_sync_result") as session:
            feed_orm = session.get(FeedORM, feed.id)
            if feed_orm is None:
                raise StorageFailure(f"store_sync_result (no feed with id {feed.id})")

            article_orms = []
            for article in result.new_articles:
                orm = article_dataclass_to_orm(article, feed.id)
                session.add(orm)
                article_orms.append(orm)
            session.flush()

            _advance_watermark(feed_orm, feed)
            stored = [
                replace(article, id=orm.id, feed_id=feed.id)
                for article, orm in zip(result.new_articles, article_orms)
            ]
        return stored

    def prune_feeds_without_articles(self) -> int:
        """Delete feeds that have no stored articles.

        Returns the number of feeds removed.
        """
        with self._session("prune_feeds") as session:
            referenced = select(ArticleORM.feed_id).where(ArticleORM.feed_id.is_not(None))
            stmt = (
                delete(FeedORM)
                .where(FeedORM.id.not_in(referenced))
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            return result.rowcount or 0

    # Articles

    def create_article(self, article: Article, feed_id: Optional[int]) -> int:
        """Insert a new article into the database.

        Returns the article id.
        """
        orm = article_dataclass_to_orm(article, feed_id)
        with self._session("create_article") as session:
            session.add(orm)
            session.flush()
            return orm.id

    def load_article(self, article_id: int) -> Article:
        """Get an article by its database ID.

        Raises:
            LookupFailure: if there is no such article.
        """
        with self._session("load_article") as session:
            orm = session.get(ArticleORM, article_id)
            if orm is None:
                raise LookupFailure(article_id)
            return article_orm_to_dataclass(orm)

    def query_articles(self, include_read: bool, limit: int) -> List[Article]:
        """Get up to ``limit`` articles, oldest first, optionally only unread ones."""
        with self._session("query_articles") as session:
            stmt = select(ArticleORM)
            if not include_read:
                stmt = stmt.where(ArticleORM.read.is_(False))
            stmt = stmt.order_by(ArticleORM.published.asc(), ArticleORM.id.asc()).limit(limit)
            orms = session.execute(stmt).scalars().all()
            return [article_orm_to_dataclass(orm) for orm in orms]

    def count_articles(self, feed_id: Optional[int] = None) -> int:
        with self._session("count_articles") as session:
            stmt = select(func.count(ArticleORM.id))
            if feed_id is not None:
                stmt = stmt.where(ArticleORM.feed_id == feed_id)
            return session.execute(stmt).scalar_one()

    def mark_all_read(self) -> int:
        """Mark every article as read. Returns the number changed."""
        with self._session("mark_all_read") as session:
            result = session.execute(
                update(ArticleORM).where(ArticleORM.read.is_(False)).values(read=True)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

