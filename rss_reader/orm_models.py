"""
SQLAlchemy ORM models for the feed reader.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from rss_reader.dates import to_utc
from rss_reader.models import Article, Feed


class Base(DeclarativeBase):
    pass


class FeedORM(Base):
    """SQLAlchemy model for feeds table."""

    __tablename__ = "feeds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    # Naive UTC; SQLite has no timezone support
    last_checked_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class ArticleORM(Base):
    """SQLAlchemy model for articles table."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    feed_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("feeds.id"), nullable=True
    )
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    fetched: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_articles_feed_id", "feed_id"),
        Index("idx_articles_read", "read"),
    )


# Conversion functions between ORM models and dataclasses


def to_naive_utc(value: datetime) -> datetime:
    return to_utc(value).replace(tzinfo=None)


def feed_orm_to_dataclass(orm: FeedORM) -> Feed:
    """Convert a FeedORM instance to a Feed dataclass."""
    return Feed(
        id=orm.id,
        url=orm.url,
        last_checked_time=to_utc(orm.last_checked_time),
    )


def feed_dataclass_to_orm(feed: Feed) -> FeedORM:
    """Convert a Feed dataclass to a FeedORM instance."""
    return FeedORM(
        id=feed.id,
        url=feed.url,
        last_checked_time=to_naive_utc(feed.last_checked_time),
    )


def article_orm_to_dataclass(orm: ArticleORM) -> Article:
    """Convert an ArticleORM instance to an Article dataclass."""
    return Article(
        id=orm.id,
        feed_id=orm.feed_id,
        read=bool(orm.read),
        title=orm.title,
        link=orm.link,
        description=orm.description or "",
        published=to_utc(orm.published),
        fetched=to_utc(orm.fetched),
    )


def article_dataclass_to_orm(article: Article, feed_id: Optional[int]) -> ArticleORM:
    """Convert an Article dataclass to an ArticleORM instance."""
    return ArticleORM(
        feed_id=feed_id,
        read=article.read,
        title=article.title,
        link=article.link,
        description=article.description or None,
        published=to_naive_utc(article.published),
        fetched=to_naive_utc(article.fetched),
    )
