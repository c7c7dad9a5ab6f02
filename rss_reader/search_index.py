"""
Full-text index over stored articles.

Backed by an SQLite FTS5 table in its own database file, so index writes
never contend with the article store. Relevance is FTS5's bm25, negated so
that bigger is better.
"""

import re
import threading
from typing import Iterable, List, Tuple

from html2text import html2text
from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from rss_reader.db_engine import create_db_engine
from rss_reader.errors import StorageFailure
from rss_reader.models import Article
from util.logging_util import setup_logger

logger = setup_logger(__name__)

INDEX_TABLE = "article_index"

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def build_match_query(query: str) -> str:
    """Turn free text into an FTS5 MATCH expression.

    Each word is quoted so FTS operators and punctuation in user input are
    taken literally; words are OR-ed so any term can match.
    """
    tokens = _TOKEN_RE.findall(query.lower())
    return " OR ".join(f'"{token}"' for token in tokens)


def _plain_text(html: str) -> str:
    if not html:
        return ""
    return html2text(html).strip()


class SearchIndex:
    """Index documents by article id and answer ranked (id, score) queries."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._lock = threading.Lock()

    @classmethod
    def open(cls, index_path: str) -> "SearchIndex":
        index = cls(create_db_engine(index_path))
        index.init_index()
        return index

    def init_index(self):
        """Create the FTS table if it doesn't exist yet."""
        ddl = (
            f"CREATE VIRTUAL TABLE IF NOT EXISTS {INDEX_TABLE} "
            "USING fts5(title, description, link)"
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(text(ddl))
        except SQLAlchemyError as e:
            raise StorageFailure("init_index", e) from e

    def close(self):
        self.engine.dispose()

    def _write_document(self, conn, article_id: int, article: Article):
        conn.execute(
            text(f"DELETE FROM {INDEX_TABLE} WHERE rowid = :id"), {"id": article_id}
        )
        conn.execute(
            text(
                f"INSERT INTO {INDEX_TABLE} (rowid, title, description, link) "
                "VALUES (:id, :title, :description, :link)"
            ),
            {
                "id": article_id,
                "title": article.title,
                "description": _plain_text(article.description),
                "link": article.link,
            },
        )

    def index_document(self, article_id: int, article: Article):
        """Add or replace the index entry for one article."""
        with self._lock:
            try:
                with self.engine.begin() as conn:
                    self._write_document(conn, article_id, article)
            except SQLAlchemyError as e:
                raise StorageFailure(f"index_document({article_id})", e) from e

    def reindex(self, articles: Iterable[Article]) -> int:
        """Rebuild the index from scratch. Returns the number of documents indexed."""
        count = 0
        with self._lock:
            try:
                with self.engine.begin() as conn:
                    conn.execute(text(f"DELETE FROM {INDEX_TABLE}"))
                    for article in articles:
                        if article.id is None:
                            continue
                        self._write_document(conn, article.id, article)
                        count += 1
            except SQLAlchemyError as e:
                raise StorageFailure("reindex", e) from e
        return count

    def search(self, query: str) -> List[Tuple[int, float]]:
        """Return (article id, relevance) pairs for ``query``; relevance >= 0."""
        match = build_match_query(query)
        if not match:
            return []

        stmt = text(
            f"SELECT rowid, bm25({INDEX_TABLE}) AS rank FROM {INDEX_TABLE} "
            f"WHERE {INDEX_TABLE} MATCH :match"
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt, {"match": match}).all()
        except SQLAlchemyError as e:
            raise StorageFailure(f"search({query!r})", e) from e

        logger.debug(f"Index returned {len(rows)} hits for {query!r}")
        return [(int(row[0]), max(0.0, -float(row[1]))) for row in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(text(f"SELECT count(*) FROM {INDEX_TABLE}")).scalar_one()
