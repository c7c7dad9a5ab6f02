#!/usr/bin/env python3
"""
Command line entrypoint for the feed reader.

Usage:
    # Subscribe to the feeds listed in a file (one URL per line, or YAML)
    rss-reader import feeds.txt

    # Download new articles from every feed
    rss-reader fetch

    # Rebuild the search index, or fetch and then rebuild
    rss-reader index
    rss-reader refresh

    # Search, freshest and most relevant first
    rss-reader search "rust async" --limit 20

    # Print unread articles and mark everything read
    rss-reader unread

    # Drop feeds that never produced an article
    rss-reader prune
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from rss_reader.config import Settings, load_settings
from rss_reader.constants import MAX_INDEX_ARTICLES, MAX_LISTED_ARTICLES
from rss_reader.database import ArticleStore
from rss_reader.errors import StorageFailure
from rss_reader.models import Article, ScoredResult
from rss_reader.orchestrator import update_feeds
from rss_reader.ranking import RankingEngine
from rss_reader.search_index import SearchIndex
from rss_reader.subscriptions import import_feeds
from util.constants import DEFAULT_CONFIG_PATH
from util.logging_util import apply_log_level, log_level_for, setup_logger

logger = setup_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync RSS/Atom feeds into a local database and search them"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Settings file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--db", help="Article database path (overrides config)")
    parser.add_argument("--index", help="Search index path (overrides config)")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print lots of extra info",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Subscribe to feeds listed in a file")
    import_parser.add_argument("file", type=Path, help="Text file of URLs, or YAML with a feeds list")

    subparsers.add_parser("fetch", help="Download new articles from every feed")
    subparsers.add_parser("index", help="Rebuild the search index from stored articles")
    subparsers.add_parser("refresh", help="fetch, then index")

    search_parser = subparsers.add_parser("search", help="Search stored articles")
    search_parser.add_argument("query", help="Search string")
    search_parser.add_argument("--limit", type=int, default=None, help="Show at most this many results")

    unread_parser = subparsers.add_parser("unread", help="Print unread articles and mark them read")
    unread_parser.add_argument("--all", action="store_true", help="Include already-read articles")

    subparsers.add_parser("prune", help="Delete feeds that have no articles")
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Settings from the config file, with command line overrides applied."""
    settings = load_settings(args.config)
    overrides = {}
    if args.db:
        overrides["database_path"] = args.db
    if args.index:
        overrides["index_path"] = args.index
    if args.verbose:
        overrides["verbose"] = True
    return replace(settings, **overrides)


def format_result(result: ScoredResult) -> str:
    article = result.article
    return f"score={result.final_score:.3f}, date={article.published.isoformat()}, title={article.title}"


def format_article(article: Article) -> str:
    return "\n".join([
        f"Title: {article.title}",
        f"Link: {article.link}",
        f"Published: {article.published.isoformat()}",
        "",
    ])


def reindex(store: ArticleStore, index: SearchIndex) -> int:
    articles = store.query_articles(include_read=True, limit=MAX_INDEX_ARTICLES)
    logger.info(f"Indexing {len(articles)} articles from db...")
    return index.reindex(articles)


def run_fetch(store: ArticleStore, index: SearchIndex, settings: Settings) -> int:
    report = update_feeds(store, index, settings)
    for outcome in report.failed:
        logger.warning(f"{outcome.feed.url}: {outcome.error}")
    if any(isinstance(o.error, StorageFailure) for o in report.failed):
        return 1
    return 0


def run_search(store: ArticleStore, index: SearchIndex, settings: Settings,
               query: str, limit: Optional[int]) -> int:
    engine = RankingEngine(index, store, policy=settings.recency, verbose=settings.verbose)
    results = engine.rank(query)
    if limit is not None:
        results = results[:limit]
    logger.info(f"--- {len(results)} results for {query!r} ---")
    for result in results:
        print(format_result(result))
    return 0


def run_unread(store: ArticleStore, include_read: bool) -> int:
    articles = store.query_articles(include_read=include_read, limit=MAX_LISTED_ARTICLES)
    logger.info(f"Loaded {len(articles)} articles")
    for article in articles:
        print(format_article(article))
    store.mark_all_read()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args)
    apply_log_level("rss_reader", log_level_for(settings.verbose))

    if args.command == "import" and not args.file.exists():
        print(f"Error: {args.file} not found", file=sys.stderr)
        return 1

    store = ArticleStore.open(settings.database_path)
    index = SearchIndex.open(settings.index_path)
    try:
        if args.command == "import":
            created = import_feeds(args.file, store)
            logger.info(f"Added {len(created)} feeds")
            return 0
        if args.command == "fetch":
            return run_fetch(store, index, settings)
        if args.command == "index":
            reindex(store, index)
            return 0
        if args.command == "refresh":
            status = run_fetch(store, index, settings)
            reindex(store, index)
            return status
        if args.command == "search":
            return run_search(store, index, settings, args.query, args.limit)
        if args.command == "unread":
            return run_unread(store, include_read=args.all)
        if args.command == "prune":
            removed = store.prune_feeds_without_articles()
            logger.info(f"Pruned {removed} feeds without articles")
            return 0
    except StorageFailure as e:
        logger.error(str(e))
        return 1
    finally:
        store.close()
        index.close()

    return 1


if __name__ == "__main__":
    sys.exit(main())
