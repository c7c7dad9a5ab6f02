"""
Recency-weighted ranking of search hits.

The index only knows how well a document matches the text of a query. Each
hit's final score adds a recency boost of ``1 / -ln(age_days)`` to that
relevance: items under a day old get a positive boost that grows sharply as
they approach one day, older items get a small negative one that fades
slowly with age.
"""

import math
from datetime import datetime
from typing import List, Optional

from rss_reader.config import RecencyPolicy
from rss_reader.database import ArticleStore
from rss_reader.dates import to_utc, utc_now
from rss_reader.errors import LookupFailure
from rss_reader.models import ScoredResult
from rss_reader.search_index import SearchIndex
from util.logging_util import log_score_breakdown, setup_logger

logger = setup_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def age_in_days(published: datetime, now: datetime) -> float:
    """Fractional days between ``published`` and ``now`` (negative if in the future)."""
    return (to_utc(now) - to_utc(published)).total_seconds() / SECONDS_PER_DAY


def clamp_age(age_days: float, policy: RecencyPolicy) -> float:
    """Move an age into the domain where the boost is defined and finite."""
    age = max(age_days, policy.min_age_days)
    lower = 1.0 - policy.unit_margin_days
    upper = 1.0 + policy.unit_margin_days
    if lower < age < 1.0:
        return lower
    if 1.0 <= age < upper:
        return upper
    return age


def recency_boost(age_days: float, policy: Optional[RecencyPolicy] = None) -> float:
    """Additive boost for an article ``age_days`` old."""
    policy = policy or RecencyPolicy()
    age = clamp_age(age_days, policy)
    return 1.0 / -math.log(age)


class RankingEngine:
    """Runs a query against the index and orders the hits by blended score."""

    def __init__(
        self,
        index: SearchIndex,
        store: ArticleStore,
        policy: Optional[RecencyPolicy] = None,
        verbose: bool = False,
    ):
        self.index = index
        self.store = store
        self.policy = policy or RecencyPolicy()
        self.verbose = verbose

    def rank(self, query: str, now: Optional[datetime] = None) -> List[ScoredResult]:
        """
        Search for ``query`` and rank the hits by relevance plus recency.

        Hits whose article is no longer in storage are skipped. Ties are
        broken by article id so repeated queries give the same order.

        Returns:
            Every hit, best first.
        """
        now = now or utc_now()
        hits = self.index.search(query)

        results = []
        for article_id, relevance in hits:
            try:
                article = self.store.load_article(article_id)
            except LookupFailure as e:
                logger.warning(f"Skipping stale index entry: {e}")
                continue

            age = clamp_age(age_in_days(article.published, now), self.policy)
            boost = recency_boost(age, self.policy)
            final_score = relevance + boost
            if self.verbose:
                log_score_breakdown(logger, article.title, relevance, age, boost, final_score)

            results.append(ScoredResult(
                article=article,
                relevance=relevance,
                age_days=age,
                boost=boost,
                final_score=final_score,
            ))

        results.sort(key=lambda r: (-r.final_score, r.article.id))
        return results
