"""Tests for recency-weighted ranking."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from rss_reader.config import RecencyPolicy
from rss_reader.database import ArticleStore
from rss_reader.errors import LookupFailure
from rss_reader.models import Article
from rss_reader.ranking import RankingEngine, age_in_days, clamp_age, recency_boost
from rss_reader.search_index import SearchIndex


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeIndex:
    """Index stand-in returning canned (id, relevance) hits."""

    def __init__(self, hits):
        self.hits = hits
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        return list(self.hits)


class FakeStore:
    """Store stand-in holding articles in a dict."""

    def __init__(self, articles):
        self.articles = {a.id: a for a in articles}

    def load_article(self, article_id):
        if article_id not in self.articles:
            raise LookupFailure(article_id)
        return self.articles[article_id]


def _article(article_id: int, title: str, age: timedelta) -> Article:
    return Article(
        id=article_id,
        title=title,
        link=f"https://example.com/{article_id}",
        description="",
        published=NOW - age,
        fetched=NOW,
    )


class TestAgeInDays:
    """Tests for age_in_days function."""

    def test_fractional_days(self):
        assert age_in_days(NOW - timedelta(hours=12), NOW) == pytest.approx(0.5)

    def test_future_is_negative(self):
        assert age_in_days(NOW + timedelta(days=2), NOW) == pytest.approx(-2.0)


class TestRecencyBoost:
    """Tests for the recency boost curve and its domain guards."""

    def test_half_day_boost(self):
        assert recency_boost(0.5) == pytest.approx(1 / math.log(2))

    def test_thirty_day_boost_is_small_and_negative(self):
        assert recency_boost(30) == pytest.approx(-1 / math.log(30))

    def test_zero_age_is_finite(self):
        """Test that an article published 'now' doesn't hit log(0)."""
        boost = recency_boost(0.0)
        assert math.isfinite(boost)
        assert boost == pytest.approx(1 / -math.log(RecencyPolicy().min_age_days))

    def test_future_age_treated_like_zero(self):
        assert recency_boost(-3.0) == recency_boost(0.0)

    def test_exactly_one_day_is_finite(self):
        """Test that ln(1) = 0 is avoided by pushing the age past the margin."""
        policy = RecencyPolicy(unit_margin_days=0.05)
        boost = recency_boost(1.0, policy)
        assert math.isfinite(boost)
        assert boost == pytest.approx(-1 / math.log(1.05))

    def test_just_under_one_day_is_capped(self):
        policy = RecencyPolicy(unit_margin_days=0.05)
        assert recency_boost(0.999, policy) == pytest.approx(1 / -math.log(0.95))
        assert recency_boost(0.999, policy) == recency_boost(0.96, policy)

    def test_outside_margin_unchanged(self):
        policy = RecencyPolicy(unit_margin_days=0.05)
        assert clamp_age(0.9, policy) == 0.9
        assert clamp_age(1.2, policy) == 1.2

    def test_clamp_age_floor(self):
        policy = RecencyPolicy(min_age_days=0.001)
        assert clamp_age(0.0, policy) == 0.001

    def test_boost_grows_towards_one_day(self):
        assert recency_boost(0.1) < recency_boost(0.5) < recency_boost(0.9)


class TestRankingEngine:
    """Tests for RankingEngine.rank."""

    def test_fresh_article_outranks_stronger_old_match(self):
        """Test relevance {A: 0.9, B: 0.5} with ages {A: 30d, B: 0.5d}."""
        a = _article(1, "A", timedelta(days=30))
        b = _article(2, "B", timedelta(days=0.5))
        engine = RankingEngine(FakeIndex([(1, 0.9), (2, 0.5)]), FakeStore([a, b]))

        results = engine.rank("query", now=NOW)

        assert [r.article.title for r in results] == ["B", "A"]
        assert results[0].final_score == pytest.approx(0.5 + 1 / math.log(2))
        assert results[1].final_score == pytest.approx(0.9 - 1 / math.log(30))
        assert results[0].age_days == pytest.approx(0.5)
        assert results[1].relevance == 0.9

    def test_score_is_relevance_plus_boost(self):
        a = _article(1, "A", timedelta(days=10))
        engine = RankingEngine(FakeIndex([(1, 2.0)]), FakeStore([a]))

        result = engine.rank("query", now=NOW)[0]

        assert result.boost == pytest.approx(recency_boost(10))
        assert result.final_score == pytest.approx(2.0 + result.boost)

    def test_hit_order_from_index_not_trusted(self):
        old = _article(1, "Old", timedelta(days=400))
        new = _article(2, "New", timedelta(hours=6))
        engine = RankingEngine(FakeIndex([(1, 1.0), (2, 1.0)]), FakeStore([old, new]))

        results = engine.rank("query", now=NOW)
        assert [r.article.title for r in results] == ["New", "Old"]

    def test_ties_broken_by_id(self):
        """Test that equal scores come back in id order, every time."""
        articles = [_article(i, f"Same {i}", timedelta(days=5)) for i in (7, 3, 5)]
        engine = RankingEngine(FakeIndex([(7, 1.0), (3, 1.0), (5, 1.0)]), FakeStore(articles))

        first = [r.article.id for r in engine.rank("query", now=NOW)]
        second = [r.article.id for r in engine.rank("query", now=NOW)]

        assert first == [3, 5, 7]
        assert first == second

    def test_stale_hit_skipped(self):
        """Test that a hit for a deleted article doesn't abort the search."""
        kept = _article(1, "Kept", timedelta(days=2))
        engine = RankingEngine(FakeIndex([(1, 1.0), (99, 5.0)]), FakeStore([kept]))

        results = engine.rank("query", now=NOW)
        assert [r.article.id for r in results] == [1]

    def test_no_hits(self):
        engine = RankingEngine(FakeIndex([]), FakeStore([]))
        assert engine.rank("nothing", now=NOW) == []

    def test_same_instant_publication(self):
        article = _article(1, "Just now", timedelta(0))
        engine = RankingEngine(FakeIndex([(1, 0.3)]), FakeStore([article]))

        result = engine.rank("query", now=NOW)[0]
        assert math.isfinite(result.final_score)
        assert result.age_days == RecencyPolicy().min_age_days

    def test_full_list_returned(self):
        articles = [_article(i, f"Item {i}", timedelta(days=i + 2)) for i in range(1, 30)]
        hits = [(a.id, 1.0) for a in articles]
        engine = RankingEngine(FakeIndex(hits), FakeStore(articles))
        assert len(engine.rank("query", now=NOW)) == 29

    def test_verbose_still_ranks(self):
        a = _article(1, "A", timedelta(days=3))
        engine = RankingEngine(FakeIndex([(1, 1.0)]), FakeStore([a]), verbose=True)
        assert len(engine.rank("query", now=NOW)) == 1


class TestRankingWithStorage:
    """Tests ranking against a real store and index."""

    def test_fresher_duplicate_ranks_first(self, tmp_path):
        store = ArticleStore.open(str(tmp_path / "rank.db"))
        index = SearchIndex.open(str(tmp_path / "rank_index.db"))
        feed_id = store.add_feed("https://example.com/feed.xml")

        stale = _article(None, "Python release notes", timedelta(days=300))
        fresh = _article(None, "Python release notes", timedelta(hours=2))
        for article in (stale, fresh):
            article.id = store.create_article(article, feed_id)
            index.index_document(article.id, article)

        results = RankingEngine(index, store).rank("python", now=NOW)

        assert [r.article.id for r in results] == [fresh.id, stale.id]
        store.close()
        index.close()
