"""Tests for the full-text search index."""

from datetime import datetime, timezone

import pytest

from rss_reader.models import Article
from rss_reader.search_index import SearchIndex, build_match_query


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def index(tmp_path):
    search_index = SearchIndex.open(str(tmp_path / "test_index.db"))
    yield search_index
    search_index.close()


def _article(article_id: int, title: str, description: str = "") -> Article:
    return Article(
        id=article_id,
        title=title,
        link=f"https://example.com/{article_id}",
        description=description,
        published=NOW,
        fetched=NOW,
    )


class TestBuildMatchQuery:
    """Tests for build_match_query function."""

    def test_quotes_and_ors_terms(self):
        assert build_match_query("Rust async") == '"rust" OR "async"'

    def test_operators_are_taken_literally(self):
        assert build_match_query('rust AND "async') == '"rust" OR "and" OR "async"'

    def test_punctuation_only(self):
        assert build_match_query("++ --") == ""


class TestSearchIndex:
    """Tests for SearchIndex indexing and search."""

    def test_index_and_search(self, index):
        index.index_document(1, _article(1, "Python packaging guide"))
        index.index_document(2, _article(2, "Gardening in spring"))

        hits = index.search("python")

        assert [article_id for article_id, _ in hits] == [1]
        assert hits[0][1] > 0

    def test_no_match(self, index):
        index.index_document(1, _article(1, "Python packaging guide"))
        assert index.search("haskell") == []

    def test_empty_query(self, index):
        index.index_document(1, _article(1, "Python packaging guide"))
        assert index.search("") == []
        assert index.search("!!!") == []

    def test_special_characters_do_not_break_query(self, index):
        index.index_document(1, _article(1, "Modern C++ idioms"))
        hits = index.search('C++ "unterminated')
        assert [article_id for article_id, _ in hits] == [1]

    def test_description_html_is_stripped(self, index):
        index.index_document(1, _article(1, "Weekly notes", "<p>Hello <b>world</b></p>"))
        assert [article_id for article_id, _ in index.search("world")] == [1]

    def test_any_term_matches(self, index):
        index.index_document(1, _article(1, "Python tips"))
        index.index_document(2, _article(2, "Rust tips"))
        ids = {article_id for article_id, _ in index.search("python rust")}
        assert ids == {1, 2}

    def test_reindexing_a_document_replaces_it(self, index):
        index.index_document(1, _article(1, "Old title"))
        index.index_document(1, _article(1, "New title"))

        assert index.search("old") == []
        assert [article_id for article_id, _ in index.search("new")] == [1]
        assert index.count() == 1

    def test_better_match_scores_higher(self, index):
        index.index_document(1, _article(1, "python python python"))
        index.index_document(2, _article(2, "python java ruby go rust elixir"))
        index.index_document(3, _article(3, "cooking recipes"))

        scores = dict(index.search("python"))
        assert scores[1] > scores[2]

    def test_reindex_rebuilds(self, index):
        index.index_document(1, _article(1, "Stale entry"))

        count = index.reindex([_article(2, "Fresh entry"), _article(3, "Another entry")])

        assert count == 2
        assert index.search("stale") == []
        assert {article_id for article_id, _ in index.search("entry")} == {2, 3}

    def test_reindex_skips_unsaved_articles(self, index):
        unsaved = _article(1, "No id yet")
        unsaved.id = None
        assert index.reindex([unsaved]) == 0
