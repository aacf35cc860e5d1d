"""Unit tests for ArticleCache."""
from types import SimpleNamespace

import pytest
from unittest.mock import MagicMock, patch

from services.article_cache import ArticleCache


@pytest.fixture
def supabase_client():
    with patch('services.article_cache.create_client') as mock_create:
        client = MagicMock()
        mock_create.return_value = client
        yield client


def select_chain(client):
    """Return the mock at the end of table().select().eq().eq().maybe_single()."""
    return client.table.return_value.select.return_value.eq.return_value.eq.return_value.maybe_single.return_value


class TestArticleCache:

    def test_missing_credentials(self):
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            ArticleCache(supabase_url=None, supabase_key="key")

    def test_get_summary_hit(self, supabase_client):
        select_chain(supabase_client).execute.return_value = SimpleNamespace(
            data={"summary_text": "Cached summary"}
        )

        cache = ArticleCache("https://example.supabase.co", "key")

        assert cache.get_summary(42, "English") == "Cached summary"
        supabase_client.table.assert_called_with("article_summaries")

    def test_get_summary_miss(self, supabase_client):
        select_chain(supabase_client).execute.return_value = None

        cache = ArticleCache("https://example.supabase.co", "key")

        assert cache.get_summary(42, "English") is None

    def test_get_summary_error_is_a_miss(self, supabase_client):
        select_chain(supabase_client).execute.side_effect = RuntimeError("connection reset")

        cache = ArticleCache("https://example.supabase.co", "key")

        assert cache.get_summary(42, "English") is None

    def test_get_translation_hit(self, supabase_client):
        select_chain(supabase_client).execute.return_value = SimpleNamespace(
            data={"translated_content_text": "Bonjour", "translated_title": "Titre"}
        )

        cache = ArticleCache("https://example.supabase.co", "key")

        assert cache.get_translation(7, "French") == ("Bonjour", "Titre")

    def test_get_translation_without_text_is_miss(self, supabase_client):
        select_chain(supabase_client).execute.return_value = SimpleNamespace(
            data={"translated_content_text": "", "translated_title": "Titre"}
        )

        cache = ArticleCache("https://example.supabase.co", "key")

        assert cache.get_translation(7, "French") is None

    def test_save_summary_upserts(self, supabase_client):
        cache = ArticleCache("https://example.supabase.co", "key")

        cache.save_summary(42, "English", "Summary")

        supabase_client.table.return_value.upsert.assert_called_once_with({
            "article_wp_post_id": 42,
            "language": "English",
            "summary_text": "Summary",
        })

    def test_save_translation_swallows_errors(self, supabase_client):
        supabase_client.table.return_value.upsert.return_value.execute.side_effect = RuntimeError("down")
        cache = ArticleCache("https://example.supabase.co", "key")

        cache.save_translation(7, "French", "Bonjour")

    def test_remember_language_ignores_duplicates(self, supabase_client, caplog):
        supabase_client.table.return_value.insert.return_value.execute.side_effect = RuntimeError(
            "duplicate key value violates unique constraint \"custom_languages_pkey\""
        )
        cache = ArticleCache("https://example.supabase.co", "key")

        cache.remember_language("Klingon")

        assert "Error saving custom language" not in caplog.text
