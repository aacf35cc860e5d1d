"""Supabase-backed cache of article summaries and translations."""
import logging
from typing import Optional, Tuple

from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)


class ArticleCache:
    """
    Reads and writes generated article text in Supabase.

    Cache failures are logged and reported as misses; they never fail the
    request that triggered them.
    """

    SUMMARIES_TABLE = "article_summaries"
    TRANSLATIONS_TABLE = "article_translations"
    LANGUAGES_TABLE = "custom_languages"

    def __init__(self, supabase_url: Optional[str] = SUPABASE_URL, supabase_key: Optional[str] = SUPABASE_KEY):
        """
        Initialize the article cache with a Supabase client.

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info("Initialized ArticleCache")

    def get_summary(self, article_id: int, language: str) -> Optional[str]:
        try:
            result = (
                self.client.table(self.SUMMARIES_TABLE)
                .select("summary_text")
                .eq("article_wp_post_id", article_id)
                .eq("language", language)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Error fetching cached summary for article {article_id}: {e}")
            return None

        row = result.data if result is not None else None
        summary = row.get("summary_text") if row else None
        if summary:
            logger.info(f"Summary cache hit for article {article_id} in {language}")
        return summary or None

    def save_summary(self, article_id: int, language: str, summary: str) -> None:
        try:
            self.client.table(self.SUMMARIES_TABLE).upsert({
                "article_wp_post_id": article_id,
                "language": language,
                "summary_text": summary,
            }).execute()
            logger.info(f"Cached summary for article {article_id} in {language}")
        except Exception as e:
            logger.error(f"Error caching summary for article {article_id}: {e}")

    def get_translation(self, article_id: int, language: str) -> Optional[Tuple[str, Optional[str]]]:
        """Return (translated_text, translated_title), or None on a miss."""
        try:
            result = (
                self.client.table(self.TRANSLATIONS_TABLE)
                .select("translated_content_text, translated_title")
                .eq("article_wp_post_id", article_id)
                .eq("language_code", language)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Error fetching cached translation for article {article_id}: {e}")
            return None

        row = result.data if result is not None else None
        if not row or not row.get("translated_content_text"):
            return None

        logger.info(f"Translation cache hit for article {article_id} to {language}")
        return row["translated_content_text"], row.get("translated_title")

    def save_translation(
        self,
        article_id: int,
        language: str,
        translated_text: str,
        translated_title: Optional[str] = None
    ) -> None:
        try:
            self.client.table(self.TRANSLATIONS_TABLE).upsert({
                "article_wp_post_id": article_id,
                "language_code": language,
                "translated_content_text": translated_text,
                "translated_title": translated_title,
            }).execute()
            logger.info(f"Cached translation for article {article_id} to {language}")
        except Exception as e:
            logger.error(f"Error caching translation for article {article_id}: {e}")

    def remember_language(self, language: str) -> None:
        """Record a user-requested language; existing entries are left alone."""
        try:
            self.client.table(self.LANGUAGES_TABLE).insert({"language_name": language}).execute()
        except Exception as e:
            if "duplicate key value violates unique constraint" not in str(e):
                logger.error(f"Error saving custom language {language}: {e}")
