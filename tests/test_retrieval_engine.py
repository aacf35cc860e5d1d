"""Unit tests for the candidate filter, similarity ranker and RetrievalEngine."""
import logging

import numpy as np
import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, patch

from conftest import make_chunk
from services.embedding_model import EmbeddingModel
from services.knowledge_cache import KnowledgeCache
from services.retrieval_engine import (
    RetrievalEngine,
    cosine_similarity,
    extract_keywords,
    filter_candidates,
    format_knowledge,
    rank,
)


@pytest.fixture
def jewel_cache():
    """Three chunks, two of which mention jewels."""
    return KnowledgeCache([
        make_chunk("guide.txt", "Combine a jewel with resources to craft.", [0.6, 0.8, 0.0]),
        make_chunk("civilians.txt", "Civilians walk between cities.", [0.0, 0.0, 1.0]),
        make_chunk("faq.txt", "A Jewel drops from mining droids.", [1.0, 0.0, 0.0], chunk_index=3),
    ])


def engine_for(cache, embedding):
    embedding_model = Mock()
    embedding_model.embed_query = AsyncMock(return_value=embedding)
    return RetrievalEngine(cache, embedding_model), embedding_model


class TestExtractKeywords:

    def test_drops_short_tokens_and_stopwords(self):
        assert extract_keywords("What can you tell me about Earth2 jewels?") == ["jewels"]

    def test_lowercases_and_deduplicates(self):
        assert extract_keywords("Mentar MENTAR mentar droids") == ["mentar", "droids"]

    def test_only_filtered_words_gives_empty(self):
        assert extract_keywords("tell me about earth") == []


class TestFilterCandidates:

    def test_empty_keywords_returns_full_cache(self, jewel_cache):
        assert filter_candidates([], jewel_cache.chunks) == jewel_cache.chunks

    def test_matches_content_case_insensitively(self, jewel_cache):
        result = filter_candidates(["jewel"], jewel_cache.chunks)
        assert [c.file_name for c in result] == ["guide.txt", "faq.txt"]

    def test_matches_file_name(self, jewel_cache):
        result = filter_candidates(["civilians"], jewel_cache.chunks)
        assert [c.file_name for c in result] == ["civilians.txt"]

    def test_no_match_returns_empty(self, jewel_cache):
        assert filter_candidates(["tokenomics"], jewel_cache.chunks) == []


class TestRanker:

    def test_cosine_similarity_in_range(self):
        rng = np.random.default_rng(7)
        for _ in range(200):
            a, b = rng.normal(size=16), rng.normal(size=16)
            assert -1.0 - 1e-9 <= cosine_similarity(a, b) <= 1.0 + 1e-9

    def test_cosine_similarity_zero_vector(self):
        assert cosine_similarity(np.zeros(3), np.ones(3)) == 0.0

    def test_filename_boost_multiplies_by_exactly_1_1(self):
        query = [0.3, 0.4, 0.5]
        embedding = [0.5, 0.1, 0.2]
        plain = make_chunk("notes.txt", "jewel facts", embedding)
        boosted = make_chunk("Jewels.txt", "jewel facts", embedding)

        results = rank(query, [plain, boosted], ["jewel"])

        base = cosine_similarity(np.asarray(query, dtype=np.float64), plain.embedding)
        assert results[0].chunk is boosted
        assert results[0].score == base * 1.1
        assert results[1].score == base

    def test_boost_can_exceed_one(self):
        chunk = make_chunk("jewels.txt", "jewel", [1.0, 0.0])
        results = rank([1.0, 0.0], [chunk], ["jewel"])
        assert results[0].score > 1.0

    def test_sorted_descending_and_truncated(self):
        chunks = [make_chunk(f"f{i}.txt", "x", [1.0, float(i)]) for i in range(8)]
        results = rank([1.0, 0.0], chunks, [], top_k=5)

        assert len(results) == 5
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert results[0].chunk.file_name == "f0.txt"

    def test_top_k_larger_than_candidates(self):
        chunks = [make_chunk("a.txt", "x", [1.0, 0.0]), make_chunk("b.txt", "y", [0.0, 1.0])]
        assert len(rank([1.0, 1.0], chunks, [], top_k=5)) == 2

    def test_ties_keep_original_order_and_repeat_identically(self):
        chunks = [make_chunk(name, "same", [1.0, 1.0]) for name in ("c.txt", "a.txt", "b.txt")]

        first = rank([1.0, 1.0], chunks, [])
        second = rank([1.0, 1.0], chunks, [])

        assert [r.chunk.file_name for r in first] == ["c.txt", "a.txt", "b.txt"]
        assert [r.chunk.file_name for r in first] == [r.chunk.file_name for r in second]

    def test_format_knowledge_labels_sources(self, jewel_cache):
        scored = rank([1.0, 0.0, 0.0], jewel_cache.chunks[2:], [])
        text = format_knowledge(scored)
        assert text.startswith("Source: faq.txt (chunk 3)\nA Jewel drops")

    def test_format_knowledge_empty(self):
        assert format_knowledge([]) == ""


class TestRetrievalEngine:

    @pytest.mark.asyncio
    async def test_jewel_query_reduces_to_two_chunks_ordered_by_similarity(self, jewel_cache):
        engine, embedding_model = engine_for(jewel_cache, [1.0, 0.0, 0.0])

        results = await engine.retrieve("how to make a jewel")

        assert [r.chunk.file_name for r in results] == ["faq.txt", "guide.txt"]
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(0.6)
        embedding_model.embed_query.assert_awaited_once_with("how to make a jewel")

    @pytest.mark.asyncio
    async def test_empty_cache_returns_empty_string(self):
        engine, embedding_model = engine_for(KnowledgeCache([]), [1.0])

        assert await engine.find_relevant_knowledge("what are jewels used for in the game") == ""
        embedding_model.embed_query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_candidates_returns_empty_string_without_fallback(self, jewel_cache):
        engine, embedding_model = engine_for(jewel_cache, [1.0, 0.0, 0.0])

        assert await engine.find_relevant_knowledge("explain tokenomics of essence") == ""
        embedding_model.embed_query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_keywords_searches_full_cache(self, jewel_cache):
        engine, _ = engine_for(jewel_cache, [0.0, 0.0, 1.0])

        results = await engine.retrieve("tell me about earth")

        assert len(results) == 3
        assert results[0].chunk.file_name == "civilians.txt"

    @pytest.mark.asyncio
    async def test_embedding_unavailable_returns_empty_and_warns(self, jewel_cache, caplog):
        engine, _ = engine_for(jewel_cache, [])

        with caplog.at_level(logging.WARNING):
            assert await engine.find_relevant_knowledge("how to make a jewel") == ""

        assert "embedding unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_embedder_exception_returns_empty_and_warns(self, jewel_cache, caplog):
        embedding_model = Mock()
        embedding_model.embed_query = AsyncMock(side_effect=Exception("boom"))
        engine = RetrievalEngine(jewel_cache, embedding_model)

        with caplog.at_level(logging.WARNING):
            assert await engine.find_relevant_knowledge("how to make a jewel today") == ""

        assert "boom" in caplog.text

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_malformed_embedding_values_return_empty(self, mock_client_class, jewel_cache):
        response = Mock()
        response.status_code = 200
        response.json.return_value = {"embedding": {"values": [None, 0.5, 0.1]}}
        mock_client = MagicMock()
        mock_client.__aenter__.return_value.post = AsyncMock(return_value=response)
        mock_client_class.return_value = mock_client

        engine = RetrievalEngine(jewel_cache, EmbeddingModel(api_key="test_key"))

        assert await engine.find_relevant_knowledge("how to make a jewel today") == ""

    @pytest.mark.asyncio
    async def test_dimension_mismatch_returns_empty(self, jewel_cache):
        engine, _ = engine_for(jewel_cache, [1.0, 0.0])
        assert await engine.retrieve("how to make a jewel") == []

    @pytest.mark.asyncio
    async def test_empty_query(self, jewel_cache):
        engine, _ = engine_for(jewel_cache, [1.0, 0.0, 0.0])
        assert await engine.retrieve("   ") == []

    @pytest.mark.asyncio
    async def test_find_relevant_knowledge_formats_results(self, jewel_cache):
        engine, _ = engine_for(jewel_cache, [1.0, 0.0, 0.0])

        knowledge = await engine.find_relevant_knowledge("how to make a jewel")

        assert "Source: faq.txt (chunk 3)" in knowledge
        assert "Source: guide.txt (chunk 0)" in knowledge
        assert knowledge.index("faq.txt") < knowledge.index("guide.txt")
        assert "civilians" not in knowledge.lower()
