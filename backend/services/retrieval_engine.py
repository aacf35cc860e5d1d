"""Retrieval engine: keyword pre-filter, cosine ranking and knowledge formatting."""
import logging
import re
from typing import List, Sequence

import numpy as np

from config import TOP_K, FILENAME_BOOST
from models.chunk import KnowledgeChunk, ScoredChunk
from services.embedding_model import EmbeddingModel
from services.knowledge_cache import KnowledgeCache

logger = logging.getLogger(__name__)

# Words too common in Earth2 questions to narrow the search
STOPWORDS = frozenset({
    "what", "tell", "about", "earth", "earth2", "that", "this", "with",
    "have", "from", "your", "does", "when", "where", "which", "there",
    "their", "would", "could", "should", "into", "more",
})

MIN_KEYWORD_LENGTH = 4


def extract_keywords(query: str) -> List[str]:
    """
    Lowercase the query and keep the words useful for substring filtering.

    Tokens of three characters or fewer and stopwords are dropped;
    duplicates are removed while keeping first-seen order.
    """
    keywords: List[str] = []
    for token in re.split(r"\W+", query.lower()):
        if len(token) < MIN_KEYWORD_LENGTH or token in STOPWORDS:
            continue
        if token not in keywords:
            keywords.append(token)
    return keywords


def filter_candidates(keywords: Sequence[str], chunks: Sequence[KnowledgeChunk]) -> List[KnowledgeChunk]:
    """
    Keep chunks whose content or file name mentions at least one keyword.

    With no keywords there is nothing to filter on and every chunk is a
    candidate.
    """
    if not keywords:
        return list(chunks)

    candidates = []
    for chunk in chunks:
        content = chunk.content.lower()
        file_name = chunk.file_name.lower()
        if any(k in content or k in file_name for k in keywords):
            candidates.append(chunk)
    return candidates


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine of the angle between two vectors; 0.0 if either is all zeros."""
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.dot(a, b) / norm)


def rank(
    query_embedding: Sequence[float],
    candidates: Sequence[KnowledgeChunk],
    keywords: Sequence[str],
    top_k: int = TOP_K,
    boost: float = FILENAME_BOOST
) -> List[ScoredChunk]:
    """
    Score candidates against the query and return the best top_k.

    Chunks whose file name contains a query keyword get their score
    multiplied by `boost`; boosted scores may exceed 1.0. The sort is
    stable, so equal scores keep their cache order.
    """
    query_vector = np.asarray(query_embedding, dtype=np.float64)

    scored: List[ScoredChunk] = []
    for chunk in candidates:
        score = cosine_similarity(query_vector, chunk.embedding)
        file_name = chunk.file_name.lower()
        if any(k in file_name for k in keywords):
            score *= boost
        scored.append(ScoredChunk(chunk=chunk, score=score))

    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:top_k]


def format_knowledge(scored_chunks: Sequence[ScoredChunk]) -> str:
    """Render retrieved chunks as source-labelled blocks for the prompt."""
    blocks = [
        f"Source: {s.chunk.file_name} (chunk {s.chunk.chunk_index})\n{s.chunk.content}"
        for s in scored_chunks
    ]
    return "\n\n---\n\n".join(blocks)


class RetrievalEngine:
    """Orchestrate keyword filtering, query embedding and similarity ranking."""

    def __init__(
        self,
        knowledge_cache: KnowledgeCache,
        embedding_model: EmbeddingModel,
        top_k: int = TOP_K,
        boost: float = FILENAME_BOOST
    ):
        """
        Initialize the retrieval engine.

        Args:
            knowledge_cache: Loaded (possibly empty) knowledge cache
            embedding_model: EmbeddingModel used to embed user queries
            top_k: Maximum number of chunks to return
            boost: Score multiplier for file-name keyword matches
        """
        self.knowledge_cache = knowledge_cache
        self.embedding_model = embedding_model
        self.top_k = top_k
        self.boost = boost
        logger.info(f"Initialized RetrievalEngine over {len(knowledge_cache)} chunks")

    async def retrieve(self, query: str) -> List[ScoredChunk]:
        """
        Retrieve the most relevant chunks for a query.

        Steps:
        1. Extract keywords and pre-filter the cache by substring match
        2. Stop with no results if the filter leaves nothing; there is no
           fallback to scanning the whole cache
        3. Embed the query; an unavailable embedding yields no results
        4. Rank candidates by (boosted) cosine similarity

        Args:
            query: Latest user message

        Returns:
            Up to top_k scored chunks, best first; empty on any degradation
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        if not self.knowledge_cache.is_loaded:
            logger.debug("Knowledge cache is empty, skipping retrieval")
            return []

        keywords = extract_keywords(query)
        candidates = filter_candidates(keywords, self.knowledge_cache.chunks)
        logger.debug(
            f"Keyword filter {keywords} kept {len(candidates)}/{len(self.knowledge_cache)} chunks"
        )

        if not candidates:
            logger.info(f"No chunks matched keywords {keywords}; returning no context")
            return []

        try:
            query_embedding = await self.embedding_model.embed_query(query)
        except Exception as e:
            logger.warning(f"Query embedding raised {type(e).__name__}: {e}")
            query_embedding = []

        if not query_embedding:
            logger.warning("Query embedding unavailable, continuing without knowledge context")
            return []

        if len(query_embedding) != self.knowledge_cache.dimension:
            logger.error(
                f"Query embedding has {len(query_embedding)} dimensions but the cache "
                f"uses {self.knowledge_cache.dimension}; skipping retrieval"
            )
            return []

        results = rank(query_embedding, candidates, keywords, top_k=self.top_k, boost=self.boost)

        if results:
            logger.info(
                f"Retrieved {len(results)} chunks (top score: {results[0].score:.3f}) "
                f"from {len(candidates)} candidates"
            )
        return results

    async def find_relevant_knowledge(self, query: str) -> str:
        """Return formatted knowledge for the prompt, or "" when nothing is found."""
        return format_knowledge(await self.retrieve(query))
