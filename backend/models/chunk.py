"""Knowledge chunk data models."""
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class KnowledgeChunk:
    """A segment of a knowledge document paired with its precomputed embedding."""
    file_name: str
    chunk_index: int
    content: str
    embedding: np.ndarray

    def to_record(self) -> dict:
        """Serialize to the camelCase record stored in the cache artifact."""
        return {
            "fileName": self.file_name,
            "chunkIndex": self.chunk_index,
            "content": self.content,
            "embedding": [float(v) for v in self.embedding],
        }


@dataclass
class ScoredChunk:
    """Chunk with the similarity score computed for one query."""
    chunk: KnowledgeChunk
    score: float  # cosine similarity, possibly boosted above 1.0
