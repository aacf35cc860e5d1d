"""In-memory knowledge cache loaded from the precomputed JSON artifact."""
import json
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Union

import numpy as np

from models.chunk import KnowledgeChunk

logger = logging.getLogger(__name__)


class KnowledgeCache:
    """
    Read-only collection of embedded knowledge chunks.

    Built once at application startup and shared by every request. Nothing
    mutates it after construction, so concurrent readers need no locking.
    """

    def __init__(self, chunks: Optional[List[KnowledgeChunk]] = None, source: Optional[str] = None):
        self._chunks: List[KnowledgeChunk] = list(chunks or [])
        self.source = source
        self.dimension: Optional[int] = (
            len(self._chunks[0].embedding) if self._chunks else None
        )

    @property
    def chunks(self) -> List[KnowledgeChunk]:
        return self._chunks

    @property
    def is_loaded(self) -> bool:
        return bool(self._chunks)

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[KnowledgeChunk]:
        return iter(self._chunks)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "KnowledgeCache":
        """
        Load the cache artifact from disk.

        A missing, empty or corrupt artifact yields an empty cache and a
        warning; the chat keeps working without retrieval. Individual records
        that are malformed, have empty content, or whose embedding size
        differs from the first valid record are skipped.

        Args:
            path: Location of the JSON array of
                {fileName, chunkIndex, content, embedding} records

        Returns:
            KnowledgeCache, possibly empty
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Knowledge cache not found at {path}; retrieval disabled")
            return cls(source=str(path))

        try:
            with path.open("r", encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read knowledge cache {path}: {e}; retrieval disabled")
            return cls(source=str(path))

        if not isinstance(records, list) or not records:
            logger.warning(f"Knowledge cache {path} is empty or not an array; retrieval disabled")
            return cls(source=str(path))

        chunks: List[KnowledgeChunk] = []
        dimension: Optional[int] = None
        skipped = 0

        for position, record in enumerate(records):
            chunk = cls._parse_record(record)
            if chunk is None:
                skipped += 1
                continue

            if dimension is None:
                dimension = len(chunk.embedding)
            elif len(chunk.embedding) != dimension:
                logger.warning(
                    f"Skipping record {position} ({chunk.file_name}#{chunk.chunk_index}): "
                    f"embedding has {len(chunk.embedding)} dimensions, expected {dimension}"
                )
                skipped += 1
                continue

            chunks.append(chunk)

        if skipped:
            logger.warning(f"Skipped {skipped} invalid records in knowledge cache {path}")

        if not chunks:
            logger.warning(f"Knowledge cache {path} has no usable chunks; retrieval disabled")
            return cls(source=str(path))

        logger.info(
            f"Loaded {len(chunks)} knowledge chunks "
            f"({dimension}-dimensional embeddings) from {path}"
        )
        return cls(chunks, source=str(path))

    @staticmethod
    def _parse_record(record) -> Optional[KnowledgeChunk]:
        if not isinstance(record, dict):
            return None

        content = record.get("content")
        file_name = record.get("fileName")
        embedding = record.get("embedding")
        if not isinstance(content, str) or not content.strip():
            return None
        if not isinstance(file_name, str) or not isinstance(embedding, list) or not embedding:
            return None

        try:
            vector = np.asarray(embedding, dtype=np.float64)
            chunk_index = int(record.get("chunkIndex", 0))
        except (TypeError, ValueError):
            return None

        if vector.ndim != 1 or not np.isfinite(vector).all():
            return None

        vector.setflags(write=False)
        return KnowledgeChunk(
            file_name=file_name,
            chunk_index=chunk_index,
            content=content,
            embedding=vector,
        )
