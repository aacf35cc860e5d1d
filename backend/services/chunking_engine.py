"""Chunking engine: fixed-size character windows with overlap."""
import logging
from typing import List

from config import CHUNK_SIZE, CHUNK_OVERLAP
from models.document import KnowledgeDocument

logger = logging.getLogger(__name__)


class ChunkingEngine:
    """Segments knowledge documents into overlapping character windows."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Window size in characters
            chunk_overlap: Characters shared by consecutive windows

        Raises:
            ValueError: If overlap is not smaller than the window
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk_text(self, text: str) -> List[str]:
        """
        Split text into windows; the last window always ends at the end of text.

        Args:
            text: Normalized document text

        Returns:
            List of chunk strings, empty for empty text
        """
        chunks = []
        start = 0
        step = self.chunk_size - self.chunk_overlap

        while start < len(text):
            end = min(start + self.chunk_size, len(text))
            chunks.append(text[start:end])
            if end == len(text):
                break
            start += step

        return chunks

    def chunk_document(self, document: KnowledgeDocument) -> List[str]:
        chunks = self.chunk_text(document.text)
        logger.info(f"Split {document.filename} into {len(chunks)} chunks")
        return chunks
