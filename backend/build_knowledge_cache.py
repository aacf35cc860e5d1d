"""
Knowledge cache builder for the Earthie chatbot.

This script:
1. Loads every supported file from the knowledge directory
2. Splits each document into overlapping character chunks
3. Embeds the chunks with Gemini text-embedding-004
4. Writes the JSON cache artifact the API loads at startup

Usage:
    python build_knowledge_cache.py [--knowledge-dir DIR] [--output PATH]
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

import numpy as np

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import GEMINI_API_KEY, KNOWLEDGE_CACHE_PATH, KNOWLEDGE_DIR, LOG_LEVEL
from logger import setup_logging
from models.chunk import KnowledgeChunk
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.embedding_model import EmbeddingModel

logger = logging.getLogger(__name__)


async def build_chunks(
    loader: DocumentLoader,
    chunking_engine: ChunkingEngine,
    embedding_model: EmbeddingModel
) -> List[KnowledgeChunk]:
    """
    Load, chunk and embed every knowledge document.

    A document whose embedding request fails is skipped so one bad file
    does not sink the whole build.
    """
    documents = loader.load_documents()
    all_chunks: List[KnowledgeChunk] = []

    for position, document in enumerate(documents, start=1):
        logger.info(f"[{position}/{len(documents)}] Processing {document.filename}...")
        texts = chunking_engine.chunk_document(document)
        if not texts:
            continue

        try:
            embeddings = await embedding_model.embed_batch(texts)
        except (ValueError, RuntimeError) as e:
            logger.error(f"Failed to embed {document.filename}, skipping: {e}")
            continue

        for index, (text, embedding) in enumerate(zip(texts, embeddings)):
            if not embedding:
                logger.warning(f"Empty embedding for {document.filename} chunk {index}, skipping")
                continue
            all_chunks.append(KnowledgeChunk(
                file_name=document.filename,
                chunk_index=index,
                content=text,
                embedding=np.asarray(embedding, dtype=np.float64),
            ))

    return all_chunks


def save_cache(chunks: List[KnowledgeChunk], output_path: Path) -> None:
    """Write chunks as the JSON array read by KnowledgeCache.load."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump([chunk.to_record() for chunk in chunks], f)
    logger.info(f"Saved {len(chunks)} knowledge chunks to {output_path}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the Earthie knowledge cache")
    parser.add_argument("--knowledge-dir", default=KNOWLEDGE_DIR, help="Directory of source documents")
    parser.add_argument("--output", default=KNOWLEDGE_CACHE_PATH, help="Cache artifact path")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    embedding_model = EmbeddingModel(api_key=GEMINI_API_KEY, max_retries=3)
    loader = DocumentLoader(docs_directory=args.knowledge_dir)
    chunking_engine = ChunkingEngine()

    chunks = await build_chunks(loader, chunking_engine, embedding_model)
    if not chunks:
        logger.warning("No chunks were embedded; writing an empty cache")

    save_cache(chunks, Path(args.output))
    return 0


def main(argv=None) -> int:
    setup_logging(LOG_LEVEL, "text")
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.warning("Build interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Knowledge cache build failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
