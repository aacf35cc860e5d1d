"""Shared fixtures for the Earthie backend tests."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import numpy as np
import pytest
from unittest.mock import Mock, patch

from models.chunk import KnowledgeChunk


def make_chunk(file_name, content, embedding, chunk_index=0):
    return KnowledgeChunk(
        file_name=file_name,
        chunk_index=chunk_index,
        content=content,
        embedding=np.asarray(embedding, dtype=np.float64),
    )


@pytest.fixture
def fake_encoder():
    """Whitespace tokenizer standing in for tiktoken's o200k_base."""
    encoder = Mock()
    encoder.encode.side_effect = lambda text: text.split()
    return encoder


@pytest.fixture
def prompt_builder(fake_encoder):
    from services.prompt_builder import PromptBuilder
    with patch('services.prompt_builder.tiktoken.get_encoding', return_value=fake_encoder):
        yield PromptBuilder()
