"""Data models for the Earthie backend."""
from .chunk import KnowledgeChunk, ScoredChunk
from .conversation import Message
from .document import KnowledgeDocument
from .api import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    SummarizeRequest,
    SummarizeResponse,
    TranslateRequest,
    TranslateResponse,
)

__all__ = [
    "KnowledgeChunk",
    "ScoredChunk",
    "Message",
    "KnowledgeDocument",
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
    "SummarizeRequest",
    "SummarizeResponse",
    "TranslateRequest",
    "TranslateResponse",
]
