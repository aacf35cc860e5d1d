"""Services for the Earthie backend."""
from .knowledge_cache import KnowledgeCache
from .embedding_model import EmbeddingModel
from .retrieval_engine import RetrievalEngine
from .query_classifier import QueryClassifier, Classification
from .prompt_builder import PromptBuilder
from .llm_client import LLMClient, GenerationResult, GenerationErrorKind
from .chat_service import ChatService, MissingUserMessageError
from .text_services import TextServices, TextServiceError
from .article_cache import ArticleCache
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine

__all__ = ['KnowledgeCache', 'EmbeddingModel', 'RetrievalEngine', 'QueryClassifier', 'Classification', 'PromptBuilder', 'LLMClient', 'GenerationResult', 'GenerationErrorKind', 'ChatService', 'MissingUserMessageError', 'TextServices', 'TextServiceError', 'ArticleCache', 'DocumentLoader', 'ChunkingEngine']
