"""Main entry point for the Earthie companion API."""
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import PORT, CORS_ORIGINS, LOG_LEVEL, LOG_FORMAT, KNOWLEDGE_CACHE_PATH
from logger import setup_logging
from models.api import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    SummarizeRequest,
    SummarizeResponse,
    TranslateRequest,
    TranslateResponse,
)
from services.article_cache import ArticleCache
from services.chat_service import ChatService, MissingUserMessageError
from services.embedding_model import EmbeddingModel
from services.knowledge_cache import KnowledgeCache
from services.llm_client import LLMClient
from services.prompt_builder import PromptBuilder
from services.query_classifier import QueryClassifier
from services.retrieval_engine import RetrievalEngine
from services.text_services import TextServices, TextServiceError

setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Earthie",
    description="Earth2 companion chatbot and article text services",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Build every service once and keep them on app.state."""
    logger.info("Initializing Earthie services...")

    try:
        knowledge_cache = KnowledgeCache.load(KNOWLEDGE_CACHE_PATH)
        embedding_model = EmbeddingModel()
        llm_client = LLMClient()

        app.state.knowledge_cache = knowledge_cache
        app.state.chat_service = ChatService(
            retrieval_engine=RetrievalEngine(knowledge_cache, embedding_model),
            llm_client=llm_client,
            prompt_builder=PromptBuilder(),
            classifier=QueryClassifier(),
        )
        app.state.text_services = TextServices(llm_client)
        logger.info("Initialized chat and text services")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    try:
        app.state.article_cache = ArticleCache()
    except ValueError as e:
        # Summaries and translations still work, just uncached
        logger.warning(f"Article cache disabled: {e}")
        app.state.article_cache = None

    logger.info("All services initialized successfully")


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_text_services(request: Request) -> TextServices:
    return request.app.state.text_services


def get_article_cache(request: Request):
    return getattr(request.app.state, "article_cache", None)


def get_knowledge_cache(request: Request):
    return getattr(request.app.state, "knowledge_cache", None)


ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'body'}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.warning(f"Invalid request to {request.url.path}: {details}")
    return error_response(400, f"Invalid request: {details}")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Earthie API"}


@app.get("/health")
async def health(knowledge_cache=Depends(get_knowledge_cache)):
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "earthie",
        "version": "1.0.0",
        "knowledge_cache": {
            "loaded": bool(knowledge_cache and knowledge_cache.is_loaded),
            "chunks": len(knowledge_cache) if knowledge_cache else 0,
            "source": knowledge_cache.source if knowledge_cache else None,
        },
    }


@app.post("/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
async def chat_endpoint(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service)
):
    """
    Answer the latest user message of a conversation.

    Retrieval and generation failures are folded into the reply text; only
    a conversation with no latest user message is rejected.
    """
    try:
        reply = await chat_service.respond(request.messages, request.context)
        return ChatResponse(response=reply)
    except MissingUserMessageError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Chat API error: {e}", exc_info=True)
        return error_response(500, "Failed to generate response")


@app.post("/summarize", response_model=SummarizeResponse, responses=ERROR_RESPONSES)
async def summarize_endpoint(
    request: SummarizeRequest,
    text_services: TextServices = Depends(get_text_services),
    article_cache=Depends(get_article_cache)
):
    """Summarize an article, serving and filling the Supabase cache."""
    try:
        if article_cache is not None:
            cached = article_cache.get_summary(request.article_id, request.language)
            if cached:
                return SummarizeResponse(summary=cached)

        logger.info(f"No cached summary for article {request.article_id} in {request.language}")
        summary = await text_services.summarize(request.text)

        if article_cache is not None:
            article_cache.save_summary(request.article_id, request.language, summary)

        return SummarizeResponse(summary=summary)
    except ValueError as e:
        return error_response(400, str(e))
    except TextServiceError as e:
        logger.error(f"Summarization failed for article {request.article_id}: {e}")
        return error_response(500, str(e))
    except Exception as e:
        logger.error(f"Unexpected error during summarization: {e}", exc_info=True)
        return error_response(500, "An unexpected error occurred during summarization.")


@app.post("/translate", response_model=TranslateResponse, responses=ERROR_RESPONSES)
async def translate_endpoint(
    request: TranslateRequest,
    text_services: TextServices = Depends(get_text_services),
    article_cache=Depends(get_article_cache)
):
    """Translate an article, serving and filling the Supabase cache."""
    try:
        if article_cache is not None:
            cached = article_cache.get_translation(request.article_id, request.target_language)
            if cached:
                translated_text, title = cached
                return TranslateResponse(translated_text=translated_text, title=title)

        logger.info(f"No cached translation for article {request.article_id} to {request.target_language}")
        translated_text = await text_services.translate(request.text, request.target_language)

        if article_cache is not None:
            article_cache.save_translation(request.article_id, request.target_language, translated_text)
            article_cache.remember_language(request.target_language)

        return TranslateResponse(translated_text=translated_text, title=None)
    except ValueError as e:
        return error_response(400, str(e))
    except TextServiceError as e:
        logger.error(f"Translation failed for article {request.article_id}: {e}")
        return error_response(500, str(e))
    except Exception as e:
        logger.error(f"Unexpected error during translation: {e}", exc_info=True)
        return error_response(500, "An unexpected error occurred during translation.")


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Earthie API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
