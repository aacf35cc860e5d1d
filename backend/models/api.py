"""Request and response models for the HTTP API."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.conversation import Message


class ChatRequest(BaseModel):
    messages: List[Message]
    context: Optional[str] = None


class ChatResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str


class SummarizeRequest(BaseModel):
    """Summarize an E2 article, cached per article and language."""
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)
    article_id: int = Field(..., alias="articleId")


class SummarizeResponse(BaseModel):
    summary: str


class TranslateRequest(BaseModel):
    """Translate an E2 article, cached per article and target language."""
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1)
    target_language: str = Field(..., min_length=1, alias="targetLanguage")
    article_id: int = Field(..., alias="articleId")


class TranslateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    translated_text: str = Field(..., serialization_alias="translatedText")
    title: Optional[str] = None
