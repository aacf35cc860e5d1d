"""Conversation data models."""
from typing import Literal

from pydantic import BaseModel, field_validator


class Message(BaseModel):
    """A single chat turn."""
    role: Literal["user", "assistant"]
    content: str

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        # Older clients send Gemini's "model" role for assistant turns
        if isinstance(value, str) and value.lower() == "model":
            return "assistant"
        return value.lower() if isinstance(value, str) else value
