from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


# --- Requests ---


class SearchRequest(BaseModel):
    query: str = ""
    include_images: bool = Field(default=True, alias="includeImages")
    include_image_descriptions: bool = Field(default=True, alias="includeImageDescriptions")

    model_config = {"populate_by_name": True}


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)


class ResearchRequest(BaseModel):
    query: str
    conversation_id: str = "default"
    suggestion: str | None = None


# --- Responses ---


class SuggestionInfo(BaseModel):
    label: str
    prefix: str


class SuggestionsResponse(BaseModel):
    suggestions: list[SuggestionInfo]
