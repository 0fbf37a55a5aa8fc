"""Pydantic models describing completion endpoint payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CompletionBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# OpenAI-compatible /chat/completions --------------------------------------


class ChatMessage(CompletionBaseModel):
    role: str
    content: str | None = None


class ChatChoice(CompletionBaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: str | None = None


class ChatCompletionResponse(CompletionBaseModel):
    id: str | None = None
    model: str | None = None
    choices: list[ChatChoice] = Field(default_factory=list["ChatChoice"])

    def text(self) -> str | None:
        if not self.choices:
            return None
        return self.choices[0].message.content


# Anthropic /v1/messages ----------------------------------------------------


class ContentBlock(CompletionBaseModel):
    type: str
    text: str | None = None


class MessagesResponse(CompletionBaseModel):
    id: str | None = None
    model: str | None = None
    content: list[ContentBlock] = Field(default_factory=list["ContentBlock"])
    stop_reason: str | None = None

    def text(self) -> str | None:
        parts = [block.text for block in self.content if block.type == "text" and block.text]
        return "".join(parts) or None


class ErrorDetail(CompletionBaseModel):
    message: str = ""
    type: str | None = None


class ErrorResponse(CompletionBaseModel):
    error: ErrorDetail
