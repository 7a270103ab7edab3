"""Pydantic models for the /prompt request/response contract."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"

    @classmethod
    def from_accept(cls, accept: str | None) -> "OutputFormat":
        value = (accept or "").lower()
        if "markdown" in value:
            return cls.MARKDOWN
        if "json" in value:
            return cls.JSON
        return cls.TEXT

    @property
    def media_type(self) -> str:
        return {
            OutputFormat.TEXT: "text/plain",
            OutputFormat.JSON: "application/json",
            OutputFormat.MARKDOWN: "text/markdown",
        }[self]


class PromptRequest(BaseModel):
    """JSON body for POST /prompt."""

    prompt: str = Field("", description='Free-text query, e.g. "5 eth to usd"')

    @field_validator("prompt", mode="before")
    @classmethod
    def coerce_prompt(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip()


class PromptResponse(BaseModel):
    prompt: str
    result: str
