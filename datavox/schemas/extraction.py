"""
Data models for rendered extraction results.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from datavox.schemas.template import FieldType


# Shown wherever a field has no usable value
NO_DATA_MARKER = "No data available"


class RenderKind(str, Enum):
    EMPTY = "empty"
    TEXT = "text"
    LIST = "list"
    QUOTES = "quotes"
    DATE = "date"
    NAME = "name"


class QuoteEntry(BaseModel):
    speaker: Optional[str] = None
    text: str


class RenderedValue(BaseModel):
    """Displayable form of one extracted field."""
    field_name: str
    field_type: FieldType
    kind: RenderKind
    text: Optional[str] = None
    items: list[str] = Field(default_factory=list)
    quotes: list[QuoteEntry] = Field(default_factory=list)
    badge: Optional[str] = None
    raw: Any = None

    @property
    def is_empty(self) -> bool:
        return self.kind == RenderKind.EMPTY

    def as_text(self) -> str:
        """Plain-text rendering for terminals and logs."""
        if self.kind == RenderKind.LIST:
            return "\n".join(f"- {item}" for item in self.items)
        if self.kind == RenderKind.QUOTES:
            lines = []
            for quote in self.quotes:
                if quote.speaker:
                    lines.append(f'{quote.speaker}: "{quote.text}"')
                else:
                    lines.append(f'"{quote.text}"')
            return "\n".join(lines)
        text = self.text or ""
        if self.badge:
            return f"{text} [{self.badge}]"
        return text


class RenderedResult(BaseModel):
    """Every template field rendered, in template order."""
    template_id: str
    fields: list[RenderedValue]
    missing: list[str] = Field(default_factory=list)
    extra_keys: list[str] = Field(default_factory=list)


class ExtractionOutcome(BaseModel):
    """Full record of one extraction call for a (transcript, template) pair."""
    transcript_id: str
    template_id: str
    prompt: str
    raw_response: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    rendered: Optional[RenderedResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
