"""
Data models for extraction templates and their typed fields.

Wire format is camelCase (``customPrompt``, ``createdAt`` ...) to match
the dashboard's JSON; attributes are snake_case and either name is
accepted on input.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    QUOTE = "quote"
    KEY_FINDING = "keyFinding"
    NAME = "name"
    CUSTOM = "custom"


class FieldValidation(BaseModel):
    """Optional validation hints captured by the template editor."""

    model_config = ConfigDict(populate_by_name=True)

    pattern: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    custom_rule: Optional[str] = Field(default=None, alias="customRule")


class TemplateField(BaseModel):
    """A single named, typed value to pull out of a transcript."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str  # Literal JSON key in the extraction response
    type: FieldType = FieldType.TEXT
    description: Optional[str] = None
    required: bool = False
    custom_prompt: Optional[str] = Field(default=None, alias="customPrompt")
    validation: Optional[FieldValidation] = None


class Template(BaseModel):
    """User-authored (or built-in) extraction schema."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    category: str = "My Templates"
    subcategory: Optional[str] = None
    fields: list[TemplateField] = Field(default_factory=list)
    custom_prompt: Optional[str] = Field(default=None, alias="customPrompt")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utcnow, alias="updatedAt")
    is_default: bool = Field(default=False, alias="isDefault")

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TemplateValidationError(ValueError):
    """Raised when a template cannot be used for an extraction call."""

    def __init__(self, template_id: str, problems: list[str]) -> None:
        self.template_id = template_id
        self.problems = problems
        super().__init__(f"Template '{template_id}' is not usable: {'; '.join(problems)}")


def template_problems(template: Template) -> list[str]:
    """Return every reason the template would produce an ambiguous or unusable extraction."""
    problems: list[str] = []

    if not template.fields:
        problems.append("template has no fields")

    for field in template.fields:
        if not field.name.strip():
            problems.append(f"field '{field.id}' has an empty name")
        if field.type == FieldType.CUSTOM and not (field.custom_prompt or "").strip():
            problems.append(f"custom field '{field.name}' is missing a customPrompt")

    name_counts = Counter(f.name for f in template.fields if f.name.strip())
    for name, count in name_counts.items():
        if count > 1:
            problems.append(f"field name '{name}' is used {count} times")

    id_counts = Counter(f.id for f in template.fields)
    for field_id, count in id_counts.items():
        if count > 1:
            problems.append(f"field id '{field_id}' is used {count} times")

    return problems


def validate_for_extraction(template: Template) -> None:
    """Raise TemplateValidationError if the template is not fit for an extraction call."""
    problems = template_problems(template)
    if problems:
        raise TemplateValidationError(template.id, problems)
