"""
Data models for transcription processes (one uploaded audio file run
through one template).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProcessStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ProcessMetadata(BaseModel):
    name: str
    size: int
    type: str
    duration: Optional[float] = None


class ProcessResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: Optional[dict[str, Any]] = None  # Raw vendor transcript JSON
    structured_data: Optional[dict[str, Any]] = Field(default=None, alias="structuredData")
    error: Optional[str] = None


class Process(BaseModel):
    """A single audio file moving through transcription and extraction."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    template_id: str = Field(alias="templateId")
    transcript_id: Optional[str] = Field(default=None, alias="transcriptId")
    created_by: str = Field(default="anonymous", alias="createdBy")
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utcnow, alias="updatedAt")
    status: ProcessStatus = ProcessStatus.PROCESSING
    metadata: ProcessMetadata
    result: Optional[ProcessResult] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
