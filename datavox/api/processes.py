"""
API Router: Transcription Process Endpoints.

Upload audio against a template, follow the process through
transcription and extraction, and read or export the structured data.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from pydantic import BaseModel

from datavox.api.dependencies import get_pipeline, get_process_store, get_template_store
from datavox.logging_config import get_logger
from datavox.schemas.extraction import RenderedResult
from datavox.schemas.process import Process, ProcessStatus
from datavox.schemas.template import TemplateValidationError
from datavox.services import export_service
from datavox.services.field_renderer import render_result
from datavox.services.process_pipeline import (
    ExtractionInProgressError,
    ProcessPipeline,
    ProcessStateError,
    UploadRejectedError,
)
from datavox.services.transcription_client import TranscriptionServiceError
from datavox.stores.process_store import ProcessStore
from datavox.stores.template_store import TemplateStore

logger = get_logger(__name__)
router = APIRouter(prefix="/processes", tags=["Processes"])


class ReextractRequest(BaseModel):
    template_id: str | None = None


def _require(store: ProcessStore, process_id: str) -> Process:
    process = store.get(process_id)
    if process is None:
        raise HTTPException(status_code=404, detail="Process not found")
    return process


@router.post("/", status_code=201)
async def upload_audio(
    file: UploadFile = File(...),
    template_id: str = Form(...),
    title: str | None = Form(None),
    created_by: str = Form("anonymous"),
    pipeline: ProcessPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    """Upload an audio file and start transcription + extraction."""
    data = await file.read()

    try:
        process = await pipeline.submit(
            filename=file.filename or "audio",
            data=data,
            template_id=template_id,
            content_type=file.content_type,
            title=title,
            created_by=created_by,
        )
    except UploadRejectedError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except KeyError:
        raise HTTPException(status_code=404, detail="Template not found")
    except TemplateValidationError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "problems": e.problems})
    except TranscriptionServiceError as e:
        logger.error("upload_audio_error", template_id=template_id, error=str(e))
        raise HTTPException(status_code=502, detail=str(e))

    return process.to_wire()


@router.get("/")
async def list_processes(
    created_by: str | None = None,
    template_id: str | None = None,
    status: ProcessStatus | None = None,
    store: ProcessStore = Depends(get_process_store),
) -> dict[str, Any]:
    """List processes, newest first, optionally filtered."""
    processes = store.all()
    if created_by:
        processes = [p for p in processes if p.created_by == created_by]
    if template_id:
        processes = [p for p in processes if p.template_id == template_id]
    if status:
        processes = [p for p in processes if p.status == status]

    return {"data": [p.to_wire() for p in processes], "total": len(processes)}


@router.get("/{process_id}")
async def get_process(
    process_id: str,
    store: ProcessStore = Depends(get_process_store),
) -> dict[str, Any]:
    return _require(store, process_id).to_wire()


@router.delete("/{process_id}", status_code=204)
async def delete_process(
    process_id: str,
    store: ProcessStore = Depends(get_process_store),
) -> None:
    try:
        await store.delete(process_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Process not found")


@router.post("/{process_id}/refresh")
async def refresh_process(
    process_id: str,
    pipeline: ProcessPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    """Poll the transcript once and run extraction if it has completed."""
    try:
        process = await pipeline.refresh(process_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Process not found")
    return process.to_wire()


@router.post("/{process_id}/extract")
async def reextract_process(
    process_id: str,
    body: ReextractRequest | None = None,
    pipeline: ProcessPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    """Re-run extraction for a completed process."""
    template_id = body.template_id if body else None

    try:
        outcome = await pipeline.reextract(process_id, template_id=template_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Process or template not found")
    except ProcessStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ExtractionInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TemplateValidationError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "problems": e.problems})

    if outcome.error:
        raise HTTPException(status_code=502, detail=outcome.error)

    return outcome.model_dump(mode="json", exclude={"prompt", "raw_response"})


@router.get("/{process_id}/structured", response_model=RenderedResult)
async def get_structured_data(
    process_id: str,
    store: ProcessStore = Depends(get_process_store),
    templates: TemplateStore = Depends(get_template_store),
) -> RenderedResult:
    """Every template field of the process, rendered for display."""
    process = _require(store, process_id)
    template = templates.get(process.template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")

    data = process.result.structured_data if process.result else None
    return render_result(template, data or {})


@router.get("/{process_id}/export")
async def export_structured_data(
    process_id: str,
    format: Literal["json", "csv"] = "json",
    store: ProcessStore = Depends(get_process_store),
) -> Response:
    """Download the raw structured data as JSON or CSV."""
    process = _require(store, process_id)
    data = process.result.structured_data if process.result else None
    if not data:
        raise HTTPException(status_code=409, detail="Process has no structured data yet")

    stem = "".join(c if c.isalnum() or c in "-_" else "_" for c in process.title) or process.id
    if format == "csv":
        return Response(
            content=export_service.to_csv(data),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{stem}.csv"'},
        )
    return Response(
        content=export_service.to_json(data),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{stem}.json"'},
    )
