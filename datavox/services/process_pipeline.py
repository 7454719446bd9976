"""
Process Pipeline.

Moves an uploaded audio file through its lifecycle:

1. ``submit``: validate the upload and template, upload the audio to
   AssemblyAI, queue transcription, store a ``processing`` Process.
2. ``refresh``: poll the transcript; once it completes, run the
   template extraction and store the structured data.
3. ``reextract``: re-run extraction for a completed process, replacing
   its structured data wholesale.

At most one extraction is in flight per (transcript, template) pair.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

from datavox.config import get_settings
from datavox.logging_config import get_logger, process_context
from datavox.schemas.extraction import ExtractionOutcome
from datavox.schemas.process import Process, ProcessMetadata, ProcessResult, ProcessStatus
from datavox.schemas.template import Template, TemplateValidationError, validate_for_extraction
from datavox.services.extraction_service import extract_structured_data
from datavox.services.transcription_client import TranscriptionClient, TranscriptionServiceError
from datavox.stores.process_store import ProcessStore
from datavox.stores.template_store import TemplateStore

logger = get_logger(__name__)

AUDIO_EXTENSIONS = frozenset({".mp3", ".wav", ".m4a", ".flac", ".aac"})

# AssemblyAI transcript states
VENDOR_COMPLETED = "completed"
VENDOR_ERROR = "error"


class UploadRejectedError(ValueError):
    """The uploaded file is not an accepted audio file."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProcessStateError(RuntimeError):
    """The process is not in a state that allows the requested action."""


class ExtractionInProgressError(RuntimeError):
    """An extraction for the same transcript and template is already running."""


class ProcessPipeline:
    def __init__(
        self,
        client: TranscriptionClient,
        templates: TemplateStore,
        processes: ProcessStore,
    ) -> None:
        self.client = client
        self.templates = templates
        self.processes = processes
        self._inflight: set[tuple[str, str]] = set()

    # -- Submission --

    def _check_upload(self, filename: str, size: int) -> None:
        settings = get_settings()
        extension = Path(filename).suffix.lower()
        if extension not in AUDIO_EXTENSIONS:
            raise UploadRejectedError(
                f"Unsupported file type '{extension or filename}'. "
                f"Supported formats: {', '.join(sorted(AUDIO_EXTENSIONS))}",
                status_code=415,
            )
        if size == 0:
            raise UploadRejectedError("Uploaded file is empty", status_code=400)
        if size > settings.max_upload_bytes:
            raise UploadRejectedError(
                f"File too large: {size} bytes (max {settings.max_upload_mb}MB)",
                status_code=413,
            )

    def _require_template(self, template_id: str) -> Template:
        template = self.templates.get(template_id)
        if template is None:
            raise KeyError(template_id)
        return template

    async def submit(
        self,
        *,
        filename: str,
        data: bytes,
        template_id: str,
        content_type: str | None = None,
        title: str | None = None,
        created_by: str = "anonymous",
    ) -> Process:
        """
        Upload audio and start transcription.

        Raises:
            UploadRejectedError: bad extension, empty or oversized file.
            KeyError: unknown template.
            TemplateValidationError: template unusable for extraction.
            TranscriptionServiceError: the vendor rejected the upload.
        """
        self._check_upload(filename, len(data))
        template = self._require_template(template_id)
        validate_for_extraction(template)

        upload_url = await self.client.upload(data)
        transcript = await self.client.create_transcript(upload_url)

        process = Process(
            id=uuid.uuid4().hex,
            title=title or Path(filename).stem,
            template_id=template.id,
            transcript_id=transcript.get("id"),
            created_by=created_by,
            status=ProcessStatus.PROCESSING,
            metadata=ProcessMetadata(
                name=filename,
                size=len(data),
                type=content_type or "application/octet-stream",
            ),
        )
        await self.processes.add(process)

        logger.info(
            "process_submitted",
            process_id=process.id,
            transcript_id=process.transcript_id,
            template_id=template.id,
            size=len(data),
        )
        return process

    # -- Extraction --

    async def _extract(self, transcript_id: str, template: Template) -> Optional[ExtractionOutcome]:
        """Run one extraction, or return None if the same pair is already running."""
        key = (transcript_id, template.id)
        if key in self._inflight:
            logger.info(
                "extraction_already_in_flight",
                transcript_id=transcript_id,
                template_id=template.id,
            )
            return None

        self._inflight.add(key)
        try:
            return await extract_structured_data(self.client, transcript_id, template)
        finally:
            self._inflight.discard(key)

    async def _fail(self, process: Process, message: str, **result_fields) -> Process:
        logger.warning("process_failed", reason=message)
        return await self.processes.update(
            process.id,
            status=ProcessStatus.ERROR,
            result=ProcessResult(error=message, **result_fields),
        )

    # -- Lifecycle --

    async def refresh(self, process_id: str) -> Process:
        """
        Advance a processing process by one step.

        Re-reads the process from storage first, so a process another
        instance already finished is returned as-is and not extracted twice.
        Vendor polling failures leave the process untouched so the next
        poll can retry.
        """
        await self.processes.reload()
        process = self.processes.get(process_id)
        if process is None:
            raise KeyError(process_id)
        if process.status != ProcessStatus.PROCESSING:
            return process

        with process_context(process.id, transcript_id=process.transcript_id):
            return await self._advance(process)

    async def _advance(self, process: Process) -> Process:
        if not process.transcript_id:
            return await self._fail(process, "Process has no transcript")

        try:
            transcript = await self.client.get_transcript(process.transcript_id)
        except TranscriptionServiceError as e:
            logger.warning("transcript_poll_failed", error=str(e))
            return process

        vendor_status = transcript.get("status")
        if vendor_status == VENDOR_ERROR:
            return await self._fail(process, transcript.get("error") or "Transcription failed")
        if vendor_status != VENDOR_COMPLETED:
            logger.debug("transcript_pending", vendor_status=vendor_status)
            return process

        duration = transcript.get("audio_duration")
        if duration is not None:
            process = await self.processes.update(
                process.id,
                metadata=process.metadata.model_copy(update={"duration": duration}),
            )

        template = self.templates.get(process.template_id)
        if template is None:
            return await self._fail(
                process, f"Template '{process.template_id}' not found", transcript=transcript
            )

        try:
            outcome = await self._extract(process.transcript_id, template)
        except TemplateValidationError as e:
            return await self._fail(process, str(e), transcript=transcript)

        if outcome is None:
            return process
        if outcome.error:
            return await self._fail(process, outcome.error, transcript=transcript)

        process = await self.processes.update(
            process.id,
            status=ProcessStatus.COMPLETED,
            result=ProcessResult(transcript=transcript, structured_data=outcome.data),
        )
        logger.info(
            "process_completed",
            fields_missing=len(outcome.rendered.missing) if outcome.rendered else 0,
        )
        return process

    async def refresh_all(self) -> int:
        """Refresh every processing process. Returns how many left the processing state."""
        await self.processes.reload()
        finished = 0
        for process in self.processes.by_status(ProcessStatus.PROCESSING):
            updated = await self.refresh(process.id)
            if updated.status != ProcessStatus.PROCESSING:
                finished += 1
        return finished

    async def reextract(self, process_id: str, template_id: str | None = None) -> ExtractionOutcome:
        """
        Re-run extraction on a completed process, optionally with another template.

        The stored structured data (and the template switch, if any) is
        only written when the extraction succeeds, in a single update.
        """
        await self.processes.reload()
        process = self.processes.get(process_id)
        if process is None:
            raise KeyError(process_id)
        if process.status != ProcessStatus.COMPLETED or not process.transcript_id:
            raise ProcessStateError(
                f"Process '{process_id}' is {process.status.value}; only completed processes can be re-extracted"
            )

        template = self._require_template(template_id or process.template_id)

        with process_context(process.id, transcript_id=process.transcript_id):
            outcome = await self._extract(process.transcript_id, template)
            if outcome is None:
                raise ExtractionInProgressError(
                    f"Extraction for process '{process_id}' with template '{template.id}' is already running"
                )
            if outcome.error:
                return outcome

            await self.processes.update_structured_data(
                process.id, outcome.data, template_id=template.id
            )
            return outcome
