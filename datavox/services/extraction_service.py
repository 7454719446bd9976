"""
Template Extraction Service.

Runs a template against a finished transcript: builds the prompt,
sends it to the LeMUR task endpoint scoped to the transcript, decodes
the JSON reply and renders every field. Vendor failures are logged and
reported on the returned outcome instead of being raised.
"""

from __future__ import annotations

from datavox.config import get_settings
from datavox.logging_config import get_logger
from datavox.schemas.extraction import ExtractionOutcome
from datavox.schemas.template import Template, validate_for_extraction
from datavox.services.field_renderer import parse_extraction_response, render_result
from datavox.services.prompt_generator import generate_prompt
from datavox.services.transcription_client import TranscriptionClient, TranscriptionServiceError

logger = get_logger(__name__)


async def extract_structured_data(
    client: TranscriptionClient,
    transcript_id: str,
    template: Template,
) -> ExtractionOutcome:
    """
    Extract the template's fields from a completed transcript.

    Args:
        client: Vendor client used for the LeMUR call.
        transcript_id: AssemblyAI transcript ID.
        template: Template to extract. Must pass ``validate_for_extraction``.

    Returns:
        ExtractionOutcome with decoded data and rendered fields. When the
        vendor call fails, ``error`` is set and ``data`` is empty.

    Raises:
        TemplateValidationError: the template cannot be used for extraction.
    """
    validate_for_extraction(template)

    prompt = generate_prompt(
        template,
        include_field_descriptions=get_settings().prompt_include_field_descriptions,
    )

    logger.info(
        "extraction_started",
        transcript_id=transcript_id,
        template_id=template.id,
        field_count=len(template.fields),
        prompt_length=len(prompt),
    )

    try:
        raw_response = await client.run_task(transcript_id, prompt)
    except TranscriptionServiceError as e:
        logger.error(
            "extraction_llm_error",
            transcript_id=transcript_id,
            template_id=template.id,
            error=str(e),
        )
        return ExtractionOutcome(
            transcript_id=transcript_id,
            template_id=template.id,
            prompt=prompt,
            rendered=render_result(template, {}),
            error=f"Extraction failed: {e}",
        )

    data = parse_extraction_response(raw_response)
    rendered = render_result(template, data)

    logger.info(
        "extraction_complete",
        transcript_id=transcript_id,
        template_id=template.id,
        fields_found=len(rendered.fields) - len(rendered.missing),
        fields_missing=len(rendered.missing),
        extra_keys=rendered.extra_keys,
    )

    return ExtractionOutcome(
        transcript_id=transcript_id,
        template_id=template.id,
        prompt=prompt,
        raw_response=raw_response,
        data=data,
        rendered=rendered,
    )
