"""
Structured Data Renderer.

Turns the LLM's JSON reply into typed, displayable values, one per
template field. Nothing here raises on bad input: missing values render
as the "no data" marker and malformed values fall back to their plain
string form.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from typing import Any, Mapping, Optional

from datavox.logging_config import get_logger
from datavox.schemas.extraction import (
    NO_DATA_MARKER,
    QuoteEntry,
    RenderedResult,
    RenderedValue,
    RenderKind,
)
from datavox.schemas.template import FieldType, Template, TemplateField
from datavox.services.prompt_generator import NOT_FOUND_SENTINEL

logger = get_logger(__name__)

SPEAKER_BADGE = "Speaker"

# "Speaker A: we shipped it" -> ("Speaker A", "we shipped it")
_ATTRIBUTED_QUOTE = re.compile(r'^\s*([^:"\n]{1,40}?):\s+(.+)$', re.DOTALL)

_DATE_FORMATS = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
)


# ── Helpers ──────────────────────────────────────────────────────


def is_missing(value: Any) -> bool:
    """True for values the model used to say "nothing found"."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped == NOT_FOUND_SENTINEL
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return json.dumps(value, ensure_ascii=False, default=str)


def _strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] in "\"“'" and text[-1] in "\"”'":
        return text[1:-1].strip()
    return text


def parse_date(value: str) -> Optional[date]:
    """Parse ISO dates/datetimes and a few common spelled-out forms."""
    text = value.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_long_date(value: date) -> str:
    """January 5, 2024"""
    return f"{value:%B} {value.day}, {value.year}"


def _quote_entry(item: Any) -> Optional[QuoteEntry]:
    if isinstance(item, Mapping):
        text = item.get("text") or item.get("quote")
        if is_missing(text):
            return None
        speaker = item.get("speaker")
        return QuoteEntry(
            speaker=_to_text(speaker) if not is_missing(speaker) else None,
            text=_strip_quotes(_to_text(text)),
        )

    if is_missing(item):
        return None

    text = _to_text(item)
    match = _ATTRIBUTED_QUOTE.match(text)
    if match:
        return QuoteEntry(speaker=match.group(1).strip(), text=_strip_quotes(match.group(2)))
    return QuoteEntry(text=_strip_quotes(text))


# ── Per-field rendering ──────────────────────────────────────────


def render_field(field: TemplateField, value: Any) -> RenderedValue:
    """
    Render a single extracted value according to its field type.

    Never raises. Absent or empty values (including the NOT_FOUND
    sentinel) produce a RenderKind.EMPTY value carrying NO_DATA_MARKER.
    """
    base = {"field_name": field.name, "field_type": field.type, "raw": value}

    if is_missing(value):
        return RenderedValue(kind=RenderKind.EMPTY, text=NO_DATA_MARKER, **base)

    if field.type == FieldType.KEY_FINDING:
        if isinstance(value, (list, tuple)):
            items = [_to_text(item).strip() for item in value if not is_missing(item)]
            if not items:
                return RenderedValue(kind=RenderKind.EMPTY, text=NO_DATA_MARKER, **base)
            return RenderedValue(kind=RenderKind.LIST, items=items, **base)
        return RenderedValue(kind=RenderKind.TEXT, text=_to_text(value), **base)

    if field.type == FieldType.QUOTE:
        if isinstance(value, (list, tuple)):
            quotes = [q for q in (_quote_entry(item) for item in value) if q is not None]
            if not quotes:
                return RenderedValue(kind=RenderKind.EMPTY, text=NO_DATA_MARKER, **base)
            return RenderedValue(kind=RenderKind.QUOTES, quotes=quotes, **base)
        return RenderedValue(
            kind=RenderKind.TEXT, text=f'"{_strip_quotes(_to_text(value))}"', **base
        )

    if field.type == FieldType.NAME:
        badge = SPEAKER_BADGE if "speaker" in field.name.lower() else None
        return RenderedValue(kind=RenderKind.NAME, text=_to_text(value), badge=badge, **base)

    if field.type == FieldType.DATE:
        text = _to_text(value)
        parsed = parse_date(text) if isinstance(value, str) else None
        if parsed is None:
            return RenderedValue(kind=RenderKind.TEXT, text=text, **base)
        return RenderedValue(kind=RenderKind.DATE, text=format_long_date(parsed), **base)

    # text, number, custom
    return RenderedValue(kind=RenderKind.TEXT, text=_to_text(value), **base)


def render_result(template: Template, data: Any) -> RenderedResult:
    """Render every template field from an extraction response, in template order."""
    values: Mapping[str, Any] = data if isinstance(data, Mapping) else {}

    rendered = [render_field(field, values.get(field.name)) for field in template.fields]
    field_names = set(template.field_names())

    return RenderedResult(
        template_id=template.id,
        fields=rendered,
        missing=[r.field_name for r in rendered if r.is_empty],
        extra_keys=[key for key in values if key not in field_names],
    )


# ── Response decoding ────────────────────────────────────────────


def _extract_json_text(raw: str) -> str:
    text = raw.strip()

    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1]
    return text


def parse_extraction_response(raw: Any) -> dict[str, Any]:
    """
    Decode the model's reply into a field-name -> value mapping.

    Tolerates markdown fences and prose around the JSON object. Returns
    an empty dict when the reply is not a JSON object at all.
    """
    if isinstance(raw, Mapping):
        return dict(raw)
    if not isinstance(raw, str) or not raw.strip():
        logger.warning("extraction_response_empty")
        return {}

    try:
        data = json.loads(_extract_json_text(raw))
    except json.JSONDecodeError as e:
        logger.warning("extraction_response_not_json", error=str(e), preview=raw[:200])
        return {}

    if not isinstance(data, dict):
        logger.warning("extraction_response_not_object", json_type=type(data).__name__)
        return {}
    return data
