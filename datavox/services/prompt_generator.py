"""
Extraction Prompt Generator.

Turns a Template into the instruction text sent to the transcript LLM
endpoint. The prompt tells the model to answer with a single JSON
object keyed by field name, describes how each field type must be
extracted and shaped, and fixes the sentinels used for values that
were not found in the conversation.

Pure string construction: identical templates always produce
byte-identical prompts.
"""

from __future__ import annotations

import json
from typing import Iterable

from datavox.schemas.template import FieldType, Template, TemplateField

# Sentinels the model must use for missing values. The renderer treats
# both as "no data".
NOT_FOUND_SENTINEL = "NOT_FOUND"
NULL_SENTINEL = "null"

VALUE_PLACEHOLDER = "<extracted_value>"

STRICT_JSON_DIRECTIVE = (
    "IMPORTANT: Your response must be ONLY a valid JSON object with no "
    "additional text, explanation, or formatting."
)

DEFAULT_INSTRUCTION = "Extract the information"
DEFAULT_OUTPUT_FORMAT = "Return as a string"

FIELD_INSTRUCTIONS: dict[FieldType, str] = {
    FieldType.NAME: "Extract the full name",
    FieldType.TEXT: "Extract the relevant text",
    FieldType.KEY_FINDING: "Identify and list the key findings or main points",
    FieldType.QUOTE: "Extract relevant direct quotes from the conversation",
    FieldType.DATE: "Extract the date mentioned",
}

OUTPUT_FORMATS: dict[FieldType, str] = {
    FieldType.KEY_FINDING: "Return as an array of strings, each representing a key finding",
    FieldType.QUOTE: (
        "Return as an array of strings, each being a direct quote with speaker attribution"
    ),
    FieldType.DATE: "Return in ISO date format (YYYY-MM-DD)",
}

RULES = (
    "RULES:\n"
    "1. Return ONLY the JSON object, no other text\n"
    f'2. Required fields must be filled with "{NOT_FOUND_SENTINEL}" if not in conversation\n'
    f"3. Optional fields should be {NULL_SENTINEL} if not found\n"
    "4. Ensure the response is valid JSON that can be parsed"
)


def field_instruction(field_type: FieldType) -> str:
    """How the model should find a value of this type."""
    return FIELD_INSTRUCTIONS.get(field_type, DEFAULT_INSTRUCTION)


def output_format(field_type: FieldType) -> str:
    """What shape the model should return a value of this type in."""
    return OUTPUT_FORMATS.get(field_type, DEFAULT_OUTPUT_FORMAT)


def response_skeleton(fields: Iterable[TemplateField]) -> str:
    """
    JSON skeleton listing every field name, in order, mapped to a placeholder.

    Names go through JSON string escaping so quotes or backslashes in a
    field name still yield a well-formed skeleton.
    """
    entries = [
        f"  {json.dumps(field.name, ensure_ascii=False)}: {VALUE_PLACEHOLDER}"
        for field in fields
    ]
    if not entries:
        return "{\n}"
    return "{\n" + ",\n".join(entries) + "\n}"


def _field_section(field: TemplateField, include_description: bool) -> str:
    required_text = " (Required)" if field.required else " (Optional)"
    lines = [
        f"{field.name}{required_text}:",
        f"- {field_instruction(field.type)}",
        f"- {output_format(field.type)}",
    ]
    if field.type == FieldType.CUSTOM and field.custom_prompt and field.custom_prompt.strip():
        lines.append(f"- {field.custom_prompt.strip()}")
    if include_description and field.description and field.description.strip():
        lines.append(f"- Guidance: {field.description.strip()}")
    return "\n".join(lines) + "\n\n"


def generate_prompt(template: Template, *, include_field_descriptions: bool = False) -> str:
    """
    Build the extraction prompt for a template.

    Args:
        template: The template whose fields should be extracted.
        include_field_descriptions: Add each field's description as an
            extra guidance line.

    Returns:
        The complete prompt. Never raises; a template with no fields
        yields an empty field section and an empty skeleton.
    """
    prompt = (
        f"{STRICT_JSON_DIRECTIVE}\n\n"
        f"You are analyzing a {template.name.lower()}. {template.description}\n\n"
        "Extract the following information from the conversation and format it "
        "as specified for each field:\n\n"
    )

    for field in template.fields:
        prompt += _field_section(field, include_field_descriptions)

    prompt += f"RESPONSE FORMAT:\n{response_skeleton(template.fields)}\n\n{RULES}"

    if template.custom_prompt:
        prompt += f"\n\nAdditional Instructions:\n{template.custom_prompt}"

    return prompt
