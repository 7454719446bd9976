"""
Tests for extraction prompt generation.
"""

import json

import pytest

from datavox.schemas.template import FieldType, Template, TemplateField
from datavox.services.prompt_generator import (
    NOT_FOUND_SENTINEL,
    STRICT_JSON_DIRECTIVE,
    field_instruction,
    generate_prompt,
    output_format,
    response_skeleton,
)


def _skeleton_keys(prompt: str) -> list[str]:
    block = prompt.split("RESPONSE FORMAT:\n", 1)[1].split("\n\nRULES:", 1)[0]
    return list(json.loads(block.replace("<extracted_value>", "null")).keys())


class TestGeneratePrompt:
    def test_meeting_notes_scenario(self):
        template = Template(
            id="meeting-notes",
            name="Meeting Notes",
            description="Capture decisions.",
            fields=[TemplateField(id="1", name="Action Items", type=FieldType.KEY_FINDING, required=True)],
        )
        prompt = generate_prompt(template)

        assert (
            "Action Items (Required):\n"
            "- Identify and list the key findings or main points\n"
            "- Return as an array of strings, each representing a key finding\n"
        ) in prompt
        assert '"Action Items": <extracted_value>' in prompt

    def test_stage_order(self, meeting_template):
        prompt = generate_prompt(meeting_template)

        directive = prompt.index(STRICT_JSON_DIRECTIVE)
        context = prompt.index("You are analyzing a team sync. Weekly engineering sync.")
        fields = prompt.index("Action Items (Required):")
        skeleton = prompt.index("RESPONSE FORMAT:")
        rules = prompt.index("RULES:")

        assert directive == 0
        assert directive < context < fields < skeleton < rules

    def test_each_field_has_one_header_and_one_skeleton_key(self, meeting_template):
        prompt = generate_prompt(meeting_template)

        for field in meeting_template.fields:
            suffix = "(Required)" if field.required else "(Optional)"
            assert prompt.count(f"{field.name} {suffix}:") == 1
            assert prompt.count(f"{json.dumps(field.name)}: <extracted_value>") == 1
            assert prompt.count(field.name) == 2

        assert prompt.count("RESPONSE FORMAT:") == 1

    def test_skeleton_key_order_matches_fields(self, meeting_template):
        prompt = generate_prompt(meeting_template)
        assert _skeleton_keys(prompt) == meeting_template.field_names()

    def test_rules_state_both_sentinels(self, meeting_template):
        prompt = generate_prompt(meeting_template)
        assert f'"{NOT_FOUND_SENTINEL}"' in prompt
        assert "should be null if not found" in prompt

    def test_required_and_optional_suffixes(self, meeting_template):
        prompt = generate_prompt(meeting_template)
        assert "Speaker Name (Optional):" in prompt
        assert "Meeting Date (Required):" in prompt

    def test_is_deterministic(self, meeting_template):
        assert generate_prompt(meeting_template) == generate_prompt(meeting_template)
        copy = Template.model_validate(meeting_template.model_dump())
        assert generate_prompt(copy) == generate_prompt(meeting_template)

    def test_empty_template_still_produces_prompt(self):
        template = Template(id="empty", name="Empty", description="Nothing here.")
        prompt = generate_prompt(template)

        assert "RESPONSE FORMAT:\n{\n}\n\nRULES:" in prompt
        assert "(Required)" not in prompt
        assert "(Optional)" not in prompt
        assert _skeleton_keys(prompt) == []

    def test_template_custom_prompt_appended_last(self, meeting_template):
        template = meeting_template.model_copy(update={"custom_prompt": "Focus on deadlines."})
        prompt = generate_prompt(template)
        assert prompt.endswith("\n\nAdditional Instructions:\nFocus on deadlines.")

    def test_no_additional_instructions_without_custom_prompt(self, meeting_template):
        assert "Additional Instructions" not in generate_prompt(meeting_template)

    def test_custom_field_prompt_is_added(self):
        template = Template(
            id="t",
            name="Call",
            fields=[
                TemplateField(
                    id="1",
                    name="Sentiment",
                    type=FieldType.CUSTOM,
                    custom_prompt="Classify the caller's mood as positive, neutral or negative",
                )
            ],
        )
        prompt = generate_prompt(template)
        assert (
            "Sentiment (Optional):\n"
            "- Extract the information\n"
            "- Return as a string\n"
            "- Classify the caller's mood as positive, neutral or negative\n"
        ) in prompt

    def test_custom_field_without_prompt_does_not_crash(self):
        template = Template(
            id="t", name="Call", fields=[TemplateField(id="1", name="Mood", type=FieldType.CUSTOM)]
        )
        assert "Mood (Optional):\n- Extract the information\n- Return as a string\n\n" in generate_prompt(template)

    def test_field_descriptions_are_opt_in(self):
        template = Template(
            id="t",
            name="Call",
            fields=[TemplateField(id="1", name="Budget", description="Annual budget in USD")],
        )
        assert "Annual budget in USD" not in generate_prompt(template)
        assert "- Guidance: Annual budget in USD\n" in generate_prompt(
            template, include_field_descriptions=True
        )

    def test_field_names_are_json_escaped_in_skeleton(self):
        template = Template(id="t", name="Odd", fields=[TemplateField(id="1", name='Say "hi"')])
        prompt = generate_prompt(template)
        assert '"Say \\"hi\\"": <extracted_value>' in prompt
        assert _skeleton_keys(prompt) == ['Say "hi"']


class TestTypeTable:
    @pytest.mark.parametrize(
        "field_type, instruction, fmt",
        [
            (FieldType.NAME, "Extract the full name", "Return as a string"),
            (FieldType.TEXT, "Extract the relevant text", "Return as a string"),
            (
                FieldType.KEY_FINDING,
                "Identify and list the key findings or main points",
                "Return as an array of strings, each representing a key finding",
            ),
            (
                FieldType.QUOTE,
                "Extract relevant direct quotes from the conversation",
                "Return as an array of strings, each being a direct quote with speaker attribution",
            ),
            (FieldType.DATE, "Extract the date mentioned", "Return in ISO date format (YYYY-MM-DD)"),
            (FieldType.NUMBER, "Extract the information", "Return as a string"),
            (FieldType.CUSTOM, "Extract the information", "Return as a string"),
        ],
    )
    def test_instruction_and_format(self, field_type, instruction, fmt):
        assert field_instruction(field_type) == instruction
        assert output_format(field_type) == fmt

    def test_skeleton_for_two_fields(self):
        fields = [TemplateField(id="1", name="A"), TemplateField(id="2", name="B")]
        assert response_skeleton(fields) == '{\n  "A": <extracted_value>,\n  "B": <extracted_value>\n}'
