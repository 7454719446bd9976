"""
Tests for rendering extracted values and decoding model replies.
"""

import pytest

from datavox.schemas.extraction import NO_DATA_MARKER, RenderKind
from datavox.schemas.template import FieldType, Template, TemplateField
from datavox.services.field_renderer import (
    is_missing,
    parse_extraction_response,
    render_field,
    render_result,
)


def _field(field_type: FieldType, name: str = "Field") -> TemplateField:
    return TemplateField(id="1", name=name, type=field_type)


class TestMissingValues:
    @pytest.mark.parametrize("field_type", list(FieldType))
    @pytest.mark.parametrize("value", [None, "", "   ", "NOT_FOUND", [], {}])
    def test_missing_renders_no_data(self, field_type, value):
        rendered = render_field(_field(field_type), value)
        assert rendered.kind == RenderKind.EMPTY
        assert rendered.text == NO_DATA_MARKER
        assert rendered.is_empty

    def test_zero_is_not_missing(self):
        assert not is_missing(0)
        assert render_field(_field(FieldType.NUMBER), 0).text == "0"


class TestKeyFinding:
    def test_list_keeps_order_without_duplication(self):
        rendered = render_field(_field(FieldType.KEY_FINDING), ["a", "b"])
        assert rendered.kind == RenderKind.LIST
        assert rendered.items == ["a", "b"]

    def test_single_string_is_one_line(self):
        rendered = render_field(_field(FieldType.KEY_FINDING), "Only one point")
        assert rendered.kind == RenderKind.TEXT
        assert rendered.text == "Only one point"

    def test_blank_and_non_string_items(self):
        rendered = render_field(_field(FieldType.KEY_FINDING), ["a", "", None, 3])
        assert rendered.items == ["a", "3"]

    def test_list_of_only_blanks_is_empty(self):
        assert render_field(_field(FieldType.KEY_FINDING), ["", None]).is_empty


class TestQuote:
    def test_list_with_attribution(self):
        rendered = render_field(
            _field(FieldType.QUOTE),
            ["Alice: We ship on Friday.", '"No speaker here"'],
        )
        assert rendered.kind == RenderKind.QUOTES
        assert rendered.quotes[0].speaker == "Alice"
        assert rendered.quotes[0].text == "We ship on Friday."
        assert rendered.quotes[1].speaker is None
        assert rendered.quotes[1].text == "No speaker here"

    def test_dict_entries(self):
        rendered = render_field(_field(FieldType.QUOTE), [{"speaker": "Bob", "text": "Agreed."}])
        assert rendered.quotes[0].speaker == "Bob"
        assert rendered.quotes[0].text == "Agreed."

    def test_single_string_is_quoted_line(self):
        rendered = render_field(_field(FieldType.QUOTE), "Let's go")
        assert rendered.kind == RenderKind.TEXT
        assert rendered.text == '"Let\'s go"'

    def test_as_text(self):
        rendered = render_field(_field(FieldType.QUOTE), ["Alice: Yes.", "Maybe."])
        assert rendered.as_text() == 'Alice: "Yes."\n"Maybe."'


class TestName:
    def test_plain_name(self):
        rendered = render_field(_field(FieldType.NAME, "Candidate Name"), "Ada Lovelace")
        assert rendered.kind == RenderKind.NAME
        assert rendered.text == "Ada Lovelace"
        assert rendered.badge is None

    @pytest.mark.parametrize("name", ["Speaker", "Main speaker", "SPEAKER NAME"])
    def test_speaker_badge(self, name):
        rendered = render_field(_field(FieldType.NAME, name), "Ada")
        assert rendered.badge == "Speaker"
        assert rendered.as_text() == "Ada [Speaker]"


class TestDate:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-01-05", "January 5, 2024"),
            ("2024-03-15T10:30:00Z", "March 15, 2024"),
            ("March 3, 2023", "March 3, 2023"),
            ("12/25/2022", "December 25, 2022"),
        ],
    )
    def test_parsed_dates_render_long_form(self, value, expected):
        rendered = render_field(_field(FieldType.DATE), value)
        assert rendered.kind == RenderKind.DATE
        assert rendered.text == expected

    def test_unparseable_date_falls_back_to_raw(self):
        rendered = render_field(_field(FieldType.DATE), "not-a-date")
        assert rendered.kind == RenderKind.TEXT
        assert rendered.text == "not-a-date"
        assert "Invalid" not in rendered.text

    def test_non_string_date(self):
        rendered = render_field(_field(FieldType.DATE), 2024)
        assert rendered.kind == RenderKind.TEXT
        assert rendered.text == "2024"


class TestTextAndDefault:
    def test_line_breaks_preserved(self):
        rendered = render_field(_field(FieldType.TEXT), "line one\nline two")
        assert rendered.text == "line one\nline two"

    def test_number_value(self):
        assert render_field(_field(FieldType.NUMBER), 42.5).text == "42.5"

    def test_wrong_shape_is_stringified(self):
        rendered = render_field(_field(FieldType.TEXT), {"nested": ["x"]})
        assert rendered.kind == RenderKind.TEXT
        assert rendered.text == '{"nested": ["x"]}'


class TestRenderResult:
    def test_template_order_and_missing(self, meeting_template):
        data = {
            "Meeting Date": "2024-02-01",
            "Action Items": ["Ship", "Test"],
            "Unexpected": "x",
        }
        result = render_result(meeting_template, data)

        assert [r.field_name for r in result.fields] == meeting_template.field_names()
        assert result.missing == ["Speaker Name", "Quotes"]
        assert result.extra_keys == ["Unexpected"]
        assert result.fields[0].items == ["Ship", "Test"]

    @pytest.mark.parametrize("data", [None, "oops", ["a"], 3])
    def test_non_mapping_renders_all_empty(self, meeting_template, data):
        result = render_result(meeting_template, data)
        assert all(r.is_empty for r in result.fields)
        assert len(result.missing) == len(meeting_template.fields)

    def test_empty_template(self):
        result = render_result(Template(id="t", name="T"), {"a": 1})
        assert result.fields == []
        assert result.extra_keys == ["a"]


class TestParseExtractionResponse:
    def test_plain_json(self):
        assert parse_extraction_response('{"A": "x"}') == {"A": "x"}

    def test_fenced_json(self):
        raw = '```json\n{"A": ["x", "y"]}\n```'
        assert parse_extraction_response(raw) == {"A": ["x", "y"]}

    def test_prose_around_json(self):
        raw = 'Here you go:\n{"A": null}\nHope that helps.'
        assert parse_extraction_response(raw) == {"A": None}

    @pytest.mark.parametrize("raw", ["", "   ", "no json here", "[1, 2]", "{broken", None, 12])
    def test_garbage_returns_empty(self, raw):
        assert parse_extraction_response(raw) == {}

    def test_mapping_passthrough(self):
        assert parse_extraction_response({"A": 1}) == {"A": 1}
