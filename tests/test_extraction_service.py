"""
Tests for running a template extraction end to end against the fake vendor.
"""

import pytest

from datavox.schemas.extraction import RenderKind
from datavox.schemas.template import Template, TemplateValidationError
from datavox.services.extraction_service import extract_structured_data
from datavox.services.prompt_generator import generate_prompt


class TestExtractStructuredData:
    @pytest.mark.asyncio
    async def test_successful_extraction(self, vendor_client, fake_vendor, meeting_template):
        fake_vendor.lemur_response = (
            '```json\n{"Action Items": ["Ship", "Test"], "Speaker Name": null, '
            '"Quotes": ["Alice: Let\'s ship on Friday."], "Meeting Date": "2024-05-03"}\n```'
        )

        outcome = await extract_structured_data(vendor_client, "tx-1", meeting_template)

        assert outcome.succeeded
        assert fake_vendor.prompts == [generate_prompt(meeting_template)]
        assert outcome.data["Action Items"] == ["Ship", "Test"]

        by_name = {r.field_name: r for r in outcome.rendered.fields}
        assert by_name["Action Items"].items == ["Ship", "Test"]
        assert by_name["Speaker Name"].kind == RenderKind.EMPTY
        assert by_name["Quotes"].quotes[0].speaker == "Alice"
        assert by_name["Meeting Date"].text == "May 3, 2024"

    @pytest.mark.asyncio
    async def test_non_json_reply_degrades_to_no_data(self, vendor_client, fake_vendor, meeting_template):
        fake_vendor.lemur_response = "I could not find anything relevant."

        outcome = await extract_structured_data(vendor_client, "tx-1", meeting_template)

        assert outcome.succeeded
        assert outcome.data == {}
        assert outcome.rendered.missing == meeting_template.field_names()

    @pytest.mark.asyncio
    async def test_vendor_failure_is_reported_not_raised(self, vendor_client, fake_vendor, meeting_template):
        fake_vendor.lemur_status_code = 503

        outcome = await extract_structured_data(vendor_client, "tx-1", meeting_template)

        assert not outcome.succeeded
        assert outcome.error.startswith("Extraction failed:")
        assert outcome.data == {}
        assert all(r.is_empty for r in outcome.rendered.fields)

    @pytest.mark.asyncio
    async def test_invalid_template_rejected_before_network(self, vendor_client, fake_vendor):
        with pytest.raises(TemplateValidationError):
            await extract_structured_data(vendor_client, "tx-1", Template(id="t", name="Empty"))
        assert fake_vendor.requests == []

    @pytest.mark.asyncio
    async def test_malformed_vendor_body_is_reported_not_raised(self, vendor_client, fake_vendor, meeting_template):
        fake_vendor.lemur_body = [{"response": "{}"}]

        outcome = await extract_structured_data(vendor_client, "tx-1", meeting_template)

        assert not outcome.succeeded
        assert "expected a JSON object" in outcome.error
