"""
Test-wide fixtures and configuration.

Forces in-memory storage and a dummy AssemblyAI key, and fakes the
AssemblyAI REST API with httpx.MockTransport so no test touches the
network.
"""

import json
import os
from typing import Any

import httpx
import pytest
import pytest_asyncio

os.environ["STORAGE_BACKEND"] = "memory"
os.environ["ASSEMBLYAI_API_KEY"] = "test-key"
os.environ["ENVIRONMENT"] = "development"
os.environ["RATE_LIMIT_PER_MINUTE"] = "10000"

from datavox.config import get_settings  # noqa: E402

get_settings.cache_clear()

from datavox.schemas.template import Template  # noqa: E402
from datavox.services.transcription_client import TranscriptionClient  # noqa: E402
from datavox.storage import MemoryStorage  # noqa: E402


class FakeAssemblyAI:
    """Minimal in-process stand-in for the AssemblyAI endpoints we use."""

    def __init__(self) -> None:
        self.transcript_status = "queued"
        self.transcript_error: str | None = None
        self.lemur_response: str = "{}"
        self.lemur_status_code = 200
        self.lemur_body: Any = None  # overrides the whole LeMUR JSON body when set
        self.upload_status_code = 200
        self.prompts: list[str] = []
        self.requests: list[httpx.Request] = []
        self._counter = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.headers.get("Authorization") != "test-key":
            return httpx.Response(401, json={"error": "Authentication error"})

        if path == "/v2/upload" and request.method == "POST":
            if self.upload_status_code != 200:
                return httpx.Response(self.upload_status_code, json={"error": "upload failed"})
            return httpx.Response(200, json={"upload_url": "https://cdn.assemblyai.test/upload/abc"})

        if path == "/v2/transcript" and request.method == "POST":
            self._counter += 1
            return httpx.Response(200, json={"id": f"tx-{self._counter}", "status": "queued"})

        if path == "/v2/transcript" and request.method == "GET":
            return httpx.Response(200, json={"transcripts": [{"id": "tx-1", "status": "completed"}]})

        if path.startswith("/v2/transcript/") and path.endswith("/word-search"):
            return httpx.Response(200, json={"matches": [{"text": request.url.params["words"]}]})

        if path.startswith("/v2/transcript/") and path.endswith("/srt"):
            return httpx.Response(200, text="1\n00:00:00,000 --> 00:00:01,000\nHello\n")

        if path.startswith("/v2/transcript/") and path.endswith("/sentences"):
            return httpx.Response(200, json={"sentences": [
                {"text": "Let's ship on Friday.", "start": 0, "end": 1800, "speaker": "A"},
            ]})

        if path.startswith("/v2/transcript/") and path.endswith("/paragraphs"):
            return httpx.Response(200, json={"paragraphs": [
                {"text": "Let's ship on Friday. Agreed.", "start": 0, "end": 3100},
            ]})

        if path.startswith("/v2/transcript/") and request.method == "GET":
            transcript_id = path.rsplit("/", 1)[-1]
            body: dict[str, Any] = {"id": transcript_id, "status": self.transcript_status}
            if self.transcript_status == "completed":
                body.update({"text": "Alice: Let's ship on Friday.", "audio_duration": 61})
            if self.transcript_error:
                body["error"] = self.transcript_error
            return httpx.Response(200, json=body)

        if path.startswith("/v2/transcript/") and request.method == "DELETE":
            return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1], "status": "completed"})

        if path == "/lemur/v3/generate/task":
            payload = json.loads(request.content)
            self.prompts.append(payload["prompt"])
            if self.lemur_status_code != 200:
                return httpx.Response(self.lemur_status_code, json={"error": "lemur failed"})
            if self.lemur_body is not None:
                return httpx.Response(200, json=self.lemur_body)
            return httpx.Response(200, json={"response": self.lemur_response, "request_id": "req-1"})

        return httpx.Response(404, json={"error": f"no route for {request.method} {path}"})


@pytest.fixture
def fake_vendor() -> FakeAssemblyAI:
    return FakeAssemblyAI()


@pytest_asyncio.fixture
async def vendor_client(fake_vendor):
    client = TranscriptionClient(
        api_key="test-key",
        base_url="https://api.assemblyai.test",
        transport=httpx.MockTransport(fake_vendor.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def meeting_template() -> Template:
    return Template.model_validate({
        "id": "team-sync",
        "name": "Team Sync",
        "description": "Weekly engineering sync.",
        "category": "My Templates",
        "fields": [
            {"id": "1", "name": "Action Items", "type": "keyFinding", "required": True},
            {"id": "2", "name": "Speaker Name", "type": "name"},
            {"id": "3", "name": "Quotes", "type": "quote"},
            {"id": "4", "name": "Meeting Date", "type": "date", "required": True},
        ],
    })
