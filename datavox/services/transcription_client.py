"""
AssemblyAI Transcription Client.

Thin async wrapper over the AssemblyAI REST API: audio upload,
transcript lifecycle, transcript exports, and LeMUR tasks (the LLM
call used for template extraction). No retry or backoff happens here;
every failure surfaces as TranscriptionServiceError.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

import httpx

from datavox.config import get_settings
from datavox.logging_config import get_logger

logger = get_logger(__name__)

SubtitleFormat = Literal["srt", "vtt"]


class TranscriptionServiceError(RuntimeError):
    """The transcription vendor could not be reached or rejected a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TranscriptionClient:
    """
    Async AssemblyAI client.

    Use as an async context manager, or call ``aclose()`` when done.
    A custom ``transport`` can be supplied (e.g. ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        final_model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.assemblyai_api_key
        self.final_model = final_model or settings.lemur_final_model
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.assemblyai_base_url,
            timeout=timeout or settings.http_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> TranscriptionClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: bytes | None = None,
        params: dict[str, Any] | None = None,
        expect_json: bool = True,
    ) -> Any:
        if not self.api_key:
            raise TranscriptionServiceError("AssemblyAI API key is not configured")

        headers = {"Authorization": self.api_key}
        if content is not None:
            headers["Content-Type"] = "application/octet-stream"

        try:
            response = await self._client.request(
                method, path, json=json, content=content, params=params, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:300]
            logger.error(
                "assemblyai_http_error",
                method=method,
                path=path,
                status=e.response.status_code,
                detail=detail,
            )
            raise TranscriptionServiceError(
                f"AssemblyAI {method} {path} failed with {e.response.status_code}: {detail}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("assemblyai_transport_error", method=method, path=path, error=str(e))
            raise TranscriptionServiceError(f"AssemblyAI {method} {path} failed: {e}") from e

        if not expect_json:
            return response.text
        try:
            body = response.json()
        except ValueError as e:
            raise TranscriptionServiceError(f"AssemblyAI {method} {path} returned non-JSON body") from e
        if not isinstance(body, dict):
            raise TranscriptionServiceError(
                f"AssemblyAI {method} {path} returned {type(body).__name__}, expected a JSON object"
            )
        return body

    # -- Transcription --

    async def upload(self, data: bytes) -> str:
        """Upload raw audio bytes and return the private upload URL."""
        body = await self._request("POST", "/v2/upload", content=data)
        upload_url = body.get("upload_url")
        if not upload_url:
            raise TranscriptionServiceError("AssemblyAI upload returned no upload_url")
        logger.info("audio_uploaded", size=len(data))
        return upload_url

    async def create_transcript(
        self,
        audio_url: str,
        *,
        speaker_labels: bool | None = None,
        language_code: str | None = None,
        language_detection: bool | None = None,
        webhook_url: str | None = None,
    ) -> dict[str, Any]:
        """Queue a transcription job for an uploaded (or public) audio URL."""
        if speaker_labels is None:
            speaker_labels = get_settings().speaker_labels

        payload: dict[str, Any] = {"audio_url": audio_url, "speaker_labels": speaker_labels}
        if language_code:
            payload["language_code"] = language_code
        if language_detection is not None:
            payload["language_detection"] = language_detection
        if webhook_url:
            payload["webhook_url"] = webhook_url

        transcript = await self._request("POST", "/v2/transcript", json=payload)
        logger.info("transcript_created", transcript_id=transcript.get("id"))
        return transcript

    async def get_transcript(self, transcript_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/v2/transcript/{transcript_id}")

    async def list_transcripts(self, limit: int = 20) -> list[dict[str, Any]]:
        body = await self._request("GET", "/v2/transcript", params={"limit": limit})
        return body.get("transcripts", [])

    async def delete_transcript(self, transcript_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/v2/transcript/{transcript_id}")

    # -- Exports --

    async def get_subtitles(
        self,
        transcript_id: str,
        fmt: SubtitleFormat = "srt",
        chars_per_caption: Optional[int] = None,
    ) -> str:
        params = {"chars_per_caption": chars_per_caption} if chars_per_caption else None
        return await self._request(
            "GET", f"/v2/transcript/{transcript_id}/{fmt}", params=params, expect_json=False
        )

    async def get_sentences(self, transcript_id: str) -> list[dict[str, Any]]:
        body = await self._request("GET", f"/v2/transcript/{transcript_id}/sentences")
        return body.get("sentences", [])

    async def get_paragraphs(self, transcript_id: str) -> list[dict[str, Any]]:
        body = await self._request("GET", f"/v2/transcript/{transcript_id}/paragraphs")
        return body.get("paragraphs", [])

    async def search_words(self, transcript_id: str, words: list[str]) -> list[dict[str, Any]]:
        body = await self._request(
            "GET",
            f"/v2/transcript/{transcript_id}/word-search",
            params={"words": ",".join(words)},
        )
        return body.get("matches", [])

    # -- LeMUR --

    async def run_task(
        self,
        transcript_id: str,
        prompt: str,
        *,
        final_model: str | None = None,
    ) -> str:
        """
        Run a free-form LeMUR task against one transcript.

        Returns the model's raw text response (expected, not guaranteed,
        to be JSON).
        """
        payload = {
            "transcript_ids": [transcript_id],
            "prompt": prompt,
            "final_model": final_model or self.final_model,
        }
        body = await self._request("POST", "/lemur/v3/generate/task", json=payload)
        logger.info(
            "lemur_task_complete",
            transcript_id=transcript_id,
            request_id=body.get("request_id"),
        )
        return body.get("response") or ""
