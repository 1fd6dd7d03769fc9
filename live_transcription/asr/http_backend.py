"""HTTP recognition backend.

Uploads each snapshot as a multipart form to a transcription service and
reads back the hypothesis. Live and final calls use separate endpoints so
the service can route them to different capacity pools.
"""

import asyncio
import logging
import os
import time

import httpx

from live_transcription.asr.interface import Priority, RecognitionBackend
from live_transcription.audio.transcode import (
    PCM16_MIME_TYPE,
    file_extension_for,
    transcode_to_pcm16,
)
from live_transcription.utils.errors import RecognitionError, TranscodeError

logger = logging.getLogger(__name__)

DEFAULT_LIVE_PATH = "/transcribe/live"
DEFAULT_FINAL_PATH = "/transcribe"
TRANSIENT_STATUS_CODES = {429, 503}


class HttpRecognitionBackend(RecognitionBackend):
    """Recognition backend speaking a simple multipart-upload HTTP API.

    Reads configuration from environment variables when arguments are
    omitted: RECOGNITION_API_URL, RECOGNITION_API_KEY.

    Args:
        base_url: Service base URL.
        api_key: Bearer token; requests are unauthenticated when empty.
        timeout: Per-request timeout in seconds.
        live_path: Endpoint path for live-priority snapshots.
        final_path: Endpoint path for final-priority snapshots.
        transcode_pcm: Convert snapshots to raw 16kHz PCM before upload.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float = 60.0,
        live_path: str = DEFAULT_LIVE_PATH,
        final_path: str = DEFAULT_FINAL_PATH,
        transcode_pcm: bool = False,
    ) -> None:
        self.base_url = (
            base_url or os.environ.get("RECOGNITION_API_URL", "")
        ).rstrip("/")
        if not self.base_url:
            raise ValueError("RECOGNITION_API_URL is required")
        self._api_key = api_key or os.environ.get("RECOGNITION_API_KEY", "")
        self._timeout = timeout
        self._paths: dict[str, str] = {"live": live_path, "final": final_path}
        self.transcode_pcm = transcode_pcm

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"Authorization": f"Bearer {self._api_key}"}

    async def recognize(self, audio: bytes, mime_type: str, priority: Priority) -> str:
        """Upload a snapshot and return the recognized text.

        Raises:
            RecognitionError: On transport failure, non-200 status, a
                malformed response body, or a failed transcode.
        """
        upload_mime = mime_type
        if self.transcode_pcm:
            try:
                audio = await asyncio.to_thread(transcode_to_pcm16, audio, mime_type)
            except TranscodeError as exc:
                raise RecognitionError(
                    f"Snapshot transcode failed: {exc}", priority=priority
                ) from exc
            upload_mime = PCM16_MIME_TYPE

        filename = (
            f"{priority}_{int(time.time() * 1000)}.{file_extension_for(upload_mime)}"
        )
        url = f"{self.base_url}{self._paths[priority]}"

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    url,
                    headers=self._headers(),
                    files={"file": (filename, audio, upload_mime)},
                    data={"priority": priority},
                )
        except httpx.HTTPError as exc:
            raise RecognitionError(
                f"Recognition request failed: {exc}", priority=priority
            ) from exc

        if response.status_code == 429:
            raise RecognitionError(
                "Rate limited by recognition backend",
                priority=priority,
                status_code=429,
            )
        if response.status_code == 503:
            raise RecognitionError(
                "Recognition backend unavailable",
                priority=priority,
                status_code=503,
            )
        if response.status_code != 200:
            raise RecognitionError(
                f"Recognition failed with status {response.status_code}: "
                f"{response.text}",
                priority=priority,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RecognitionError(
                "Recognition response is not valid JSON", priority=priority
            ) from exc

        text = self._extract_text(body)
        if text is None:
            raise RecognitionError(
                "Recognition response has no transcript", priority=priority
            )

        logger.debug("Recognized %d chars at %s priority", len(text), priority)
        return text

    @staticmethod
    def _extract_text(body: object) -> str | None:
        """Read the hypothesis from a response body.

        Accepts {"text": "..."} or a segmented body of the form
        {"results": [{"alternatives": [{"transcript": "..."}]}]}. The
        backend splits on silence, so every segment's best alternative
        is joined.
        """
        if not isinstance(body, dict):
            return None

        text = body.get("text")
        if isinstance(text, str):
            return text.strip()

        results = body.get("results")
        if not isinstance(results, list):
            return None

        parts: list[str] = []
        for result in results:
            if not isinstance(result, dict):
                continue
            alternatives = result.get("alternatives") or []
            if not alternatives or not isinstance(alternatives[0], dict):
                continue
            transcript = alternatives[0].get("transcript", "")
            if isinstance(transcript, str) and transcript.strip():
                parts.append(transcript.strip())
        return " ".join(parts)
