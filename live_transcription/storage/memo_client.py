"""Memo API client acting as the live transcript persistence sink.

Creates an in-progress memo when a live session starts and overwrites its
transcript as the accumulated text grows. The memo id is the session id
the rest of the engine logs and persists under.
"""

from __future__ import annotations

import logging
import os

import httpx

from live_transcription.utils.errors import PersistenceError

logger = logging.getLogger(__name__)

LIVE_MEMO_TITLE = "Live memo"


class MemoClient:
    """Client for memo rows via the memo HTTP API.

    Reads configuration from environment variables:
        MEMO_API_URL, MEMO_API_TOKEN
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_token: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_url = (api_url or os.environ.get("MEMO_API_URL", "")).rstrip("/")
        self.api_token = api_token or os.environ.get("MEMO_API_TOKEN", "")

        if not self.api_url:
            raise PersistenceError("MEMO_API_URL is required", operation="init")

        self._client = httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        """Build authentication headers for the memo API."""
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def close(self) -> None:
        """Close the shared HTTP client and release connection pool."""
        await self._client.aclose()

    async def create_live_memo(self, title: str = LIVE_MEMO_TITLE) -> str:
        """Create an empty in-progress memo for a live session.

        Returns:
            The new memo id.

        Raises:
            PersistenceError: If the API call fails or returns no id.
        """
        url = f"{self.api_url}/memos/live"
        try:
            response = await self._client.post(
                url, headers=self._headers(), json={"title": title}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PersistenceError(
                f"Live memo creation failed: HTTP {exc.response.status_code}",
                operation="create_live_memo",
            ) from exc
        except httpx.RequestError as exc:
            raise PersistenceError(
                f"Live memo creation failed: {exc}",
                operation="create_live_memo",
            ) from exc

        try:
            memo_id = response.json().get("memoId")
        except (ValueError, AttributeError):
            memo_id = None
        if not isinstance(memo_id, str) or not memo_id:
            raise PersistenceError(
                "Live memo response has no memoId", operation="create_live_memo"
            )

        logger.info("Created live memo %s", memo_id, extra={"session_id": memo_id})
        return memo_id

    async def update_transcript(self, session_id: str, transcript: str) -> None:
        """Overwrite the stored transcript of a memo.

        Args:
            session_id: The memo id.
            transcript: Full transcript text to store.

        Raises:
            PersistenceError: If the API call fails.
        """
        url = f"{self.api_url}/memos/{session_id}"
        try:
            response = await self._client.patch(
                url,
                headers=self._headers(),
                json={"transcript": transcript},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PersistenceError(
                f"Transcript update failed: HTTP {exc.response.status_code}",
                session_id=session_id,
                operation="update_transcript",
            ) from exc
        except httpx.RequestError as exc:
            raise PersistenceError(
                f"Transcript update failed: {exc}",
                session_id=session_id,
                operation="update_transcript",
            ) from exc
