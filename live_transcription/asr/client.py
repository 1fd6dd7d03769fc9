"""Recognition client with explicit live and final priority paths.

recognize_live() goes through the RecognitionCallSequencer and never raises:
failures and cancellation come back as RecognitionResult variants because
live preview is best-effort. recognize_final() calls the backend directly,
concurrently with any live traffic, and propagates RecognitionError. The final
call is retried with backoff only when the client is built with
final_retries above zero.
"""

from __future__ import annotations

import asyncio
import logging

from live_transcription.asr.interface import (
    RecognitionBackend,
    RecognitionRequest,
    RecognitionResult,
)
from live_transcription.asr.sequencer import RecognitionCallSequencer
from live_transcription.audio.window import Snapshot
from live_transcription.observability.metrics import StageTimer
from live_transcription.utils.errors import RecognitionError
from live_transcription.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class RecognitionClient:
    """Front door to a shared recognition backend.

    Args:
        backend: The recognition backend all sessions share.
        sequencer: Live-call queue; a private one is created if omitted.
        final_retries: Retry attempts for a transiently failing final call.
            0 (default) surfaces the first failure to the caller.
        final_retry_delay: Base backoff delay in seconds between final retries.
    """

    def __init__(
        self,
        backend: RecognitionBackend,
        sequencer: RecognitionCallSequencer | None = None,
        final_retries: int = 0,
        final_retry_delay: float = 1.0,
    ) -> None:
        if final_retries < 0:
            raise ValueError(f"final_retries must be non-negative, got {final_retries}")
        self.backend = backend
        self.sequencer = sequencer or RecognitionCallSequencer()
        self.final_retries = final_retries
        self.final_retry_delay = final_retry_delay

    async def recognize_live(
        self, snapshot: Snapshot, session_id: str | None = None
    ) -> RecognitionResult:
        """Submit a live snapshot through the serialized queue.

        Returns:
            ok with the hypothesis, cancelled if the awaiting task was
            cancelled, or failed with the error message.
        """
        try:
            with StageTimer("live_recognition") as timer:
                text = await self.sequencer.enqueue(
                    lambda: self.backend.recognize(
                        snapshot.payload, snapshot.mime_type, "live"
                    )
                )
        except asyncio.CancelledError:
            logger.debug(
                "Live recognition cancelled",
                extra={"session_id": session_id, "priority": "live"},
            )
            return RecognitionResult.cancelled()
        except Exception as exc:
            logger.warning(
                "Live recognition failed: %s",
                exc,
                extra={"session_id": session_id, "priority": "live", "error": str(exc)},
            )
            return RecognitionResult.failed(str(exc))

        logger.debug(
            "Live recognition returned %d chars for %d bytes",
            len(text),
            snapshot.size_bytes,
            extra={
                "session_id": session_id,
                "priority": "live",
                "duration_seconds": round(timer.duration_seconds, 3),
            },
        )
        return RecognitionResult.ok(text)

    async def recognize_final(
        self, snapshot: Snapshot, session_id: str | None = None
    ) -> str:
        """Submit the authoritative snapshot, bypassing the live queue.

        Raises:
            RecognitionError: If the backend fails and final_retries is
                exhausted or the failure is permanent.
        """

        @retry_with_backoff(
            max_retries=self.final_retries, base_delay=self.final_retry_delay
        )
        async def _recognize_final() -> str:
            return await self.backend.recognize(
                snapshot.payload, snapshot.mime_type, "final"
            )

        with StageTimer("final_recognition") as timer:
            try:
                text = await _recognize_final()
            except RecognitionError as exc:
                if exc.session_id is None:
                    exc.session_id = session_id
                raise

        logger.info(
            "Final recognition returned %d chars for %d bytes",
            len(text),
            snapshot.size_bytes,
            extra={
                "session_id": session_id,
                "priority": "final",
                "duration_seconds": round(timer.duration_seconds, 3),
            },
        )
        return text

    async def submit(
        self, request: RecognitionRequest, session_id: str | None = None
    ) -> RecognitionResult:
        """Dispatch a request by priority.

        Live requests never raise. Final requests propagate RecognitionError.
        """
        if request.priority == "final":
            text = await self.recognize_final(request.payload, session_id)
            return RecognitionResult.ok(text)
        return await self.recognize_live(request.payload, session_id)
