"""Serialized, coalescing persistence of the live transcript.

At most one write per session is outstanding. Transcripts submitted while
a write is in flight collapse into the newest one, which is written as
soon as the current write settles. Failed writes are logged and are only
retried when a newer transcript arrives.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from live_transcription.utils.errors import PersistenceError

logger = logging.getLogger(__name__)


class TranscriptSink(Protocol):
    """Anything that can store a session's transcript."""

    async def update_transcript(self, session_id: str, transcript: str) -> None: ...


class TranscriptSyncer:
    """Drains transcript updates for one session into a TranscriptSink."""

    def __init__(self, sink: TranscriptSink, session_id: str) -> None:
        self.sink = sink
        self.session_id = session_id
        self._pending: str | None = None
        self._synced = ""
        self._task: asyncio.Task[None] | None = None
        self.writes = 0
        self.failures = 0

    @property
    def synced(self) -> str:
        """Last transcript the sink acknowledged."""
        return self._synced

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, transcript: str) -> None:
        """Queue the newest transcript for writing."""
        self._pending = transcript
        if not self.in_flight:
            self._task = asyncio.create_task(
                self._drain(), name=f"transcript-sync-{self.session_id}"
            )

    async def flush(self, transcript: str | None = None) -> None:
        """Optionally submit a transcript, then wait until nothing is pending."""
        if transcript is not None:
            self.submit(transcript)
        if self._task is not None:
            await self._task

    async def close(self) -> None:
        """Abandon pending writes."""
        self._pending = None
        if self.in_flight:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)

    async def _drain(self) -> None:
        while self._pending is not None:
            transcript = self._pending.strip()
            self._pending = None
            if not transcript or transcript == self._synced:
                continue

            try:
                await self.sink.update_transcript(self.session_id, transcript)
            except PersistenceError as exc:
                self.failures += 1
                logger.warning(
                    "Transcript sync failed: %s",
                    exc,
                    extra={"session_id": self.session_id, "error": str(exc)},
                )
                continue
            except Exception:
                self.failures += 1
                logger.error(
                    "Unexpected transcript sync error",
                    extra={"session_id": self.session_id},
                    exc_info=True,
                )
                continue

            self._synced = transcript
            self.writes += 1
