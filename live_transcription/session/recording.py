"""Recording session state: captured audio and the accumulated transcript."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from live_transcription.audio.window import Snapshot, build_snapshot
from live_transcription.transcript.merge import (
    MergeOutcome,
    MergeThresholds,
    explain_merge,
)

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/webm"


@dataclass
class RecordingSession:
    """Owns one recording's chunks, header fragment and transcript.

    Chunks are append-only. The header fragment is kept apart from the
    chunk list and is never counted as audio. The transcript changes only
    through apply_hypothesis().
    """

    mime_type: str = DEFAULT_MIME_TYPE
    session_id: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    chunks: list[bytes] = field(default_factory=list)
    header: bytes | None = None
    transcript: str = ""
    _header_expected: bool = field(default=True, repr=False)

    def on_header_fragment(self, data: bytes) -> None:
        """Store the container header fragment captured at session start."""
        if not data:
            return
        if self.header is not None:
            logger.warning(
                "Ignoring repeated header fragment",
                extra={"session_id": self.session_id},
            )
            return
        self.header = bytes(data)
        self._header_expected = False

    def on_chunk(self, data: bytes) -> None:
        """Append one captured audio chunk."""
        if not data:
            return
        self._header_expected = False
        self.chunks.append(bytes(data))

    def on_data(self, data: bytes) -> None:
        """Route a raw capture event for sources whose first event is the header.

        The first non-empty event becomes the header fragment; every later
        event is an audio chunk.
        """
        if not data:
            return
        if self._header_expected and self.header is None:
            self.on_header_fragment(data)
            return
        self.on_chunk(data)

    @property
    def has_audio(self) -> bool:
        return bool(self.chunks)

    def snapshot(self, max_chunks: int, full: bool = False) -> Snapshot:
        """Build a recognition snapshot from the current chunks."""
        return build_snapshot(
            self.chunks, self.header, max_chunks, self.mime_type, full=full
        )

    def apply_hypothesis(
        self, text: str, thresholds: MergeThresholds | None = None
    ) -> MergeOutcome:
        """Merge a recognition hypothesis into the accumulated transcript."""
        outcome = explain_merge(self.transcript, text, thresholds)
        if outcome.changed:
            self.transcript = outcome.text
        return outcome

    def clear(self) -> None:
        """Drop all captured audio and transcript state."""
        self.chunks = []
        self.header = None
        self.transcript = ""
        self._header_expected = True
