"""Recognition backend interface and request/result models.

Concrete backends (e.g., HttpRecognitionBackend) subclass RecognitionBackend.
A backend sees one snapshot at a time and returns plain hypothesis text;
it is not incremental and keeps no state between calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

from live_transcription.audio.window import Snapshot

Priority = Literal["live", "final"]
ResultStatus = Literal["ok", "cancelled", "failed"]


@dataclass(frozen=True)
class RecognitionRequest:
    """One snapshot submitted at live or final priority."""

    payload: Snapshot
    priority: Priority


@dataclass(frozen=True)
class RecognitionResult:
    """Outcome of a live recognition call.

    Cancellation is an expected outcome of supersession and session stop,
    so it is a variant here rather than an exception callers must catch.
    """

    status: ResultStatus
    text: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, text: str) -> RecognitionResult:
        return cls(status="ok", text=text)

    @classmethod
    def cancelled(cls) -> RecognitionResult:
        return cls(status="cancelled")

    @classmethod
    def failed(cls, error: str) -> RecognitionResult:
        return cls(status="failed", error=error)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"


class RecognitionBackend(ABC):
    """Abstract base class for speech recognition backends.

    Subclasses must implement the recognize() method.
    """

    @abstractmethod
    async def recognize(self, audio: bytes, mime_type: str, priority: Priority) -> str:
        """Transcribe one snapshot.

        Args:
            audio: Snapshot bytes (header fragment plus audio chunks).
            mime_type: Container MIME type of the snapshot.
            priority: "live" for preview ticks, "final" for the
                authoritative call after recording stops.

        Returns:
            Hypothesis text; empty when no speech was recognized.

        Raises:
            RecognitionError: On any backend or transport failure.
        """
