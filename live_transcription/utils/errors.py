"""Custom exception hierarchy for the live transcription engine.

All exceptions inherit from LiveTranscriptionError, enabling targeted
handling at session boundaries while preserving specific failure context.
Cancelled recognition calls are not exceptions here; they surface as the
``cancelled`` variant of RecognitionResult.
"""


class LiveTranscriptionError(Exception):
    """Base exception for all live transcription errors."""

    def __init__(self, message: str, session_id: str | None = None) -> None:
        self.session_id = session_id
        super().__init__(message)

    def __str__(self) -> str:
        if self.session_id:
            return f"[session={self.session_id}] {super().__str__()}"
        return super().__str__()


class RecognitionError(LiveTranscriptionError):
    """Raised when the speech recognition backend fails."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        priority: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.priority = priority
        self.status_code = status_code
        super().__init__(message, session_id)


class TranscodeError(LiveTranscriptionError):
    """Raised when ffmpeg transcoding of a snapshot fails."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        mime_type: str | None = None,
    ) -> None:
        self.mime_type = mime_type
        super().__init__(message, session_id)


class PersistenceError(LiveTranscriptionError):
    """Raised when the transcript persistence sink fails."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.operation = operation
        super().__init__(message, session_id)


class SessionStateError(LiveTranscriptionError):
    """Raised on an invalid live session state transition."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        state: str | None = None,
    ) -> None:
        self.state = state
        super().__init__(message, session_id)
