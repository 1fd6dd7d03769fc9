"""Speech recognition client stack: backends, call sequencing, priorities."""

from live_transcription.asr.client import RecognitionClient
from live_transcription.asr.registry import get_recognition_backend

__all__ = ["RecognitionClient", "get_recognition_backend"]
