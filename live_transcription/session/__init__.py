"""Live recording sessions: state, tick scheduling and transcript sync."""

from live_transcription.session.recording import RecordingSession
from live_transcription.session.scheduler import (
    LiveTickScheduler,
    SchedulerState,
    TranscriptUpdate,
)
from live_transcription.session.sync import TranscriptSyncer

__all__ = [
    "LiveTickScheduler",
    "RecordingSession",
    "SchedulerState",
    "TranscriptSyncer",
    "TranscriptUpdate",
]
