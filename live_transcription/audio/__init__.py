"""Audio snapshot construction and transcoding."""

from live_transcription.audio.window import Snapshot, build_snapshot, select_window

__all__ = ["Snapshot", "build_snapshot", "select_window"]
