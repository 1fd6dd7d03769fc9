"""Transcript reconciliation: hypothesis merging and display views."""

from live_transcription.transcript.merge import (
    MERGE_STRATEGIES,
    MergeOutcome,
    MergeThresholds,
    explain_merge,
    merge_transcripts,
)
from live_transcription.transcript.view import TranscriptView, build_view

__all__ = [
    "MERGE_STRATEGIES",
    "MergeOutcome",
    "MergeThresholds",
    "TranscriptView",
    "build_view",
    "explain_merge",
    "merge_transcripts",
]
