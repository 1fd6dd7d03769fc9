"""Live transcription reconciliation engine."""
