"""Live session metrics collection and reporting.

Provides the SessionMetrics dataclass, the StageTimer context manager for
measuring durations, and log_session_metrics() for emitting one structured
JSON line per finished recording session.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime


@dataclass
class SessionMetrics:
    """Counters collected over one live recording session."""

    session_id: str | None = None
    ticks_started: int = 0
    ticks_skipped: int = 0
    ticks_cancelled: int = 0
    ticks_failed: int = 0
    return_ticks: int = 0
    merges_applied: int = 0
    max_snapshot_bytes: int = 0
    transcript_chars: int = 0
    final_duration_seconds: float = 0.0
    final_status: str = "not_run"

    def record_snapshot(self, size_bytes: int) -> None:
        """Track the largest payload submitted during the session."""
        self.max_snapshot_bytes = max(self.max_snapshot_bytes, size_bytes)


class StageTimer:
    """Context manager that records wall-clock duration of a stage.

    Usage:
        timer = StageTimer("final_recognition")
        with timer:
            await do_work()
        print(timer.duration_seconds)
    """

    def __init__(self, stage_name: str) -> None:
        self.stage_name = stage_name
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.duration_seconds = time.monotonic() - self._mono_start
        self.end_time = datetime.now(UTC)


def log_session_metrics(metrics: SessionMetrics) -> None:
    """Emit session metrics as a single structured JSON line to stdout.

    Args:
        metrics: Populated SessionMetrics dataclass.
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO",
        "metric_type": "live_session",
        **asdict(metrics),
    }
    print(json.dumps(entry))
