"""Live transcription tunables resolved from arguments or the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from live_transcription.transcript.merge import MergeThresholds

DEFAULT_TICK_INTERVAL_SECONDS = 1.5
DEFAULT_MAX_CHUNKS = 30
DEFAULT_MIN_SNAPSHOT_BYTES = 1000


@dataclass(frozen=True)
class LiveTranscriptionConfig:
    """Scheduler, window and merge tunables for one deployment.

    Attributes:
        tick_interval_seconds: Period of the live recognition timer.
        max_chunks: Cap N on chunk-equivalents per live snapshot.
        min_snapshot_bytes: Snapshots smaller than this hold no usable
            speech and are not submitted.
        merge: Thresholds for the transcript merge ladder.
    """

    tick_interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS
    max_chunks: int = DEFAULT_MAX_CHUNKS
    min_snapshot_bytes: int = DEFAULT_MIN_SNAPSHOT_BYTES
    merge: MergeThresholds = field(default_factory=MergeThresholds)

    def __post_init__(self) -> None:
        if self.tick_interval_seconds <= 0:
            raise ValueError(
                f"tick_interval_seconds must be positive, got {self.tick_interval_seconds}"
            )
        if self.max_chunks < 2:
            raise ValueError(f"max_chunks must be at least 2, got {self.max_chunks}")
        if self.min_snapshot_bytes < 0:
            raise ValueError(
                f"min_snapshot_bytes must be non-negative, got {self.min_snapshot_bytes}"
            )

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> LiveTranscriptionConfig:
        """Build a config from LIVE_* environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable is set but not a valid number.
        """
        env = os.environ if environ is None else environ

        def _read(name: str, default: float, cast: type) -> float:
            raw = env.get(name, "").strip()
            if not raw:
                return default
            try:
                return cast(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid value for {name}: '{raw}'") from exc

        merge = replace(
            MergeThresholds(),
            char_overlap_window=_read(
                "LIVE_CHAR_OVERLAP_WINDOW", MergeThresholds.char_overlap_window, int
            ),
            char_overlap_min=_read(
                "LIVE_CHAR_OVERLAP_MIN", MergeThresholds.char_overlap_min, int
            ),
            char_overlap_min_short=_read(
                "LIVE_CHAR_OVERLAP_MIN_SHORT", MergeThresholds.char_overlap_min_short, int
            ),
        )
        return cls(
            tick_interval_seconds=_read(
                "LIVE_TICK_INTERVAL_SECONDS", DEFAULT_TICK_INTERVAL_SECONDS, float
            ),
            max_chunks=_read("LIVE_MAX_CHUNKS", DEFAULT_MAX_CHUNKS, int),
            min_snapshot_bytes=_read(
                "LIVE_MIN_SNAPSHOT_BYTES", DEFAULT_MIN_SNAPSHOT_BYTES, int
            ),
            merge=merge,
        )
