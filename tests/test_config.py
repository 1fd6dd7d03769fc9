"""Tests for live_transcription.config module."""

import pytest

from live_transcription.config import LiveTranscriptionConfig
from live_transcription.transcript.merge import MergeThresholds


class TestLiveTranscriptionConfig:
    """Tests for LiveTranscriptionConfig defaults and validation."""

    def test_defaults(self):
        config = LiveTranscriptionConfig()
        assert config.tick_interval_seconds == 1.5
        assert config.max_chunks == 30
        assert config.min_snapshot_bytes == 1000
        assert config.merge == MergeThresholds()

    def test_non_positive_interval_raises(self):
        with pytest.raises(ValueError, match="tick_interval_seconds"):
            LiveTranscriptionConfig(tick_interval_seconds=0)

    def test_cap_below_two_raises(self):
        with pytest.raises(ValueError, match="max_chunks"):
            LiveTranscriptionConfig(max_chunks=1)

    def test_negative_min_snapshot_raises(self):
        with pytest.raises(ValueError, match="min_snapshot_bytes"):
            LiveTranscriptionConfig(min_snapshot_bytes=-1)


class TestFromEnv:
    """Tests for LiveTranscriptionConfig.from_env()."""

    def test_empty_environment_uses_defaults(self):
        assert LiveTranscriptionConfig.from_env({}) == LiveTranscriptionConfig()

    def test_reads_live_variables(self):
        config = LiveTranscriptionConfig.from_env(
            {
                "LIVE_TICK_INTERVAL_SECONDS": "2.5",
                "LIVE_MAX_CHUNKS": "12",
                "LIVE_MIN_SNAPSHOT_BYTES": "0",
                "LIVE_CHAR_OVERLAP_WINDOW": "400",
                "LIVE_CHAR_OVERLAP_MIN": "30",
                "LIVE_CHAR_OVERLAP_MIN_SHORT": "20",
            }
        )
        assert config.tick_interval_seconds == 2.5
        assert config.max_chunks == 12
        assert config.min_snapshot_bytes == 0
        assert config.merge.char_overlap_window == 400
        assert config.merge.char_overlap_min == 30
        assert config.merge.char_overlap_min_short == 20
        assert config.merge.resend_anchor_min == MergeThresholds().resend_anchor_min

    def test_blank_variable_keeps_default(self):
        config = LiveTranscriptionConfig.from_env({"LIVE_MAX_CHUNKS": "  "})
        assert config.max_chunks == 30

    def test_invalid_number_raises(self):
        with pytest.raises(ValueError, match="Invalid value for LIVE_MAX_CHUNKS: 'lots'"):
            LiveTranscriptionConfig.from_env({"LIVE_MAX_CHUNKS": "lots"})

    def test_invalid_range_raises(self):
        with pytest.raises(ValueError, match="max_chunks"):
            LiveTranscriptionConfig.from_env({"LIVE_MAX_CHUNKS": "1"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("LIVE_TICK_INTERVAL_SECONDS", "0.5")
        assert LiveTranscriptionConfig.from_env().tick_interval_seconds == 0.5
