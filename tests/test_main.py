"""Tests for live_transcription.main replay entry point."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from live_transcription.asr.client import RecognitionClient
from live_transcription.config import LiveTranscriptionConfig
from live_transcription.main import (
    _feed,
    _print_update,
    _run,
    build_parser,
    main,
    split_recording,
)
from live_transcription.session.recording import RecordingSession
from live_transcription.session.scheduler import TranscriptUpdate

ASR_URL = "https://asr.example.com"
MEMO_URL = "https://memos.example.com/api"


class TestSplitRecording:
    """Tests for split_recording()."""

    def test_splits_into_fixed_size_chunks(self):
        header, chunks = split_recording(b"abcdefghij", 0, 4)
        assert header is None
        assert chunks == [b"abcd", b"efgh", b"ij"]

    def test_leading_bytes_become_header(self):
        header, chunks = split_recording(b"abcdefghij", 2, 4)
        assert header == b"ab"
        assert chunks == [b"cdef", b"ghij"]

    def test_invalid_sizes_raise(self):
        with pytest.raises(ValueError, match="chunk_bytes"):
            split_recording(b"abc", 0, 0)
        with pytest.raises(ValueError, match="header_bytes"):
            split_recording(b"abc", -1, 4)


class TestPrintUpdate:
    """Tests for the live update printer."""

    def test_prints_appended_words(self, capsys):
        _print_update(TranscriptUpdate("hello there", "hello", "superset_prefix", 2, False))
        assert capsys.readouterr().out == "[live] + there\n"

    def test_prints_full_rewrite(self, capsys):
        _print_update(TranscriptUpdate("hi there", "hello", "leading_alignment", 2, False))
        assert capsys.readouterr().out == "[live] hi there\n"

    def test_prints_completed_partial_word(self, capsys):
        _print_update(TranscriptUpdate("Hello world", "Hello wor", "superset_prefix", 2, False))
        assert capsys.readouterr().out == "[live] Hello world\n"


class TestFeed:
    """Tests for _feed() chunk delivery."""

    async def test_delivers_header_and_chunks(self):
        session = RecordingSession()
        delivered = await _feed(session, b"H", [b"a", b"b"], 0.001, asyncio.Event())
        assert delivered == 2
        assert session.header == b"H"
        assert session.chunks == [b"a", b"b"]

    async def test_stops_early_when_signalled(self):
        session = RecordingSession()
        stop_event = asyncio.Event()
        stop_event.set()
        delivered = await _feed(session, None, [b"a", b"b"], 0.001, stop_event)
        assert delivered == 0
        assert session.chunks == []


class TestRun:
    """Tests for _run() end to end over mocked HTTP."""

    @pytest.fixture
    def audio_file(self, tmp_path):
        path = tmp_path / "memo.webm"
        path.write_bytes(b"abcdefghij")
        return path

    @pytest.fixture
    def config(self):
        return LiveTranscriptionConfig(tick_interval_seconds=3600, min_snapshot_bytes=0)

    @pytest.fixture(autouse=True)
    def environment(self, monkeypatch):
        monkeypatch.setenv("RECOGNITION_API_URL", ASR_URL)
        monkeypatch.delenv("RECOGNITION_API_KEY", raising=False)
        monkeypatch.delenv("MEMO_API_URL", raising=False)
        monkeypatch.delenv("MEMO_API_TOKEN", raising=False)

    def _args(self, audio_file, *extra):
        return build_parser().parse_args(
            [
                str(audio_file),
                "--header-bytes",
                "2",
                "--chunk-bytes",
                "4",
                "--chunk-interval",
                "0.001",
                "--final-retries",
                "0",
                *extra,
            ]
        )

    async def test_prints_final_transcript(self, audio_file, config, httpx_mock, capsys):
        httpx_mock.add_response(
            url=f"{ASR_URL}/transcribe", method="POST", json={"text": "final words"}
        )

        exit_code = await _run(self._args(audio_file), config)

        assert exit_code == 0
        assert "final words" in capsys.readouterr().out.splitlines()
        body = httpx_mock.get_request().read()
        assert b"abcdefghij" in body

    async def test_final_failure_returns_error_code(self, audio_file, config, httpx_mock):
        httpx_mock.add_response(url=f"{ASR_URL}/transcribe", method="POST", status_code=400)

        exit_code = await _run(self._args(audio_file), config)

        assert exit_code == 1

    async def test_final_retries_configure_client(self, audio_file, config, httpx_mock):
        """--final-retries is handed to the recognition client."""
        httpx_mock.add_response(
            url=f"{ASR_URL}/transcribe", method="POST", json={"text": "final words"}
        )

        with patch(
            "live_transcription.main.RecognitionClient", wraps=RecognitionClient
        ) as client_cls:
            exit_code = await _run(
                self._args(audio_file, "--final-retries", "2"), config
            )

        assert exit_code == 0
        assert client_cls.call_args.kwargs["final_retries"] == 2

    async def test_persists_to_live_memo(self, audio_file, config, httpx_mock, monkeypatch):
        monkeypatch.setenv("MEMO_API_URL", MEMO_URL)
        httpx_mock.add_response(
            url=f"{MEMO_URL}/memos/live", method="POST", json={"memoId": "memo-1"}
        )
        httpx_mock.add_response(
            url=f"{ASR_URL}/transcribe", method="POST", json={"text": "final words"}
        )
        httpx_mock.add_response(url=f"{MEMO_URL}/memos/memo-1", method="PATCH")

        exit_code = await _run(self._args(audio_file), config)

        assert exit_code == 0
        patch_request = httpx_mock.get_request(method="PATCH")
        assert json.loads(patch_request.content) == {"transcript": "final words"}


class TestMain:
    """Tests for main() argument handling and exit codes."""

    def test_returns_run_exit_code(self):
        with (
            patch("live_transcription.main._setup_logging"),
            patch("live_transcription.main._run", new=AsyncMock(return_value=0)) as run,
        ):
            assert main(["memo.webm", "--chunk-bytes", "1024"]) == 0
        args, config = run.await_args.args
        assert args.audio == "memo.webm"
        assert args.chunk_bytes == 1024
        assert isinstance(config, LiveTranscriptionConfig)

    def test_missing_file_returns_2(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RECOGNITION_API_URL", ASR_URL)
        with patch("live_transcription.main._setup_logging"):
            assert main([str(tmp_path / "missing.webm")]) == 2

    def test_invalid_environment_returns_2(self, monkeypatch):
        monkeypatch.setenv("LIVE_MAX_CHUNKS", "many")
        with (
            patch("live_transcription.main._setup_logging"),
            patch("live_transcription.main._run", new=AsyncMock(return_value=0)) as run,
        ):
            assert main(["memo.webm"]) == 2
        run.assert_not_awaited()
