"""Tests for live_transcription.asr.client module."""

import asyncio

import pytest

from live_transcription.asr.client import RecognitionClient
from live_transcription.asr.interface import (
    RecognitionBackend,
    RecognitionRequest,
    RecognitionResult,
)
from live_transcription.audio.window import build_snapshot
from live_transcription.utils.errors import RecognitionError


def _snapshot(full: bool = False):
    return build_snapshot([b"chunk-1", b"chunk-2"], b"hdr", 30, "audio/webm", full=full)


class ScriptedBackend(RecognitionBackend):
    """Backend returning canned text, optionally blocking live calls."""

    def __init__(self, text: str = "hello world", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[str] = []
        self.live_gate: asyncio.Event | None = None

    async def recognize(self, audio, mime_type, priority):
        self.calls.append(priority)
        if priority == "live" and self.live_gate is not None:
            await self.live_gate.wait()
        if self.error is not None:
            raise self.error
        return f"{priority}:{self.text}"


class TestRecognitionResult:
    """Tests for RecognitionResult variants."""

    def test_ok_variant(self):
        result = RecognitionResult.ok("text")
        assert result.is_ok
        assert not result.is_cancelled
        assert result.text == "text"

    def test_cancelled_variant(self):
        result = RecognitionResult.cancelled()
        assert result.is_cancelled
        assert not result.is_ok
        assert result.text == ""

    def test_failed_variant(self):
        result = RecognitionResult.failed("boom")
        assert not result.is_ok
        assert not result.is_cancelled
        assert result.error == "boom"


class TestRecognizeLive:
    """Tests for RecognitionClient.recognize_live()."""

    async def test_returns_ok_result(self):
        """A successful live call returns the hypothesis."""
        client = RecognitionClient(ScriptedBackend())
        result = await client.recognize_live(_snapshot(), session_id="m-1")
        assert result == RecognitionResult.ok("live:hello world")

    async def test_backend_failure_becomes_failed_result(self):
        """Live failures never raise."""
        backend = ScriptedBackend(error=RecognitionError("backend down"))
        client = RecognitionClient(backend)
        result = await client.recognize_live(_snapshot())
        assert result.status == "failed"
        assert "backend down" in result.error

    async def test_cancellation_becomes_cancelled_result(self):
        """Cancelling the awaiting task yields the cancelled variant."""
        backend = ScriptedBackend()
        backend.live_gate = asyncio.Event()
        client = RecognitionClient(backend)

        task = asyncio.create_task(client.recognize_live(_snapshot()))
        await asyncio.sleep(0)
        task.cancel()
        result = await task
        assert result.is_cancelled
        assert client.sequencer.pending == 0

    async def test_live_calls_share_sequencer(self):
        """Two clients over one sequencer never overlap live calls."""
        backend = ScriptedBackend()
        backend.live_gate = asyncio.Event()
        first = RecognitionClient(backend)
        second = RecognitionClient(backend, sequencer=first.sequencer)

        a = asyncio.create_task(first.recognize_live(_snapshot()))
        b = asyncio.create_task(second.recognize_live(_snapshot()))
        await asyncio.sleep(0.01)
        assert backend.calls == ["live"]

        backend.live_gate.set()
        await asyncio.gather(a, b)
        assert backend.calls == ["live", "live"]


class TestRecognizeFinal:
    """Tests for RecognitionClient.recognize_final()."""

    async def test_returns_text(self):
        client = RecognitionClient(ScriptedBackend())
        assert await client.recognize_final(_snapshot(full=True)) == "final:hello world"

    async def test_failure_propagates_with_session_id(self):
        """Final failures raise RecognitionError tagged with the session."""
        backend = ScriptedBackend(error=RecognitionError("backend down", priority="final"))
        client = RecognitionClient(backend)
        with pytest.raises(RecognitionError) as exc_info:
            await client.recognize_final(_snapshot(full=True), session_id="m-9")
        assert exc_info.value.session_id == "m-9"
        assert "[session=m-9]" in str(exc_info.value)

    async def test_final_bypasses_busy_live_queue(self):
        """A final call completes while live calls are still queued."""
        backend = ScriptedBackend()
        backend.live_gate = asyncio.Event()
        client = RecognitionClient(backend)

        live_tasks = [
            asyncio.create_task(client.recognize_live(_snapshot())) for _ in range(3)
        ]
        await asyncio.sleep(0)
        assert client.sequencer.busy

        text = await asyncio.wait_for(
            client.recognize_final(_snapshot(full=True)), timeout=1.0
        )
        assert text == "final:hello world"
        assert all(not task.done() for task in live_tasks)

        backend.live_gate.set()
        await asyncio.gather(*live_tasks)


class TestFinalRetries:
    """Tests for the final_retries policy on RecognitionClient."""

    async def test_no_retry_by_default(self):
        backend = ScriptedBackend(error=RecognitionError("busy", status_code=503))
        client = RecognitionClient(backend)
        with pytest.raises(RecognitionError):
            await client.recognize_final(_snapshot(full=True))
        assert backend.calls == ["final"]

    async def test_transient_failure_is_retried(self):
        class FlakyBackend(RecognitionBackend):
            def __init__(self):
                self.attempts = 0

            async def recognize(self, audio, mime_type, priority):
                self.attempts += 1
                if self.attempts == 1:
                    raise RecognitionError("busy", status_code=503)
                return "final words"

        backend = FlakyBackend()
        client = RecognitionClient(backend, final_retries=2, final_retry_delay=0)

        assert await client.recognize_final(_snapshot(full=True)) == "final words"
        assert backend.attempts == 2

    async def test_permanent_failure_is_not_retried(self):
        """A 4xx rejection surfaces at once with the session attached."""
        backend = ScriptedBackend(error=RecognitionError("bad audio", status_code=400))
        client = RecognitionClient(backend, final_retries=3, final_retry_delay=0)
        with pytest.raises(RecognitionError) as exc_info:
            await client.recognize_final(_snapshot(full=True), session_id="m-4")
        assert backend.calls == ["final"]
        assert exc_info.value.session_id == "m-4"

    async def test_exhausted_retries_raise(self):
        backend = ScriptedBackend(error=RecognitionError("busy", status_code=503))
        client = RecognitionClient(backend, final_retries=2, final_retry_delay=0)
        with pytest.raises(RecognitionError):
            await client.recognize_final(_snapshot(full=True))
        assert backend.calls == ["final", "final", "final"]

    def test_negative_final_retries_rejected(self):
        with pytest.raises(ValueError, match="final_retries"):
            RecognitionClient(ScriptedBackend(), final_retries=-1)


class TestSubmit:
    """Tests for RecognitionClient.submit() priority dispatch."""

    async def test_live_request_uses_live_path(self):
        backend = ScriptedBackend()
        client = RecognitionClient(backend)
        result = await client.submit(RecognitionRequest(_snapshot(), "live"))
        assert result.text == "live:hello world"
        assert backend.calls == ["live"]

    async def test_final_request_uses_final_path(self):
        backend = ScriptedBackend()
        client = RecognitionClient(backend)
        result = await client.submit(RecognitionRequest(_snapshot(True), "final"))
        assert result.is_ok
        assert result.text == "final:hello world"
        assert backend.calls == ["final"]

    async def test_final_request_failure_raises(self):
        backend = ScriptedBackend(error=RecognitionError("nope"))
        client = RecognitionClient(backend)
        with pytest.raises(RecognitionError):
            await client.submit(RecognitionRequest(_snapshot(True), "final"))
