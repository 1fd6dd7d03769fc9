"""Live tick scheduler for one recording session.

Drives periodic live recognition of the growing recording:

- a repeating timer fires run_tick() every tick interval;
- at most one live request is in flight per session, enforced by a flag
  checked synchronously before any work starts;
- a new request cancels a still-outstanding older one, and results of
  superseded or post-stop requests are discarded;
- while the recording surface is hidden the timer is stopped but audio
  keeps accumulating; on return one full-length "return tick" is sent;
- stop() flushes the live transcript, then issues one final-priority call
  over the complete audio and returns its text.

State machine: IDLE -> RECORDING <-> SUSPENDED -> STOPPED (IDLE -> STOPPED
is allowed for sessions abandoned before they start). STOPPED is terminal.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from live_transcription.asr.client import RecognitionClient
from live_transcription.asr.interface import RecognitionResult
from live_transcription.audio.window import Snapshot
from live_transcription.config import LiveTranscriptionConfig
from live_transcription.observability.metrics import (
    SessionMetrics,
    StageTimer,
    log_session_metrics,
)
from live_transcription.session.recording import RecordingSession
from live_transcription.session.sync import TranscriptSyncer
from live_transcription.utils.errors import RecognitionError, SessionStateError

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    SUSPENDED = "suspended"
    STOPPED = "stopped"


_ALLOWED_TRANSITIONS: dict[SchedulerState, frozenset[SchedulerState]] = {
    SchedulerState.IDLE: frozenset({SchedulerState.RECORDING, SchedulerState.STOPPED}),
    SchedulerState.RECORDING: frozenset(
        {SchedulerState.SUSPENDED, SchedulerState.STOPPED}
    ),
    SchedulerState.SUSPENDED: frozenset(
        {SchedulerState.RECORDING, SchedulerState.STOPPED}
    ),
    SchedulerState.STOPPED: frozenset(),
}


@dataclass(frozen=True)
class TranscriptUpdate:
    """A change to the accumulated transcript produced by one live tick."""

    text: str
    previous: str
    strategy: str
    tick: int
    return_tick: bool


class LiveTickScheduler:
    """Schedules live recognition ticks for a single RecordingSession.

    Args:
        session: The recording being transcribed. Not reused after stop().
        client: Recognition client shared across sessions.
        config: Tunables; defaults to LiveTranscriptionConfig().
        syncer: Optional persistence for the accumulated transcript.
        on_update: Called with a TranscriptUpdate whenever a live tick
            changes the transcript.
    """

    def __init__(
        self,
        session: RecordingSession,
        client: RecognitionClient,
        config: LiveTranscriptionConfig | None = None,
        syncer: TranscriptSyncer | None = None,
        on_update: Callable[[TranscriptUpdate], None] | None = None,
    ) -> None:
        self.session = session
        self.client = client
        self.config = config or LiveTranscriptionConfig()
        self.syncer = syncer
        self.on_update = on_update
        self.metrics = SessionMetrics(session_id=session.session_id)

        self._state = SchedulerState.IDLE
        self._in_flight = False
        self._return_tick_pending = False
        self._tick_seq = 0
        self._timer_task: asyncio.Task[None] | None = None
        self._tick_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _log_extra(self, **fields: object) -> dict[str, object]:
        return {"session_id": self.session.session_id, **fields}

    def _transition(self, target: SchedulerState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self._state]:
            raise SessionStateError(
                f"Cannot move live session from {self._state.value} to {target.value}",
                session_id=self.session.session_id,
                state=self._state.value,
            )
        logger.debug(
            "Live session %s -> %s",
            self._state.value,
            target.value,
            extra=self._log_extra(),
        )
        self._state = target

    # -- timer -----------------------------------------------------------

    def start(self) -> None:
        """Begin recording: start the repeating tick timer.

        Raises:
            SessionStateError: If the session was already started or stopped.
        """
        self._transition(SchedulerState.RECORDING)
        self._start_timer()

    def _start_timer(self) -> None:
        self._stop_timer()
        self._timer_task = asyncio.create_task(
            self._timer_loop(), name=f"live-timer-{self.session.session_id}"
        )

    def _stop_timer(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.tick_interval_seconds)
            try:
                self.run_tick()
            except Exception:
                logger.error(
                    "Unexpected error starting live tick",
                    extra=self._log_extra(),
                    exc_info=True,
                )

    # -- ticks -----------------------------------------------------------

    def run_tick(self) -> bool:
        """Start one live tick if possible.

        No-op when not recording, when a tick is already in flight, when no
        audio has been captured yet, or when the snapshot is too small to
        hold speech.

        Returns:
            True if a recognition request was issued.
        """
        if self._state is not SchedulerState.RECORDING:
            return False
        if self._in_flight:
            self.metrics.ticks_skipped += 1
            return False
        if not self.session.has_audio:
            return False

        return_tick = self._return_tick_pending
        snapshot = self.session.snapshot(self.config.max_chunks, full=return_tick)
        if snapshot.size_bytes < self.config.min_snapshot_bytes:
            logger.debug(
                "Snapshot of %d bytes below minimum, skipping tick",
                snapshot.size_bytes,
                extra=self._log_extra(),
            )
            return False

        self._return_tick_pending = False
        self._cancel_outstanding()
        self._in_flight = True
        self._tick_seq += 1
        tick = self._tick_seq

        self.metrics.ticks_started += 1
        self.metrics.record_snapshot(snapshot.size_bytes)
        if return_tick:
            self.metrics.return_ticks += 1

        self._tick_task = asyncio.create_task(
            self._execute_tick(snapshot, tick, return_tick),
            name=f"live-tick-{self.session.session_id}-{tick}",
        )
        return True

    def _cancel_outstanding(self) -> None:
        if self._tick_task is not None and not self._tick_task.done():
            self._tick_task.cancel()

    async def _execute_tick(self, snapshot: Snapshot, tick: int, return_tick: bool) -> None:
        try:
            result = await self.client.recognize_live(
                snapshot, session_id=self.session.session_id
            )
            self._apply_result(result, tick, return_tick)
        finally:
            if tick == self._tick_seq:
                self._in_flight = False

    def _apply_result(
        self, result: RecognitionResult, tick: int, return_tick: bool
    ) -> None:
        if result.is_cancelled:
            self.metrics.ticks_cancelled += 1
            logger.debug("Live tick %d cancelled", tick, extra=self._log_extra(tick=tick))
            return
        if not result.is_ok:
            self.metrics.ticks_failed += 1
            logger.warning(
                "Live tick %d failed; transcript unchanged",
                tick,
                extra=self._log_extra(tick=tick, error=result.error),
            )
            return
        if tick != self._tick_seq or self._state is SchedulerState.STOPPED:
            logger.debug(
                "Discarding stale result of live tick %d",
                tick,
                extra=self._log_extra(tick=tick),
            )
            return
        if not result.text.strip():
            return

        previous = self.session.transcript
        outcome = self.session.apply_hypothesis(result.text, self.config.merge)
        logger.debug(
            "Live tick %d merged via %s",
            tick,
            outcome.strategy,
            extra=self._log_extra(tick=tick, strategy=outcome.strategy),
        )
        if not outcome.changed:
            return

        self.metrics.merges_applied += 1
        if self.syncer is not None:
            self.syncer.submit(self.session.transcript)
        if self.on_update is not None:
            update = TranscriptUpdate(
                text=self.session.transcript,
                previous=previous,
                strategy=outcome.strategy,
                tick=tick,
                return_tick=return_tick,
            )
            try:
                self.on_update(update)
            except Exception:
                logger.error(
                    "Transcript update callback failed",
                    extra=self._log_extra(tick=tick),
                    exc_info=True,
                )

    # -- visibility ------------------------------------------------------

    def set_visible(self, visible: bool) -> None:
        """React to the recording surface being shown or hidden.

        Hiding stops the timer; audio keeps accumulating. Showing again
        marks the next tick as a full-length return tick, fires it
        immediately unless a tick is in flight, and restarts the timer.
        """
        if visible:
            if self._state is not SchedulerState.SUSPENDED:
                return
            self._transition(SchedulerState.RECORDING)
            self._return_tick_pending = True
            if not self._in_flight:
                self.run_tick()
            self._start_timer()
            return

        if self._state is not SchedulerState.RECORDING:
            return
        self._stop_timer()
        self._transition(SchedulerState.SUSPENDED)

    # -- teardown --------------------------------------------------------

    async def _halt(self) -> None:
        self._stop_timer()
        task = self._tick_task
        self._tick_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._in_flight = False
        self._return_tick_pending = False

    async def stop(self) -> str:
        """Stop recording and return the authoritative final transcript.

        Cancels the timer and any live request, flushes the accumulated
        live transcript, then runs one final-priority recognition over all
        captured audio. The session is cleared afterwards.

        Returns:
            Final transcript text; empty if no audio was captured.

        Raises:
            SessionStateError: If the session was already stopped.
            RecognitionError: If the final recognition call fails.
        """
        self._transition(SchedulerState.STOPPED)
        await self._halt()

        try:
            live_transcript = self.session.transcript
            self.metrics.transcript_chars = len(live_transcript)
            if self.syncer is not None:
                await self.syncer.flush(live_transcript)

            if not self.session.has_audio:
                logger.info(
                    "No audio captured; skipping final recognition",
                    extra=self._log_extra(priority="final"),
                )
                self.metrics.final_status = "skipped"
                return ""

            snapshot = self.session.snapshot(self.config.max_chunks, full=True)
            self.metrics.record_snapshot(snapshot.size_bytes)
            timer = StageTimer("final_recognition")
            try:
                with timer:
                    text = await self.client.recognize_final(
                        snapshot, session_id=self.session.session_id
                    )
            except RecognitionError:
                self.metrics.final_status = "failed"
                raise
            finally:
                self.metrics.final_duration_seconds = round(timer.duration_seconds, 3)
            self.metrics.final_status = "completed"
            return text
        finally:
            log_session_metrics(self.metrics)
            self.session.clear()
            self.syncer = None
            self.on_update = None

    async def reset(self) -> None:
        """Abandon the session without flushing or final recognition."""
        if self._state is not SchedulerState.STOPPED:
            self._transition(SchedulerState.STOPPED)
        await self._halt()
        if self.syncer is not None:
            await self.syncer.close()
            self.syncer = None
        self.on_update = None
        self.session.clear()
