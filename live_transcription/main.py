"""Replay entry point for the live transcription engine.

Feeds a recorded audio file into a RecordingSession chunk by chunk at
capture pace, prints live transcript updates as they arrive, then stops
the session and prints the final transcript. Handles SIGINT and SIGTERM
by stopping the recording early and still running the final call.

When MEMO_API_URL is set, a live memo is created and its transcript is
kept in sync while the replay runs.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from live_transcription.asr.client import RecognitionClient
from live_transcription.asr.registry import RECOGNITION_BACKENDS, get_recognition_backend
from live_transcription.config import LiveTranscriptionConfig
from live_transcription.observability.logger import StructuredJsonFormatter
from live_transcription.session.recording import DEFAULT_MIME_TYPE, RecordingSession
from live_transcription.session.scheduler import LiveTickScheduler, TranscriptUpdate
from live_transcription.session.sync import TranscriptSyncer
from live_transcription.storage.memo_client import MemoClient
from live_transcription.transcript.view import build_view
from live_transcription.utils.errors import LiveTranscriptionError, RecognitionError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_BYTES = 16 * 1024
DEFAULT_CHUNK_INTERVAL_SECONDS = 1.0


def _setup_logging(level: int = logging.INFO) -> None:
    """Configure root logger with structured JSON output."""
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    root.addHandler(handler)


def split_recording(
    data: bytes, header_bytes: int, chunk_bytes: int
) -> tuple[bytes | None, list[bytes]]:
    """Cut a recorded file into a header fragment and fixed-size chunks.

    Args:
        data: Whole recording.
        header_bytes: Size of the leading container header fragment; 0
            replays the file without a separate header.
        chunk_bytes: Size of each audio chunk; the last one may be shorter.

    Returns:
        Tuple of (header or None, chunks).

    Raises:
        ValueError: On a non-positive chunk size or negative header size.
    """
    if chunk_bytes <= 0:
        raise ValueError(f"chunk_bytes must be positive, got {chunk_bytes}")
    if header_bytes < 0:
        raise ValueError(f"header_bytes must be non-negative, got {header_bytes}")

    header = data[:header_bytes] if header_bytes else None
    body = data[header_bytes:]
    chunks = [body[i : i + chunk_bytes] for i in range(0, len(body), chunk_bytes)]
    return header or None, chunks


def _print_update(update: TranscriptUpdate) -> None:
    view = build_view(update.previous, update.text)
    if view.new_word_start_index == 0:
        print(f"[live] {' '.join(view.words)}", flush=True)
    elif view.new_words:
        print(f"[live] + {' '.join(view.new_words)}", flush=True)


async def _feed(
    session: RecordingSession,
    header: bytes | None,
    chunks: Sequence[bytes],
    interval: float,
    stop_event: asyncio.Event,
) -> int:
    """Deliver chunks at capture pace until done or stopped.

    Returns:
        Number of chunks delivered.
    """
    if header is not None:
        session.on_header_fragment(header)
    delivered = 0
    for chunk in chunks:
        if stop_event.is_set():
            break
        session.on_chunk(chunk)
        delivered += 1
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except TimeoutError:
            continue
    return delivered


async def _run(args: argparse.Namespace, config: LiveTranscriptionConfig) -> int:
    """Replay one recording through a live session and print the result."""
    data = Path(args.audio).read_bytes()
    header, chunks = split_recording(data, args.header_bytes, args.chunk_bytes)

    backend = get_recognition_backend(args.provider, transcode_pcm=args.transcode_pcm)
    client = RecognitionClient(backend, final_retries=args.final_retries)

    memo_client = MemoClient() if os.environ.get("MEMO_API_URL") else None
    session_id = await memo_client.create_live_memo() if memo_client else None
    syncer = TranscriptSyncer(memo_client, session_id) if memo_client else None

    session = RecordingSession(mime_type=args.mime_type, session_id=session_id)
    scheduler = LiveTickScheduler(
        session, client, config, syncer=syncer, on_update=_print_update
    )

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _shutdown() -> None:
        logger.info("Received shutdown signal", extra={"session_id": session_id})
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _shutdown)

    exit_code = 0
    try:
        scheduler.start()
        delivered = await _feed(
            session, header, chunks, args.chunk_interval, stop_event
        )
        logger.info(
            "Delivered %d of %d chunks",
            delivered,
            len(chunks),
            extra={"session_id": session_id},
        )

        live_text = session.transcript
        try:
            final_text = await scheduler.stop()
        except RecognitionError as exc:
            logger.error(
                "Final recognition failed: %s",
                exc,
                extra={"session_id": session_id, "priority": "final", "error": str(exc)},
            )
            final_text = ""
            exit_code = 1

        transcript = final_text or live_text
        print(transcript, flush=True)
        if memo_client is not None and session_id is not None and transcript:
            await memo_client.update_transcript(session_id, transcript)
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        if memo_client is not None:
            await memo_client.close()

    return exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="live-transcribe",
        description="Replay a recording through the live transcription engine.",
    )
    parser.add_argument("audio", help="Path to a recorded audio file")
    parser.add_argument(
        "--mime-type", default=DEFAULT_MIME_TYPE, help="Container MIME type"
    )
    parser.add_argument(
        "--header-bytes",
        type=int,
        default=0,
        help="Leading bytes delivered as the container header fragment",
    )
    parser.add_argument(
        "--chunk-bytes",
        type=int,
        default=DEFAULT_CHUNK_BYTES,
        help="Size of each replayed audio chunk",
    )
    parser.add_argument(
        "--chunk-interval",
        type=float,
        default=DEFAULT_CHUNK_INTERVAL_SECONDS,
        help="Seconds between replayed chunks",
    )
    parser.add_argument(
        "--provider",
        default="http",
        choices=sorted(RECOGNITION_BACKENDS),
        help="Recognition backend",
    )
    parser.add_argument(
        "--transcode-pcm",
        action="store_true",
        help="Convert snapshots to 16kHz PCM before upload",
    )
    parser.add_argument(
        "--final-retries",
        type=int,
        default=3,
        help="Retries for the final recognition call",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and replay the recording."""
    args = build_parser().parse_args(argv)
    _setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    logger.info("Live transcription replay starting")

    try:
        config = LiveTranscriptionConfig.from_env()
        return asyncio.run(_run(args, config))
    except (ValueError, OSError, LiveTranscriptionError) as exc:
        logger.error("Replay aborted: %s", exc, extra={"error": str(exc)})
        return 2


if __name__ == "__main__":
    sys.exit(main())
