"""Snapshot to raw 16kHz PCM transcoder using ffmpeg.

Browser-style capture produces WebM/Ogg Opus fragments; some recognition
backends only accept raw linear PCM. transcode_to_pcm16() converts one
snapshot to 16kHz mono signed 16-bit little-endian samples.
"""

import logging
import os
import shutil
import subprocess
import tempfile

from live_transcription.utils.errors import TranscodeError

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000
TARGET_CHANNELS = 1
FFMPEG_TIMEOUT_SECONDS = 60
PCM16_MIME_TYPE = f"audio/L16;rate={TARGET_SAMPLE_RATE}"


def file_extension_for(mime_type: str) -> str:
    """Map a capture MIME type to the container file extension."""
    normalized = (mime_type or "").lower()
    if "ogg" in normalized:
        return "ogg"
    if "mp4" in normalized or "m4a" in normalized:
        return "mp4"
    if "wav" in normalized:
        return "wav"
    if "l16" in normalized or "pcm" in normalized:
        return "raw"
    return "webm"


def _check_ffmpeg_available() -> str:
    """Verify ffmpeg is available on the system.

    Returns:
        Path to the ffmpeg binary.

    Raises:
        TranscodeError: If ffmpeg is not found.
    """
    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path is None:
        raise TranscodeError("ffmpeg binary not found on PATH")
    return ffmpeg_path


def transcode_to_pcm16(audio: bytes, mime_type: str) -> bytes:
    """Transcode a container snapshot to raw 16kHz mono s16le PCM.

    Blocking; async callers should run it in a worker thread.

    Args:
        audio: Snapshot bytes (header fragment plus chunks).
        mime_type: Container MIME type of the snapshot.

    Returns:
        Raw PCM bytes.

    Raises:
        TranscodeError: If ffmpeg is missing, fails, times out or
            produces no samples.
    """
    if not audio:
        raise TranscodeError("Cannot transcode an empty snapshot", mime_type=mime_type)

    ffmpeg_path = _check_ffmpeg_available()
    extension = file_extension_for(mime_type)

    with tempfile.TemporaryDirectory(prefix="live-transcode-") as tmp_dir:
        input_path = os.path.join(tmp_dir, f"snapshot.{extension}")
        output_path = os.path.join(tmp_dir, "snapshot.raw")
        with open(input_path, "wb") as input_file:
            input_file.write(audio)

        cmd = [
            ffmpeg_path,
            "-y",
            "-i",
            input_path,
            "-ar",
            str(TARGET_SAMPLE_RATE),
            "-ac",
            str(TARGET_CHANNELS),
            "-f",
            "s16le",
            "-acodec",
            "pcm_s16le",
            output_path,
        ]

        try:
            subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=FFMPEG_TIMEOUT_SECONDS,
            )
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.strip() if exc.stderr else "unknown error"
            raise TranscodeError(
                f"ffmpeg transcode failed: {stderr}", mime_type=mime_type
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise TranscodeError(
                f"ffmpeg transcode timed out after {FFMPEG_TIMEOUT_SECONDS} seconds",
                mime_type=mime_type,
            ) from exc

        if not os.path.exists(output_path):
            raise TranscodeError(
                "ffmpeg produced no output file", mime_type=mime_type
            )
        with open(output_path, "rb") as output_file:
            pcm = output_file.read()

    if not pcm:
        raise TranscodeError("ffmpeg produced no samples", mime_type=mime_type)

    logger.debug("Transcoded %d bytes to %d bytes PCM", len(audio), len(pcm))
    return pcm
