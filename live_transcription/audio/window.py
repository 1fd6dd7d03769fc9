"""Chunk window builder: bounded recognition snapshots.

A live snapshot must stay small no matter how long the recording runs,
yet remain decodable. When a container header fragment was captured it
anchors every snapshot, so an overflow window is [header, last N-1 chunks]
with no stale audio from the start of the session. Without a header
fragment the first chunk carries the container headers and has to be
kept, which leaves a gap in the middle of the snapshot; the transcript
merger's gapped-window rung absorbs the duplicated opening that results.
"""

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class Snapshot:
    """Byte payload for one recognition request."""

    payload: bytes
    mime_type: str
    chunk_count: int
    includes_header: bool
    full: bool

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


def select_window(
    chunks: Sequence[bytes],
    header: bytes | None,
    max_chunks: int,
    full: bool = False,
) -> list[bytes]:
    """Pick the fragments that make up one snapshot, in order.

    Args:
        chunks: Captured audio chunks, oldest first. Never includes the header.
        header: Container header fragment, or None if the capture source
            never produced one.
        max_chunks: Cap N on chunk-equivalents per snapshot (header excluded).
        full: Send every chunk regardless of the cap (return tick, final call).

    Returns:
        Fragments to concatenate: header first when present.

    Raises:
        ValueError: If max_chunks < 2 or there are no chunks.
    """
    if max_chunks < 2:
        raise ValueError(f"max_chunks must be at least 2, got {max_chunks}")
    if not chunks:
        raise ValueError("Cannot build a snapshot without audio chunks")

    within_cap = full or len(chunks) <= max_chunks
    recent = list(chunks[-(max_chunks - 1) :])

    if header is not None:
        if within_cap:
            return [header, *chunks]
        return [header, *recent]

    if within_cap:
        return list(chunks)
    return [chunks[0], *recent]


def build_snapshot(
    chunks: Sequence[bytes],
    header: bytes | None,
    max_chunks: int,
    mime_type: str,
    full: bool = False,
) -> Snapshot:
    """Concatenate the selected window into a Snapshot.

    See select_window() for the selection rules and errors.
    """
    fragments = select_window(chunks, header, max_chunks, full=full)
    includes_header = header is not None
    return Snapshot(
        payload=b"".join(fragments),
        mime_type=mime_type,
        chunk_count=len(fragments) - 1 if includes_header else len(fragments),
        includes_header=includes_header,
        full=full,
    )
