"""Transcript merger for live recognition hypotheses.

The recognition backend is not incremental: every live tick returns a fresh,
independently computed hypothesis for the current snapshot. merge_transcripts()
folds such a hypothesis into the accumulated transcript without losing or
duplicating text.

The decision ladder is an ordered tuple of named strategies. Each strategy
receives a MergeContext and returns the merged text, or None to pass the
decision to the next rung. When no rung decides, the two texts are
concatenated. Both inputs are whitespace-normalized before comparison;
casing and punctuation of the winning text are preserved.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from functools import cached_property

_EDGE_NON_WORD = re.compile(r"^(?:[^\w']|_)+|(?:[^\w']|_)+$")


@dataclass(frozen=True)
class MergeThresholds:
    """Empirically tuned constants for the merge ladder.

    Character counts apply to lowercased normalized text; "compact" counts
    apply to the letters-and-digits-only form.
    """

    char_overlap_window: int = 800
    char_overlap_min: int = 36
    char_overlap_min_short: int = 24
    short_hypothesis_chars: int = 220
    short_fragment_chars: int = 40
    relaxed_overlap_min: int = 12
    resend_anchor_min: int = 32
    resend_leading_offset_max: int = 3
    resend_length_ratio_min: float = 0.7
    clearly_longer_ratio: float = 1.1
    superseding_prefix_ratio: float = 0.8
    long_prefix_tokens: int = 6
    long_prefix_ratio: float = 0.5
    shorter_prefix_ratio: float = 0.9
    shorter_long_prefix_ratio: float = 0.7
    gap_extra_tokens: int = 4
    gap_opening_min_tokens: int = 2
    gap_opening_ratio: float = 0.2
    gap_disjoint_tail_ratio: float = 0.25


DEFAULT_THRESHOLDS = MergeThresholds()


@dataclass(frozen=True)
class MergeOutcome:
    """Result of one merge with the name of the rung that decided it."""

    text: str
    strategy: str
    changed: bool


def normalize(text: str) -> str:
    """Trim and collapse internal whitespace to single spaces."""
    return " ".join(text.split())


def compact(text: str) -> str:
    """Reduce text to case-folded letters and digits only."""
    return "".join(ch for ch in text.casefold() if ch.isalnum())


def canonicalize_word(word: str) -> str:
    """Lowercase a word and strip leading/trailing punctuation."""
    return _EDGE_NON_WORD.sub("", word.lower())


def tokenize(text: str) -> list[str]:
    """Split text into canonical word tokens, dropping punctuation-only words."""
    words = (canonicalize_word(word) for word in normalize(text).split(" "))
    return [word for word in words if word]


def _fold(text: str) -> str:
    # Index arithmetic on the folded text must map back onto the original.
    lowered = text.lower()
    return lowered if len(lowered) == len(text) else text


def _has_whitespace(text: str) -> bool:
    return any(ch.isspace() for ch in text)


def _join_unknown_boundary(left: str, right: str) -> str:
    if not left:
        return right
    if not right:
        return left
    if not _has_whitespace(left) and not _has_whitespace(right):
        return f"{left}{right}"
    return f"{left} {right}"


def _join_at_source_boundary(base: str, source: str, boundary: int, tail: str) -> str:
    """Append tail, keeping a separator only if the source had one at the splice."""
    if not tail:
        return base
    left = source[boundary - 1] if boundary > 0 else ""
    right = source[boundary] if boundary < len(source) else ""
    if left.isspace() or right.isspace():
        return _join_unknown_boundary(base, tail)
    return f"{base}{tail}"


def _common_prefix_length(a: list[str], b: list[str]) -> int:
    count = 0
    for left, right in zip(a, b):
        if left != right:
            break
        count += 1
    return count


def _leading_aligned_match(a: str, b: str, max_offset: int) -> int:
    """Longest run matching from the start of a and b, each shifted by <= max_offset."""
    best = 0
    for offset_a in range(max_offset + 1):
        for offset_b in range(max_offset + 1):
            count = 0
            while (
                offset_a + count < len(a)
                and offset_b + count < len(b)
                and a[offset_a + count] == b[offset_b + count]
            ):
                count += 1
            best = max(best, count)
    return best


def _contains_run(haystack: list[str], needle: list[str]) -> bool:
    size = len(needle)
    if size == 0:
        return True
    return any(
        haystack[start : start + size] == needle
        for start in range(len(haystack) - size + 1)
    )


def _suffix_prefix_overlap(left: list[str], right: list[str]) -> int:
    for size in range(min(len(left), len(right)), 0, -1):
        if left[-size:] == right[:size]:
            return size
    return 0


class MergeContext:
    """Normalized views of one (previous, incoming) pair, computed lazily."""

    def __init__(
        self, previous: str, incoming: str, thresholds: MergeThresholds
    ) -> None:
        self.previous = previous
        self.incoming = incoming
        self.thresholds = thresholds
        self.prev = normalize(previous)
        self.next = normalize(incoming)

    @cached_property
    def prev_compact(self) -> str:
        return compact(self.prev)

    @cached_property
    def next_compact(self) -> str:
        return compact(self.next)

    @cached_property
    def prev_tokens(self) -> list[str]:
        return tokenize(self.prev)

    @cached_property
    def next_tokens(self) -> list[str]:
        return tokenize(self.next)

    @cached_property
    def common_prefix(self) -> int:
        return _common_prefix_length(self.prev_tokens, self.next_tokens)

    def next_offset_of_token(self, token_index: int) -> int:
        """Character offset in the normalized incoming text where a token's word starts."""
        offset = 0
        seen = 0
        for word in self.next.split(" "):
            if canonicalize_word(word):
                if seen == token_index:
                    return offset
                seen += 1
            offset += len(word) + 1
        return len(self.next)


MergeStrategy = Callable[[MergeContext], str | None]


def empty_input(ctx: MergeContext) -> str | None:
    """An empty side contributes nothing."""
    if not ctx.next:
        return ctx.previous
    if not ctx.prev:
        return ctx.next
    return None


def superset_prefix(ctx: MergeContext) -> str | None:
    """Incoming restates previous and continues it."""
    if ctx.next == ctx.prev:
        return ctx.previous
    if ctx.next.startswith(ctx.prev):
        return ctx.next
    return None


def contained_substring(ctx: MergeContext) -> str | None:
    """Incoming is already part of previous."""
    if ctx.next in ctx.prev:
        return ctx.previous
    return None


def compact_containment(ctx: MergeContext) -> str | None:
    """Containment ignoring case, spacing and punctuation (no-space hypotheses)."""
    if not ctx.next_compact:
        return ctx.previous
    if not ctx.prev_compact:
        return ctx.next
    if ctx.prev_compact in ctx.next_compact:
        return ctx.next
    if ctx.next_compact in ctx.prev_compact:
        return ctx.previous
    return None


def leading_alignment(ctx: MergeContext) -> str | None:
    """Corrected resend whose start drifted by a few characters.

    A long shared opening means both hypotheses cover the same audio; the
    comparably long incoming wins, a clearly longer previous is kept.
    """
    t = ctx.thresholds
    anchor = _leading_aligned_match(
        ctx.prev_compact, ctx.next_compact, t.resend_leading_offset_max
    )
    if anchor < t.resend_anchor_min:
        return None

    prev_len = len(ctx.prev_compact)
    next_len = len(ctx.next_compact)
    if next_len >= int(prev_len * t.resend_length_ratio_min):
        return ctx.next
    if prev_len >= int(next_len * t.clearly_longer_ratio):
        return ctx.previous
    return None


def token_prefix_resend(ctx: MergeContext) -> str | None:
    """Word-level resend detection from the shared leading tokens."""
    t = ctx.thresholds
    prev_count = len(ctx.prev_tokens)
    next_count = len(ctx.next_tokens)
    common = ctx.common_prefix

    if prev_count and next_count >= prev_count:
        ratio = common / prev_count
        long_run = common >= t.long_prefix_tokens and ratio >= t.long_prefix_ratio
        if ratio >= t.superseding_prefix_ratio or long_run:
            return ctx.next

    if next_count and prev_count > next_count:
        ratio = common / next_count
        if ratio >= t.shorter_prefix_ratio or (
            common >= t.long_prefix_tokens and ratio >= t.shorter_long_prefix_ratio
        ):
            return ctx.previous

    return None


def gapped_window(ctx: MergeContext) -> str | None:
    """Opening restated in front of an unrelated recent tail.

    A snapshot missing the middle of the recording yields "opening ... tail".
    The opening is never appended again; only a tail previous lacks is.
    """
    t = ctx.thresholds
    prev_tokens = ctx.prev_tokens
    next_tokens = ctx.next_tokens
    common = ctx.common_prefix
    if not next_tokens or common < t.gap_opening_min_tokens:
        return None
    if common / len(next_tokens) < t.gap_opening_ratio:
        return None

    tail_tokens = next_tokens[common:]
    if not tail_tokens:
        return ctx.previous

    significantly_longer = len(prev_tokens) >= len(next_tokens) + t.gap_extra_tokens
    if not significantly_longer and not _is_disjoint_remainder(
        prev_tokens[common:], tail_tokens, t.gap_disjoint_tail_ratio
    ):
        return None

    if _contains_run(prev_tokens, tail_tokens):
        return ctx.previous

    skip = _suffix_prefix_overlap(prev_tokens, tail_tokens)
    boundary = ctx.next_offset_of_token(common + skip)
    tail = ctx.next[boundary:]
    return _join_at_source_boundary(ctx.prev, ctx.next, boundary, tail)


def _is_disjoint_remainder(
    prev_rest: list[str], next_rest: list[str], max_shared_ratio: float
) -> bool:
    """True when incoming's continuation shares almost no words with previous's."""
    if not prev_rest or not next_rest:
        return False
    vocabulary = set(prev_rest)
    shared = sum(1 for token in next_rest if token in vocabulary)
    return shared / len(next_rest) < max_shared_ratio


def char_overlap(ctx: MergeContext) -> str | None:
    """Splice where a suffix of previous reappears in incoming."""
    t = ctx.thresholds
    prev_lower = _fold(ctx.prev)
    next_lower = _fold(ctx.next)
    prev_tail = prev_lower[-t.char_overlap_window :]
    max_overlap = min(len(prev_tail), len(next_lower))

    if len(next_lower) <= t.short_hypothesis_chars:
        base_min = t.char_overlap_min_short
    else:
        base_min = t.char_overlap_min
    is_fragment = len(next_lower) <= t.short_fragment_chars
    fragment_min = 2 if is_fragment else base_min
    min_overlap = max(1, min(base_min, fragment_min, max_overlap))

    for overlap in range(max_overlap, min_overlap - 1, -1):
        if prev_tail.endswith(next_lower[:overlap]):
            tail = ctx.next[overlap:].strip()
            return _join_at_source_boundary(ctx.prev, ctx.next, overlap, tail)

    # Second pass: the overlap may follow a short lead-in inside incoming.
    relaxed_min = 2 if is_fragment else t.relaxed_overlap_min
    min_any = max(1, min(max_overlap, relaxed_min))
    for overlap in range(max_overlap, min_any - 1, -1):
        index = next_lower.find(prev_tail[-overlap:])
        if index == -1:
            continue
        end = index + overlap
        tail = ctx.next[end:].strip()
        return _join_at_source_boundary(ctx.prev, ctx.next, end, tail)

    return None


def word_overlap(ctx: MergeContext) -> str | None:
    """Splice on the longest canonical word suffix/prefix match."""
    prev_words = ctx.prev.split(" ")
    next_words = ctx.next.split(" ")
    for overlap in range(min(len(prev_words), len(next_words)), 0, -1):
        prev_suffix = [canonicalize_word(word) for word in prev_words[-overlap:]]
        next_prefix = [canonicalize_word(word) for word in next_words[:overlap]]
        if all(left and left == right for left, right in zip(prev_suffix, next_prefix)):
            return _join_unknown_boundary(ctx.prev, " ".join(next_words[overlap:]))
    return None


MERGE_STRATEGIES: tuple[tuple[str, MergeStrategy], ...] = (
    ("empty_input", empty_input),
    ("superset_prefix", superset_prefix),
    ("contained_substring", contained_substring),
    ("compact_containment", compact_containment),
    ("leading_alignment", leading_alignment),
    ("token_prefix_resend", token_prefix_resend),
    ("gapped_window", gapped_window),
    ("char_overlap", char_overlap),
    ("word_overlap", word_overlap),
)

FALLBACK_STRATEGY = "concatenate"


def explain_merge(
    previous: str,
    incoming: str,
    thresholds: MergeThresholds | None = None,
) -> MergeOutcome:
    """Merge incoming into previous and report which rung decided.

    Args:
        previous: The accumulated transcript so far.
        incoming: The newest recognition hypothesis.
        thresholds: Tuned constants; defaults to DEFAULT_THRESHOLDS.

    Returns:
        MergeOutcome with the combined text, the deciding strategy name and
        whether the text differs from previous.
    """
    ctx = MergeContext(previous, incoming, thresholds or DEFAULT_THRESHOLDS)
    for name, strategy in MERGE_STRATEGIES:
        merged = strategy(ctx)
        if merged is not None:
            return MergeOutcome(text=merged, strategy=name, changed=merged != previous)

    merged = _join_unknown_boundary(ctx.prev, ctx.next)
    return MergeOutcome(
        text=merged, strategy=FALLBACK_STRATEGY, changed=merged != previous
    )


def merge_transcripts(
    previous: str,
    incoming: str,
    thresholds: MergeThresholds | None = None,
) -> str:
    """Fold a new hypothesis into the accumulated transcript."""
    return explain_merge(previous, incoming, thresholds).text
