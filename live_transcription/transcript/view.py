"""Word-level view of a changing live transcript for display."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TranscriptView:
    """Words of the current transcript and where the newly appended ones begin.

    new_word_start_index is 0 when the transcript was rewritten rather than
    extended, signalling a renderer to redraw every word.
    """

    words: list[str]
    new_word_start_index: int

    @property
    def new_words(self) -> list[str]:
        return self.words[self.new_word_start_index :]


def build_view(previous: str, current: str) -> TranscriptView:
    """Compare two successive transcripts.

    Args:
        previous: Transcript shown before the update.
        current: Transcript after the update.

    Returns:
        TranscriptView of current; appended words start after the words of
        previous only when current keeps every word of previous unchanged.
    """
    current_text = current.strip()
    if not current_text:
        return TranscriptView(words=[], new_word_start_index=0)

    words = current_text.split()
    previous_words = previous.split()
    if previous_words and words[: len(previous_words)] == previous_words:
        return TranscriptView(words=words, new_word_start_index=len(previous_words))
    return TranscriptView(words=words, new_word_start_index=0)
