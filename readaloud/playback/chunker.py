import re
from typing import List

DEFAULT_MAX_LENGTH = 160

# A run ending in terminal punctuation, or a trailing run without any
_SENTENCE = re.compile(r"[^.!?]*[.!?]+|[^.!?]+")

def split_sentences(text: str) -> List[str]:
    """Split text into sentences, keeping the terminal punctuation and surrounding whitespace."""
    return _SENTENCE.findall(text) or [text]

def chunk(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> List[str]:
    """
    Split text into speakable chunks of at most `max_length` characters.

    Sentences are packed greedily into a buffer. A sentence that alone exceeds
    `max_length` is cut into consecutive `max_length` slices. Every chunk is
    stripped and empty chunks are dropped, except that text with nothing to
    read still yields a single empty chunk.

    Args:
        text: The full text to split
        max_length: Maximum length of each chunk

    Returns:
        Ordered list of chunks
    """
    if max_length < 1:
        raise ValueError(f"max_length must be positive, got {max_length}")

    chunks: List[str] = []
    buffer = ""

    def emit(piece: str):
        piece = piece.strip()
        if piece:
            chunks.append(piece)

    for sentence in split_sentences(text):
        if len(buffer) + len(sentence) <= max_length:
            buffer += sentence
            continue

        emit(buffer)
        buffer = ""

        if len(sentence) > max_length:
            for start in range(0, len(sentence), max_length):
                emit(sentence[start:start + max_length])
        else:
            buffer = sentence

    emit(buffer)
    return chunks or [""]
