import re
from typing import List, Optional

SENTENCE_SPLIT = re.compile(r"[.!?]+")
MIN_SENTENCE_LENGTH = 10


def tokenize(text: Optional[str]) -> List[str]:
    """Splits text on runs of whitespace, dropping empty tokens."""
    if not text:
        return []
    return text.split()


def split_sentences(text: Optional[str]) -> List[str]:
    """Returns trimmed sentences longer than MIN_SENTENCE_LENGTH characters."""
    if not text:
        return []
    pieces = (piece.strip() for piece in SENTENCE_SPLIT.split(text))
    return [piece for piece in pieces if len(piece) > MIN_SENTENCE_LENGTH]
