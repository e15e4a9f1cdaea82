"""
Whitespace tokenizer shared with the playback engine.

The engine indexes words by splitting narrative text on whitespace, with
every run of line breaks collapsed into one ``"\\n"`` sentinel token.
Token offsets published by the extraction pipeline are only meaningful
if both sides tokenize identically, so this module is the single source
of that rule.
"""

import re
from typing import List

LINE_BREAK = "\n"

_SENTINEL = "\x00LINEBREAK\x00"
_RE_NEWLINES = re.compile(r"\n+")
_RE_SPACES = re.compile(r"[ \t]+")


def tokenize_for_engine(text: str) -> List[str]:
    """
    Split text exactly the way the playback engine does.

    Runs of ``\\n`` become a single :data:`LINE_BREAK` token; spaces and
    tabs collapse.  Empty or whitespace-only text yields ``[]``.
    """
    if not text or not text.strip():
        return []
    cleaned = _RE_NEWLINES.sub(f" {_SENTINEL} ", text)
    cleaned = _RE_SPACES.sub(" ", cleaned).strip()
    if not cleaned:
        return []
    return [LINE_BREAK if tok == _SENTINEL else tok for tok in cleaned.split()]


def word_tokens(text: str) -> List[str]:
    """Engine tokens with the line-break sentinels removed."""
    return [t for t in tokenize_for_engine(text) if t != LINE_BREAK]


def count_tokens(text: str) -> int:
    """Number of engine tokens, sentinels included."""
    return len(tokenize_for_engine(text))


def count_words(text: str) -> int:
    """Number of engine tokens excluding line-break sentinels."""
    return len(word_tokens(text))
