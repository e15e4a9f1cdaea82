"""Tokenization, line cleanup and match-key normalisation."""

from .cleanup import (
    clean_line_text,
    insert_marker_breaks,
    normalize_extracted_text,
    repetition_signature,
)
from .normalizer import (
    is_acronym_like,
    match_key,
    match_strength,
    normalize_single_word_selection,
    tokens_match,
)
from .tokenizer import LINE_BREAK, count_words, tokenize_for_engine, word_tokens

__all__ = [
    "LINE_BREAK",
    "tokenize_for_engine",
    "word_tokens",
    "count_words",
    "clean_line_text",
    "insert_marker_breaks",
    "normalize_extracted_text",
    "repetition_signature",
    "match_key",
    "match_strength",
    "tokens_match",
    "is_acronym_like",
    "normalize_single_word_selection",
]
