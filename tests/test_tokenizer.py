"""Tests for the engine-compatible whitespace tokenizer."""

from narrative.text.tokenizer import (
    LINE_BREAK,
    count_tokens,
    count_words,
    tokenize_for_engine,
    word_tokens,
)


def test_newline_runs_collapse_to_one_sentinel():
    assert tokenize_for_engine("alpha beta\n\n\ngamma") == ["alpha", "beta", LINE_BREAK, "gamma"]


def test_spaces_and_tabs_collapse():
    assert tokenize_for_engine("a \t\t b   c") == ["a", "b", "c"]


def test_empty_and_whitespace_only_text():
    assert tokenize_for_engine("") == []
    assert tokenize_for_engine("   ") == []
    assert tokenize_for_engine("  \n \n ") == []


def test_word_tokens_drop_sentinels():
    assert word_tokens("one two\nthree\n\nfour") == ["one", "two", "three", "four"]


def test_counts():
    text = "one two\nthree"
    assert count_words(text) == 3
    assert count_tokens(text) == 4
