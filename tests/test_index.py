"""Tests for the Narrative Index and its word/engine index mappings."""

import pytest

from narrative.index.builder import build_index_from_page_texts
from narrative.text.tokenizer import LINE_BREAK


def test_offsets_and_page_lookup():
    index = build_index_from_page_texts(["alpha beta\ngamma", "delta"])

    assert index.full_text == "alpha beta\ngamma\n\ndelta"
    assert index.tokens == ("alpha", "beta", "gamma", "delta")
    assert index.page_word_starts == (0, 3)
    assert index.page_range(1) == (3, 4)
    assert index.page_of_word(2) == 0
    assert index.page_of_word(3) == 1
    assert index.page_of_word(4) == -1
    with pytest.raises(IndexError):
        index.page_range(2)


def test_engine_index_mapping():
    index = build_index_from_page_texts(["alpha beta\ngamma", "delta"])

    assert index.engine_tokens == ("alpha", "beta", LINE_BREAK, "gamma", LINE_BREAK, "delta")
    assert index.to_engine_index(2) == 3
    assert index.to_engine_index(3) == 5
    assert index.from_engine_index(3) == 2
    # A line break maps to the word after it
    assert index.from_engine_index(2) == 2
    with pytest.raises(IndexError):
        index.to_engine_index(4)


def test_empty_pages_do_not_shift_offsets():
    index = build_index_from_page_texts(["one two", "", "three"])
    assert index.page_word_starts == (0, 2, 2)
    assert index.page_range(1) == (2, 2)
    assert index.full_text == "one two\n\nthree"


def test_page_texts_are_normalised():
    index = build_index_from_page_texts(["  one   two \n\n\n\nthree  "])
    assert index.page_texts == ("one two\n\nthree",)
    assert index.word_count == 3


def test_empty_index():
    index = build_index_from_page_texts([])
    assert index.is_empty
    assert index.page_count == 0
    assert index.page_of_word(0) == -1
