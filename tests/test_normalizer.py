"""Tests for selection/token match keys and tolerant token comparison."""

import pytest

from narrative.text.normalizer import (
    EXACT,
    FUZZY,
    NO_MATCH,
    is_acronym_like,
    match_key,
    match_strength,
    normalize_single_word_selection,
    tokens_match,
)


@pytest.mark.parametrize(
    "token, key",
    [
        ("[H2]Results", "results"),
        ("CD16+", "cd16+"),
        ("CD16+,", "cd16+"),
        ("CD4+/-", "cd4±"),
        ("CD16−", "cd16-"),
        ("(Naïve)", "naive"),
        ("“quoted”", "quoted"),
        ("IL-6", "il-6"),
        ("...", ""),
        ("", ""),
    ],
)
def test_match_key(token, key):
    assert match_key(token) == key


def test_charge_suffix_is_a_fuzzy_match():
    assert match_strength("CD16+", "cd16+") == EXACT
    assert match_strength("CD16", "CD16+") == FUZZY
    assert tokens_match("CD16-", "CD16+")


def test_acronym_extensions():
    assert tokens_match("IL", "IL6")
    assert tokens_match("TNF", "TNFalpha")
    assert tokens_match("HLA", "HLA-DR")
    assert not tokens_match("cat", "catalog")


def test_chain_segment_match():
    assert tokens_match("SIRP", "CD47/SIRP")
    assert match_strength("apple", "banana") == NO_MATCH


def test_acronym_like():
    assert is_acronym_like("CD4")
    assert is_acronym_like("(IL6+),")
    assert not is_acronym_like("Cell")
    assert not is_acronym_like("cd4")


def test_single_word_selection_keeps_charge():
    assert normalize_single_word_selection("(CD16+),") == "CD16+"
    assert normalize_single_word_selection("“word.”") == "word"
    assert normalize_single_word_selection("  ") == ""
