"""Tests for line cleanup, marker splitting and repetition signatures."""

from narrative.text.cleanup import (
    clean_line_text,
    insert_marker_breaks,
    normalize_extracted_text,
    repetition_signature,
)


def test_ligatures_and_invisible_characters():
    assert clean_line_text("eﬃcient") == "efficient"
    assert clean_line_text("e\ue054cient") == "efficient"
    assert clean_line_text("soft\u00adware\u200b") == "software"


def test_punctuation_spacing():
    assert clean_line_text("results ( see below ) , then") == "results (see below), then"


def test_closing_bracket_does_not_fuse_with_next_word():
    assert clean_line_text("(CCL)next") == "(CCL) next"


def test_download_watermark_tail_is_cut():
    assert clean_line_text("body text Downloaded from https://example.org/ on May 1") == "body text"


def test_marker_chains_split():
    assert insert_marker_breaks("CD33+CD15") == "CD33+ CD15"
    assert insert_marker_breaks("CD14-CD16") == "CD14- CD16"
    assert insert_marker_breaks("CD47/SIRP") == "CD47/ SIRP"
    assert insert_marker_breaks("IL-6") == "IL-6"


def test_repetition_signature_masks_digits():
    a = repetition_signature("Journal of Things 2021, Vol. 12")
    b = repetition_signature("Journal  of things 2022, Vol. 13")
    assert a == b == "journal of things #, vol. #"


def test_normalize_extracted_text():
    assert normalize_extracted_text("a  b \n\n\n\nc  ") == "a b\n\nc"
