"""Tests for the glyph-join pass that turns segment runs into line text."""

from conftest import run

from narrative.layout.glyph_join import is_sup_keyword, join_runs, normalize_sup_text
from narrative.text.cleanup import clean_line_text

BODY = 10.0
TOL_Y = 3.5


def joined(*runs):
    return clean_line_text(join_runs(list(runs), BODY, TOL_Y))


def test_word_gap_decides_spacing():
    assert joined(run("hello", 100, 300), run("world", 128, 300)) == "hello world"
    assert joined(run("wor", 100, 300), run("ld", 115.5, 300)) == "world"


def test_runs_are_joined_left_to_right():
    assert joined(run("world", 128, 300), run("hello", 100, 300)) == "hello world"


def test_charge_glues_onto_marker():
    assert joined(run("CD16", 100, 300), run("+", 120, 297, size=7)) == "CD16+"


def test_superscript_digit_glues():
    assert joined(run("x", 100, 300), run("²", 105, 296, size=6)) == "x2"


def test_dash_after_closing_bracket_stays_glued():
    assert joined(run("(CCL)", 100, 300), run("-3", 125, 300)) == "(CCL)-3"


def test_digit_slash_forces_a_break():
    assert joined(run("CD47/", 100, 300), run("SIRP", 125, 300)) == "CD47/ SIRP"


def test_superscript_qualifier_is_its_own_token():
    assert joined(run("CD4", 100, 300), run("dim", 115.5, 297, size=6)) == "CD4 dim"


def test_sup_helpers():
    assert normalize_sup_text("CD4⁺") == "CD4+"
    assert is_sup_keyword("-/dim")
    assert is_sup_keyword("bright")
    assert not is_sup_keyword("dimension")


def test_empty_segment():
    assert join_runs([], BODY, TOL_Y) == ""
