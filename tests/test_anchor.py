"""Tests for selection anchoring onto the Narrative Index."""

from conftest import PAGE_H, PAGE_W, WordSource, document, page, run

from core.page.models import PageGeometry
from narrative.anchor.models import AnchorRequest, SelectionRect, SelectionSnapshot
from narrative.anchor.probe import build_probe
from narrative.anchor.resolver import AnchorResolver
from narrative.index.builder import build_index_from_page_texts
from narrative.pipeline import ExtractionConfig, NarrativePipeline


def index_with(placed, n_words=400, pages=1):
    """One or more pages of filler words with ``placed`` words at fixed indices."""
    filler = WordSource("fill")
    texts = []
    for p in range(pages):
        tokens = filler.sentence(n_words).split()
        for i, word in placed.get(p, {}).items():
            tokens[i] = word
        texts.append(" ".join(tokens))
    return build_index_from_page_texts(texts)


def resolve(index, **kwargs):
    return AnchorResolver(index).resolve(AnchorRequest(**kwargs))


APPLES = {0: {10: "apple", 11: "tart", 340: "apple", 341: "pie"}}


# ------------------------------------------------------------------
# Position hints
# ------------------------------------------------------------------


def test_page_offset_picks_the_nearest_repeat():
    result = resolve(index_with(APPLES), selection="apple", page_index=0, page_offset=335)
    assert result.found
    assert result.index == 340
    assert result.stage == "page-hint"

    result = resolve(index_with(APPLES), selection="apple", page_index=0, page_offset=12)
    assert result.index == 10


def test_vertical_position_without_line_geometry():
    result = resolve(index_with(APPLES), selection="apple", page_index=0, y_fraction=0.85)
    assert result.index == 340


def test_window_search_beyond_the_page_cap():
    index = index_with({0: {5: "kiwi"}, 1: {}}, n_words=100, pages=2)
    result = resolve(index, selection="kiwi", page_index=1, page_offset=0)
    assert result.found
    assert result.index == 5
    assert result.stage == "window"


# ------------------------------------------------------------------
# No position
# ------------------------------------------------------------------


def test_probe_disambiguates_without_position():
    result = resolve(index_with(APPLES), selection="apple", probe="apple pie")
    assert result.index == 340
    assert result.stage == "probe"


def test_probe_skips_standalone_punctuation_in_the_text():
    index = index_with(
        {0: {20: "Smith", 21: "and", 22: "Lee", 150: "Smith", 151: "&", 152: "Jones", 153: "report"}}
    )
    result = resolve(index, selection="Smith", probe="Smith & Jones report")
    assert result.found
    assert (result.index, result.stage) == (150, "probe")

    result = resolve(index, selection="Smith", probe="Smith and Lee")
    assert (result.index, result.stage) == (20, "probe")


def test_repeats_without_position_or_context_are_a_miss():
    result = resolve(index_with(APPLES), selection="apple")
    assert not result.found
    assert result.reason == "not found"
    assert [s.stage for s in result.diagnostics.searches] == ["document"]
    assert len(result.diagnostics.candidates) == 2


def test_unique_word_without_position():
    result = resolve(index_with(APPLES), selection="pie")
    assert result.index == 341
    assert result.stage == "document"


def test_raw_text_context_picks_the_repeat():
    result = resolve(index_with(APPLES), selection="apple", raw_text="the apple pie")
    assert result.index == 340


def test_unknown_word_reports_its_searches():
    result = resolve(index_with(APPLES), selection="zebra", page_index=0, page_offset=10)
    assert not result.found
    assert result.diagnostics.searches
    assert "zebra" in result.diagnostics.format()


# ------------------------------------------------------------------
# Guards and normalisation
# ------------------------------------------------------------------


def test_selection_spanning_pages_is_refused():
    index = index_with(APPLES, pages=2)
    result = resolve(index, selection="apple", page_index=0, end_page=1)
    assert not result.found
    assert result.reason == "selection spans pages"


def test_empty_index_and_empty_selection():
    assert resolve(build_index_from_page_texts([]), selection="apple").reason == "empty index"
    result = resolve(index_with(APPLES), selection="...")
    assert result.reason == "selection has no word characters"


def test_punctuation_snaps_to_the_nearest_word():
    result = resolve(
        index_with(APPLES),
        selection=",",
        raw_text="the apple, then",
        page_index=0,
        page_offset=335,
    )
    assert result.index == 340
    assert "snapped" in result.diagnostics.format()


def test_leading_punctuation_token_is_skipped():
    index = index_with({0: {4: "uniqueword"}})
    result = resolve(index, selection="\u2022 uniqueword")
    assert result.found
    assert (result.index, result.stage) == (4, "document")
    assert result.diagnostics.match_key == "uniqueword"

    assert resolve(index_with(APPLES), selection="& pie").index == 341


def test_wrapped_selection_with_charge():
    index = index_with({0: {50: "CD16+", 200: "(CD16+),"}})
    result = resolve(index, selection="(CD16+)", page_index=0, page_offset=195)
    assert result.index == 200
    result = resolve(index, selection="CD16", page_index=0, page_offset=45)
    assert result.index == 50


def test_out_of_range_page_hint_is_ignored():
    result = resolve(index_with(APPLES), selection="pie", page_index=7)
    assert result.index == 341


# ------------------------------------------------------------------
# Acronym context
# ------------------------------------------------------------------

MARKERS = {
    0: {
        48: "naive",
        49: "helper",
        50: "CD4",
        51: "cells",
        299: "regulatory",
        300: "CD4",
        301: "clones",
    }
}


def test_acronym_context_without_position():
    result = resolve(index_with(MARKERS), selection="CD4", raw_text="naive helper CD4 cells")
    assert result.index == 50


def test_acronym_context_overrides_distance():
    result = resolve(
        index_with(MARKERS),
        selection="CD4",
        raw_text="naive helper CD4 cells",
        page_index=0,
        page_offset=175,
    )
    assert result.index == 50
    assert result.stage == "page-hint"


# ------------------------------------------------------------------
# Probes from page geometry
# ------------------------------------------------------------------

ROWS = [
    ("apple tart with cream", 0.30),
    ("sits on the table", 0.40),
    ("apple pie near window", 0.50),
    ("closes the story here", 0.60),
]


def _row_runs():
    return [run(text, 0.1 * PAGE_W, y * PAGE_H, width=0.8 * PAGE_W) for text, y in ROWS]


def _rect_on_row(y):
    return SelectionRect(0.10, y - 8 / PAGE_H, 0.15, y)


def test_probe_reads_forward_from_the_selection():
    probe = build_probe(_row_runs(), PageGeometry(PAGE_W, PAGE_H, 10.0), _rect_on_row(0.50), "apple")
    assert probe == "apple pie near window closes the story here"


def test_probe_ignores_leading_punctuation_in_the_selection():
    geometry = PageGeometry(PAGE_W, PAGE_H, 10.0)
    probe = build_probe(_row_runs(), geometry, _rect_on_row(0.50), "\u2022 apple")
    assert probe == build_probe(_row_runs(), geometry, _rect_on_row(0.50), "apple")
    assert probe.startswith("apple ")


def test_probe_needs_the_selected_word_nearby():
    probe = build_probe(_row_runs(), PageGeometry(PAGE_W, PAGE_H, 10.0), _rect_on_row(0.40), "apple")
    assert probe is None


def test_probe_and_geometry_anchor_against_a_built_index():
    index = NarrativePipeline(ExtractionConfig(disable_tqdm=True)).build_index(
        document(page(_row_runs()))
    )
    resolver = AnchorResolver(index)
    probe = build_probe(_row_runs(), PageGeometry(PAGE_W, PAGE_H, 10.0), _rect_on_row(0.50), "apple")

    by_probe = resolver.resolve(AnchorRequest(selection="apple", probe=probe))
    assert (by_probe.index, by_probe.stage) == (8, "probe")

    snapshot = SelectionSnapshot(text="apple", page=1, rect=_rect_on_row(0.50))
    by_position = resolver.resolve(AnchorRequest.from_snapshot(snapshot))
    assert (by_position.index, by_position.stage) == (8, "page-hint")
