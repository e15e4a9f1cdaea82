"""Tests for two-column detection and band-wise reading order."""

from conftest import PAGE_H, PAGE_W, column_rows, document, page, run

from narrative.layout.columns import detect_two_columns, is_full_width
from narrative.layout.models import TextSegment
from narrative.pipeline import ExtractionConfig, NarrativePipeline


def build(doc):
    return NarrativePipeline(ExtractionConfig(disable_tqdm=True)).build(doc)


def test_full_width_segments():
    wide = TextSegment(y=100, runs=(run("x" * 10, 0.1 * PAGE_W, 100, width=0.8 * PAGE_W),))
    narrow = TextSegment(y=100, runs=(run("x" * 10, 0.1 * PAGE_W, 100, width=0.3 * PAGE_W),))
    assert is_full_width(wide, PAGE_W)
    assert not is_full_width(narrow, PAGE_W)


def test_too_few_midpoints_is_single_column(words):
    rows = column_rows(words, 0.10, 0.42, 0.2, 0.5, 5) + column_rows(words, 0.58, 0.90, 0.2, 0.5, 5)
    segments = [TextSegment(y=r.origin_y, runs=(r,)) for r in rows]
    assert detect_two_columns(segments, PAGE_W, 10.0) is None


def test_columns_read_band_by_band(words):
    left_1 = column_rows(words, 0.10, 0.42, 0.22, 0.38, 10)
    right_1 = column_rows(words, 0.58, 0.90, 0.22, 0.38, 10)
    caption = run(
        "Figure 1: Overview of the synthetic layout",
        0.1 * PAGE_W,
        0.40 * PAGE_H,
        width=0.8 * PAGE_W,
    )
    left_2 = column_rows(words, 0.10, 0.42, 0.42, 0.75, 10)
    right_2 = column_rows(words, 0.58, 0.90, 0.42, 0.75, 10)

    # Backend order interleaves the columns
    runs = [r for pair in zip(left_1, right_1) for r in pair]
    runs += [caption]
    runs += [r for pair in zip(right_2, left_2) for r in pair]

    before = column_rows(words, 0.10, 0.90, 0.20, 0.80, 12)
    after = column_rows(words, 0.10, 0.90, 0.20, 0.80, 12)
    result = build(document(page(before), page(runs), page(after)))

    expected = (
        [r.content for r in left_1]
        + [r.content for r in right_1]
        + ["[CALLOUT:figure]" + caption.content]
        + [r.content for r in left_2]
        + [r.content for r in right_2]
    )
    assert result.index.page_texts[1].split("\n") == expected
    assert result.pages[1].two_column
    assert not result.pages[0].two_column
    assert result.index.page_texts[2].split("\n") == [r.content for r in after]


def test_single_column_page_is_not_split(words):
    rows = column_rows(words, 0.10, 0.90, 0.2, 0.8, 25)
    result = build(document(page(rows)))
    assert result.index.page_texts[0].split("\n") == [r.content for r in rows]
    assert not result.pages[0].two_column
