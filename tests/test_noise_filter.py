"""Tests for the run-level noise filter."""

from conftest import PAGE_H, PAGE_W, run

from core.page.models import PageGeometry
from narrative.layout.models import ExclusionReason
from narrative.layout.noise_filter import (
    NoiseFilterConfig,
    compute_stamp_keys,
    filter_runs,
)

GEOMETRY = PageGeometry(PAGE_W, PAGE_H, 10.0)


def reasons(result):
    return {ex.text: ex.reason for ex in result.exclusions}


def test_body_box_drops_bands_and_margins():
    body = run("ordinary body text", 100, 0.5 * PAGE_H)
    top = run("journal banner", 100, 0.05 * PAGE_H)
    bottom = run("page footer text", 100, 0.95 * PAGE_H)
    margin = run("marginal", 5, 0.5 * PAGE_H)

    result = filter_runs([body, top, bottom, margin], GEOMETRY, page_index=2)

    assert result.kept == [body]
    assert set(reasons(result).values()) == {ExclusionReason.BODY_BOX}
    assert all(ex.page_index == 2 for ex in result.exclusions)
    assert result.count(ExclusionReason.BODY_BOX) == 3


def test_body_box_can_be_disabled():
    top = run("journal banner", 100, 0.05 * PAGE_H)
    result = filter_runs([top], GEOMETRY, config=NoiseFilterConfig(body_box=False))
    assert result.kept == [top]


def test_diagonal_watermark():
    mark = run("DRAFT COPY", 200, 400, rotation=45)
    upright = run("upright words", 200, 420, rotation=0)
    vertical = run("vertical words", 200, 440, rotation=90)
    result = filter_runs([mark, upright, vertical], GEOMETRY)
    assert reasons(result) == {"DRAFT COPY": ExclusionReason.WATERMARK}


def test_figure_overlay_labels():
    tick = run("0.5", 300, 400, size=4)
    word = run("Protein", 300, 420, size=4)
    tilted = run("x-axis", 300, 440, rotation=5)
    result = filter_runs([tick, word, tilted], GEOMETRY)
    assert reasons(result) == {
        "0.5": ExclusionReason.FIGURE_OVERLAY,
        "x-axis": ExclusionReason.FIGURE_OVERLAY,
    }
    assert result.kept == [word]


def test_repeated_stamp_across_pages():
    stamp_1 = run("Preprint not peer reviewed", 150, 0.5 * PAGE_H)
    stamp_2 = run("Preprint not peer reviewed", 150.5, 0.5 * PAGE_H)
    body_1 = run("first page words", 150, 0.6 * PAGE_H)
    body_2 = run("second page words", 150, 0.6 * PAGE_H)

    keys = compute_stamp_keys([(GEOMETRY, [stamp_1, body_1]), (GEOMETRY, [stamp_2, body_2])])
    assert len(keys) == 1

    result = filter_runs([stamp_2, body_2], GEOMETRY, stamp_keys=keys)
    assert result.kept == [body_2]
    assert result.exclusions[0].reason == ExclusionReason.REPEATED_STAMP


def test_stamp_rule_can_be_disabled():
    config = NoiseFilterConfig(repeated_stamps=False)
    stamp = run("Preprint not peer reviewed", 150, 0.5 * PAGE_H)
    pages = [(GEOMETRY, [stamp]), (GEOMETRY, [stamp])]
    assert compute_stamp_keys(pages, config) == set()


def test_zero_size_page_keeps_everything():
    body = run("some words", 10, 10)
    result = filter_runs([body], PageGeometry(0.0, 0.0))
    assert result.kept == [body]
