"""Tests for the removal report and debug overlays."""

from conftest import PAGE_H, PAGE_W, WordSource, column_rows, document, page, run
from PIL import Image

from narrative.diagnostics import save_debug_overlays
from narrative.layout.models import ExclusionReason
from narrative.pipeline import ExtractionConfig, NarrativePipeline


class BlankRenderer:
    """Stands in for a PDF adapter: renders every page as a white image."""

    def render(self, page_index, scale=1.5):
        return Image.new("RGB", (int(PAGE_W * scale), int(PAGE_H * scale)), "white")


def stamped_result():
    words = WordSource()
    pages = []
    for i in range(3):
        runs = [run("Preprint not peer reviewed", 0.3 * PAGE_W, 0.15 * PAGE_H)]
        runs += column_rows(words, 0.10, 0.90, 0.30, 0.70, 5)
        runs.append(run(str(i + 1), 0.5 * PAGE_W, 0.75 * PAGE_H))
        runs.append(run("top banner", 0.3 * PAGE_W, 0.02 * PAGE_H))
        pages.append(page(runs))
    return NarrativePipeline(ExtractionConfig(disable_tqdm=True)).build(document(*pages))


def test_report_counts_removals_per_reason():
    report = stamped_result().index.report
    totals = report.removed_totals()

    assert totals[ExclusionReason.REPEATED_STAMP] == 3
    assert totals[ExclusionReason.BODY_BOX] == 3
    assert totals[ExclusionReason.BOILERPLATE] == 3

    first = report.pages[0]
    assert first.kept_lines == 5
    assert first.total_lines == 6
    assert first.total_runs == 8
    assert first.kept_runs == 6
    assert first.samples[ExclusionReason.REPEATED_STAMP] == ["Preprint not peer reviewed"]


def test_report_format():
    text = stamped_result().index.report.format()
    assert "EXTRACTION REPORT" in text
    assert "repeated-stamp" in text
    assert "--- Page 3 (1-col)" in text


def test_overlays_are_written(tmp_path):
    result = stamped_result()
    written = save_debug_overlays(BlankRenderer(), result.pages, str(tmp_path / "out"), scale=0.5)

    assert [p.name for p in written] == ["page_000.png", "page_001.png", "page_002.png"]
    with Image.open(written[0]) as img:
        assert img.size == (306, 396)
        assert img.getextrema() != ((255, 255), (255, 255), (255, 255))
