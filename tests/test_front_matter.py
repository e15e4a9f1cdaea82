"""Tests for first-page front-matter removal."""

from narrative.layout.front_matter import filter_front_matter, is_toc_line
from narrative.layout.models import ExclusionReason, Line, LineKind
from narrative.text.cleanup import repetition_signature
from narrative.text.tokenizer import count_words


def line(text, y_norm):
    return Line(
        text=text,
        signature=repetition_signature(text),
        y_norm=y_norm,
        token_count=count_words(text),
    )


def test_chrome_and_affiliations_above_abstract_are_removed():
    lines = [
        line("Contents lists available at ScienceDirect", 0.05),
        line("journal homepage: www.elsevier.com/locate/cells", 0.08),
        line("A Study of Synthetic Layouts", 0.15),
        line("Department of Biology, University of Somewhere, Springfield 62704", 0.22),
        line("ARTICLE INFO ABSTRACT", 0.30),
        line("Cells were grown at the Department of Biology, as before.", 0.45),
    ]
    kept, removed = filter_front_matter(lines)

    assert [ln.text for ln in kept] == [
        "A Study of Synthetic Layouts",
        "[H3]Abstract",
        "Cells were grown at the Department of Biology, as before.",
    ]
    assert kept[1].kind == LineKind.HEADING
    assert len(removed) == 3
    assert all(ex.reason == ExclusionReason.FRONT_MATTER for ex in removed)


def test_lines_low_on_the_page_are_kept():
    lines = [
        line("A Study of Synthetic Layouts", 0.15),
        line("We thank the University of Somewhere for funding.", 0.6),
        line("Data are at https://example.org/data for reuse.", 0.7),
    ]
    kept, removed = filter_front_matter(lines)
    assert kept == lines
    assert removed == []


def test_toc_lines_are_never_chrome():
    assert is_toc_line("Introduction ........ 3")
    kept, removed = filter_front_matter([line("Visit https://example.org ........ 3", 0.1)])
    assert removed == []
    assert len(kept) == 1
