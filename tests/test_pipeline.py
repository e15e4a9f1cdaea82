"""End-to-end tests of the two-pass extraction pipeline over synthetic pages."""

from conftest import PAGE_H, PAGE_W, WordSource, column_rows, document, page, run

from core.document.source import InMemoryDocument
from narrative.pipeline import ExtractionConfig, NarrativePipeline
from narrative.text.tokenizer import count_words, word_tokens


def config(**kwargs):
    return ExtractionConfig(disable_tqdm=True, **kwargs)


def three_page_document():
    words = WordSource()
    return document(*(page(column_rows(words, 0.10, 0.90, 0.30, 0.70, 6)) for _ in range(3)))


class FlakySource(InMemoryDocument):
    """Fails to read one page."""

    def __init__(self, pages, bad_page):
        super().__init__(pages, path="flaky.pdf")
        self.bad_page = bad_page

    def page_runs(self, page_index):
        if page_index == self.bad_page:
            raise RuntimeError("corrupt content stream")
        return super().page_runs(page_index)


def test_page_word_starts_match_page_texts():
    index = NarrativePipeline(config()).build_index(three_page_document())

    assert index.page_count == 3
    running = 0
    for i, text in enumerate(index.page_texts):
        assert index.page_word_starts[i] == running
        start, end = index.page_range(i)
        assert list(index.tokens[start:end]) == word_tokens(text)
        running += count_words(text)
    assert running == index.word_count == 3 * 6 * 4


def test_full_text_joins_pages_with_a_blank_line():
    index = NarrativePipeline(config()).build_index(three_page_document())
    assert index.full_text == "\n\n".join(index.page_texts)
    assert "\n\n\n" not in index.full_text


def test_building_twice_is_identical():
    doc = three_page_document()
    first = NarrativePipeline(config()).build_index(doc)
    second = NarrativePipeline(config()).build_index(doc)
    assert first.full_text == second.full_text
    assert first.page_word_starts == second.page_word_starts


def test_thread_pool_gives_the_same_result():
    doc = three_page_document()
    inline = NarrativePipeline(config()).build_index(doc)
    pooled = NarrativePipeline(config(workers=3)).build_index(doc)
    assert pooled.full_text == inline.full_text


def test_empty_documents():
    index = NarrativePipeline(config()).build_index(document(page([])))
    assert index.is_empty
    assert index.full_text == ""
    assert index.page_word_starts == (0,)

    index = NarrativePipeline(config()).build_index(InMemoryDocument([]))
    assert index.page_count == 0
    assert index.is_empty


def test_unreadable_page_becomes_empty():
    words = WordSource()
    pages = [page(column_rows(words, 0.10, 0.90, 0.30, 0.70, 6)) for _ in range(3)]
    result = NarrativePipeline(config()).build(FlakySource(pages, bad_page=1))

    assert result.failed_pages == 1
    assert result.index.page_texts[1] == ""
    assert result.index.page_texts[0] and result.index.page_texts[2]
    assert result.index.page_range(1) == (24, 24)


def test_malformed_runs_are_skipped(words):
    runs = column_rows(words, 0.10, 0.90, 0.30, 0.70, 3)
    runs.append(run("broken", float("nan"), 300))
    index = NarrativePipeline(config()).build_index(document(page(runs)))
    assert index.word_count == 12
    assert "broken" not in index.full_text


def test_page_range_keeps_skipped_pages_empty():
    index = NarrativePipeline(config(page_range=(1, 1))).build_index(three_page_document())
    assert index.page_count == 2
    assert index.page_texts[0] == ""
    assert count_words(index.page_texts[1]) == 24


def test_max_pages_limits_reading():
    result = NarrativePipeline(config(max_pages=1)).build(three_page_document())
    assert result.index.page_count == 1
    assert result.total_pages == 3


def test_line_spans_follow_the_text():
    index = NarrativePipeline(config()).build_index(three_page_document())
    assert len(index.line_spans) == 18
    for span in index.line_spans:
        assert index.page_of_word(span.start_word) == span.page_index
        assert span.end_word - span.start_word == 4
    assert len(index.lines_on_page(2)) == 6


def test_references_heading_marks_scholarly_documents(words):
    pages = [page(column_rows(words, 0.10, 0.90, 0.30, 0.70, 6)) for _ in range(2)]
    last = column_rows(words, 0.10, 0.90, 0.30, 0.40, 3)
    last.append(run("References", 0.1 * PAGE_W, 0.5 * PAGE_H))
    last += column_rows(words, 0.10, 0.90, 0.60, 0.70, 2)
    pages.append(page(last))

    index = NarrativePipeline(config()).build_index(document(*pages))

    flags = index.flags
    assert flags.is_likely_scholarly
    assert flags.references_word_index is not None
    assert index.tokens[flags.references_word_index] == "References"
    assert flags.two_column_share == 0.0


def test_summary_and_report():
    result = NarrativePipeline(config()).build(three_page_document())
    assert "EXTRACTION COMPLETE" in result.summary()
    assert result.index.report is not None
    assert len(result.index.report.pages) == 3

    bare = NarrativePipeline(config(build_report=False)).build(three_page_document())
    assert bare.index.report is None
