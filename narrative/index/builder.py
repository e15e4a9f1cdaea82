"""
Assembly of a :class:`NarrativeIndex` from page texts.

The page-start offsets are derived with the same whitespace tokenizer
the playback engine uses, so ``page_word_starts[i]`` is exactly the
number of words before page ``i`` in ``full_text``.
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from narrative.diagnostics import ExtractionReport
from narrative.layout.models import Exclusion, Line, PageLines
from narrative.text.cleanup import normalize_extracted_text
from narrative.text.tokenizer import LINE_BREAK, count_words, tokenize_for_engine

from .models import LineSpan, NarrativeIndex, ScholarlyFlags

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"

_RE_MARKER = re.compile(r"^\[(?:H\d+|CALLOUT:[\w-]+)\]")
_RE_NON_ALPHA = re.compile(r"[^a-z]+")
_REFERENCE_HEADINGS = {"references", "bibliography", "literaturecited", "workscited", "referencesandnotes"}


def assemble_page_text(lines: Sequence[Line]) -> str:
    """Join a page's lines, one per text line."""
    return normalize_extracted_text("\n".join(ln.text for ln in lines if ln.text))


def _engine_positions(engine_tokens: Sequence[str]) -> Tuple[int, ...]:
    return tuple(i for i, tok in enumerate(engine_tokens) if tok != LINE_BREAK)


def build_index_from_page_texts(
    page_texts: Sequence[str],
    path: str = "",
    exclusions: Iterable[Exclusion] = (),
    line_spans: Iterable[LineSpan] = (),
    flags: Optional[ScholarlyFlags] = None,
    report: Optional[ExtractionReport] = None,
) -> NarrativeIndex:
    """
    Build an index from per-page narrative text.

    Args:
        page_texts:  Narrative text of every page, in page order.
        path:        Identity of the source document.
        exclusions:  Removed runs/lines, for diagnostics.
        line_spans:  Word ranges of kept lines.
        flags:       Scholarly hints (defaults to all-false).
        report:      Optional diagnostics report.

    Returns:
        A frozen :class:`NarrativeIndex`; an empty input yields a valid
        empty index.
    """
    texts = tuple(normalize_extracted_text(t) for t in page_texts)

    starts: List[int] = []
    running = 0
    for text in texts:
        starts.append(running)
        running += count_words(text)

    full_text = normalize_extracted_text(PAGE_SEPARATOR.join(texts))
    engine_tokens = tuple(tokenize_for_engine(full_text))
    tokens = tuple(t for t in engine_tokens if t != LINE_BREAK)

    if len(tokens) != running:
        # Page texts are individually normalised, so this only trips on a tokenizer change
        logger.warning(
            "Word count mismatch for '%s': pages sum to %d, full text has %d",
            path,
            running,
            len(tokens),
        )

    return NarrativeIndex(
        full_text=full_text,
        page_texts=texts,
        page_word_starts=tuple(starts),
        tokens=tokens,
        engine_tokens=engine_tokens,
        exclusions=tuple(exclusions),
        line_spans=tuple(line_spans),
        flags=flags or ScholarlyFlags(),
        report=report,
        path=path,
        _engine_positions=_engine_positions(engine_tokens),
    )


def compute_line_spans(pages: Sequence[PageLines]) -> List[LineSpan]:
    """Word ranges of every kept line, continuing across pages."""
    spans: List[LineSpan] = []
    offset = 0
    for page in pages:
        for ln in page.lines:
            n = count_words(ln.text)
            if n == 0:
                continue
            spans.append(
                LineSpan(
                    page_index=page.page_index,
                    start_word=offset,
                    end_word=offset + n,
                    y_norm=ln.y_norm,
                    x0_norm=ln.x0_norm,
                    x1_norm=ln.x1_norm,
                )
            )
            offset += n
    return spans


def _collapsed(text: str) -> str:
    return _RE_NON_ALPHA.sub("", _RE_MARKER.sub("", text).lower())


def detect_scholarly_flags(
    pages: Sequence[PageLines],
    line_spans: Sequence[LineSpan],
    min_pages: int = 4,
    min_two_column_share: float = 0.25,
    tail_fraction: float = 0.4,
) -> ScholarlyFlags:
    """
    Guess whether the document is a journal article.

    Multi-page documents with a sizeable share of two-column pages count
    as scholarly; so does any document with a references heading in its
    last pages, whose first word becomes ``references_word_index``.
    """
    n_pages = len(pages)
    if n_pages == 0:
        return ScholarlyFlags()

    share = sum(1 for p in pages if p.two_column) / n_pages
    has_abstract = any(
        _collapsed(ln.text) == "abstract" for p in pages[:2] for ln in p.lines
    )

    tail_start = n_pages - max(2, int(round(n_pages * tail_fraction)))
    references_at: Optional[int] = None
    span_iter = iter(line_spans)
    for page in pages:
        for ln in page.lines:
            if count_words(ln.text) == 0:
                continue
            span = next(span_iter, None)
            if span is None or references_at is not None:
                continue
            if page.page_index >= tail_start and _collapsed(ln.text) in _REFERENCE_HEADINGS:
                references_at = span.start_word

    layout_scholarly = n_pages >= min_pages and share >= min_two_column_share
    return ScholarlyFlags(
        is_likely_scholarly=n_pages >= 2 and (layout_scholarly or references_at is not None),
        two_column_share=share,
        has_abstract=has_abstract,
        references_word_index=references_at,
    )
