"""
The Narrative Index: the published, immutable result of an extraction.

Word indices address :attr:`NarrativeIndex.tokens` (engine tokens with
the line-break sentinels removed).  Hosts that index the engine's own
tokenization convert with :meth:`NarrativeIndex.to_engine_index`.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Optional, Tuple

from narrative.diagnostics import ExtractionReport
from narrative.layout.models import Exclusion


@dataclass(frozen=True)
class LineSpan:
    """Word range of one narrative line plus where it sits on its page."""

    page_index: int
    start_word: int
    end_word: int  # exclusive
    y_norm: float
    x0_norm: float = 0.0
    x1_norm: float = 1.0

    @property
    def x_mid(self) -> float:
        return (self.x0_norm + self.x1_norm) / 2


@dataclass(frozen=True)
class ScholarlyFlags:
    """Document-level hints that the input is a journal article."""

    is_likely_scholarly: bool = False
    two_column_share: float = 0.0
    has_abstract: bool = False
    references_word_index: Optional[int] = None


@dataclass(frozen=True)
class NarrativeIndex:
    """
    Extraction result shared by the playback engine and the anchoring
    resolver.  Safe for concurrent readers.

    Attributes:
        full_text:         Page texts joined by a blank line, normalised.
        page_texts:        Narrative text of each page.
        page_word_starts:  Word count before each page's first word.
        tokens:            Word tokens of ``full_text``.
        engine_tokens:     Engine tokenization of ``full_text`` (with sentinels).
        exclusions:        Everything removed from the narrative, in page order.
        line_spans:        Word range and position of every kept line.
        flags:             Scholarly-document hints.
        report:            Diagnostics report, when one was requested.
        path:              Identity of the source document.
    """

    full_text: str = ""
    page_texts: Tuple[str, ...] = ()
    page_word_starts: Tuple[int, ...] = ()
    tokens: Tuple[str, ...] = ()
    engine_tokens: Tuple[str, ...] = ()
    exclusions: Tuple[Exclusion, ...] = ()
    line_spans: Tuple[LineSpan, ...] = ()
    flags: ScholarlyFlags = field(default_factory=ScholarlyFlags)
    report: Optional[ExtractionReport] = None
    path: str = ""
    _engine_positions: Tuple[int, ...] = field(default=(), repr=False, compare=False)

    @property
    def page_count(self) -> int:
        return len(self.page_texts)

    @property
    def word_count(self) -> int:
        return len(self.tokens)

    @property
    def is_empty(self) -> bool:
        return not self.tokens

    def page_range(self, page_index: int) -> Tuple[int, int]:
        """``(start, end)`` word range of a page, end exclusive."""
        if page_index < 0 or page_index >= self.page_count:
            raise IndexError(f"Page index {page_index} out of range ({self.page_count} pages)")
        start = self.page_word_starts[page_index]
        if page_index + 1 < self.page_count:
            end = self.page_word_starts[page_index + 1]
        else:
            end = len(self.tokens)
        return start, end

    def page_of_word(self, word_index: int) -> int:
        """0-based page holding ``word_index`` (-1 when out of range)."""
        if word_index < 0 or word_index >= len(self.tokens):
            return -1
        return bisect_right(self.page_word_starts, word_index) - 1

    def to_engine_index(self, word_index: int) -> int:
        """Map a word index onto the engine's sentinel-bearing token list."""
        if word_index < 0 or word_index >= len(self._engine_positions):
            raise IndexError(f"Word index {word_index} out of range ({len(self.tokens)} words)")
        return self._engine_positions[word_index]

    def from_engine_index(self, engine_index: int) -> int:
        """
        Map an engine token index back to a word index.  A sentinel maps
        to the word that follows it.
        """
        if engine_index < 0 or engine_index >= len(self.engine_tokens):
            raise IndexError(f"Engine index {engine_index} out of range")
        return min(bisect_right(self._engine_positions, engine_index - 1), len(self.tokens) - 1)

    def lines_on_page(self, page_index: int) -> Tuple[LineSpan, ...]:
        return tuple(s for s in self.line_spans if s.page_index == page_index)

    def __repr__(self) -> str:
        return (
            f"NarrativeIndex('{self.path}', pages={self.page_count}, "
            f"words={len(self.tokens)})"
        )
