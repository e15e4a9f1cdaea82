"""
Shared builders for synthetic page geometry.

Words are made of letters only: repetition signatures map digits to
``#``, so numbered filler would look identical across pages.
"""

import itertools
from typing import List, Sequence

import pytest

from core.document.source import InMemoryDocument, InMemoryPage
from core.page.models import GeometricTextRun

PAGE_W = 612.0
PAGE_H = 792.0
BODY = 10.0
CHAR_W = 5.0


def tag(n: int) -> str:
    """Letter-only identifier, at least three letters long (0 → ``"baa"``)."""
    n += 26 * 26
    out = ""
    while n:
        n, r = divmod(n, 26)
        out = chr(ord("a") + r) + out
    return out


class WordSource:
    """Hands out distinct letter-only filler sentences."""

    def __init__(self, prefix: str = "word"):
        self.prefix = prefix
        self._counter = itertools.count()

    def sentence(self, n_words: int = 4) -> str:
        return " ".join(f"{self.prefix}{tag(next(self._counter))}" for _ in range(n_words))


def run(text: str, x: float, y: float, size: float = BODY, width: float = None, rotation: float = 0.0):
    """A run with a width proportional to its length unless given."""
    if width is None:
        width = len(text) * size * CHAR_W / BODY
    return GeometricTextRun(text, x, y, width, size, rotation)


def column_rows(
    words: WordSource,
    x0: float,
    x1: float,
    y_top: float,
    y_bottom: float,
    count: int,
) -> List[GeometricTextRun]:
    """``count`` single-run rows spanning ``x0..x1`` between two page-height fractions."""
    rows = []
    step = (y_bottom - y_top) / max(1, count - 1)
    for i in range(count):
        y = (y_top + step * i) * PAGE_H
        rows.append(run(words.sentence(), x0 * PAGE_W, y, width=(x1 - x0) * PAGE_W))
    return rows


def page(runs: Sequence[GeometricTextRun]) -> InMemoryPage:
    return InMemoryPage(width=PAGE_W, height=PAGE_H, runs=list(runs))


def document(*pages: InMemoryPage) -> InMemoryDocument:
    return InMemoryDocument(list(pages), path="synthetic.pdf")


@pytest.fixture
def words() -> WordSource:
    return WordSource()
