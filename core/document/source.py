"""
Document sources for the narrative pipeline.

A source exposes a page count and, per page, the page geometry plus the
ordered list of geometric text runs.  Any backend with this shape can feed
the extraction pipeline; :class:`InMemoryDocument` serves hosts that
already hold the runs (and the test suite).
"""

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from core.page.models import GeometricTextRun, PageGeometry, estimate_body_font


@runtime_checkable
class DocumentSource(Protocol):
    """Minimal upstream contract: page count and per-page runs."""

    page_count: int

    def page_runs(self, page_index: int) -> Tuple[PageGeometry, List[GeometricTextRun]]:
        ...


@dataclass
class InMemoryPage:
    """A page given directly as its dimensions and runs."""

    width: float
    height: float
    runs: List[GeometricTextRun] = field(default_factory=list)


class InMemoryDocument:
    """
    Document source backed by pre-built runs.

    Args:
        pages: Page descriptions in reading order.
        path:  Optional identity used in log messages and reports.
    """

    def __init__(self, pages: Sequence[InMemoryPage], path: Optional[str] = None):
        self.pages = list(pages)
        self.path = path or "<memory>"
        self.page_count = len(self.pages)

    def page_runs(self, page_index: int) -> Tuple[PageGeometry, List[GeometricTextRun]]:
        if page_index < 0 or page_index >= self.page_count:
            raise IndexError(
                f"Page index {page_index} out of range "
                f"(document has {self.page_count} pages)"
            )
        page = self.pages[page_index]
        geometry = PageGeometry(
            width=page.width,
            height=page.height,
            body_font_size=estimate_body_font(page.runs),
        )
        return geometry, list(page.runs)

    def __repr__(self) -> str:
        return f"InMemoryDocument('{self.path}', pages={self.page_count})"
