"""
Data models for line building and page layout.

A :class:`TextSegment` is a horizontal cluster of runs sharing one
baseline band; the line builder turns segments into :class:`Line`
objects, and everything a page loses along the way is recorded as an
:class:`Exclusion` for diagnostics.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from core.page.models import GeometricTextRun, PageGeometry

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ExclusionReason(Enum):
    """Why a run or line was kept out of the narrative text."""

    HEADER = "header"
    FOOTER = "footer"
    DISPLAY_EQUATION = "display-equation"
    BOILERPLATE = "boilerplate"
    FRONT_MATTER = "front-matter"
    BODY_BOX = "body-box"
    REPEATED_STAMP = "repeated-stamp"
    WATERMARK = "watermark"
    FIGURE_OVERLAY = "figure-overlay"


class LineKind(Enum):
    """Role of a narrative line."""

    ORDINARY = "ordinary"
    HEADING = "heading"
    CAPTION = "caption"


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextSegment:
    """
    Runs sharing one baseline band and one column.

    Segments are immutable; every line-builder stage returns new
    segments rather than mutating its input.
    """

    y: float
    runs: Tuple[GeometricTextRun, ...]

    @property
    def x1(self) -> float:
        return min(r.origin_x for r in self.runs) if self.runs else 0.0

    @property
    def x2(self) -> float:
        return max(r.x2 for r in self.runs) if self.runs else self.x1

    @property
    def width(self) -> float:
        return max(0.0, self.x2 - self.x1)

    @property
    def x_mid(self) -> float:
        return self.x1 + self.width / 2

    @property
    def compact_text(self) -> str:
        """Run contents joined without any whitespace."""
        return "".join("".join(r.content for r in self.runs).split())

    @property
    def median_font(self) -> float:
        sizes = [r.font_size for r in self.runs if r.font_size > 0]
        return float(np.median(sizes)) if sizes else 0.0

    @property
    def mean_font(self) -> float:
        if not self.runs:
            return 0.0
        return sum(max(0.0, r.font_size) for r in self.runs) / len(self.runs)

    def merged_with(self, other: "TextSegment") -> "TextSegment":
        """A new segment holding both run sets, ordered left to right."""
        runs = sorted(self.runs + other.runs, key=lambda r: r.origin_x)
        return TextSegment(y=self.y, runs=tuple(runs))

    def sorted_by_x(self) -> "TextSegment":
        return TextSegment(y=self.y, runs=tuple(sorted(self.runs, key=lambda r: r.origin_x)))

    def __repr__(self) -> str:
        preview = self.compact_text[:40]
        return f"TextSegment(y={self.y:.1f}, x={self.x1:.0f}-{self.x2:.0f}, '{preview}')"


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


@dataclass
class Line:
    """
    One narrative line ready to contribute to page text.

    ``signature`` is computed from the cleaned text before any
    heading/callout marker is added, so it is comparable across pages
    regardless of classification.
    """

    text: str
    signature: str
    y_norm: float
    token_count: int
    x0_norm: float = 0.0
    x1_norm: float = 1.0
    font_size: float = 0.0
    kind: LineKind = LineKind.ORDINARY
    heading_level: int = 0

    def __repr__(self) -> str:
        preview = self.text[:50]
        return f"Line({self.kind.name}, y={self.y_norm:.3f}, '{preview}')"


@dataclass
class Exclusion:
    """A run or line removed from the narrative, with the rule that removed it."""

    page_index: int
    reason: ExclusionReason
    text: str
    y_norm: float = 0.0
    x_norm: Optional[float] = None


@dataclass
class PageLines:
    """Pass-1 output for one page."""

    page_index: int
    geometry: PageGeometry
    lines: List[Line] = field(default_factory=list)
    exclusions: List[Exclusion] = field(default_factory=list)
    two_column: bool = False
    total_runs: int = 0
    kept_runs: List[GeometricTextRun] = field(default_factory=list)

    def exclusion_counts(self) -> Dict[ExclusionReason, int]:
        counts: Dict[ExclusionReason, int] = {}
        for ex in self.exclusions:
            counts[ex.reason] = counts.get(ex.reason, 0) + 1
        return counts
