"""
Line builder: page runs → ordered, cleaned and classified lines.

The builder is a chain of pure stages, each taking a segment list and
returning a fresh one:

1. :func:`group_raw_lines`   : cluster runs by baseline.
2. :func:`split_segments`    : cut raw lines at column gutters.
3. :func:`merge_superscripts`: fold detached charge/qualifier fragments
   back into their baseline segment.
4. :func:`~narrative.layout.columns.resolve_reading_order`: column-aware order.
5. glyph join, cleanup and classification per segment.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from core.page.models import GeometricTextRun, PageGeometry, estimate_body_font
from narrative.text.cleanup import clean_line_text

from .classifier import LineClassifierConfig, classify_line
from .columns import resolve_reading_order
from .glyph_join import is_sup_keyword, join_runs, normalize_sup_text
from .models import Exclusion, Line, TextSegment

logger = logging.getLogger(__name__)

# Superscript merge neighbourhood (segments before/after in y order)
_SUP_NEIGHBOURS = 4
_SUP_MAX_CHARS = 10


@dataclass(frozen=True)
class LineMetrics:
    """Size-proportional thresholds for one page."""

    body_font: float
    tol_y: float
    split_gap: float

    @classmethod
    def for_body_font(cls, body_font: float) -> "LineMetrics":
        return cls(
            body_font=body_font,
            tol_y=max(1.5, body_font * 0.35),
            split_gap=max(24.0, body_font * 6.5),
        )


@dataclass
class BuiltLines:
    """Lines of one page plus what classification set aside."""

    lines: List[Line] = field(default_factory=list)
    exclusions: List[Exclusion] = field(default_factory=list)
    two_column: bool = False


# ---------------------------------------------------------------------------
# Stage 1 & 2: grouping and gutter splitting
# ---------------------------------------------------------------------------


def group_raw_lines(runs: Sequence[GeometricTextRun], tol_y: float) -> List[TextSegment]:
    """Cluster runs into raw lines, top to bottom, by baseline proximity."""
    ordered = sorted(
        (r for r in runs if r.content and r.content.strip()),
        key=lambda r: (r.origin_y, r.origin_x),
    )
    raw: List[TextSegment] = []
    current: List[GeometricTextRun] = []
    current_y = 0.0

    for run in ordered:
        if current and abs(current_y - run.origin_y) <= tol_y:
            current.append(run)
            continue
        if current:
            raw.append(TextSegment(y=current_y, runs=tuple(current)))
        current = [run]
        current_y = run.origin_y

    if current:
        raw.append(TextSegment(y=current_y, runs=tuple(current)))
    return raw


def split_segments(lines: Sequence[TextSegment], split_gap: float) -> List[TextSegment]:
    """Split each raw line wherever the horizontal gap exceeds ``split_gap``."""
    segments: List[TextSegment] = []
    for line in lines:
        runs = sorted(line.runs, key=lambda r: r.origin_x)
        current: List[GeometricTextRun] = []
        reach = 0.0
        for run in runs:
            if current and run.origin_x - reach > split_gap:
                segments.append(TextSegment(y=line.y, runs=tuple(current)))
                current = []
            if not current:
                reach = run.x2
            current.append(run)
            reach = max(reach, run.x2)
        if current:
            segments.append(TextSegment(y=line.y, runs=tuple(current)))

    segments.sort(key=lambda s: (s.y, s.x1))
    return segments


# ---------------------------------------------------------------------------
# Stage 3: superscript merge
# ---------------------------------------------------------------------------


def _is_charge_run(text: str) -> bool:
    return bool(text) and any(c in "+-" for c in text) and all(c in "0123456789+-" for c in text)


def is_superscript_like(segment: TextSegment, body_font: float) -> bool:
    """Short charge runs or biomedical qualifiers that detached from their baseline."""
    compact = normalize_sup_text(segment.compact_text)
    if not compact or len(compact) > _SUP_MAX_CHARS:
        return False

    base = body_font or 10.0
    font = segment.median_font
    ratio = font / base if font > 0 else 1.0

    if _is_charge_run(compact):
        return ratio <= 1.35
    if is_sup_keyword(compact):
        return ratio <= 1.10
    return False


def merge_superscripts(
    segments: Sequence[TextSegment],
    body_font: float,
    tol_y: float,
) -> List[TextSegment]:
    """
    Merge superscript-like segments into the nearest baseline segment.

    A candidate base must lie within ``_SUP_NEIGHBOURS`` positions, be
    vertically close, and overlap horizontally (with padding).  Sup-like
    segments without a base are kept as they are.
    """
    segs = list(segments)
    sup_flags = [is_superscript_like(s, body_font) for s in segs]
    base_font_floor = body_font or 10.0
    targets = {}

    for i, sup in enumerate(segs):
        if not sup_flags[i]:
            continue
        sup_font = max(sup.median_font, base_font_floor)
        best_j: Optional[int] = None
        best_dy = float("inf")

        lo = max(0, i - _SUP_NEIGHBOURS)
        hi = min(len(segs) - 1, i + _SUP_NEIGHBOURS)
        for j in range(lo, hi + 1):
            if j == i or sup_flags[j]:
                continue
            base = segs[j]
            dy = abs(sup.y - base.y)
            font = max(max(base.median_font, base_font_floor), sup_font)
            if dy > max(tol_y * 4.0, font * 2.6):
                continue
            pad = max(10.0, font * 2.2)
            if sup.x2 < base.x1 - pad or sup.x1 > base.x2 + pad:
                continue
            if dy < best_dy:
                best_dy = dy
                best_j = j

        if best_j is not None:
            targets[i] = best_j

    if not targets:
        return segs

    merged: List[TextSegment] = []
    for j, seg in enumerate(segs):
        if j in targets:
            continue
        for i, target in targets.items():
            if target == j:
                seg = seg.merged_with(segs[i])
        merged.append(seg)
    logger.debug("Merged %d superscript fragments", len(targets))
    return merged


# ---------------------------------------------------------------------------
# Full page
# ---------------------------------------------------------------------------


def build_lines(
    runs: Sequence[GeometricTextRun],
    geometry: PageGeometry,
    page_index: int = 0,
    classifier_config: Optional[LineClassifierConfig] = None,
) -> BuiltLines:
    """
    Build the ordered narrative lines of one page from filtered runs.

    Args:
        runs:              Runs that survived the noise filter.
        geometry:          Page dimensions.  The body font is re-estimated
                           from ``runs`` when they carry sized text.
        page_index:        0-based page number for diagnostics.
        classifier_config: Line classification switches.

    Returns:
        :class:`BuiltLines` with lines in reading order.
    """
    body_font = estimate_body_font(runs) or geometry.body_font_size
    metrics = LineMetrics.for_body_font(body_font)

    segments = group_raw_lines(runs, metrics.tol_y)
    segments = split_segments(segments, metrics.split_gap)
    segments = merge_superscripts(segments, body_font, metrics.tol_y)
    ordered, two_column = resolve_reading_order(
        segments, geometry.width, body_font, metrics.tol_y
    )

    result = BuiltLines(two_column=two_column)
    for seg in ordered:
        raw = join_runs(seg.runs, body_font, metrics.tol_y)
        text = clean_line_text(raw)
        if not text:
            continue
        outcome = classify_line(
            text,
            seg,
            geometry,
            body_font,
            page_index=page_index,
            config=classifier_config,
        )
        if outcome.line is not None:
            result.lines.append(outcome.line)
        if outcome.exclusion is not None:
            result.exclusions.append(outcome.exclusion)

    return result
