"""
Forward-read probes for anchoring.

A probe is the text that follows the selection point in reading order,
built from the page's raw runs with the same join and cleanup rules as
the narrative lines, then trimmed to begin at the selected word.  Two
occurrences of the same word rarely share the words that follow them.
"""

import logging
from typing import List, Optional, Sequence

from core.page.models import GeometricTextRun, PageGeometry, estimate_body_font
from narrative.layout.columns import resolve_reading_order
from narrative.layout.glyph_join import join_runs
from narrative.layout.line_builder import (
    LineMetrics,
    group_raw_lines,
    merge_superscripts,
    split_segments,
)
from narrative.layout.models import TextSegment
from narrative.text.cleanup import clean_line_text
from narrative.text.normalizer import NO_MATCH, key_match_strength, match_key
from narrative.text.tokenizer import word_tokens

from .models import SelectionRect

logger = logging.getLogger(__name__)


def _segment_distance(seg: TextSegment, x: float, y: float, font: float) -> float:
    """Distance from a point to a segment's text box (baseline minus one font height)."""
    top = seg.y - font
    dy = 0.0 if top <= y <= seg.y else min(abs(y - top), abs(y - seg.y))
    dx = 0.0 if seg.x1 <= x <= seg.x2 else min(abs(x - seg.x1), abs(x - seg.x2))
    return dy * 4.0 + dx


def build_probe(
    page_runs: Sequence[GeometricTextRun],
    geometry: PageGeometry,
    rect: SelectionRect,
    selection: str,
    max_tokens: int = 8,
) -> Optional[str]:
    """
    Read forward from the selection point.

    Args:
        page_runs:  Raw runs of the selection's page.
        geometry:   Page dimensions.
        rect:       Selection rectangle as page fractions.
        selection:  The selected text; its first word starts the probe.
        max_tokens: Longest probe returned.

    Returns:
        The probe text, or ``None`` when the selected word cannot be
        located near the rectangle.
    """
    key = next((k for k in map(match_key, word_tokens(selection)) if k), "")
    if not key or not page_runs or geometry.width <= 0 or geometry.height <= 0:
        return None

    runs = [r for r in page_runs if r.is_well_formed()]
    body_font = estimate_body_font(runs) or geometry.body_font_size or 10.0
    metrics = LineMetrics.for_body_font(body_font)
    segments = split_segments(group_raw_lines(runs, metrics.tol_y), metrics.split_gap)
    segments = merge_superscripts(segments, body_font, metrics.tol_y)
    ordered, _ = resolve_reading_order(segments, geometry.width, body_font, metrics.tol_y)
    if not ordered:
        return None

    x = rect.x0 * geometry.width
    y = rect.center_y * geometry.height
    start = min(
        range(len(ordered)),
        key=lambda i: _segment_distance(ordered[i], x, y, body_font),
    )

    first = word_tokens(clean_line_text(join_runs(ordered[start].runs, body_font, metrics.tol_y)))
    matches = [i for i, w in enumerate(first) if key_match_strength(match_key(w), key) != NO_MATCH]
    if not matches:
        logger.debug("Probe: %r not found in segment %r", selection, ordered[start])
        return None

    seg = ordered[start]
    if len(matches) > 1 and seg.width > 0 and len(first) > 1:
        frac = min(1.0, max(0.0, (x - seg.x1) / seg.width))
        approx = frac * (len(first) - 1)
        at = min(matches, key=lambda i: (abs(i - approx), i))
    else:
        at = matches[0]

    tokens: List[str] = first[at:]
    for seg in ordered[start + 1 :]:
        if len(tokens) >= max_tokens:
            break
        tokens.extend(word_tokens(clean_line_text(join_runs(seg.runs, body_font, metrics.tol_y))))
    return " ".join(tokens[:max_tokens])
