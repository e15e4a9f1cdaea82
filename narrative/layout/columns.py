"""
Column detection and reading order for page segments.

Detection is deliberately conservative: a page is only read as two
columns when segment midpoints show a wide, well-populated gap, because
a false positive scrambles the reading order of the whole page.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .models import TextSegment

logger = logging.getLogger(__name__)

# Full-width separator thresholds (fractions of page width)
FULL_WIDTH_RATIO = 0.78
FULL_SPAN_LEFT = 0.10
FULL_SPAN_RIGHT = 0.90

# Two-column evidence requirements
MIN_MIDPOINTS = 18
MIN_PER_SIDE = 7
MAX_COLUMN_SEGMENT_RATIO = 0.72
MIN_GAP_RATIO = 0.18
MIN_GAP_BODY_FONTS = 10.0


def is_full_width(segment: TextSegment, page_width: float) -> bool:
    """Whether a segment spans (nearly) the whole page width."""
    if page_width <= 1:
        return False
    if segment.width >= page_width * FULL_WIDTH_RATIO:
        return True
    return segment.x1 <= page_width * FULL_SPAN_LEFT and segment.x2 >= page_width * FULL_SPAN_RIGHT


def detect_two_columns(
    segments: Sequence[TextSegment],
    page_width: float,
    body_font: float,
) -> Optional[float]:
    """
    Look for a two-column layout.

    Returns:
        The x coordinate splitting the columns, or ``None`` for a
        single-column (or undecidable) page.
    """
    if page_width <= 1:
        return None

    mids = []
    for seg in segments:
        if is_full_width(seg, page_width):
            continue
        if len(seg.compact_text) < 2:
            continue
        if seg.width >= page_width * MAX_COLUMN_SEGMENT_RATIO:
            continue
        mids.append(seg.x_mid)

    if len(mids) < MIN_MIDPOINTS:
        return None

    arr = np.sort(np.asarray(mids, dtype=float))
    gaps = np.diff(arr)
    best = int(np.argmax(gaps))
    gap_threshold = max(page_width * MIN_GAP_RATIO, body_font * MIN_GAP_BODY_FONTS)
    if gaps[best] < gap_threshold:
        return None

    left_count = best + 1
    right_count = len(arr) - left_count
    if left_count < MIN_PER_SIDE or right_count < MIN_PER_SIDE:
        return None

    return float((arr[best] + arr[best + 1]) / 2)


def _sort_key(seg: TextSegment):
    return (seg.y, seg.x1)


def resolve_reading_order(
    segments: Sequence[TextSegment],
    page_width: float,
    body_font: float,
    tol_y: float,
) -> Tuple[List[TextSegment], bool]:
    """
    Order segments for reading.

    Two-column pages are emitted band by band between full-width
    separators: left column top to bottom, then right column, then the
    separator(s).  Other pages read top to bottom, left to right.

    Returns:
        ``(ordered_segments, is_two_column)``
    """
    split_x = detect_two_columns(segments, page_width, body_font)
    if split_x is None:
        return sorted(segments, key=_sort_key), False

    separators = sorted(
        (s for s in segments if is_full_width(s, page_width)), key=_sort_key
    )
    body = [s for s in segments if not is_full_width(s, page_width)]

    def emit(band: List[TextSegment]) -> List[TextSegment]:
        left = sorted((s for s in band if s.x_mid < split_x), key=_sort_key)
        right = sorted((s for s in band if s.x_mid >= split_x), key=_sort_key)
        return left + right

    if not separators:
        logger.debug("Two-column page (split at x=%.1f), no separators", split_x)
        return emit(body), True

    # Separators on the same baseline band form one group
    groups: List[List[TextSegment]] = []
    for sep in separators:
        if groups and abs(groups[-1][0].y - sep.y) <= tol_y * 0.8:
            groups[-1].append(sep)
        else:
            groups.append([sep])

    ordered: List[TextSegment] = []
    remaining = body
    for group in groups:
        boundary = group[0].y
        band = [s for s in remaining if s.y <= boundary]
        remaining = [s for s in remaining if s.y > boundary]
        ordered.extend(emit(band))
        ordered.extend(sorted(group, key=_sort_key))
    ordered.extend(emit(remaining))

    logger.debug(
        "Two-column page (split at x=%.1f), %d separator bands", split_x, len(groups)
    )
    return ordered, True
