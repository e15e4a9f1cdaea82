"""
Span-level text extraction for PDF pages.

Turns PyMuPDF's ``dict`` text output into a flat list of
:class:`GeometricTextRun` objects, one per span.
"""

import logging
import math
from typing import List

import fitz

from .models import GeometricTextRun, estimate_body_font

logger = logging.getLogger(__name__)


class PageTextLayer:
    """
    Extracts the geometric text runs of a PDF page.

    Every span becomes one run carrying its text, baseline origin,
    advance width, font size and the rotation of its writing direction.
    Malformed spans are skipped individually so a single bad span never
    loses the rest of the page.
    """

    def __init__(self, page: fitz.Page):
        self.page = page
        self.runs: List[GeometricTextRun] = []
        self.skipped_spans = 0
        self._extract_runs()

    def _extract_runs(self):
        """Extract one run per text span on the page."""
        flags = fitz.TEXT_PRESERVE_WHITESPACE | fitz.TEXT_PRESERVE_LIGATURES

        try:
            text_dict = self.page.get_text("dict", flags=flags)
        except Exception as e:
            logger.warning("Failed to extract text from page %d: %s", self.page.number, e)
            return

        for block_data in text_dict.get("blocks", []):
            # Skip image blocks
            if block_data.get("type") != 0:
                continue

            for line_data in block_data.get("lines", []):
                dx, dy = line_data.get("dir", (1.0, 0.0))
                rotation = math.degrees(math.atan2(-dy, dx))

                for span_data in line_data.get("spans", []):
                    run = self._run_from_span(span_data, rotation)
                    if run is None:
                        self.skipped_spans += 1
                        continue
                    self.runs.append(run)

        if self.skipped_spans:
            logger.debug(
                "Page %d: skipped %d malformed spans", self.page.number, self.skipped_spans
            )

    @staticmethod
    def _run_from_span(span_data: dict, rotation: float):
        """Build a run from a span dict, or return ``None`` if it is unusable."""
        text = span_data.get("text", "")
        if not isinstance(text, str) or not text.strip():
            return None
        try:
            x0, _, x1, _ = span_data["bbox"]
            ox, oy = span_data["origin"]
            run = GeometricTextRun(
                content=text,
                origin_x=float(ox),
                origin_y=float(oy),
                width=float(x1) - float(x0),
                font_size=float(span_data.get("size", 0.0)),
                rotation=rotation,
            )
        except (KeyError, TypeError, ValueError):
            return None
        return run if run.is_well_formed() else None

    @property
    def median_font_size(self) -> float:
        """Get the median font size on this page (0 when there is no text)."""
        return estimate_body_font(self.runs)

    def __len__(self) -> int:
        return len(self.runs)
