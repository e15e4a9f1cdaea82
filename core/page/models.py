"""
Geometric text data models for document pages.

A page is described by the positioned text runs a rendering backend
produced for it, plus the page dimensions.  Coordinates are page points
with a top-left origin; ``origin_y`` is the run's baseline.
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class GeometricTextRun:
    """A positioned text fragment as reported by the rendering backend."""

    content: str
    origin_x: float
    origin_y: float  # baseline, top-left page origin
    width: float
    font_size: float
    rotation: float = 0.0  # degrees, direction of the writing baseline

    @property
    def x2(self) -> float:
        """Right edge of the run."""
        return self.origin_x + max(0.0, self.width)

    @property
    def x_mid(self) -> float:
        return self.origin_x + max(0.0, self.width) / 2

    @property
    def folded_rotation(self) -> float:
        """Rotation folded into the ``[0, 90]`` degree range."""
        r = abs(self.rotation) % 180.0
        if r > 90.0:
            r = 180.0 - r
        return r

    def is_well_formed(self) -> bool:
        """Check that every numeric field is finite and the content is a string."""
        if not isinstance(self.content, str):
            return False
        values = (self.origin_x, self.origin_y, self.width, self.font_size, self.rotation)
        try:
            return all(math.isfinite(float(v)) for v in values)
        except (TypeError, ValueError):
            return False


@dataclass(frozen=True)
class PageGeometry:
    """Page dimensions plus the body-font estimate for the page."""

    width: float
    height: float
    body_font_size: float = 0.0

    def y_norm(self, y: float) -> float:
        """Vertical position as a 0..1 fraction (0 = top of the page)."""
        if self.height <= 0:
            return 0.0
        return y / self.height

    def x_norm(self, x: float) -> float:
        """Horizontal position as a 0..1 fraction (0 = left edge)."""
        if self.width <= 0:
            return 0.0
        return x / self.width


def estimate_body_font(runs: Sequence[GeometricTextRun]) -> float:
    """
    Estimate the body font size of a page.

    Returns the median of all positive run font sizes, or ``0.0`` when
    the page carries no sized text.
    """
    sizes = [r.font_size for r in runs if r.font_size > 0]
    if not sizes:
        return 0.0
    return float(np.median(sizes))
