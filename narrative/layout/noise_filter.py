"""
Geometric noise filter for page text runs.

Drops runs that are almost never narrative before any line is built:

1. **Body box**: runs in the top/bottom page bands or the side margins.
2. **Repeated stamp**: the same text at the same coarse grid cell on two
   or more pages (baked-in watermarks, publisher stamps).
3. **Rotation**: diagonal runs (watermarks).
4. **Figure overlay**: short chart/axis labels with an extreme font-size
   ratio or a tilt.

Rules are cumulative; a run is attributed to the first rule that drops it.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from core.page.models import GeometricTextRun, PageGeometry
from narrative.text.cleanup import repetition_signature

from .models import Exclusion, ExclusionReason

logger = logging.getLogger(__name__)

StampKey = Tuple[str, int, int]

_RE_LONG_WORD = re.compile(r"[^\W\d_]{5,}")


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class NoiseFilterConfig:
    """
    Thresholds and switches for the run-level noise filter.

    Attributes:
        body_box:              Enable the header/footer/margin body box.
        header_pct:            Fraction of page height treated as header band.
        footer_pct:            Fraction of page height treated as footer band.
        margin_pct:            Fraction of page width treated as each side margin.
        repeated_stamps:       Enable the cross-page stamp rule.
        stamp_grid:            Cells per axis of the stamp position grid.
        stamp_min_pages:       Pages a (signature, cell) must recur on.
        stamp_min_signature:   Shortest signature that can form a stamp key.
        rotation:              Enable the diagonal-watermark rule.
        rotation_min_deg:      Lower bound (exclusive) of the diagonal range.
        rotation_max_deg:      Upper bound (exclusive) of the diagonal range.
        figure_overlay:        Enable the figure/axis-label rule.
        overlay_max_chars:     Longest run content treated as an overlay label.
        overlay_small_ratio:   Font ratio at or below which a label is "tiny".
        overlay_large_ratio:   Font ratio at or above which a label is "huge".
        overlay_tilt_deg:      Folded rotation above which a label is "tilted".
    """

    body_box: bool = True
    header_pct: float = 0.12
    footer_pct: float = 0.10
    margin_pct: float = 0.08

    repeated_stamps: bool = True
    stamp_grid: int = 100
    stamp_min_pages: int = 2
    stamp_min_signature: int = 3

    rotation: bool = True
    rotation_min_deg: float = 12.0
    rotation_max_deg: float = 78.0

    figure_overlay: bool = True
    overlay_max_chars: int = 12
    overlay_small_ratio: float = 0.55
    overlay_large_ratio: float = 2.5
    overlay_tilt_deg: float = 2.0


@dataclass
class NoiseFilterResult:
    """Runs that survived the filter plus one exclusion per dropped run."""

    kept: List[GeometricTextRun] = field(default_factory=list)
    exclusions: List[Exclusion] = field(default_factory=list)

    def count(self, reason: ExclusionReason) -> int:
        return sum(1 for ex in self.exclusions if ex.reason == reason)


# ------------------------------------------------------------------
# Repeated stamps (document-wide)
# ------------------------------------------------------------------


def stamp_key(
    run: GeometricTextRun,
    geometry: PageGeometry,
    config: NoiseFilterConfig,
) -> Optional[StampKey]:
    """Return the (signature, cell-x, cell-y) key of a run, or ``None``."""
    sig = repetition_signature(run.content)
    if len(sig) < config.stamp_min_signature:
        return None
    if geometry.width <= 0 or geometry.height <= 0:
        return None
    grid = config.stamp_grid
    cx = min(grid - 1, max(0, int(geometry.x_norm(run.origin_x) * grid)))
    cy = min(grid - 1, max(0, int(geometry.y_norm(run.origin_y) * grid)))
    return sig, cx, cy


def compute_stamp_keys(
    pages: Iterable[Tuple[PageGeometry, Sequence[GeometricTextRun]]],
    config: Optional[NoiseFilterConfig] = None,
) -> Set[StampKey]:
    """
    Find the (signature, cell) keys recurring on enough pages.

    Must see every page before pass 1 runs, since a stamp is only
    recognisable by its recurrence.
    """
    config = config or NoiseFilterConfig()
    if not config.repeated_stamps:
        return set()

    pages_per_key: Dict[StampKey, int] = {}
    for geometry, runs in pages:
        seen: Set[StampKey] = set()
        for run in runs:
            key = stamp_key(run, geometry, config)
            if key is not None:
                seen.add(key)
        for key in seen:
            pages_per_key[key] = pages_per_key.get(key, 0) + 1

    stamps = {k for k, n in pages_per_key.items() if n >= config.stamp_min_pages}
    if stamps:
        logger.debug("Repeated stamp keys: %d", len(stamps))
    return stamps


# ------------------------------------------------------------------
# Per-run rules
# ------------------------------------------------------------------


def _outside_body_box(
    run: GeometricTextRun, geometry: PageGeometry, config: NoiseFilterConfig
) -> bool:
    if geometry.width <= 0 or geometry.height <= 0:
        return False
    y = geometry.y_norm(run.origin_y)
    if y < config.header_pct or y > 1.0 - config.footer_pct:
        return True
    x = geometry.x_norm(run.x_mid)
    return x < config.margin_pct or x > 1.0 - config.margin_pct


def _is_diagonal(run: GeometricTextRun, config: NoiseFilterConfig) -> bool:
    r = run.folded_rotation
    return config.rotation_min_deg < r < config.rotation_max_deg


def _is_figure_overlay(
    run: GeometricTextRun, body_font: float, config: NoiseFilterConfig
) -> bool:
    if body_font <= 0 or run.font_size <= 0:
        return False
    compact = "".join(run.content.split())
    if not compact or len(compact) > config.overlay_max_chars:
        return False
    if _RE_LONG_WORD.search(compact):
        return False
    ratio = run.font_size / body_font
    extreme = ratio <= config.overlay_small_ratio or ratio >= config.overlay_large_ratio
    tilted = run.folded_rotation > config.overlay_tilt_deg
    return extreme or tilted


def filter_runs(
    runs: Sequence[GeometricTextRun],
    geometry: PageGeometry,
    page_index: int = 0,
    stamp_keys: Optional[Set[StampKey]] = None,
    config: Optional[NoiseFilterConfig] = None,
) -> NoiseFilterResult:
    """
    Apply the enabled noise rules to one page's runs.

    Args:
        runs:        The page's runs in backend order.
        geometry:    Page dimensions and body-font estimate.
        page_index:  0-based page number, recorded on exclusions.
        stamp_keys:  Document-wide stamp keys from :func:`compute_stamp_keys`.
        config:      Rule switches and thresholds.

    Returns:
        :class:`NoiseFilterResult` with the surviving runs in input order.
    """
    config = config or NoiseFilterConfig()
    stamp_keys = stamp_keys or set()
    result = NoiseFilterResult()

    for run in runs:
        reason = None
        if config.body_box and _outside_body_box(run, geometry, config):
            reason = ExclusionReason.BODY_BOX
        elif (
            config.repeated_stamps
            and stamp_keys
            and stamp_key(run, geometry, config) in stamp_keys
        ):
            reason = ExclusionReason.REPEATED_STAMP
        elif config.rotation and _is_diagonal(run, config):
            reason = ExclusionReason.WATERMARK
        elif config.figure_overlay and _is_figure_overlay(
            run, geometry.body_font_size, config
        ):
            reason = ExclusionReason.FIGURE_OVERLAY

        if reason is None:
            result.kept.append(run)
        else:
            result.exclusions.append(
                Exclusion(
                    page_index=page_index,
                    reason=reason,
                    text=run.content,
                    y_norm=geometry.y_norm(run.origin_y),
                    x_norm=geometry.x_norm(run.origin_x),
                )
            )

    if result.exclusions:
        logger.debug(
            "Page %d: noise filter kept %d / %d runs",
            page_index,
            len(result.kept),
            len(runs),
        )
    return result
