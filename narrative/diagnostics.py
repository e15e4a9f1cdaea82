"""
Extraction diagnostics: a per-page removal report and debug overlays.

The report is meant for people tuning thresholds, not as a machine
contract.  It lists, per page, how many lines survived and how many
runs or lines each rule removed, with a few samples per rule.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

from PIL import Image, ImageDraw, ImageFont

from narrative.layout.models import ExclusionReason, PageLines

logger = logging.getLogger(__name__)

# Reasons that remove single runs rather than whole lines
RUN_LEVEL_REASONS = frozenset(
    {
        ExclusionReason.BODY_BOX,
        ExclusionReason.REPEATED_STAMP,
        ExclusionReason.WATERMARK,
        ExclusionReason.FIGURE_OVERLAY,
    }
)

REASON_COLORS = {
    ExclusionReason.HEADER: (180, 120, 100),
    ExclusionReason.FOOTER: (140, 140, 140),
    ExclusionReason.DISPLAY_EQUATION: (200, 180, 50),
    ExclusionReason.BOILERPLATE: (160, 100, 200),
    ExclusionReason.FRONT_MATTER: (230, 130, 20),
    ExclusionReason.BODY_BOX: (220, 40, 40),
    ExclusionReason.REPEATED_STAMP: (50, 130, 200),
    ExclusionReason.WATERMARK: (100, 100, 220),
    ExclusionReason.FIGURE_OVERLAY: (50, 180, 130),
}
KEPT_COLOR = (50, 160, 50)

_SAMPLE_CHARS = 70


def _preview(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > _SAMPLE_CHARS:
        return text[: _SAMPLE_CHARS - 1] + "…"
    return text


@dataclass
class PageReport:
    """Removal summary for one page."""

    page_index: int
    total_runs: int = 0
    kept_runs: int = 0
    total_lines: int = 0
    kept_lines: int = 0
    two_column: bool = False
    removed: Dict[ExclusionReason, int] = field(default_factory=dict)
    samples: Dict[ExclusionReason, List[str]] = field(default_factory=dict)
    top_lines: List[str] = field(default_factory=list)
    bottom_lines: List[str] = field(default_factory=list)

    @classmethod
    def from_page(cls, page: PageLines, sample_limit: int = 3, edge_lines: int = 2) -> "PageReport":
        """Summarise a fully processed page (both passes applied)."""
        report = cls(
            page_index=page.page_index,
            total_runs=page.total_runs,
            kept_runs=len(page.kept_runs),
            kept_lines=len(page.lines),
            two_column=page.two_column,
        )
        line_removals = 0
        for ex in page.exclusions:
            report.removed[ex.reason] = report.removed.get(ex.reason, 0) + 1
            bucket = report.samples.setdefault(ex.reason, [])
            if len(bucket) < sample_limit:
                bucket.append(_preview(ex.text))
            if ex.reason not in RUN_LEVEL_REASONS:
                line_removals += 1
        report.total_lines = report.kept_lines + line_removals
        report.top_lines = [_preview(ln.text) for ln in page.lines[:edge_lines]]
        report.bottom_lines = [_preview(ln.text) for ln in page.lines[-edge_lines:]]
        return report


@dataclass
class ExtractionReport:
    """Document-level diagnostics."""

    path: str = ""
    pages: List[PageReport] = field(default_factory=list)
    header_signatures: List[str] = field(default_factory=list)
    footer_signatures: List[str] = field(default_factory=list)

    def removed_totals(self) -> Dict[ExclusionReason, int]:
        totals: Dict[ExclusionReason, int] = {}
        for page in self.pages:
            for reason, n in page.removed.items():
                totals[reason] = totals.get(reason, 0) + n
        return totals

    def format(self) -> str:
        """Human-readable multi-line report."""
        out = [
            "=" * 60,
            f"EXTRACTION REPORT  {self.path}",
            "=" * 60,
        ]
        totals = self.removed_totals()
        kept = sum(p.kept_lines for p in self.pages)
        out.append(f"  Pages: {len(self.pages)}   kept lines: {kept}")
        for reason in ExclusionReason:
            if totals.get(reason):
                out.append(f"  {reason.value:<18} {totals[reason]:>6}")
        if self.header_signatures:
            out.append("  Header signatures:")
            out.extend(f"    | {s}" for s in self.header_signatures)
        if self.footer_signatures:
            out.append("  Footer signatures:")
            out.extend(f"    | {s}" for s in self.footer_signatures)

        for page in self.pages:
            layout = "2-col" if page.two_column else "1-col"
            out.append("")
            out.append(
                f"--- Page {page.page_index + 1} ({layout}) "
                f"lines {page.kept_lines}/{page.total_lines}, "
                f"runs {page.kept_runs}/{page.total_runs}"
            )
            for reason in ExclusionReason:
                n = page.removed.get(reason)
                if not n:
                    continue
                out.append(f"  - {reason.value}: {n}")
                for sample in page.samples.get(reason, []):
                    out.append(f"      \"{sample}\"")
            for text in page.top_lines:
                out.append(f"  top:    {text}")
            for text in page.bottom_lines:
                out.append(f"  bottom: {text}")
        out.append("=" * 60)
        return "\n".join(out)


def build_report(
    path: str,
    pages: Sequence[PageLines],
    header_signatures: Sequence[str] = (),
    footer_signatures: Sequence[str] = (),
) -> ExtractionReport:
    return ExtractionReport(
        path=path,
        pages=[PageReport.from_page(p) for p in pages],
        header_signatures=sorted(header_signatures),
        footer_signatures=sorted(footer_signatures),
    )


# ------------------------------------------------------------------
# Debug overlays
# ------------------------------------------------------------------


def _load_font(size: int = 12):
    try:
        return ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", size)
    except (OSError, IOError):
        return ImageFont.load_default()


def draw_page_overlay(image: Image.Image, page: PageLines, scale: float) -> Image.Image:
    """
    Draw kept runs as green boxes, removed runs as coloured markers and
    removed lines as coloured bands across the page.
    """
    img = image.copy()
    draw = ImageDraw.Draw(img, "RGBA")
    font = _load_font()
    width_px = page.geometry.width * scale
    height_px = page.geometry.height * scale

    for run in page.kept_runs:
        size = max(1.0, run.font_size)
        box = [
            run.origin_x * scale,
            (run.origin_y - size) * scale,
            run.x2 * scale,
            run.origin_y * scale,
        ]
        draw.rectangle(box, fill=(*KEPT_COLOR, 30), outline=KEPT_COLOR)

    for ex in page.exclusions:
        color = REASON_COLORS.get(ex.reason, (255, 255, 255))
        y = ex.y_norm * height_px
        if ex.x_norm is not None:
            x = ex.x_norm * width_px
            draw.rectangle([x - 3, y - 3, x + 3, y + 3], fill=(*color, 200))
            continue
        draw.rectangle([0, y - 4, width_px, y + 2], fill=(*color, 60))
        draw.text((4, y - 16), ex.reason.value, fill=(*color, 255), font=font)

    return img.convert("RGB")


def save_debug_overlays(
    pdf,
    pages: Sequence[PageLines],
    output_dir: str,
    scale: float = 1.5,
) -> List[Path]:
    """
    Render every page and save its overlay as ``page_NNN.png``.

    Args:
        pdf:        Object with a ``render(page_index, scale)`` method
                    (see :class:`narrative.utils.pdf_adapter.PDFAdapter`).
        pages:      Processed pages from the pipeline.
        output_dir: Destination directory (created if missing).
        scale:      Render resolution multiplier.

    Returns:
        Paths of the written images.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for page in pages:
        img = pdf.render(page.page_index, scale=scale)
        annotated = draw_page_overlay(img, page, scale)
        path = out / f"page_{page.page_index:03d}.png"
        annotated.save(str(path))
        written.append(path)
        logger.debug("Saved debug overlay: %s", path)
    logger.info("Saved %d debug overlays to %s", len(written), out)
    return written
