"""
Narrative extraction pipeline: page runs → Narrative Index.

Coordinates the two-pass extraction:

1. **Read**: fetch every page's geometry and runs from the source
   (up to ``max_pages``); a page that fails to read becomes empty.
2. **Stamps**: find text recurring at the same grid cell on several
   pages (document-wide, needed before any page is filtered).
3. **Pass 1**: per page, independently: noise filter, line building,
   reading order, classification.  Optionally runs in a thread pool.
4. **Learn**: header/footer signatures over the lines of all pages.
   This is the only step that needs every page at once.
5. **Pass 2**: strip running headers/footers from each page's edge
   region, drop first-page front matter, join lines into page text.
6. **Publish**: assemble the immutable :class:`NarrativeIndex`.

Usage::

    from narrative.pipeline import ExtractionConfig, NarrativePipeline

    pipeline = NarrativePipeline(ExtractionConfig(max_pages=50))
    result = pipeline.build_from_pdf("paper.pdf")
    print(result.summary())
    index = result.index
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from tqdm import tqdm

from core.document.source import DocumentSource
from core.page.models import GeometricTextRun, PageGeometry, estimate_body_font
from narrative.diagnostics import build_report, save_debug_overlays
from narrative.index.builder import (
    assemble_page_text,
    build_index_from_page_texts,
    compute_line_spans,
    detect_scholarly_flags,
)
from narrative.index.models import NarrativeIndex
from narrative.layout.classifier import LineClassifierConfig
from narrative.layout.front_matter import FrontMatterConfig, filter_front_matter
from narrative.layout.header_footer import (
    HeaderFooterConfig,
    HeaderFooterSignatureSet,
    learn_signatures,
    remove_running_lines,
)
from narrative.layout.line_builder import build_lines
from narrative.layout.models import PageLines
from narrative.layout.noise_filter import (
    NoiseFilterConfig,
    StampKey,
    compute_stamp_keys,
    filter_runs,
)
from narrative.utils.pdf_adapter import PDFAdapter

logger = logging.getLogger(__name__)

PageInput = Tuple[PageGeometry, List[GeometricTextRun]]


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class ExtractionConfig:
    """
    All tuneable parameters for narrative extraction.

    Attributes:
        max_pages:          Pages beyond this limit are not read at all.
        page_range:         ``(start, end)`` 0-based inclusive; pages outside
                            stay in the index as empty pages.  ``None`` for all.
        noise:              Run-level noise filter settings.
        classifier:         Line classification settings.
        header_footer:      Running header/footer learner settings.
        strip_front_matter: Drop first-page portal chrome and affiliations.
        front_matter:       Front-matter position limits.
        workers:            Threads for pass 1 (``1`` runs inline).
        build_report:       Attach an :class:`ExtractionReport` to the index.
        debug_overlay_dir:  Save overlay images here (PDF sources only).
        render_scale:       Resolution multiplier for overlay rendering.
        disable_tqdm:       Suppress progress bars.
    """

    max_pages: int = 200
    page_range: Optional[Tuple[int, int]] = None

    noise: NoiseFilterConfig = field(default_factory=NoiseFilterConfig)
    classifier: LineClassifierConfig = field(default_factory=LineClassifierConfig)
    header_footer: HeaderFooterConfig = field(default_factory=HeaderFooterConfig)
    strip_front_matter: bool = True
    front_matter: FrontMatterConfig = field(default_factory=FrontMatterConfig)

    workers: int = 1
    build_report: bool = True

    debug_overlay_dir: Optional[str] = None
    render_scale: float = 1.5
    disable_tqdm: bool = False


# ------------------------------------------------------------------
# Result
# ------------------------------------------------------------------


@dataclass
class ExtractionResult:
    """
    Index plus the intermediate pages and per-phase timing.

    ``pages`` keeps the fully processed :class:`PageLines` of every page
    so hosts can draw overlays or inspect exclusions.
    """

    index: NarrativeIndex
    pages: List[PageLines] = field(default_factory=list)
    signatures: HeaderFooterSignatureSet = field(default_factory=HeaderFooterSignatureSet)
    total_pages: int = 0
    pages_processed: int = 0
    failed_pages: int = 0
    elapsed_seconds: float = 0.0

    time_read: float = 0.0
    time_pass1: float = 0.0
    time_learn: float = 0.0
    time_pass2: float = 0.0

    def summary(self) -> str:
        """Format a human-readable summary of the extraction run."""
        flags = self.index.flags
        return (
            f"{'=' * 60}\n"
            f"EXTRACTION COMPLETE\n"
            f"{'=' * 60}\n"
            f"  Source:       {self.index.path}\n"
            f"  Pages:        {self.pages_processed} / {self.total_pages}"
            f" ({self.failed_pages} failed)\n"
            f"  Words:        {self.index.word_count}\n"
            f"  Removed:      {len(self.index.exclusions)} runs/lines\n"
            f"  Signatures:   {len(self.signatures.header_signatures)} header, "
            f"{len(self.signatures.footer_signatures)} footer\n"
            f"  Scholarly:    {flags.is_likely_scholarly} "
            f"(two-column share {flags.two_column_share:.0%})\n"
            f"\n"
            f"  Reading pages:   {self.time_read:.2f}s\n"
            f"  Pass 1:          {self.time_pass1:.2f}s\n"
            f"  Learning:        {self.time_learn:.3f}s\n"
            f"  Pass 2:          {self.time_pass2:.3f}s\n"
            f"  Total wall time: {self.elapsed_seconds:.2f}s\n"
            f"{'=' * 60}"
        )


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class NarrativePipeline:
    """
    Two-pass narrative extraction over any :class:`DocumentSource`.

    The pipeline holds no per-document state; one instance can build
    any number of documents, from any thread.
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def build_from_pdf(self, pdf_path: str) -> ExtractionResult:
        """
        Open a PDF with PyMuPDF and extract its narrative.

        Raises:
            DocumentUnavailableError: If the file cannot be opened.
        """
        with PDFAdapter(pdf_path) as pdf:
            result = self.build(pdf, path=pdf_path)
            if self.config.debug_overlay_dir:
                save_debug_overlays(
                    pdf,
                    result.pages,
                    self.config.debug_overlay_dir,
                    scale=self.config.render_scale,
                )
        return result

    def build_index(self, source: DocumentSource, path: Optional[str] = None) -> NarrativeIndex:
        return self.build(source, path).index

    def build(self, source: DocumentSource, path: Optional[str] = None) -> ExtractionResult:
        """
        Extract the narrative of a document.

        Args:
            source: Any object with ``page_count`` and ``page_runs(i)``.
            path:   Identity recorded on the index (defaults to
                    ``source.path`` when present).

        Returns:
            :class:`ExtractionResult`; a document without any text
            yields a valid empty index.
        """
        t_total = time.perf_counter()
        cfg = self.config
        path = path or getattr(source, "path", "") or ""

        # -- Phase 1: Read -----------------------------------------------
        t0 = time.perf_counter()
        inputs, failed = self._phase_read(source)
        time_read = time.perf_counter() - t0

        # -- Phase 2: Stamps ---------------------------------------------
        t0 = time.perf_counter()
        stamp_keys = compute_stamp_keys(inputs, cfg.noise)

        # -- Phase 3: Pass 1 ---------------------------------------------
        pages = self._phase_pass_one(inputs, stamp_keys)
        time_pass1 = time.perf_counter() - t0

        # -- Phase 4: Learn ----------------------------------------------
        t0 = time.perf_counter()
        signatures = learn_signatures([p.lines for p in pages], cfg.header_footer)
        time_learn = time.perf_counter() - t0

        # -- Phase 5/6: Pass 2 and publish -------------------------------
        t0 = time.perf_counter()
        page_texts = self._phase_pass_two(pages, signatures)
        spans = compute_line_spans(pages)
        flags = detect_scholarly_flags(pages, spans)
        report = None
        if cfg.build_report:
            report = build_report(
                path,
                pages,
                signatures.header_signatures,
                signatures.footer_signatures,
            )
        index = build_index_from_page_texts(
            page_texts,
            path=path,
            exclusions=[ex for p in pages for ex in p.exclusions],
            line_spans=spans,
            flags=flags,
            report=report,
        )
        time_pass2 = time.perf_counter() - t0

        result = ExtractionResult(
            index=index,
            pages=pages,
            signatures=signatures,
            total_pages=source.page_count,
            pages_processed=len(pages),
            failed_pages=failed,
            elapsed_seconds=time.perf_counter() - t_total,
            time_read=time_read,
            time_pass1=time_pass1,
            time_learn=time_learn,
            time_pass2=time_pass2,
        )
        logger.info(
            "Extracted %d words from %d pages in %.2fs",
            index.word_count,
            len(pages),
            result.elapsed_seconds,
        )
        return result

    # ------------------------------------------------------------------
    # Phase 1: Read
    # ------------------------------------------------------------------

    def _selected(self, page_index: int) -> bool:
        rng = self.config.page_range
        return rng is None or rng[0] <= page_index <= rng[1]

    def _phase_read(self, source: DocumentSource) -> Tuple[List[PageInput], int]:
        """
        Read geometry and runs of every page up to ``max_pages``.

        Returns:
            ``(inputs, failed_count)``; failed and unselected pages
            contribute an empty run list.
        """
        cfg = self.config
        n_pages = min(source.page_count, max(0, cfg.max_pages))
        if cfg.page_range:
            n_pages = min(n_pages, cfg.page_range[1] + 1)
        if source.page_count > n_pages:
            logger.info("Reading %d of %d pages", n_pages, source.page_count)

        inputs: List[PageInput] = []
        failed = 0
        pbar = tqdm(range(n_pages), desc="Reading pages", unit="page", disable=cfg.disable_tqdm)
        for idx in pbar:
            if not self._selected(idx):
                inputs.append((PageGeometry(0.0, 0.0), []))
                continue
            try:
                geometry, runs = source.page_runs(idx)
            except Exception as e:
                logger.warning("Page %d could not be read (%s), treating as empty", idx, e)
                failed += 1
                inputs.append((PageGeometry(0.0, 0.0), []))
                continue

            good = [r for r in runs if r.is_well_formed()]
            if len(good) != len(runs):
                logger.debug("Page %d: skipped %d malformed runs", idx, len(runs) - len(good))
            if geometry.body_font_size <= 0:
                geometry = PageGeometry(geometry.width, geometry.height, estimate_body_font(good))
            inputs.append((geometry, good))
        return inputs, failed

    # ------------------------------------------------------------------
    # Phase 3: Pass 1
    # ------------------------------------------------------------------

    def _process_page(
        self,
        page_index: int,
        page_input: PageInput,
        stamp_keys: Set[StampKey],
    ) -> PageLines:
        """Noise filter and line building for one page; failures yield an empty page."""
        cfg = self.config
        geometry, runs = page_input
        try:
            noise = filter_runs(runs, geometry, page_index, stamp_keys, cfg.noise)
            built = build_lines(noise.kept, geometry, page_index, cfg.classifier)
        except Exception as e:
            logger.warning("Page %d failed in pass 1 (%s), treating as empty", page_index, e)
            return PageLines(page_index=page_index, geometry=geometry, total_runs=len(runs))

        logger.debug(
            "Page %d: %d lines, %d exclusions%s",
            page_index,
            len(built.lines),
            len(noise.exclusions) + len(built.exclusions),
            " (two-column)" if built.two_column else "",
        )
        return PageLines(
            page_index=page_index,
            geometry=geometry,
            lines=built.lines,
            exclusions=noise.exclusions + built.exclusions,
            two_column=built.two_column,
            total_runs=len(runs),
            kept_runs=noise.kept,
        )

    def _phase_pass_one(
        self,
        inputs: Sequence[PageInput],
        stamp_keys: Set[StampKey],
    ) -> List[PageLines]:
        cfg = self.config
        if cfg.workers > 1 and len(inputs) > 1:
            with ThreadPoolExecutor(max_workers=cfg.workers) as executor:
                results = executor.map(
                    lambda item: self._process_page(item[0], item[1], stamp_keys),
                    enumerate(inputs),
                )
                return list(
                    tqdm(
                        results,
                        total=len(inputs),
                        desc="Building lines",
                        unit="page",
                        disable=cfg.disable_tqdm,
                    )
                )

        pages: List[PageLines] = []
        pbar = tqdm(
            enumerate(inputs),
            total=len(inputs),
            desc="Building lines",
            unit="page",
            disable=cfg.disable_tqdm,
        )
        for idx, page_input in pbar:
            pages.append(self._process_page(idx, page_input, stamp_keys))
        return pages

    # ------------------------------------------------------------------
    # Phase 5: Pass 2
    # ------------------------------------------------------------------

    def _phase_pass_two(
        self,
        pages: Sequence[PageLines],
        signatures: HeaderFooterSignatureSet,
    ) -> List[str]:
        """Remove running lines and front matter in place; return page texts."""
        cfg = self.config
        texts: List[str] = []
        for page in pages:
            kept, removed = remove_running_lines(page.lines, signatures, page.page_index)
            if page.page_index == 0 and cfg.strip_front_matter:
                kept, front = filter_front_matter(kept, page.page_index, cfg.front_matter)
                removed.extend(front)
            page.lines = kept
            page.exclusions.extend(removed)
            texts.append(assemble_page_text(kept))
        return texts
