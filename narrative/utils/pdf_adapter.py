"""
PyMuPDF document source for the narrative pipeline.

Wraps an open ``fitz.Document`` and exposes the page-runs contract of
:class:`core.document.source.DocumentSource`, plus rendering helpers
used by the diagnostic overlays.
"""

import logging
from typing import List, Tuple

import fitz
from PIL import Image

from core.page.models import GeometricTextRun, PageGeometry
from core.page.page_model import PageModel
from narrative.errors import DocumentUnavailableError

logger = logging.getLogger(__name__)


def open_pdf(pdf_path: str) -> fitz.Document:
    """
    Open a PDF document.

    Args:
        pdf_path: Path to the PDF file.

    Returns:
        A fitz.Document instance.

    Raises:
        DocumentUnavailableError: If fitz cannot open the file or the
            document is encrypted.
    """
    try:
        doc = fitz.open(pdf_path)
    except Exception as e:
        raise DocumentUnavailableError(pdf_path, str(e)) from e
    if doc.needs_pass:
        doc.close()
        raise DocumentUnavailableError(pdf_path, "document is encrypted")
    logger.debug("Opened %s (%d pages)", pdf_path, doc.page_count)
    return doc


def get_page_count(pdf_path: str) -> int:
    """Return the total number of pages in the PDF."""
    doc = open_pdf(pdf_path)
    try:
        return doc.page_count
    finally:
        doc.close()


class PDFAdapter:
    """
    Stateful adapter that keeps the document open across multiple
    page operations.  Satisfies the ``DocumentSource`` protocol.
    """

    def __init__(self, pdf_path: str):
        self.path = pdf_path
        self.doc = open_pdf(pdf_path)
        self.page_count = self.doc.page_count

    def _check_index(self, page_index: int):
        if page_index < 0 or page_index >= self.page_count:
            raise IndexError(
                f"Page index {page_index} out of range "
                f"(document has {self.page_count} pages)"
            )

    def page_model(self, page_index: int) -> PageModel:
        self._check_index(page_index)
        return PageModel(self.doc, page_index)

    # -- text extraction ----------------------------------------------------

    def page_runs(self, page_index: int) -> Tuple[PageGeometry, List[GeometricTextRun]]:
        """Return the geometry and text runs of *page_index*."""
        page = self.page_model(page_index)
        try:
            return page.geometry, list(page.runs)
        finally:
            page.unload()

    # -- rendering ----------------------------------------------------------

    def render(self, page_index: int, scale: float = 1.5) -> Image.Image:
        """Render *page_index* to a PIL RGB image."""
        return self.page_model(page_index).render_to_image(scale)

    # -- geometry -----------------------------------------------------------

    def dimensions(self, page_index: int) -> Tuple[float, float]:
        """Return (width, height) in PDF points."""
        page = self.page_model(page_index)
        return page.width, page.height

    # -- lifecycle ----------------------------------------------------------

    def close(self):
        if self.doc:
            self.doc.close()
            self.doc = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __repr__(self):
        return f"PDFAdapter('{self.path}', pages={self.page_count})"
