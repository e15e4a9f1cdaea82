"""
Page model for the narrative extraction pipeline.
Wraps one fitz page: runs, geometry and rendering, all loaded on demand.
"""

from typing import List, Optional

import fitz
from PIL import Image

from .models import GeometricTextRun, PageGeometry
from .text_layer import PageTextLayer


class PageModel:
    """
    On-demand view of a single page.

    Nothing is read from the document until ``runs`` or ``geometry`` is
    first accessed; :meth:`unload` drops the fitz page and the text layer
    so a long document can be walked page by page.
    """

    def __init__(self, doc: fitz.Document, page_index: int):
        self._doc = doc
        self.page_index = page_index
        self._page: Optional[fitz.Page] = None
        self._text_layer: Optional[PageTextLayer] = None

    @property
    def page(self) -> fitz.Page:
        if self._page is None:
            self._page = self._doc.load_page(self.page_index)
        return self._page

    @property
    def width(self) -> float:
        """Page width in points."""
        return self.page.rect.width

    @property
    def height(self) -> float:
        """Page height in points."""
        return self.page.rect.height

    @property
    def text_layer(self) -> PageTextLayer:
        if self._text_layer is None:
            self._text_layer = PageTextLayer(self.page)
        return self._text_layer

    @property
    def runs(self) -> List[GeometricTextRun]:
        return self.text_layer.runs

    @property
    def geometry(self) -> PageGeometry:
        """Page dimensions with the body-font estimate of this page."""
        return PageGeometry(
            width=self.width,
            height=self.height,
            body_font_size=self.text_layer.median_font_size,
        )

    def render_to_image(self, scale: float = 1.5) -> Image.Image:
        """
        Render the page for diagnostic overlays.

        Args:
            scale: Pixels per PDF point.

        Returns:
            PIL.Image.Image in RGB mode.
        """
        pix = self.page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return Image.frombytes("RGB", [pix.width, pix.height], pix.samples)

    def unload(self):
        self._text_layer = None
        self._page = None

    def __repr__(self) -> str:
        return f"PageModel(page={self.page_index})"
