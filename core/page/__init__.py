"""
Page geometry for document pages.
Run and geometry models, PyMuPDF text layer and lazy page model.
"""

from .models import GeometricTextRun, PageGeometry, estimate_body_font
from .page_model import PageModel
from .text_layer import PageTextLayer

__all__ = [
    "GeometricTextRun",
    "PageGeometry",
    "PageModel",
    "PageTextLayer",
    "estimate_body_font",
]
