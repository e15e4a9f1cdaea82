"""
Core geometry backend for narrative extraction.
Text runs, page geometry and document sources only; no layout heuristics.
"""

from .document import DocumentSource, InMemoryDocument, InMemoryPage
from .page import GeometricTextRun, PageGeometry, PageModel, PageTextLayer

__all__ = [
    "DocumentSource",
    "InMemoryDocument",
    "InMemoryPage",
    "GeometricTextRun",
    "PageGeometry",
    "PageModel",
    "PageTextLayer",
]
