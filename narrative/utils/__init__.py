"""PyMuPDF helpers for the narrative pipeline."""

from .pdf_adapter import PDFAdapter, get_page_count, open_pdf

__all__ = ["PDFAdapter", "get_page_count", "open_pdf"]
