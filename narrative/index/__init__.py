"""The published Narrative Index and its assembly."""

from .builder import (
    PAGE_SEPARATOR,
    assemble_page_text,
    build_index_from_page_texts,
    compute_line_spans,
    detect_scholarly_flags,
)
from .models import LineSpan, NarrativeIndex, ScholarlyFlags

__all__ = [
    "PAGE_SEPARATOR",
    "LineSpan",
    "NarrativeIndex",
    "ScholarlyFlags",
    "assemble_page_text",
    "build_index_from_page_texts",
    "compute_line_spans",
    "detect_scholarly_flags",
]
