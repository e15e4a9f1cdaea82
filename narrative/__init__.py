"""
Narrative extraction and selection anchoring for paginated documents.

Noise filtering, column-aware line building, running header/footer
learning and the Narrative Index, plus the resolver that maps a
viewer selection back onto an index word.
"""

from .cache import NarrativeCache, cache_key_for
from .errors import DocumentUnavailableError
from .index import NarrativeIndex, build_index_from_page_texts
from .pipeline import ExtractionConfig, ExtractionResult, NarrativePipeline

__all__ = [
    "DocumentUnavailableError",
    "ExtractionConfig",
    "ExtractionResult",
    "NarrativeCache",
    "NarrativeIndex",
    "NarrativePipeline",
    "build_index_from_page_texts",
    "cache_key_for",
]
