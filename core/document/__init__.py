"""Document sources: the upstream contract and an in-memory implementation."""

from .source import DocumentSource, InMemoryDocument, InMemoryPage

__all__ = [
    "DocumentSource",
    "InMemoryDocument",
    "InMemoryPage",
]
