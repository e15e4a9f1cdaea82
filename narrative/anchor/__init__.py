"""Selection capture and anchoring onto the Narrative Index."""

from .models import (
    AnchorCandidate,
    AnchorDiagnostics,
    AnchorRequest,
    AnchorResult,
    SearchAttempt,
    SelectionRect,
    SelectionSnapshot,
)
from .probe import build_probe
from .resolver import AnchorConfig, AnchorResolver
from .selection import LastKnownTarget, SelectionCache

__all__ = [
    "AnchorCandidate",
    "AnchorConfig",
    "AnchorDiagnostics",
    "AnchorRequest",
    "AnchorResolver",
    "AnchorResult",
    "LastKnownTarget",
    "SearchAttempt",
    "SelectionCache",
    "SelectionRect",
    "SelectionSnapshot",
    "build_probe",
]
