"""
Data models for selection capture and anchoring.

Pages in a :class:`SelectionSnapshot` are 1-based (as viewers report
them); everything handed to the resolver is 0-based.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class SelectionRect:
    """Selection bounds as fractions of the page (top-left origin)."""

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def center_x(self) -> float:
        return (self.x0 + self.x1) / 2

    @property
    def center_y(self) -> float:
        return (self.y0 + self.y1) / 2


@dataclass
class SelectionSnapshot:
    """What the viewer reported for one selection event."""

    text: str = ""
    raw_text: str = ""
    file_path: Optional[str] = None
    page: Optional[int] = None
    end_page: Optional[int] = None
    rect: Optional[SelectionRect] = None
    captured_at: Optional[float] = None
    event_type: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def spans_pages(self) -> bool:
        return self.page is not None and self.end_page is not None and self.end_page != self.page


@dataclass
class AnchorRequest:
    """
    One anchoring request.

    Attributes:
        selection:    The selected text (usually one word).
        raw_text:     Surrounding raw text, used for context and snapping.
        page_index:   0-based page hint.
        end_page:     0-based page where the selection ends.
        page_offset:  Explicit word offset within the page.
        y_fraction:   Vertical selection position on the page (0 = top).
        x_fraction:   Horizontal selection position on the page.
        probe:        Forward-read text starting at the selection.
    """

    selection: str
    raw_text: str = ""
    page_index: Optional[int] = None
    end_page: Optional[int] = None
    page_offset: Optional[int] = None
    y_fraction: Optional[float] = None
    x_fraction: Optional[float] = None
    probe: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snapshot: SelectionSnapshot, probe: Optional[str] = None) -> "AnchorRequest":
        page = snapshot.page - 1 if snapshot.page is not None else None
        end = snapshot.end_page - 1 if snapshot.end_page is not None else None
        rect = snapshot.rect
        return cls(
            selection=snapshot.text,
            raw_text=snapshot.raw_text,
            page_index=page,
            end_page=end,
            y_fraction=rect.center_y if rect else None,
            x_fraction=rect.center_x if rect else None,
            probe=probe,
        )


@dataclass
class AnchorCandidate:
    index: int
    token: str
    distance: Optional[int] = None
    strength: int = 0
    context_score: Optional[float] = None


@dataclass
class SearchAttempt:
    """One searched range and how many candidates it produced."""

    stage: str
    start: int
    end: int
    candidates: int = 0
    note: str = ""


@dataclass
class AnchorDiagnostics:
    normalized_selection: str = ""
    match_key: str = ""
    preferred_index: Optional[int] = None
    context_keys: List[str] = field(default_factory=list)
    candidates: List[AnchorCandidate] = field(default_factory=list)
    chosen_index: Optional[int] = None
    chosen_reason: str = ""
    searches: List[SearchAttempt] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def format(self) -> str:
        lines = [
            f"selection={self.normalized_selection!r} key={self.match_key!r} "
            f"preferred={self.preferred_index}"
        ]
        for s in self.searches:
            lines.append(
                f"  [{s.stage}] {s.start}..{s.end}: {s.candidates} candidates"
                + (f" ({s.note})" if s.note else "")
            )
        for note in self.notes:
            lines.append(f"  note: {note}")
        lines.append(f"  chosen={self.chosen_index} ({self.chosen_reason or 'none'})")
        return "\n".join(lines)


@dataclass
class AnchorResult:
    """Outcome of anchoring: a word index, or a structured miss."""

    found: bool
    index: Optional[int] = None
    stage: str = ""
    reason: str = ""
    diagnostics: AnchorDiagnostics = field(default_factory=AnchorDiagnostics)

    @classmethod
    def hit(cls, index: int, stage: str, diagnostics: AnchorDiagnostics) -> "AnchorResult":
        diagnostics.chosen_index = index
        diagnostics.chosen_reason = stage
        return cls(found=True, index=index, stage=stage, reason=stage, diagnostics=diagnostics)

    @classmethod
    def miss(cls, reason: str, diagnostics: AnchorDiagnostics) -> "AnchorResult":
        diagnostics.chosen_reason = reason
        return cls(found=False, reason=reason, diagnostics=diagnostics)
