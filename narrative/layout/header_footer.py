"""
Running header/footer detection across pages.

Pass 1 builds every page's lines independently; :func:`learn_signatures`
then looks at the edge-band lines of *all* pages and accepts a line
signature as boilerplate when it recurs on consecutive pages, on pages
of the same parity (recto/verso headers), or on a document-relative
minimum number of pages.  :func:`remove_running_lines` finally strips
matching lines, but only from each page's own edge region, so the same
text appearing once inside a page body survives.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from narrative.text.tokenizer import count_words

from .models import Exclusion, ExclusionReason, Line

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class HeaderFooterConfig:
    """
    Thresholds for the running header/footer learner.

    Attributes:
        header_band:          Lines with ``y_norm`` at or below this are header candidates.
        footer_band:          Lines with ``y_norm`` at or beyond this are footer candidates.
        max_tokens:           Longer lines are never header/footer candidates.
        edge_lines:           Fallback: first/last N lines when a band is empty.
        header_min_fraction:  Fraction of pages a header must appear on (backstop).
        header_min_floor:     Lower bound for the header occurrence minimum.
        footer_min_fraction:  Fraction of pages a footer must appear on (backstop).
        footer_min_floor:     Lower bound for the footer occurrence minimum.
    """

    header_band: float = 0.20
    footer_band: float = 0.80
    max_tokens: int = 40
    edge_lines: int = 6
    header_min_fraction: float = 0.12
    header_min_floor: int = 3
    footer_min_fraction: float = 0.08
    footer_min_floor: int = 2


@dataclass(frozen=True)
class HeaderFooterSignatureSet:
    """Learned boilerplate signatures plus the bands they apply to."""

    header_signatures: FrozenSet[str] = frozenset()
    footer_signatures: FrozenSet[str] = frozenset()
    header_band: float = 0.20
    footer_band: float = 0.80
    edge_lines: int = 6

    def is_empty(self) -> bool:
        return not self.header_signatures and not self.footer_signatures


# ------------------------------------------------------------------
# Canonical forms
# ------------------------------------------------------------------


def canonicalize_signature(signature: str) -> str:
    """
    Strip leading/trailing ``#`` tokens so ``"# results"`` and
    ``"results #"`` (page numbers on alternating sides) compare equal.
    """
    parts = signature.split()
    if not parts:
        return signature.strip()
    i, j = 0, len(parts) - 1
    while i <= j and parts[i] == "#":
        i += 1
    while j >= i and parts[j] == "#":
        j -= 1
    out = " ".join(parts[i : j + 1]).strip()
    return out or signature.strip()


def is_junk_canonical(canon: str) -> bool:
    """Reject canonical forms too short or too symbol-heavy to be a real header."""
    s = canon.strip()
    if not s:
        return True

    tokens = count_words(s)
    if tokens == 1 and len(s) < 8:
        return True
    if tokens < 1:
        return True
    if len(s) < 6:
        return True

    compact = "".join(s.split())
    if not compact:
        return True
    alnum = sum(1 for ch in compact if ch.isalnum())
    return alnum / len(compact) < 0.3


@dataclass
class _RecurrenceStats:
    """Occurrence count plus longest consecutive and same-parity page runs."""

    count: int = 0
    last_any: int = -999999
    cur_any: int = 0
    max_any: int = 0
    last_parity: List[int] = field(default_factory=lambda: [-999999, -999999])
    cur_parity: List[int] = field(default_factory=lambda: [0, 0])
    max_parity: List[int] = field(default_factory=lambda: [0, 0])

    def update(self, page_num: int):
        self.count += 1

        if self.last_any == page_num - 1:
            self.cur_any += 1
        else:
            self.cur_any = 1
        self.last_any = page_num
        self.max_any = max(self.max_any, self.cur_any)

        p = page_num % 2
        if self.last_parity[p] == page_num - 2:
            self.cur_parity[p] += 1
        else:
            self.cur_parity[p] = 1
        self.last_parity[p] = page_num
        self.max_parity[p] = max(self.max_parity[p], self.cur_parity[p])

    def accepted(self, min_occurrences: int) -> bool:
        return (
            self.max_any >= 2
            or max(self.max_parity) >= 2
            or self.count >= min_occurrences
        )


# ------------------------------------------------------------------
# Learning
# ------------------------------------------------------------------


def _header_candidates(lines: Sequence[Line], config: HeaderFooterConfig) -> List[Line]:
    band = [ln for ln in lines if ln.y_norm <= config.header_band]
    pool = band if band else list(lines[: config.edge_lines])
    return [ln for ln in pool if ln.token_count <= config.max_tokens]


def _footer_candidates(lines: Sequence[Line], config: HeaderFooterConfig) -> List[Line]:
    band = [ln for ln in lines if ln.y_norm >= config.footer_band]
    pool = band if band else list(lines[max(0, len(lines) - config.edge_lines) :])
    return [ln for ln in pool if ln.token_count <= config.max_tokens]


def _collect(
    candidates: Sequence[Line],
    page_num: int,
    stats: Dict[str, _RecurrenceStats],
    canon_to_raw: Dict[str, Set[str]],
):
    seen: Set[str] = set()
    for ln in candidates:
        canon = canonicalize_signature(ln.signature)
        if is_junk_canonical(canon):
            continue
        canon_to_raw.setdefault(canon, set()).add(ln.signature)
        seen.add(canon)
    for canon in seen:
        stats.setdefault(canon, _RecurrenceStats()).update(page_num)


def learn_signatures(
    pages_lines: Sequence[Sequence[Line]],
    config: Optional[HeaderFooterConfig] = None,
) -> HeaderFooterSignatureSet:
    """
    Learn running header/footer signatures from every page's lines.

    Args:
        pages_lines: Pass-1 lines for every page, in page order.
        config:      Band and acceptance thresholds.

    Returns:
        :class:`HeaderFooterSignatureSet` holding the raw signatures of
        every accepted canonical form.
    """
    config = config or HeaderFooterConfig()
    n_pages = len(pages_lines)
    min_header = max(config.header_min_floor, math.ceil(n_pages * config.header_min_fraction))
    min_footer = max(config.footer_min_floor, math.ceil(n_pages * config.footer_min_fraction))

    header_stats: Dict[str, _RecurrenceStats] = {}
    footer_stats: Dict[str, _RecurrenceStats] = {}
    header_raw: Dict[str, Set[str]] = {}
    footer_raw: Dict[str, Set[str]] = {}

    for idx, lines in enumerate(pages_lines):
        page_num = idx + 1
        _collect(_header_candidates(lines, config), page_num, header_stats, header_raw)
        _collect(_footer_candidates(lines, config), page_num, footer_stats, footer_raw)

    header_sigs: Set[str] = set()
    for canon, st in header_stats.items():
        if st.accepted(min_header):
            header_sigs.update(header_raw.get(canon, ()))

    footer_sigs: Set[str] = set()
    for canon, st in footer_stats.items():
        if st.accepted(min_footer):
            footer_sigs.update(footer_raw.get(canon, ()))

    logger.debug(
        "Learned %d header and %d footer signatures over %d pages",
        len(header_sigs),
        len(footer_sigs),
        n_pages,
    )
    return HeaderFooterSignatureSet(
        header_signatures=frozenset(header_sigs),
        footer_signatures=frozenset(footer_sigs),
        header_band=config.header_band,
        footer_band=config.footer_band,
        edge_lines=config.edge_lines,
    )


# ------------------------------------------------------------------
# Removal
# ------------------------------------------------------------------


def remove_running_lines(
    lines: Sequence[Line],
    signatures: HeaderFooterSignatureSet,
    page_index: int = 0,
) -> Tuple[List[Line], List[Exclusion]]:
    """
    Drop lines matching a learned signature inside the page's edge region.

    The edge region is the header/footer band by position; the first or
    last ``edge_lines`` lines stand in for a band only when that band
    holds no line at all (reading order is column-aware, so indices alone
    are not trusted).

    Returns:
        ``(kept_lines, exclusions)``
    """
    if signatures.is_empty():
        return list(lines), []

    has_top = any(ln.y_norm <= signatures.header_band for ln in lines)
    has_bottom = any(ln.y_norm >= signatures.footer_band for ln in lines)
    n = len(lines)
    edge = signatures.edge_lines

    kept: List[Line] = []
    removed: List[Exclusion] = []
    for idx, ln in enumerate(lines):
        in_header = ln.y_norm <= signatures.header_band or (not has_top and idx < edge)
        in_footer = ln.y_norm >= signatures.footer_band or (
            not has_bottom and idx >= max(0, n - edge)
        )
        if in_header and ln.signature in signatures.header_signatures:
            removed.append(Exclusion(page_index, ExclusionReason.HEADER, ln.text, ln.y_norm))
        elif in_footer and ln.signature in signatures.footer_signatures:
            removed.append(Exclusion(page_index, ExclusionReason.FOOTER, ln.text, ln.y_norm))
        else:
            kept.append(ln)
    return kept, removed
