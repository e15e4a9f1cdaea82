"""
Line classification: boilerplate, display equations, captions, headings.

Every cleaned line goes through :func:`classify_line`, which either drops
it (boilerplate), routes it to diagnostics (display equation), or keeps
it as a narrative line, possibly marked as a heading (``[H2]``) or a
caption (``[CALLOUT:figure]``).  Classification never raises: a line
whose checks fail is kept as an ordinary line.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from core.page.models import PageGeometry
from narrative.text.cleanup import repetition_signature
from narrative.text.tokenizer import count_words

from .models import Exclusion, ExclusionReason, Line, LineKind, TextSegment

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_RE_LONE_NUMBER = re.compile(r"^\d{1,4}$")
_RE_PAGE_X_OF_Y = re.compile(r"^page\s+\d+\s+of\s+\d+$", re.IGNORECASE)
_RE_X_OF_Y = re.compile(r"^\d+\s+of\s+\d+$", re.IGNORECASE)
_RE_DOWNLOADED = re.compile(r"^downloaded\s+from\b", re.IGNORECASE)
_RE_HTTP = re.compile(r"https?://", re.IGNORECASE)
_RE_WWW = re.compile(r"\bwww\.", re.IGNORECASE)
_RE_DOI = re.compile(r"\bdoi\b|dx\.doi\.org|\b10\.\d{4,9}/\S+", re.IGNORECASE)
_RE_ISSN = re.compile(r"\bissn\b|\b\d{4}-\d{3}[\dxX]\b", re.IGNORECASE)
_RE_EMAIL = re.compile(r"@|\b(?:e-?mail|corresponding author|correspondence)\b", re.IGNORECASE)
_RE_COPYRIGHT = re.compile(
    r"©|\bcopyright\b|\ball rights reserved\b|\blicen[cs]e\b", re.IGNORECASE
)

_RE_TRAILING_PAGE_NUMBER = re.compile(r"\s\d{1,4}$")
_RE_NUMERIC_HEADING = re.compile(r"^(\d{1,2}(?:\.\d{1,3}){0,5})\.?\s+[A-Z]")
_RE_STARTS_UPPER = re.compile(r"^[A-Z]")

_RE_CAPTION = re.compile(
    r"^(fig(?:ure)?s?\.?|table|tab\.)\s*(?:\d{1,3}|[IVX]{1,5})[a-z]?\s*[.:|]",
    re.IGNORECASE,
)

# Display-equation evidence
_EQ_SYMBOLS = set("=+×÷·^_∑∏∫√∂∇≤≥≈≠≡∞±∓<>|→←⇒∈∉⊂⊆∪∩∀∃")
_RE_GREEK = re.compile("[Α-Ωα-ωϑϕϵ]")
_RE_SLASH_TERM = re.compile(r"[^\s/]/[^\s/]")
_RE_EXPONENT = re.compile(r"\^|[²³¹⁰-⁹]|\w\*\*\w")
_RE_EQUATION_NUMBER = re.compile(r"\(\d{1,3}[a-z]?\)$")
_RE_PROSE_WORD = re.compile(r"^[^\W\d_]{3,}[,.;:]?$")


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class LineClassifierConfig:
    """
    Switches and thresholds for line classification.

    Attributes:
        drop_boilerplate:     Drop lines matching the closed boilerplate patterns.
        detect_equations:     Route display equations to diagnostics.
        equation_min_score:   Evidence score at which a line is an equation.
        equation_max_words:   Lines with this many prose words are never equations.
        annotate_headings:    Prefix heading lines with ``[H<level>]``.
        heading_edge_band:    No headings within this fraction of the top/bottom.
        heading_font_boost:   Font ratio over body for title-like headings.
        tag_captions:         Prefix figure/table captions with a callout marker.
    """

    drop_boilerplate: bool = True
    detect_equations: bool = True
    equation_min_score: int = 3
    equation_max_words: int = 6
    annotate_headings: bool = True
    heading_edge_band: float = 0.18
    heading_font_boost: float = 1.12
    tag_captions: bool = True


@dataclass
class LineOutcome:
    """Result of classifying one line: a narrative line, an exclusion, or neither."""

    line: Optional[Line] = None
    exclusion: Optional[Exclusion] = None


# ------------------------------------------------------------------
# Individual checks
# ------------------------------------------------------------------


def is_boilerplate_line(text: str) -> bool:
    """Closed set of non-narrative line shapes (page numbers, DOI, e-mail, ...)."""
    t = text.strip()
    if not t:
        return True
    if _RE_LONE_NUMBER.match(t) or _RE_PAGE_X_OF_Y.match(t) or _RE_X_OF_Y.match(t):
        return True

    tc = count_words(t)
    has_url = bool(_RE_HTTP.search(t) or _RE_WWW.search(t))

    if _RE_DOWNLOADED.match(t) and _RE_HTTP.search(t) and tc <= 16:
        return True
    if (has_url or _RE_DOI.search(t)) and tc <= 14:
        return True
    if _RE_ISSN.search(t) and tc <= 14:
        return True
    if _RE_EMAIL.search(t) and tc <= 18:
        return True
    if _RE_COPYRIGHT.search(t) and tc <= 26:
        return True
    return False


def equation_score(text: str) -> int:
    """Accumulate display-equation evidence for a line."""
    compact = "".join(text.split())
    if len(compact) < 3:
        return 0

    symbols = sum(1 for ch in compact if ch in _EQ_SYMBOLS)
    alpha = sum(1 for ch in compact if ch.isalpha())

    score = 0
    if symbols / len(compact) >= 0.12:
        score += 2
    if len(_RE_SLASH_TERM.findall(text)) >= 2:
        score += 1
    if _RE_EXPONENT.search(text):
        score += 1
    if _RE_GREEK.search(text):
        score += 1
    if alpha and symbols / alpha >= 0.6:
        score += 2
    elif not alpha and symbols:
        score += 2
    if _RE_EQUATION_NUMBER.search(text.strip()) and symbols:
        score += 1
    return score


def looks_like_display_equation(text: str, config: Optional[LineClassifierConfig] = None) -> bool:
    """Whether a line is a display equation rather than prose."""
    config = config or LineClassifierConfig()
    prose_words = sum(1 for tok in text.split() if _RE_PROSE_WORD.match(tok))
    if prose_words >= config.equation_max_words:
        return False
    if not any(ch in _EQ_SYMBOLS for ch in text):
        return False
    return equation_score(text) >= config.equation_min_score


def heading_level(
    text: str,
    avg_font: float,
    body_font: float,
    font_boost: float = 1.12,
) -> Optional[int]:
    """
    Return the heading level of a line, or ``None`` for non-headings.

    Numeric headings (``2.6.1 Results``) get ``dots + 1`` capped at 6;
    short title-like lines set in a larger font get level 3.
    """
    t = text.strip()
    if not t:
        return None
    # Running headers end with a page number
    if _RE_TRAILING_PAGE_NUMBER.search(t) and len(t) < 120:
        return None

    words = count_words(t)
    if words == 0 or words > 20:
        return None

    m = _RE_NUMERIC_HEADING.match(t)
    if m:
        return min(6, max(1, m.group(1).count(".") + 1))

    boost = avg_font / body_font if body_font > 0 else 1.0
    if t[-1] not in ".!?" and _RE_STARTS_UPPER.match(t) and words <= 10 and boost >= font_boost:
        return 3
    return None


def caption_kind(text: str) -> Optional[str]:
    """``"figure"`` or ``"table"`` for caption lines, else ``None``."""
    m = _RE_CAPTION.match(text.strip())
    if not m:
        return None
    return "table" if m.group(1).lower().startswith("tab") else "figure"


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def classify_line(
    text: str,
    segment: TextSegment,
    geometry: PageGeometry,
    body_font: float,
    page_index: int = 0,
    config: Optional[LineClassifierConfig] = None,
) -> LineOutcome:
    """
    Classify one cleaned line.

    Args:
        text:        Cleaned line text.
        segment:     Source segment (position and font).
        geometry:    Page dimensions.
        body_font:   Page body font size.
        page_index:  0-based page number for diagnostics.
        config:      Classification switches.

    Returns:
        :class:`LineOutcome`; both fields are ``None`` when the line
        carries no signature at all.
    """
    config = config or LineClassifierConfig()
    y_norm = geometry.y_norm(segment.y)

    if config.drop_boilerplate and is_boilerplate_line(text):
        return LineOutcome(
            exclusion=Exclusion(page_index, ExclusionReason.BOILERPLATE, text, y_norm)
        )

    signature = repetition_signature(text)
    if not signature:
        return LineOutcome()

    line = Line(
        text=text,
        signature=signature,
        y_norm=y_norm,
        token_count=count_words(text),
        x0_norm=geometry.x_norm(segment.x1),
        x1_norm=geometry.x_norm(segment.x2),
        font_size=segment.median_font,
    )

    try:
        if config.detect_equations and looks_like_display_equation(text, config):
            return LineOutcome(
                exclusion=Exclusion(
                    page_index, ExclusionReason.DISPLAY_EQUATION, text, y_norm
                )
            )

        kind = caption_kind(text) if config.tag_captions else None
        if kind is not None:
            line.kind = LineKind.CAPTION
            line.text = f"[CALLOUT:{kind}]{text}"
            return LineOutcome(line=line)

        in_edge_band = y_norm <= config.heading_edge_band or y_norm >= 1.0 - config.heading_edge_band
        if config.annotate_headings and not in_edge_band:
            level = heading_level(text, segment.mean_font, body_font, config.heading_font_boost)
            if level is not None:
                line.kind = LineKind.HEADING
                line.heading_level = level
                line.text = f"[H{level}]{text}"
    except Exception as e:
        logger.debug("Page %d: line classification failed (%s), kept as ordinary", page_index, e)
        line.kind = LineKind.ORDINARY
        line.heading_level = 0
        line.text = text

    return LineOutcome(line=line)
