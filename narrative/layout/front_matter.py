"""
First-page front-matter filter for journal articles.

Above the start of the body (the ``Abstract`` or ``Introduction``
heading) the first page of an article carries portal chrome ("Contents
lists available at ...", journal homepage URLs) and author affiliation
blocks.  Both are removed; everything from the body start on is kept
untouched.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from narrative.text.cleanup import repetition_signature
from narrative.text.tokenizer import count_words

from .models import Exclusion, ExclusionReason, Line, LineKind

_RE_MARKER = re.compile(r"^\[(?:H\d+|CALLOUT:[\w-]+)\]")
_RE_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_RE_TOC_LINE = re.compile(r"\.{5,}\s*\d{1,4}\s*$")
_RE_CONTENTS_LISTS = re.compile(r"^contents\s+lists\s+available\s+at\b", re.IGNORECASE)
_RE_URL = re.compile(r"https?://|\bwww\.", re.IGNORECASE)
_RE_LOCATE = re.compile(r"/locate/", re.IGNORECASE)
_RE_SPACED_WWW = re.compile(r"\bw\s*w\s*w\b", re.IGNORECASE)
_RE_INSTITUTION = re.compile(
    r"\b(?:department|university|institute|school|faculty|hospital|centre|center"
    r"|laborator(?:y|ies)|division|unit)\b",
    re.IGNORECASE,
)
_RE_US_ZIP = re.compile(r"\b\d{5}(?:-\d{4})?\b")
_RE_UK_POSTCODE = re.compile(r"\b[A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2}\b", re.IGNORECASE)


@dataclass
class FrontMatterConfig:
    """
    Position limits for first-page front matter (fractions of page height).

    Attributes:
        chrome_max_y:       Portal chrome only sits above this line.
        affiliation_max_y:  Affiliation lines only sit above this line.
        fallback_lines:     Lines treated as front matter when no body start is found.
    """

    chrome_max_y: float = 0.28
    affiliation_max_y: float = 0.40
    fallback_lines: int = 12


def _strip_marker(text: str) -> str:
    return _RE_MARKER.sub("", text).strip()


def _collapse(text: str) -> str:
    return _RE_NON_ALNUM.sub("", _strip_marker(text).lower())


def is_toc_line(text: str) -> bool:
    """Dotted leader followed by a page number."""
    return bool(_RE_TOC_LINE.search(_strip_marker(text)))


def is_portal_chrome(line: Line, config: FrontMatterConfig) -> bool:
    t = _strip_marker(line.text)
    if not t or is_toc_line(t) or line.y_norm > config.chrome_max_y:
        return False
    if _RE_CONTENTS_LISTS.match(t) or "journalhomepage" in _collapse(t):
        return True
    if _RE_URL.search(t) or _RE_LOCATE.search(t):
        return True
    return bool(_RE_SPACED_WWW.search(t)) and t.count(" ") > 10


def is_affiliation(line: Line, config: FrontMatterConfig) -> bool:
    t = _strip_marker(line.text)
    if not t or is_toc_line(t) or line.y_norm > config.affiliation_max_y:
        return False
    if _RE_INSTITUTION.search(t):
        return True
    if t.count(",") >= 2 and sum(ch.isdigit() for ch in t) >= 2:
        return True
    return bool(_RE_US_ZIP.search(t) or _RE_UK_POSTCODE.search(t))


def find_body_start(lines: Sequence[Line], config: FrontMatterConfig) -> int:
    """Index of the first body line on page 1 (the Abstract/Introduction heading)."""
    for k, line in enumerate(lines):
        c = _collapse(line.text)
        if c in ("abstract", "introduction"):
            return k
        if "abstract" in c and ("articleinfo" in c or "articlehistory" in c):
            return k
    return min(len(lines), config.fallback_lines)


def filter_front_matter(
    lines: Sequence[Line],
    page_index: int = 0,
    config: Optional[FrontMatterConfig] = None,
) -> Tuple[List[Line], List[Exclusion]]:
    """
    Remove portal chrome and affiliations above the body start.

    A short merged ``article info ... abstract`` line is rewritten to a
    plain ``[H3]Abstract`` heading.

    Returns:
        ``(kept_lines, exclusions)``
    """
    config = config or FrontMatterConfig()
    start = find_body_start(lines, config)
    kept: List[Line] = []
    removed: List[Exclusion] = []

    for k, line in enumerate(lines):
        if k < start and (is_portal_chrome(line, config) or is_affiliation(line, config)):
            removed.append(
                Exclusion(page_index, ExclusionReason.FRONT_MATTER, line.text, line.y_norm)
            )
            continue
        c = _collapse(line.text)
        if k <= start and "articleinfo" in c and "abstract" in c and line.token_count <= 6:
            kept.append(
                Line(
                    text="[H3]Abstract",
                    signature=repetition_signature("Abstract"),
                    y_norm=line.y_norm,
                    token_count=count_words("Abstract"),
                    x0_norm=line.x0_norm,
                    x1_norm=line.x1_norm,
                    font_size=line.font_size,
                    kind=LineKind.HEADING,
                    heading_level=3,
                )
            )
            continue
        kept.append(line)

    return kept, removed
