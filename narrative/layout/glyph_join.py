"""
Glyph-join pass: turns the runs of one segment into a line string.

Most gaps are decided by a plain threshold (word gap, or the tighter
glyph gap next to single characters).  A priority-ordered rule table
overrides it for the cases PDF text layers routinely get wrong:

* charge markers and superscript digits glue onto the preceding token
  (``CD16`` + ``+`` → ``CD16+``),
* a dash after a closing bracket and the suffix after a dash stay glued
  (``(CCL)`` + ``-3`` → ``(CCL)-3``),
* ``+/-`` clusters glue onto their marker,
* a digit-slash prefix and a charge-before-marker are forced apart
  (``CD47/`` + ``SIRP`` → ``CD47/ SIRP``),
* superscript qualifiers (``dim``, ``bright``, ``-/neg``) form their own
  token and never fuse with the following word.
"""

import re
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from core.page.models import GeometricTextRun

# ---------------------------------------------------------------------------
# Character classes
# ---------------------------------------------------------------------------

_SUP_TRANSLATION = str.maketrans(
    {
        "＋": "+",
        "﹢": "+",
        "⁺": "+",
        "−": "-",
        "﹣": "-",
        "－": "-",
        "⁻": "-",
        "⁰": "0",
        "¹": "1",
        "²": "2",
        "³": "3",
        "⁴": "4",
        "⁵": "5",
        "⁶": "6",
        "⁷": "7",
        "⁸": "8",
        "⁹": "9",
    }
)

SUP_KEYWORDS = ("dim", "dimm", "bright", "neg", "pos")
_RE_SUP_MODIFIER = re.compile(
    r"^(?:[-+/^]{0,3}(?:dim|dimm|bright|neg|pos)|(?:dim|dimm|bright|neg|pos)[-+/^]{0,3})$"
)
_RE_STARTS_WORD = re.compile(r"^[^\W_]")
_RE_ENDS_ALNUM = re.compile(r"[^\W_]$")
_RE_ENDS_CLOSING = re.compile(r"[)\]}.,;:!?]$")
_RE_ENDS_OPENING = re.compile(r"[(\[{]$")
_RE_ENDS_BRACKET = re.compile(r"[)\]}]$")
_RE_ENDS_CHARGE = re.compile(r"[a-z0-9][+\-]$", re.IGNORECASE)
_RE_ENDS_DIGIT_SLASH = re.compile(r"[0-9]/$")
_RE_CD_MARKER = re.compile(r"^cd-?\d{1,3}", re.IGNORECASE)
_DASHES = set("‐‑‒–—−-")
_SLASHES = set("/⁄∕／")


def normalize_sup_text(text: str) -> str:
    """Map superscript digits and plus/minus variants to ASCII."""
    return text.translate(_SUP_TRANSLATION)


def is_sup_keyword(text: str) -> bool:
    """``dim``/``bright``/``neg``/... optionally with up to three ``-+/^`` affixes."""
    low = normalize_sup_text(text).strip().lower()
    return bool(low) and bool(_RE_SUP_MODIFIER.match(low))


def _is_charge(text: str) -> bool:
    return normalize_sup_text(text).strip() in ("+", "-")


def _is_sup_digit(text: str) -> bool:
    t = normalize_sup_text(text).strip()
    return bool(t) and t.isdigit()


def _starts_word(text: str) -> bool:
    return bool(_RE_STARTS_WORD.match(text))


def _ends_alnum(text: str) -> bool:
    return bool(_RE_ENDS_ALNUM.search(text))


def _ends_with_dash(text: str) -> bool:
    return bool(text) and text[-1] in _DASHES


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JoinThresholds:
    """Gap thresholds derived from the body font of the page."""

    word_gap: float
    glyph_gap: float
    after_closing_gap: float
    sup_dy: float
    base_font: float

    @classmethod
    def for_font(cls, base_font: float, tol_y: float) -> "JoinThresholds":
        base = base_font if base_font > 0 else 10.0
        return cls(
            word_gap=max(0.6, base * 0.10),
            glyph_gap=max(0.9, base * 0.16),
            after_closing_gap=max(0.25, base * 0.04),
            sup_dy=max(tol_y * 0.55, base * 0.22),
            base_font=base,
        )

    @property
    def wide(self) -> float:
        return max(self.glyph_gap, self.word_gap)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def join_runs(
    runs: Sequence[GeometricTextRun],
    body_font: float,
    tol_y: float,
) -> str:
    """
    Join the runs of one segment (sorted left to right) into raw line text.

    Args:
        runs:       Runs of the segment.
        body_font:  Page body font size (0 falls back to the segment mean).
        tol_y:      Vertical clustering tolerance used for the page.

    Returns:
        The joined text before cleanup.
    """
    items = sorted(runs, key=lambda r: r.origin_x)
    if not items:
        return ""

    mean_font = sum(max(0.0, r.font_size) for r in items) / len(items)
    th = JoinThresholds.for_font(body_font or mean_font, tol_y)
    base_y = float(np.median([r.origin_y for r in items]))

    out = []
    prev_x2 = None
    prev_part = ""
    prev_was_sup_word = False
    prev_was_sup_item = False

    for idx, run in enumerate(items):
        if not run.content:
            continue
        part = normalize_sup_text(run.content)

        # Raised/lowered or small items behave like superscripts
        cur_is_small = run.font_size > 0 and run.font_size / th.base_font <= 0.92
        dy = base_y - run.origin_y
        cur_is_sup_item = cur_is_small or abs(dy) > th.sup_dy
        cur_is_sup_word = is_sup_keyword(part)

        # "-/dim" clusters: the dash is a prefix, not a charge on the base token
        nxt = items[idx + 1] if idx + 1 < len(items) else None
        next_part = normalize_sup_text(nxt.content) if nxt else ""
        next_gap = (nxt.origin_x - run.x2) if nxt else float("inf")
        dash_is_prefix_cluster = (
            part == "-"
            and cur_is_sup_item
            and (next_part.startswith("/") or is_sup_keyword(next_part))
            and next_gap <= th.glyph_gap * 1.6
        )

        if prev_x2 is not None:
            gap = run.origin_x - prev_x2
            out.append(
                _separator(
                    gap,
                    prev_part,
                    part,
                    th,
                    cur_is_sup_item=cur_is_sup_item,
                    cur_is_sup_word=cur_is_sup_word,
                    cur_font=run.font_size,
                    dash_is_prefix_cluster=dash_is_prefix_cluster,
                    prev_was_sup_word=prev_was_sup_word,
                    prev_was_sup_item=prev_was_sup_item,
                )
            )

        out.append(part)
        prev_x2 = run.x2
        prev_part = part
        prev_was_sup_word = cur_is_sup_word
        prev_was_sup_item = cur_is_sup_item

    return "".join(out)


def _separator(
    gap: float,
    prev: str,
    part: str,
    th: JoinThresholds,
    *,
    cur_is_sup_item: bool,
    cur_is_sup_word: bool,
    cur_font: float,
    dash_is_prefix_cluster: bool,
    prev_was_sup_word: bool,
    prev_was_sup_item: bool,
) -> str:
    """Decide between ``""`` and ``" "`` for the gap between two runs."""
    wide = th.wide
    threshold = th.glyph_gap if (len(prev) <= 1 or len(part) <= 1) else th.word_gap
    if _RE_ENDS_CLOSING.search(prev) and _starts_word(part):
        threshold = min(threshold, th.after_closing_gap)
    if _RE_ENDS_OPENING.search(prev):
        threshold = max(threshold, th.glyph_gap)

    # -- forced breaks --------------------------------------------------
    force_break_after_sup_word = (
        prev_was_sup_word
        and prev_was_sup_item
        and not cur_is_sup_item
        and _starts_word(part)
        and gap <= wide * 1.6
    )
    split_sup_prefix_cluster = (
        _ends_alnum(prev) and dash_is_prefix_cluster and gap <= wide * 1.6
    )
    font_near_body = cur_font > 0 and cur_font / th.base_font <= 1.06
    split_sup_word = (
        _ends_alnum(prev)
        and cur_is_sup_word
        and (cur_is_sup_item or font_near_body)
        and gap <= wide * 1.6
    )
    force_break_after_digit_slash = (
        bool(_RE_ENDS_DIGIT_SLASH.search(prev)) and _starts_word(part) and gap <= wide * 2.2
    )
    force_break_charge_before_marker = (
        bool(_RE_ENDS_CHARGE.search(prev))
        and bool(_RE_CD_MARKER.match(part))
        and gap <= wide * 2.2
    )
    if (
        force_break_after_sup_word
        or split_sup_prefix_cluster
        or split_sup_word
        or force_break_after_digit_slash
        or force_break_charge_before_marker
    ):
        return " "

    # -- forced glue ----------------------------------------------------
    glue_close_dash = (
        bool(_RE_ENDS_BRACKET.search(prev)) and part[:1] in _DASHES and gap <= wide * 1.6
    )
    glue_dash_suffix = _ends_with_dash(prev) and _starts_word(part) and gap <= wide * 1.8
    glue_charge = (
        _ends_alnum(prev)
        and not dash_is_prefix_cluster
        and (_is_charge(part) or _is_sup_digit(part))
        and (cur_is_sup_item or gap <= wide * 1.35)
    )
    glue_charge_slash = (
        bool(_RE_ENDS_CHARGE.search(prev)) and part in _SLASHES and gap <= wide * 1.6
    )
    glue_after_slash = prev in _SLASHES and part in ("+", "-") and gap <= wide * 1.6
    glue_sup_prefix = (
        prev in ("-", "/", "^")
        and cur_is_sup_word
        and (cur_is_sup_item or gap <= wide * 1.35)
    )
    if (
        glue_close_dash
        or glue_dash_suffix
        or glue_charge
        or glue_charge_slash
        or glue_after_slash
        or glue_sup_prefix
    ):
        return ""

    return " " if gap > threshold else ""
