"""
Match keys for selection anchoring.

A match key is the aggressively normalised form of a token used only to
compare a user's selection with narrative tokens.  It never feeds back
into the narrative text itself.
"""

import re
import unicodedata
from typing import List, Tuple

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_RE_MARKERS = re.compile(r"\[(?:H\d+|CALLOUT:[\w-]+)\]")
_RE_DASHES = re.compile("[‐-―−﹣－⁻₋]")
_RE_PLUSES = re.compile("[＋﹢⁺₊]")
_RE_QUOTES = re.compile("[‘’‚‛′´`]")
_RE_DQUOTES = re.compile("[“”„‟″«»]")

_RE_LEADING_JUNK = re.compile(r"^[\W_]+")
_RE_TRAILING_JUNK = re.compile(r"[\W_]+$")
# Trailing punctuation that may sit after a charge cluster ("CD16+)," etc.)
_RE_TRAILING_NON_CHARGE = re.compile(r"[^\w+\-±∓/]+$")
_RE_CHARGE_TAIL = re.compile(r"(?<=[^\W_])([+\-±∓/]{1,4})$")
_RE_CHAIN_SPLIT = re.compile(r"[/\-]")

_RE_NUMERIC_SUFFIX = re.compile(r"^\d{1,4}[a-z]?$")
_RE_ROMAN_SUFFIX = re.compile(r"^(?:i|ii|iii|iv|v|vi|vii|viii|ix|x|xi|xii)$")
_GREEK_SUFFIXES = {
    "alpha", "beta", "gamma", "delta", "epsilon", "kappa", "lambda",
    "α", "β", "γ", "δ", "ε", "κ", "λ",
}
_RE_ACRONYM = re.compile(r"^[A-Z][A-Z0-9]{1,5}[+\-]?$")

_WRAPPER_OPEN = "([{<\"'“‘«"
_WRAPPER_CLOSE = ")]}>\"'”’»"
_EDGE_PUNCT = ".,;:!?…"

EXACT = 2
FUZZY = 1
NO_MATCH = 0


def _fold(text: str) -> str:
    """Unicode-fold a token: compatibility forms, dash/plus/quote variants, diacritics."""
    s = unicodedata.normalize("NFKC", text)
    s = _RE_DASHES.sub("-", s)
    s = _RE_PLUSES.sub("+", s)
    s = _RE_QUOTES.sub("'", s)
    s = _RE_DQUOTES.sub('"', s)
    decomposed = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return s.lower().strip()


def _canonical_charge(cluster: str) -> str:
    if "±" in cluster or "∓" in cluster or ("+" in cluster and "-" in cluster):
        return "±"
    if "+" in cluster:
        return "+"
    if "-" in cluster:
        return "-"
    return ""


def split_charge(key: str) -> Tuple[str, str]:
    """Split a match key into ``(base, charge_suffix)``."""
    if key and key[-1] in "+-±":
        return key[:-1], key[-1]
    return key, ""


def match_key(token: str) -> str:
    """
    Normalise a token for selection comparison.

    Strips heading/callout markers, folds Unicode variants, lower-cases,
    removes surrounding brackets and punctuation, and keeps a trailing
    charge cluster as a canonical suffix (``+``, ``-`` or ``±``).
    Returns ``""`` for tokens with no letters or digits.
    """
    if not token:
        return ""
    s = _fold(_RE_MARKERS.sub("", token))
    s = _RE_LEADING_JUNK.sub("", s)
    s = _RE_TRAILING_NON_CHARGE.sub("", s)
    if not s:
        return ""

    suffix = ""
    m = _RE_CHARGE_TAIL.search(s)
    if m:
        suffix = _canonical_charge(m.group(1))
        s = s[: m.start()]
    base = _RE_TRAILING_JUNK.sub("", s)
    if not base:
        return ""
    return base + suffix


def chain_segments(key: str) -> List[str]:
    """Internal segments of a slash/hyphen joined key (``"cd47/sirpa"`` → two segments)."""
    base, _ = split_charge(key)
    parts = [p for p in _RE_CHAIN_SPLIT.split(base) if p]
    return parts if len(parts) > 1 else []


def _is_acronym_extension(short: str, long: str) -> bool:
    """``short`` is a 2-6 letter acronym and ``long`` adds a numeric/roman/greek suffix."""
    if not (2 <= len(short) <= 6) or not short.isalpha():
        return False
    if not long.startswith(short) or len(long) == len(short):
        return False
    rest = long[len(short):].lstrip("-_")
    if not rest:
        return False
    return bool(
        _RE_NUMERIC_SUFFIX.match(rest)
        or _RE_ROMAN_SUFFIX.match(rest)
        or rest in _GREEK_SUFFIXES
    )


def key_match_strength(a: str, b: str) -> int:
    """
    Compare two match keys.

    Returns :data:`EXACT` for identical keys, :data:`FUZZY` for the
    tolerated variants (charge suffix added or removed, acronym prefix,
    chain segment), and :data:`NO_MATCH` otherwise.
    """
    if not a or not b:
        return NO_MATCH
    if a == b:
        return EXACT

    base_a, _ = split_charge(a)
    base_b, _ = split_charge(b)
    if base_a and base_a == base_b:
        return FUZZY

    short, long = (base_a, base_b) if len(base_a) <= len(base_b) else (base_b, base_a)
    if _is_acronym_extension(short, long):
        return FUZZY

    if base_b in chain_segments(a) or base_a in chain_segments(b):
        return FUZZY
    return NO_MATCH


def match_strength(a: str, b: str) -> int:
    """Like :func:`key_match_strength` but takes raw tokens."""
    return key_match_strength(match_key(a), match_key(b))


def tokens_match(a: str, b: str) -> bool:
    """Whether two raw tokens refer to the same word for anchoring purposes."""
    return match_strength(a, b) != NO_MATCH


def is_acronym_like(text: str) -> bool:
    """Short upper-case marker-like selections (``CD4``, ``IL6+``) are prone to repeats."""
    t = normalize_single_word_selection(text)
    return bool(_RE_ACRONYM.match(t)) and sum(ch.isupper() for ch in t) >= 2


def normalize_single_word_selection(text: str) -> str:
    """
    Strip wrapping brackets/quotes and edge punctuation from a selection.

    The charge suffix of marker tokens (``CD16+``) is preserved.
    """
    t = (text or "").strip()
    prev = None
    while t and t != prev:
        prev = t
        t = t.lstrip(_WRAPPER_OPEN).rstrip(_WRAPPER_CLOSE + _EDGE_PUNCT).strip()
    return t
