"""
Line-level text cleanup and repetition signatures.

Repairs the glyph artefacts PDF text layers commonly produce (private-use
ligature glyphs, soft hyphens, zero-width characters), normalises
punctuation spacing, and splits biomedical marker chains so every marker
in ``CD33+CD15`` is independently addressable as a token.
"""

import re

# -----------------------------------------------------------------
# Glyph substitution tables
# -----------------------------------------------------------------

# Private-use glyphs some fonts emit for ligatures and a few math symbols
_PUA_GLYPHS = {
    "\ue004": "ff",
    "\ue053": "ff",
    "\ue0ae": "ff",
    "\ue007": "ffi",
    "\ue054": "ffi",
    "\ue0b1": "ffi",
    "\ue005": "fi",
    "\ue04a": "fi",
    "\ue04c": "fi",
    "\ue04d": "fi",
    "\ue055": "fi",
    "\ue0af": "fi",
    "\ue006": "/",
    "\ue036": "≠",
    "\ue068": "⟨",
    "\ue069": "⟩",
    "\ue000": "Δ",
}

_LIGATURES = {
    "ﬀ": "ff",
    "ﬁ": "fi",
    "ﬂ": "fl",
    "ﬃ": "ffi",
    "ﬄ": "ffl",
}

# "coe<fi-glyph>cients" is encoded with the wrong ligature in some typesetters
_RE_COEFFICIENT = re.compile(r"\bcoe\ue04c(cients?)\b")

# -----------------------------------------------------------------
# Regex patterns
# -----------------------------------------------------------------

_RE_DOWNLOADED_TAIL = re.compile(r"\s*[-–—]?\s*Downloaded from https?://\S.*$", re.IGNORECASE)
_RE_INVISIBLE = re.compile("[\u00ad\u200b\u200c\u200d\u2060\ufeff]")
_RE_WHITESPACE = re.compile(r"[\s\u00a0]+")
_RE_SPACE_BEFORE_CLOSING = re.compile(r"\s+([,.;:!?\])}])")
_RE_SPACE_AFTER_OPENING = re.compile(r"([\[({])\s+")
_RE_SPACE_BEFORE_DASH = re.compile(r"\s+([\-‐-‒–—])")
_RE_GLUED_AFTER_CLOSING = re.compile(r"([)\]}])(?=[^\W_])")

# Marker-chain splitting
_RE_PLUS_VARIANTS = re.compile("[\uff0b\ufe62\u207a]")
_RE_MINUS_VARIANTS = re.compile("[\u2212\ufe63\uff0d\u207b]")
_RE_DASH_VARIANTS = re.compile("[\u2010-\u2015\u2212]")
_RE_PLUS_BEFORE_MARKER = re.compile(r"([A-Za-z0-9])\+(?=[A-Z])")
_MARKER_PREFIX = r"(?:CD|HLA|TCR|MHC|CCR|CXCR|IL|IFN|TNF|FC|IG|TLR|MCP|LAMP|TAM)"
_RE_MINUS_BEFORE_MARKER = re.compile(
    r"([A-Z0-9])-(?=" + _MARKER_PREFIX + r"[A-Za-z0-9]|[A-Z]{2,}\d)"
)
_RE_DIGIT_SLASH_WORD = re.compile(r"(\d)/(?=[A-Za-z])")

# Repetition signatures
_RE_DIGITS = re.compile(r"\d+")
_SIGNATURE_PUNCT = set("#-()[]{}.,;:!?/+=*<>^_%|\\")

# Final page text normalisation
_RE_TRAILING_SPACE = re.compile(r"[ \t]+\n")
_RE_MANY_NEWLINES = re.compile(r"\n{3,}")
_RE_MANY_SPACES = re.compile(r"[ \t]{2,}")


def replace_private_glyphs(text: str) -> str:
    """Map private-use ligature/math glyphs and Unicode ligatures to plain text."""
    text = _RE_COEFFICIENT.sub(r"coeffi\1", text)
    for glyph, repl in _PUA_GLYPHS.items():
        text = text.replace(glyph, repl)
    for lig, repl in _LIGATURES.items():
        text = text.replace(lig, repl)
    return text


def insert_marker_breaks(text: str) -> str:
    """
    Insert token boundaries inside immunology/biochemistry marker chains.

    ``CD33+CD15`` → ``CD33+ CD15``, ``CD14-CD16`` → ``CD14- CD16``,
    ``CD47/SIRP`` → ``CD47/ SIRP``.  Selection probes must go through the
    same transform so they tokenize like the narrative text.
    """
    s = _RE_PLUS_VARIANTS.sub("+", text)
    s = _RE_MINUS_VARIANTS.sub("-", s)
    s = _RE_DASH_VARIANTS.sub("-", s)
    s = _RE_PLUS_BEFORE_MARKER.sub(r"\1+ ", s)
    s = _RE_MINUS_BEFORE_MARKER.sub(r"\1- ", s)
    s = _RE_DIGIT_SLASH_WORD.sub(r"\1/ ", s)
    return s


def clean_line_text(text: str) -> str:
    """
    Clean the joined text of one line.

    Args:
        text: Raw glyph-joined line text.

    Returns:
        The cleaned line, possibly empty.
    """
    out = replace_private_glyphs(text)

    # Download watermarks merged into the end of body lines
    out = _RE_DOWNLOADED_TAIL.sub("", out)
    out = _RE_INVISIBLE.sub("", out)

    out = _RE_WHITESPACE.sub(" ", out)
    out = _RE_SPACE_BEFORE_CLOSING.sub(r"\1", out)
    out = _RE_SPACE_AFTER_OPENING.sub(r"\1", out)
    out = _RE_SPACE_BEFORE_DASH.sub(r"\1", out)

    # ")next" must not fuse into one token
    out = _RE_GLUED_AFTER_CLOSING.sub(r"\1 ", out)

    out = insert_marker_breaks(out)
    return out.strip()


def repetition_signature(text: str) -> str:
    """
    Normalise a line for cross-page repetition matching.

    Lower-cases, collapses whitespace, replaces digit runs with ``#``,
    unifies quotes and dashes, and drops everything except letters,
    digits, whitespace and a small set of structural punctuation.
    """
    base = _RE_WHITESPACE.sub(" ", text.lower().strip())
    base = _RE_DIGITS.sub("#", base)
    base = re.sub("[“”‘’]", "'", base)
    base = re.sub("[‐-‒–—]", "-", base)
    kept = [ch for ch in base if ch.isalnum() or ch.isspace() or ch in _SIGNATURE_PUNCT]
    return "".join(kept).strip()


def normalize_extracted_text(text: str) -> str:
    """Tidy joined page text: no trailing blanks, at most one empty line, single spaces."""
    out = _RE_TRAILING_SPACE.sub("\n", text)
    out = _RE_MANY_NEWLINES.sub("\n\n", out)
    out = _RE_MANY_SPACES.sub(" ", out)
    return out.strip()
