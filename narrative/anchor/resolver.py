"""
Selection anchoring: map an approximate selection onto a word index.

Resolution is staged and stops at the first stage that succeeds:

0. **Guard**: selections spanning a page boundary are refused;
   punctuation-only selections snap to the nearest word.
1. **Probe**: a forward-read probe is searched as a token sequence on
   the hinted page (or the whole document).
2. **Page hint**: nearest matching word to the preferred index derived
   from an explicit offset and/or the selection geometry, within a
   page-relative distance cap.
3. **Window**: nearest match within ±``window`` words of the preferred
   index; without any preferred index only a unique (or context-decided)
   candidate is accepted.
4. **Context**: ambiguous acronym-like words are re-scored with the
   keys of their neighbours.

A miss is reported with diagnostics of every range searched; the
resolver never guesses.
"""

import logging
from bisect import bisect_left
from dataclasses import dataclass
from itertools import dropwhile
from typing import List, Optional, Sequence, Tuple

from narrative.index.models import NarrativeIndex
from narrative.text.normalizer import (
    EXACT,
    NO_MATCH,
    is_acronym_like,
    key_match_strength,
    match_key,
    normalize_single_word_selection,
)
from narrative.text.tokenizer import word_tokens

from .models import (
    AnchorCandidate,
    AnchorDiagnostics,
    AnchorRequest,
    AnchorResult,
    SearchAttempt,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class AnchorConfig:
    """
    Distance and scoring thresholds for anchoring.

    Attributes:
        window:                   Half-width of the windowed search (words).
        distance_cap_ratio:       Page-hint cap as a fraction of page length.
        distance_cap_min:         Lower bound of the page-hint cap (words).
        geometry_override_ratio:  Offset/geometry disagreement (fraction of
                                  page length) above which geometry wins.
        context_size:             Context keys captured on each side.
        context_bonus:            Score bonus per agreeing context key.
        context_penalty:          Score penalty per disagreeing context key.
        probe_min_tokens:         Shortest probe prefix searched.
        probe_max_tokens:         Longest probe used.
    """

    window: int = 400
    distance_cap_ratio: float = 0.35
    distance_cap_min: int = 24
    geometry_override_ratio: float = 0.35
    context_size: int = 3
    context_bonus: float = 40.0
    context_penalty: float = 15.0
    probe_min_tokens: int = 2
    probe_max_tokens: int = 8


# ------------------------------------------------------------------
# Resolver
# ------------------------------------------------------------------


class AnchorResolver:
    """
    Resolve selections against one :class:`NarrativeIndex`.

    The resolver precomputes the match key of every word once; each
    :meth:`resolve` call is otherwise stateless.
    """

    def __init__(self, index: NarrativeIndex, config: Optional[AnchorConfig] = None):
        self.index = index
        self.config = config or AnchorConfig()
        self._keys: List[str] = [match_key(t) for t in index.tokens]
        # Keyed words only, so punctuation tokens never break a sequence match
        self._word_at: List[int] = [i for i, k in enumerate(self._keys) if k]
        self._compact: List[str] = [self._keys[i] for i in self._word_at]

    # -- public ---------------------------------------------------------

    def resolve(self, request: AnchorRequest) -> AnchorResult:
        """
        Anchor one selection.

        Returns:
            :class:`AnchorResult` with a word index into
            ``index.tokens`` or ``found=False`` plus diagnostics.
        """
        diag = AnchorDiagnostics()
        n = len(self._keys)
        if n == 0:
            return AnchorResult.miss("empty index", diag)

        page = request.page_index
        if page is not None and request.end_page is not None and request.end_page != page:
            diag.notes.append(f"selection spans pages {page}..{request.end_page}")
            return AnchorResult.miss("selection spans pages", diag)
        if page is not None and not 0 <= page < self.index.page_count:
            diag.notes.append(f"page hint {page} outside document, ignored")
            page = None

        selection = self._snap_selection(request, diag)
        diag.normalized_selection = selection
        sel_words = list(dropwhile(lambda w: not match_key(w), word_tokens(selection)))
        key = match_key(sel_words[0]) if sel_words else ""
        diag.match_key = key
        if not key:
            return AnchorResult.miss("selection has no word characters", diag)

        preferred = self._preferred_index(request, page, diag)
        diag.preferred_index = preferred

        # -- Stage 1: probe ---------------------------------------------
        probe_keys = self._probe_keys(request, sel_words, key)
        if len(probe_keys) >= self.config.probe_min_tokens:
            hit = self._probe_stage(probe_keys, page, preferred, diag)
            if hit is not None:
                return AnchorResult.hit(hit, "probe", diag)

        ambiguous = len(sel_words) == 1 and is_acronym_like(sel_words[0])
        context = self._context_keys(preferred, request.raw_text, sel_words[0], diag)

        # -- Stage 2: page hint -----------------------------------------
        if page is not None and preferred is not None:
            start, end = self.index.page_range(page)
            page_len = end - start
            cap = max(self.config.distance_cap_min, int(page_len * self.config.distance_cap_ratio))
            cands = self._candidates(key, start, end, preferred)
            near = [c for c in cands if c.distance is not None and c.distance <= cap]
            diag.searches.append(
                SearchAttempt("page-hint", start, end, len(near), f"cap={cap}")
            )
            hit = self._choose(near, ambiguous, context, diag)
            if hit is not None:
                return AnchorResult.hit(hit, "page-hint", diag)

        # -- Stage 3: window / document ---------------------------------
        if preferred is not None:
            start = max(0, preferred - self.config.window)
            end = min(n, preferred + self.config.window + 1)
            cands = self._candidates(key, start, end, preferred)
            diag.searches.append(SearchAttempt("window", start, end, len(cands)))
            hit = self._choose(cands, ambiguous, context, diag)
            if hit is not None:
                return AnchorResult.hit(hit, "window", diag)
        else:
            ranges: List[Tuple[str, int, int]] = []
            if page is not None:
                ranges.append(("page",) + self.index.page_range(page))
            ranges.append(("document", 0, n))
            for stage, start, end in ranges:
                cands = self._candidates(key, start, end, None)
                diag.searches.append(SearchAttempt(stage, start, end, len(cands)))
                hit = self._choose_without_position(cands, context, diag)
                if hit is not None:
                    return AnchorResult.hit(hit, stage, diag)

        logger.debug("Anchoring miss:\n%s", diag.format())
        return AnchorResult.miss("not found", diag)

    # -- selection -------------------------------------------------------

    def _snap_selection(self, request: AnchorRequest, diag: AnchorDiagnostics) -> str:
        """Punctuation-only or empty selections snap to the nearest real word."""
        cleaned = normalize_single_word_selection(request.selection)
        if any(match_key(w) for w in word_tokens(cleaned)):
            return " ".join(word_tokens(cleaned))

        raw = request.raw_text or ""
        if raw:
            sel = (request.selection or "").strip()
            pos = raw.find(sel) if sel else -1
            snapped = self._nearest_word(raw, pos if pos >= 0 else 0)
            if snapped:
                diag.notes.append(f"snapped selection {request.selection!r} to {snapped!r}")
                return snapped
        for w in word_tokens(request.probe or ""):
            if match_key(w):
                diag.notes.append(f"snapped selection to probe word {w!r}")
                return normalize_single_word_selection(w)
        return cleaned

    @staticmethod
    def _nearest_word(text: str, pos: int) -> str:
        """The whitespace-delimited word with a word character nearest ``pos``."""
        best, best_d = "", None
        offset = 0
        for word in text.split():
            at = text.index(word, offset)
            offset = at + len(word)
            if not match_key(word):
                continue
            d = 0 if at <= pos < offset else min(abs(at - pos), abs(offset - 1 - pos))
            if best_d is None or d < best_d:
                best, best_d = word, d
        return normalize_single_word_selection(best)

    # -- preferred index --------------------------------------------------

    def _preferred_index(
        self,
        request: AnchorRequest,
        page: Optional[int],
        diag: AnchorDiagnostics,
    ) -> Optional[int]:
        if page is None:
            return None
        start, end = self.index.page_range(page)
        page_len = end - start
        if page_len <= 0:
            diag.notes.append(f"page {page} has no words")
            return None

        offset_pref = None
        if request.page_offset is not None:
            offset_pref = start + min(max(0, request.page_offset), page_len - 1)

        geo_pref = None
        if request.y_fraction is not None:
            geo_pref = self._geometry_index(page, start, end, request.y_fraction, request.x_fraction)

        if offset_pref is not None and geo_pref is not None:
            if abs(offset_pref - geo_pref) > page_len * self.config.geometry_override_ratio:
                diag.notes.append(
                    f"geometry index {geo_pref} overrides offset index {offset_pref}"
                )
                return geo_pref
            return offset_pref
        return offset_pref if offset_pref is not None else geo_pref

    def _geometry_index(
        self,
        page: int,
        start: int,
        end: int,
        y: float,
        x: Optional[float],
    ) -> int:
        """Nearest indexed line to the selection point, else a linear y-fraction."""
        y = min(1.0, max(0.0, y))
        spans = self.index.lines_on_page(page)
        if spans:
            def distance(span) -> float:
                d = abs(span.y_norm - y)
                if x is not None:
                    if x < span.x0_norm:
                        d += (span.x0_norm - x) * 0.5
                    elif x > span.x1_norm:
                        d += (x - span.x1_norm) * 0.5
                return d

            span = min(spans, key=distance)
            n_words = span.end_word - span.start_word
            if x is None or n_words <= 1 or span.x1_norm <= span.x0_norm:
                return span.start_word
            frac = (x - span.x0_norm) / (span.x1_norm - span.x0_norm)
            frac = min(1.0, max(0.0, frac))
            return span.start_word + int(round(frac * (n_words - 1)))
        return start + int(round(y * max(0, end - start - 1)))

    # -- stage 1 -----------------------------------------------------------

    def _probe_keys(self, request: AnchorRequest, sel_words: Sequence[str], key: str) -> List[str]:
        words = word_tokens(request.probe or "")
        if not words and len(sel_words) >= 2:
            words = list(sel_words)
        keys = [match_key(w) for w in words]
        # Trim so the probe starts at the selection token
        for i, k in enumerate(keys):
            if key_match_strength(k, key) != NO_MATCH:
                keys = keys[i:]
                break
        else:
            return []
        return [k for k in keys if k][: self.config.probe_max_tokens]

    def _probe_stage(
        self,
        probe: Sequence[str],
        page: Optional[int],
        preferred: Optional[int],
        diag: AnchorDiagnostics,
    ) -> Optional[int]:
        start, end = self.index.page_range(page) if page is not None else (0, len(self._keys))
        lo, hi = bisect_left(self._word_at, start), bisect_left(self._word_at, end)
        for length in range(len(probe), self.config.probe_min_tokens - 1, -1):
            seq = probe[:length]
            hits = [
                self._word_at[j]
                for j in range(lo, hi - length + 1)
                if all(key_match_strength(self._compact[j + k], seq[k]) != NO_MATCH for k in range(length))
            ]
            if not hits:
                continue
            diag.searches.append(
                SearchAttempt("probe", start, end, len(hits), f"{length} tokens")
            )
            if len(hits) == 1:
                return hits[0]
            if preferred is not None:
                return min(hits, key=lambda i: (abs(i - preferred), i))
            diag.notes.append(f"probe of {length} tokens matched {len(hits)} times")
            return None
        diag.searches.append(SearchAttempt("probe", start, end, 0, f"{len(probe)} tokens"))
        return None

    # -- candidates -------------------------------------------------------

    def _candidates(
        self,
        key: str,
        start: int,
        end: int,
        preferred: Optional[int],
    ) -> List[AnchorCandidate]:
        out: List[AnchorCandidate] = []
        for i in range(start, end):
            strength = key_match_strength(self._keys[i], key)
            if strength == NO_MATCH:
                continue
            dist = abs(i - preferred) if preferred is not None else None
            out.append(AnchorCandidate(i, self.index.tokens[i], dist, strength))
        return out

    def _context_keys(
        self,
        preferred: Optional[int],
        raw_text: str,
        selection_word: str,
        diag: AnchorDiagnostics,
    ) -> Tuple[List[str], List[str]]:
        """Left/right neighbour keys around the preferred index and in the raw text."""
        size = self.config.context_size
        left: List[str] = []
        right: List[str] = []
        if preferred is not None:
            left = [k for k in self._keys[max(0, preferred - size) : preferred] if k]
            right = [k for k in self._keys[preferred + 1 : preferred + 1 + size] if k]

        raw_keys = [match_key(w) for w in word_tokens(raw_text or "")]
        sel_key = match_key(selection_word)
        if sel_key in raw_keys:
            at = raw_keys.index(sel_key)
            left += [k for k in raw_keys[max(0, at - size) : at] if k and k not in left]
            right += [k for k in raw_keys[at + 1 : at + 1 + size] if k and k not in right]

        diag.context_keys = left + right
        return left, right

    def _context_score(
        self,
        cand: AnchorCandidate,
        context: Tuple[List[str], List[str]],
    ) -> Tuple[float, int]:
        """``(score, agreement)``; lower scores are better."""
        left, right = context
        size = self.config.context_size
        i = cand.index
        around_left = set(self._keys[max(0, i - size) : i])
        around_right = set(self._keys[i + 1 : i + 1 + size])
        agree = sum(1 for k in left if k in around_left) + sum(1 for k in right if k in around_right)
        disagree = len(left) + len(right) - agree
        score = (
            float(cand.distance or 0)
            - self.config.context_bonus * agree
            + self.config.context_penalty * disagree
        )
        return score, agree

    # -- choice -----------------------------------------------------------

    def _choose(
        self,
        cands: List[AnchorCandidate],
        ambiguous: bool,
        context: Tuple[List[str], List[str]],
        diag: AnchorDiagnostics,
    ) -> Optional[int]:
        """Nearest candidate, exact matches first; context-scored when ambiguous."""
        if not cands:
            return None
        diag.candidates.extend(cands)
        left, right = context
        if ambiguous and len(cands) > 1 and (left or right):
            scored = []
            for c in cands:
                c.context_score, agree = self._context_score(c, context)
                if agree > 0:
                    scored.append(c)
            if not scored:
                diag.notes.append("no candidate agrees with the selection context")
                return None
            return min(scored, key=lambda c: (c.context_score, c.index)).index
        return min(cands, key=lambda c: (-c.strength, c.distance or 0, c.index)).index

    def _choose_without_position(
        self,
        cands: List[AnchorCandidate],
        context: Tuple[List[str], List[str]],
        diag: AnchorDiagnostics,
    ) -> Optional[int]:
        """Accept only a unique candidate, or one singled out by context."""
        if not cands:
            return None
        diag.candidates.extend(cands)
        exact = [c for c in cands if c.strength == EXACT]
        pool = exact or cands
        if len(pool) == 1:
            return pool[0].index

        left, right = context
        if not (left or right):
            diag.notes.append(f"{len(pool)} candidates and no position or context")
            return None
        scored = []
        for c in pool:
            c.context_score, agree = self._context_score(c, context)
            if agree > 0:
                scored.append((agree, c))
        if not scored:
            return None
        best_agree = max(a for a, _ in scored)
        best = [c for a, c in scored if a == best_agree]
        if len(best) == 1:
            return best[0].index
        diag.notes.append(f"{len(best)} candidates share the best context agreement")
        return None
