"""
In-process cache of Narrative Indexes with single-flight builds.

Entries are keyed by ``(path, mtime, size, max_pages)`` and the cache
keeps at most one entry per path: a changed file (or page limit)
replaces the stale entry on the next request.  Past ``max_entries``
paths the least recently used entry is evicted.  Concurrent requests for
the same key share one in-progress build; a failed build is never
cached and its error reaches every waiter.
"""

import logging
import os
import threading
from collections import OrderedDict
from concurrent.futures import Future
from typing import Callable, Dict, NamedTuple, Optional

from narrative.errors import DocumentUnavailableError
from narrative.index.models import NarrativeIndex

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    path: str
    mtime: float
    size: int
    max_pages: int


def cache_key_for(path: str, max_pages: int = 200) -> CacheKey:
    """
    Build the cache key of a document from its file metadata.

    Raises:
        DocumentUnavailableError: If the file cannot be stat-ed.
    """
    try:
        st = os.stat(path)
    except OSError as e:
        raise DocumentUnavailableError(path, str(e)) from e
    return CacheKey(os.path.abspath(path), st.st_mtime, st.st_size, max_pages)


class NarrativeCache:
    """
    Thread-safe, single-flight LRU cache of built indexes.

    Args:
        max_entries: Most documents kept at once.

    Example::

        cache = NarrativeCache()
        key = cache_key_for("paper.pdf")
        index = cache.get_or_build(key, lambda: pipeline.build_from_pdf("paper.pdf").index)
    """

    def __init__(self, max_entries: int = 16):
        self.max_entries = max(1, max_entries)
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Future[NarrativeIndex]]" = OrderedDict()
        self._keys: Dict[str, CacheKey] = {}
        self.builds = 0

    def get_or_build(
        self,
        key: CacheKey,
        builder: Callable[[], NarrativeIndex],
    ) -> NarrativeIndex:
        """
        Return the cached index for ``key``, building it at most once.

        Args:
            key:     Document key from :func:`cache_key_for`.
            builder: Zero-argument callable producing the index.

        Returns:
            The (possibly shared) :class:`NarrativeIndex`.

        Raises:
            Whatever ``builder`` raised, in every caller waiting on
            that build.
        """
        with self._lock:
            future = self._entries.get(key.path)
            if future is not None and self._keys.get(key.path) == key:
                self._entries.move_to_end(key.path)
                owner = False
            else:
                if future is not None:
                    logger.debug("Cache key changed for %s, rebuilding", key.path)
                future = Future()
                self._entries[key.path] = future
                self._keys[key.path] = key
                self._entries.move_to_end(key.path)
                self._evict()
                owner = True

        if not owner:
            return future.result()

        try:
            index = builder()
        except BaseException as e:
            with self._lock:
                if self._entries.get(key.path) is future:
                    del self._entries[key.path]
                    del self._keys[key.path]
            future.set_exception(e)
            raise

        with self._lock:
            self.builds += 1
        future.set_result(index)
        logger.debug("Cached narrative index for %s", key.path)
        return index

    def _evict(self):
        while len(self._entries) > self.max_entries:
            oldest, _ = self._entries.popitem(last=False)
            del self._keys[oldest]
            logger.debug("Evicted narrative index for %s", oldest)

    def peek(self, key: CacheKey) -> Optional[NarrativeIndex]:
        """The finished index for ``key``, or ``None`` without building."""
        with self._lock:
            future = self._entries.get(key.path)
            if future is None or self._keys.get(key.path) != key:
                return None
        if not future.done() or future.exception() is not None:
            return None
        return future.result()

    def invalidate(self, path: str):
        with self._lock:
            for p in {path, os.path.abspath(path)}:
                self._entries.pop(p, None)
                self._keys.pop(p, None)

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._keys.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
