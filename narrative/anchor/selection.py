"""
Selection capture state.

:class:`SelectionCache` remembers the latest non-empty selection so a
command issued after the viewer dropped its highlight still knows what
was selected.  :class:`LastKnownTarget` remembers which document was
active a moment ago, for commands fired after focus moved away.
Both take an injectable clock and are passed around explicitly.
"""

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Generic, Optional, TypeVar

from .models import SelectionSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

ESCAPE_EVENT = "escape"


class SelectionCache:
    """
    Latest-wins store of selection snapshots.

    * ``capture`` of a non-empty snapshot supersedes the previous one;
    * ``capture`` of an empty snapshot only clears :meth:`live`;
    * an Escape event (or :meth:`clear`) forgets everything.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[SelectionSnapshot] = None
        self._live: Optional[SelectionSnapshot] = None

    def capture(self, snapshot: SelectionSnapshot) -> bool:
        """
        Record one selection event.

        Returns:
            ``True`` when the snapshot replaced the cached selection.
        """
        if snapshot.event_type == ESCAPE_EVENT:
            self.clear()
            return False
        with self._lock:
            if snapshot.is_empty:
                self._live = None
                return False
            if snapshot.captured_at is None:
                snapshot = replace(snapshot, captured_at=self._clock())
            self._cached = snapshot
            self._live = snapshot
        logger.debug("Captured selection %r on page %s", snapshot.text[:40], snapshot.page)
        return True

    def live(self) -> Optional[SelectionSnapshot]:
        """The selection as of the most recent event, never a stale one."""
        with self._lock:
            return self._live

    def cached(self, max_age: Optional[float] = None) -> Optional[SelectionSnapshot]:
        """The last non-empty selection, if younger than ``max_age`` seconds."""
        with self._lock:
            snap = self._cached
        if snap is None:
            return None
        if max_age is not None and self.age(snap) > max_age:
            return None
        return snap

    def age(self, snapshot: SelectionSnapshot) -> float:
        if snapshot.captured_at is None:
            return 0.0
        return max(0.0, self._clock() - snapshot.captured_at)

    def clear(self):
        with self._lock:
            self._cached = None
            self._live = None


class LastKnownTarget(Generic[T]):
    """
    Short-lived memo of the most recently active target.

    Args:
        expiry: Seconds a remembered target stays valid.
        clock:  Time source (monotonic seconds).
    """

    def __init__(self, expiry: float = 4.0, clock: Callable[[], float] = time.monotonic):
        self.expiry = expiry
        self._clock = clock
        self._target: Optional[T] = None
        self._at = 0.0

    def remember(self, target: T):
        self._target = target
        self._at = self._clock()

    def get(self) -> Optional[T]:
        if self._target is None:
            return None
        if self._clock() - self._at >= self.expiry:
            return None
        return self._target

    def resolve(self, active: Optional[T]) -> Optional[T]:
        """Prefer the currently active target, refreshing the memo."""
        if active is not None:
            self.remember(active)
            return active
        return self.get()

    def clear(self):
        self._target = None
