"""In-process cache of course documents with TTL and LRU eviction."""

import copy
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any


class CourseCache:
    """TTL + LRU cache keyed by course id.

    Holds raw course documents; callers build entities from the returned copy
    so cached state is never mutated in place. Writers must call
    :meth:`invalidate` after persisting a course.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        max_size: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, dict[str, Any] | None]] = (
            OrderedDict()
        )
        self.hits = 0
        self.misses = 0
        self._generations: dict[str, int] = {}
        self._epoch = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, course_id: str) -> bool:
        entry = self._entries.get(course_id)
        return entry is not None and entry[0] > self._clock()

    def get(self, course_id: str) -> tuple[bool, dict[str, Any] | None]:
        """Return ``(found, document)``.

        A cached ``None`` records a course known to be missing.
        """
        entry = self._entries.get(course_id)
        if entry is None:
            self.misses += 1
            return False, None

        expires_at, doc = entry
        if expires_at <= self._clock():
            del self._entries[course_id]
            self.misses += 1
            return False, None

        self._entries.move_to_end(course_id)
        self.hits += 1
        return True, copy.deepcopy(doc)

    def generation(self, course_id: str) -> tuple[int, int]:
        """Token that changes whenever ``course_id`` is invalidated.

        Read it before loading a document from the store and pass it to
        :meth:`set`, so a fill that raced with a write is discarded.
        """
        return self._epoch, self._generations.get(course_id, 0)

    def set(
        self,
        course_id: str,
        doc: dict[str, Any] | None,
        generation: tuple[int, int] | None = None,
    ) -> bool:
        """Cache a document. Returns False when the fill was skipped."""
        if self.max_size <= 0:
            return False
        if generation is not None and generation != self.generation(course_id):
            return False
        self._entries[course_id] = (self._clock() + self.ttl_seconds, copy.deepcopy(doc))
        self._entries.move_to_end(course_id)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
        return True

    def invalidate(self, course_id: str) -> None:
        self._entries.pop(course_id, None)
        self._generations[course_id] = self._generations.get(course_id, 0) + 1

    def clear(self) -> None:
        self._entries.clear()
        self._epoch += 1
