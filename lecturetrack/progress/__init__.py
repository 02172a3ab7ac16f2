"""Learning progress module.

Provides:
- Lecture progress store with threshold auto-completion
- Course progress aggregation (recompute from lecture rows)
- Player-side progress reporting
"""

from .aggregator import CourseProgressAggregator
from .models import (
    PROGRESS_INDEXED_FIELDS,
    CourseProgress,
    CourseProgressStatus,
    LectureProgress,
)
from .playback import PlaybackProgressReporter
from .service import LectureProgressStore, ProgressUpdateResult


__all__ = [
    "PROGRESS_INDEXED_FIELDS",
    "CourseProgress",
    "CourseProgressAggregator",
    "CourseProgressStatus",
    "LectureProgress",
    "LectureProgressStore",
    "PlaybackProgressReporter",
    "ProgressUpdateResult",
]
