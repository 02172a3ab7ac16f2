"""Lecture progress store.

Business logic for:
- Reading per-lecture watch state (defaults when never watched)
- Clamped, idempotent progress writes with threshold auto-completion
- Triggering the course rollup recompute on every write
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from lecturetrack.catalog import CourseCatalog
from lecturetrack.core.database import DocumentStore

from .aggregator import CourseProgressAggregator
from .models import (
    COURSE_PROGRESS_COLLECTION,
    LECTURE_PROGRESS_COLLECTION,
    CourseProgress,
    LectureProgress,
    course_progress_key,
    lecture_progress_key,
)
from .schemas import LectureProgressUpdate


logger = structlog.get_logger(__name__)

# Fraction of a lecture that counts as watched
DEFAULT_COMPLETION_THRESHOLD = 0.9


@dataclass
class ProgressUpdateResult:
    """Stored lecture progress and the course rollup recomputed after it."""

    lecture: LectureProgress
    course: CourseProgress


class LectureProgressStore:
    """Durable watch state per (user, course, lecture)."""

    def __init__(
        self,
        store: DocumentStore,
        catalog: CourseCatalog,
        aggregator: CourseProgressAggregator,
        completion_threshold: float = DEFAULT_COMPLETION_THRESHOLD,
    ):
        self.store = store
        self.catalog = catalog
        self.aggregator = aggregator
        self.completion_threshold = completion_threshold

    async def get(
        self, user_id: str, course_id: str, lecture_id: str
    ) -> LectureProgress:
        """Get lecture progress; a never-watched lecture reads as zero."""
        doc = await self.store.get(
            LECTURE_PROGRESS_COLLECTION,
            lecture_progress_key(user_id, course_id, lecture_id),
        )
        if doc is None:
            return LectureProgress(
                user_id=user_id, course_id=course_id, lecture_id=lecture_id
            )
        return LectureProgress.from_document(doc)

    async def update(
        self, user_id: str, payload: LectureProgressUpdate
    ) -> ProgressUpdateResult:
        """Record a playback position and recompute the course rollup.

        The position is clamped to ``[0, duration]`` using the catalog
        duration; reaching the completion threshold marks the lecture
        completed even without an explicit flag.

        Raises:
            CourseNotFoundError: If the course does not exist.
            LectureNotFoundError: If the lecture is not in the course.
            StoreUnavailableError: If the document store fails.
        """
        course_id = payload.course_id
        lecture_id = payload.lecture_id

        lecture = await self.catalog.get_lecture(course_id, lecture_id)
        duration = lecture.duration_seconds

        watched = min(max(payload.watched_duration_seconds, 0.0), duration)
        should_be_completed = payload.is_completed or (
            watched >= self.completion_threshold * duration
        )

        now = datetime.now(UTC)
        progress = LectureProgress(
            user_id=user_id,
            course_id=course_id,
            lecture_id=lecture_id,
            watched_duration_seconds=watched,
            is_completed=should_be_completed,
            last_watched_at=now,
        )
        await self.store.upsert(
            LECTURE_PROGRESS_COLLECTION, progress.key, progress.to_dict()
        )

        # Resume position goes in before recompute so the rollup keeps it
        await self.store.upsert(
            COURSE_PROGRESS_COLLECTION,
            course_progress_key(user_id, course_id),
            {
                "user_id": user_id,
                "course_id": course_id,
                "last_accessed_lecture_id": lecture_id,
                "last_played_timestamp_seconds": watched,
                "last_accessed_at": now,
            },
        )

        logger.info(
            "lecture_progress_updated",
            user_id=user_id,
            course_id=course_id,
            lecture_id=lecture_id,
            watched_seconds=watched,
            duration_seconds=duration,
            is_completed=should_be_completed,
            clamped=watched != payload.watched_duration_seconds,
        )

        course_progress = await self.aggregator.recompute(user_id, course_id)
        return ProgressUpdateResult(lecture=progress, course=course_progress)
