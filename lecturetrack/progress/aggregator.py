"""Course progress aggregation.

The per-(user, course) rollup is a materialized view over the user's lecture
progress rows and the catalog's lecture list. It is never edited by hand:
every change goes through :meth:`CourseProgressAggregator.recompute`.
"""

import asyncio
from collections import defaultdict
from datetime import UTC, datetime

import structlog

from lecturetrack.catalog import Course, CourseCatalog
from lecturetrack.core.database import DocumentStore

from .models import (
    COURSE_PROGRESS_COLLECTION,
    LECTURE_PROGRESS_COLLECTION,
    CourseProgress,
    CourseProgressStatus,
    LectureProgress,
    completion_percentage,
    course_progress_key,
    derive_status,
)
from .schemas import CourseProgressSummary


logger = structlog.get_logger(__name__)


class CourseProgressAggregator:
    """Recomputes and serves per-course progress rollups."""

    def __init__(self, store: DocumentStore, catalog: CourseCatalog):
        self.store = store
        self.catalog = catalog
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ==========================================================================
    # Recompute
    # ==========================================================================

    async def recompute(self, user_id: str, course_id: str) -> CourseProgress:
        """Re-derive the course rollup from all lecture progress rows.

        Only derived fields are written; ``started_at`` and ``completed_at``
        are set once and never cleared.

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        course = await self.catalog.require_course(course_id)
        key = course_progress_key(user_id, course_id)

        async with self._locks[key]:
            docs = await self.store.query(
                LECTURE_PROGRESS_COLLECTION,
                {"user_id": user_id, "course_id": course_id},
            )
            lecture_ids = {lecture.id for lecture in course.lectures}
            completed = sum(
                1
                for progress in map(LectureProgress.from_document, docs)
                if progress.is_completed and progress.lecture_id in lecture_ids
            )
            total = course.total_lectures
            percentage = completion_percentage(completed, total)
            status = derive_status(completed, percentage)

            existing = await self.store.get(COURSE_PROGRESS_COLLECTION, key)
            current = CourseProgress.from_document(existing) if existing else None

            now = datetime.now(UTC)
            update = {
                "user_id": user_id,
                "course_id": course_id,
                "completed_lectures_count": completed,
                "total_lectures": total,
                "completion_percentage": percentage,
                "status": status.value,
                "last_accessed_at": now,
            }
            if completed > 0 and (current is None or current.started_at is None):
                update["started_at"] = now
            if status is CourseProgressStatus.COMPLETED and (
                current is None or current.completed_at is None
            ):
                update["completed_at"] = now

            stored = await self.store.upsert(COURSE_PROGRESS_COLLECTION, key, update)

        progress = CourseProgress.from_document(stored)
        logger.info(
            "course_progress_recomputed",
            user_id=user_id,
            course_id=course_id,
            completed_lectures=completed,
            total_lectures=total,
            completion_percentage=percentage,
            status=status.value,
        )
        if "completed_at" in update:
            logger.info("course_completed", user_id=user_id, course_id=course_id)

        return progress

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def _get_or_create(self, user_id: str, course: Course) -> CourseProgress:
        key = course_progress_key(user_id, course.id)
        async with self._locks[key]:
            doc = await self.store.get(COURSE_PROGRESS_COLLECTION, key)
            if doc is not None:
                return CourseProgress.from_document(doc)

            progress = CourseProgress(
                user_id=user_id,
                course_id=course.id,
                total_lectures=course.total_lectures,
            )
            await self.store.upsert(COURSE_PROGRESS_COLLECTION, key, progress.to_dict())

        logger.info("course_progress_created", user_id=user_id, course_id=course.id)
        return progress

    async def get_course_progress(
        self, user_id: str, course_id: str
    ) -> CourseProgress | None:
        """Get course progress, creating it on first read.

        Returns ``None`` when the course does not exist.
        """
        doc = await self.store.get(
            COURSE_PROGRESS_COLLECTION, course_progress_key(user_id, course_id)
        )
        if doc is not None:
            return CourseProgress.from_document(doc)

        course = await self.catalog.get_course(course_id)
        if course is None:
            return None
        return await self._get_or_create(user_id, course)

    async def initialize_course_progress(
        self, user_id: str, course_id: str
    ) -> CourseProgress:
        """Create the progress row on enrollment (no-op if it exists).

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        course = await self.catalog.require_course(course_id)
        return await self._get_or_create(user_id, course)

    async def get_my_learnings(self, user_id: str) -> list[CourseProgressSummary]:
        """All courses the user has progress in, most recently accessed first.

        Rows whose course no longer exists are dropped.
        """
        docs = await self.store.query(COURSE_PROGRESS_COLLECTION, {"user_id": user_id})
        progresses = [CourseProgress.from_document(doc) for doc in docs]
        courses = await asyncio.gather(
            *(self.catalog.get_course(progress.course_id) for progress in progresses)
        )

        summaries = [
            CourseProgressSummary.from_entities(progress, course)
            for progress, course in zip(progresses, courses, strict=True)
            if course is not None
        ]
        dropped = len(progresses) - len(summaries)
        if dropped:
            logger.debug(
                "my_learnings_missing_courses_dropped",
                user_id=user_id,
                dropped=dropped,
            )

        summaries.sort(key=lambda summary: summary.last_accessed_at, reverse=True)
        return summaries

    async def get_next_lecture_id(
        self, course_id: str, current_lecture_id: str
    ) -> str | None:
        """Id of the lecture after ``current_lecture_id`` by order index.

        ``None`` when the current lecture is last or unknown, or the course
        does not exist.
        """
        course = await self.catalog.get_course(course_id)
        if course is None:
            return None

        ordered = course.ordered_lectures()
        for index, lecture in enumerate(ordered):
            if lecture.id == current_lecture_id:
                if index + 1 < len(ordered):
                    return ordered[index + 1].id
                return None
        return None
