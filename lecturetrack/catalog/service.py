"""Course catalog service.

Resolves course ids to ordered lecture descriptors for the progress core and
owns the per-lecture video fields written by the transcode poller.
"""

import asyncio
from collections import defaultdict
from datetime import UTC, datetime

import structlog

from lecturetrack.core.database import DocumentStore
from lecturetrack.core.exceptions import NotFoundError

from .cache import CourseCache
from .models import COURSES_COLLECTION, Course, Lecture, VideoProcessingStatus


logger = structlog.get_logger(__name__)


class CourseNotFoundError(NotFoundError):
    """Course does not exist in the catalog."""

    def __init__(self, course_id: str):
        super().__init__(f"Course {course_id} not found")
        self.course_id = course_id


class LectureNotFoundError(NotFoundError):
    """Lecture does not exist in the course."""

    def __init__(self, course_id: str, lecture_id: str):
        super().__init__(f"Lecture {lecture_id} not found in course {course_id}")
        self.course_id = course_id
        self.lecture_id = lecture_id


class CourseCatalog:
    """Read access to courses plus the lecture video-field write path."""

    def __init__(self, store: DocumentStore, cache: CourseCache | None = None):
        self.store = store
        self.cache = cache if cache is not None else CourseCache()
        self._course_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_course(self, course_id: str) -> Course | None:
        """Get a course, served from the cache when fresh.

        A miss fills the cache only if no write invalidated the course while
        the store read was in flight.
        """
        found, doc = self.cache.get(course_id)
        if not found:
            generation = self.cache.generation(course_id)
            doc = await self.store.get(COURSES_COLLECTION, course_id)
            if not self.cache.set(course_id, doc, generation=generation):
                logger.debug("course_cache_fill_skipped", course_id=course_id)
        return Course.from_document(doc) if doc else None

    async def require_course(self, course_id: str) -> Course:
        """Get a course or raise :class:`CourseNotFoundError`."""
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)
        return course

    async def get_lecture(self, course_id: str, lecture_id: str) -> Lecture:
        """Get one lecture or raise when the course or lecture is absent."""
        course = await self.require_course(course_id)
        lecture = course.get_lecture(lecture_id)
        if lecture is None:
            raise LectureNotFoundError(course_id, lecture_id)
        return lecture

    async def list_lectures(self, course_id: str) -> list[Lecture]:
        """Lectures of a course ordered by ``order_index``."""
        course = await self.require_course(course_id)
        return course.ordered_lectures()

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def save_course(self, course: Course) -> Course:
        """Replace the course document and invalidate its cache entry."""
        async with self._course_locks[course.id]:
            course.updated_at = datetime.now(UTC)
            await self.store.upsert(
                COURSES_COLLECTION, course.id, course.to_dict(), merge=False
            )
            self.cache.invalidate(course.id)

        logger.info(
            "course_saved",
            course_id=course.id,
            total_lectures=course.total_lectures,
        )
        return course

    async def update_lecture_video_status(
        self,
        course_id: str,
        lecture_id: str,
        *,
        status: VideoProcessingStatus,
        video_url: str,
        job_id: str,
    ) -> Lecture:
        """Write transcode state into a lecture's video fields.

        A ``PROCESSING`` write claims the lecture for ``job_id`` but never
        replaces a terminal status recorded for the same job. A terminal write
        for a job that is no longer the lecture's current job is dropped. In
        both cases the stored lecture is returned unchanged.

        Raises:
            CourseNotFoundError: If the course does not exist.
            LectureNotFoundError: If the lecture is not in the course.
        """
        async with self._course_locks[course_id]:
            # Read-modify-write always starts from the store, never the cache
            doc = await self.store.get(COURSES_COLLECTION, course_id)
            if doc is None:
                raise CourseNotFoundError(course_id)
            course = Course.from_document(doc)
            lecture = course.get_lecture(lecture_id)
            if lecture is None:
                raise LectureNotFoundError(course_id, lecture_id)

            current = lecture.processing_status
            if (
                status is VideoProcessingStatus.PROCESSING
                and lecture.video_job_id == job_id
                and current is not None
                and current.is_terminal
            ):
                logger.info(
                    "lecture_video_status_kept",
                    course_id=course_id,
                    lecture_id=lecture_id,
                    job_id=job_id,
                    status=current.value,
                )
                return lecture

            # A re-upload moved the lecture to a newer job
            if (
                status.is_terminal
                and lecture.video_job_id is not None
                and lecture.video_job_id != job_id
            ):
                logger.info(
                    "lecture_video_status_superseded",
                    course_id=course_id,
                    lecture_id=lecture_id,
                    job_id=job_id,
                    current_job_id=lecture.video_job_id,
                    status=status.value,
                )
                return lecture

            now = datetime.now(UTC)
            lecture.video_url = video_url
            lecture.video_processing_status = status.value
            lecture.video_job_id = job_id
            if lecture.video_uploaded_at is None:
                lecture.video_uploaded_at = now
            if status.is_terminal:
                lecture.video_processed_at = now

            await self.store.upsert(
                COURSES_COLLECTION,
                course_id,
                {
                    "lectures": [item.to_dict() for item in course.lectures],
                    "updated_at": now,
                },
            )
            self.cache.invalidate(course_id)

        logger.info(
            "lecture_video_status_updated",
            course_id=course_id,
            lecture_id=lecture_id,
            job_id=job_id,
            status=status.value,
        )
        return lecture
