"""Tests for the course catalog service."""

import asyncio

import pytest

from lecturetrack.catalog import (
    CourseCache,
    CourseCatalog,
    CourseNotFoundError,
    LectureNotFoundError,
    VideoProcessingStatus,
)
from lecturetrack.catalog.models import COURSES_COLLECTION
from lecturetrack.core.database import InMemoryDocumentStore


class SlowReadStore(InMemoryDocumentStore):
    """Store whose next ``get`` holds its result until released."""

    def __init__(self):
        super().__init__()
        self.hold_next_read = False
        self.read_held = asyncio.Event()
        self.release = asyncio.Event()

    async def get(self, collection, doc_id):
        doc = await super().get(collection, doc_id)
        if self.hold_next_read:
            self.hold_next_read = False
            self.read_held.set()
            await self.release.wait()
        return doc


class TestCatalogReads:
    @pytest.mark.asyncio
    async def test_get_course(self, catalog: CourseCatalog, course):
        loaded = await catalog.get_course(course.id)

        assert loaded.id == course.id
        assert loaded.total_lectures == 2
        assert loaded.instructor_name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_missing_course(self, catalog: CourseCatalog):
        assert await catalog.get_course("nope") is None
        with pytest.raises(CourseNotFoundError):
            await catalog.require_course("nope")

    @pytest.mark.asyncio
    async def test_missing_lecture(self, catalog: CourseCatalog, course):
        with pytest.raises(LectureNotFoundError) as exc_info:
            await catalog.get_lecture(course.id, "lec-99")

        assert exc_info.value.code == "not_found"

    @pytest.mark.asyncio
    async def test_lectures_are_ordered(self, catalog: CourseCatalog, make_course):
        course = make_course(count=3)
        course.lectures[0].order_index = 3
        course.lectures[2].order_index = 1
        await catalog.save_course(course)

        lectures = await catalog.list_lectures(course.id)

        assert [lecture.id for lecture in lectures] == ["lec-3", "lec-2", "lec-1"]

    @pytest.mark.asyncio
    async def test_duration_is_converted_to_seconds(self, catalog, course):
        lecture = await catalog.get_lecture(course.id, "lec-1")

        assert lecture.duration_seconds == 600

    @pytest.mark.asyncio
    async def test_reads_are_served_from_cache(self, catalog, store, course):
        await catalog.get_course(course.id)
        # Bypass the catalog so only a cache miss would notice
        await store.upsert(COURSES_COLLECTION, course.id, {"title": "Changed"})

        cached = await catalog.get_course(course.id)

        assert cached.title == course.title

    @pytest.mark.asyncio
    async def test_save_invalidates_cache(self, catalog, course):
        await catalog.get_course(course.id)
        course.title = "Renamed"
        await catalog.save_course(course)

        assert (await catalog.get_course(course.id)).title == "Renamed"


class TestLectureVideoStatus:
    @pytest.mark.asyncio
    async def test_processing_then_complete(self, catalog: CourseCatalog, course):
        processing = await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.PROCESSING,
            video_url="https://media.test/hls/job-1/master.m3u8",
            job_id="job-1",
        )
        assert processing.video_uploaded_at is not None
        assert processing.video_processed_at is None

        complete = await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.COMPLETE,
            video_url="https://media.test/hls/job-1/master.m3u8",
            job_id="job-1",
        )

        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is VideoProcessingStatus.COMPLETE
        assert lecture.video_url == "https://media.test/hls/job-1/master.m3u8"
        assert lecture.video_job_id == "job-1"
        assert lecture.video_uploaded_at == processing.video_uploaded_at
        assert lecture.video_processed_at == complete.video_processed_at

    @pytest.mark.asyncio
    async def test_other_lectures_are_untouched(self, catalog, course):
        await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.PROCESSING,
            video_url="u",
            job_id="job-1",
        )

        other = await catalog.get_lecture(course.id, "lec-2")
        assert other.video_processing_status is None
        assert other.video_url is None

    @pytest.mark.asyncio
    async def test_processing_does_not_replace_terminal_status(
        self, catalog, course
    ):
        for status in (VideoProcessingStatus.COMPLETE, VideoProcessingStatus.PROCESSING):
            await catalog.update_lecture_video_status(
                course.id, "lec-1", status=status, video_url="u", job_id="job-1"
            )

        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is VideoProcessingStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_new_job_restarts_processing(self, catalog, course):
        await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.FAILED,
            video_url="u1",
            job_id="job-1",
        )
        await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.PROCESSING,
            video_url="u2",
            job_id="job-2",
        )

        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is VideoProcessingStatus.PROCESSING
        assert lecture.video_job_id == "job-2"

    @pytest.mark.asyncio
    async def test_status_write_invalidates_cache(self, catalog, course):
        await catalog.get_course(course.id)

        await catalog.update_lecture_video_status(
            course.id,
            "lec-2",
            status=VideoProcessingStatus.COMPLETE,
            video_url="u",
            job_id="job-9",
        )

        lecture = await catalog.get_lecture(course.id, "lec-2")
        assert lecture.processing_status is VideoProcessingStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_unknown_lecture(self, catalog, course):
        with pytest.raises(LectureNotFoundError):
            await catalog.update_lecture_video_status(
                course.id,
                "lec-99",
                status=VideoProcessingStatus.PROCESSING,
                video_url="u",
                job_id="job-1",
            )

    @pytest.mark.asyncio
    async def test_terminal_write_for_replaced_job_is_dropped(self, catalog, course):
        await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.PROCESSING,
            video_url="url-a",
            job_id="job-a",
        )
        await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.PROCESSING,
            video_url="url-b",
            job_id="job-b",
        )

        returned = await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.COMPLETE,
            video_url="url-a",
            job_id="job-a",
        )

        assert returned.video_job_id == "job-b"
        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.video_job_id == "job-b"
        assert lecture.video_url == "url-b"
        assert lecture.processing_status is VideoProcessingStatus.PROCESSING
        assert lecture.video_processed_at is None


class TestCacheConsistency:
    @pytest.mark.asyncio
    async def test_read_racing_a_status_write_does_not_cache_stale_course(
        self, make_course
    ):
        store = SlowReadStore()
        catalog = CourseCatalog(store, CourseCache(ttl_seconds=60, max_size=100))
        course = await catalog.save_course(make_course())
        await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.PROCESSING,
            video_url="u",
            job_id="job-1",
        )

        store.hold_next_read = True
        reader = asyncio.create_task(catalog.get_course(course.id))
        await store.read_held.wait()

        await catalog.update_lecture_video_status(
            course.id,
            "lec-1",
            status=VideoProcessingStatus.COMPLETE,
            video_url="u",
            job_id="job-1",
        )
        store.release.set()
        stale = await reader

        # The in-flight read may return what it loaded, but must not cache it
        assert stale.get_lecture("lec-1").processing_status is (
            VideoProcessingStatus.PROCESSING
        )
        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is VideoProcessingStatus.COMPLETE
