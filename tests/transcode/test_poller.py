"""Tests for the transcode job poller."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from lecturetrack.catalog import LectureNotFoundError, VideoProcessingStatus
from lecturetrack.transcode import (
    JobObservation,
    JobStatusError,
    TranscodeFailedError,
    TranscodePoller,
    TranscodeTimeoutError,
)


PROCESSING = VideoProcessingStatus.PROCESSING
COMPLETE = VideoProcessingStatus.COMPLETE
FAILED = VideoProcessingStatus.FAILED


def video_url(job_id: str) -> str:
    return f"https://media.test/hls/{job_id}/master.m3u8"


def observed(status: VideoProcessingStatus, job_id: str = "job-1", message=None):
    return JobObservation(
        job_id=job_id, status=status, video_url=video_url(job_id), message=message
    )


@pytest.fixture
def mock_client():
    client = Mock()
    client.build_video_url = Mock(side_effect=video_url)
    client.check_status = AsyncMock()
    return client


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def poller(catalog, mock_client, sleep) -> TranscodePoller:
    return TranscodePoller(
        catalog, mock_client, max_attempts=5, interval_seconds=2, sleep=sleep
    )


class TestTrackJob:
    @pytest.mark.asyncio
    async def test_processing_then_complete(
        self, poller, mock_client, sleep, catalog, course
    ):
        mock_client.check_status.side_effect = [
            observed(PROCESSING),
            observed(PROCESSING),
            observed(PROCESSING),
            observed(COMPLETE),
        ]

        url = await poller.track_job(course.id, "lec-1", "job-1")

        assert url == video_url("job-1")
        assert mock_client.check_status.await_count == 4
        assert sleep.await_count == 3
        sleep.assert_awaited_with(2)
        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is COMPLETE
        assert lecture.video_url == video_url("job-1")
        assert lecture.video_processed_at is not None

    @pytest.mark.asyncio
    async def test_budget_exhausted_marks_failed(
        self, catalog, mock_client, sleep, course
    ):
        poller = TranscodePoller(catalog, mock_client, max_attempts=3, sleep=sleep)
        mock_client.check_status.return_value = observed(PROCESSING)

        with pytest.raises(TranscodeTimeoutError) as exc_info:
            await poller.track_job(course.id, "lec-1", "job-1")

        assert exc_info.value.code == "transcode_timeout"
        assert exc_info.value.message == "Processing timeout after 3 polling attempts"
        assert mock_client.check_status.await_count == 3
        assert sleep.await_count == 2
        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is FAILED
        assert lecture.video_url == video_url("job-1")

    @pytest.mark.asyncio
    async def test_failed_job(self, poller, mock_client, catalog, course):
        mock_client.check_status.return_value = observed(FAILED, message="bad codec")

        with pytest.raises(TranscodeFailedError) as exc_info:
            await poller.track_job(course.id, "lec-1", "job-1")

        assert exc_info.value.message == "bad codec"
        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is FAILED

    @pytest.mark.asyncio
    async def test_status_errors_count_as_attempts(
        self, poller, mock_client, catalog, course
    ):
        mock_client.check_status.side_effect = [
            JobStatusError("timeout"),
            JobStatusError("502"),
            observed(COMPLETE),
        ]

        url = await poller.track_job(course.id, "lec-1", "job-1")

        assert url == video_url("job-1")
        assert mock_client.check_status.await_count == 3

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_failed(
        self, poller, mock_client, catalog, course
    ):
        mock_client.check_status.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await poller.track_job(course.id, "lec-1", "job-1")

        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is FAILED

    @pytest.mark.asyncio
    async def test_provisional_url_is_replaced(
        self, poller, mock_client, catalog, course
    ):
        mock_client.check_status.return_value = observed(COMPLETE)

        url = await poller.track_job(
            course.id, "lec-1", "job-1", provisional_video_url="blob:local-preview"
        )

        assert url == video_url("job-1")

    @pytest.mark.asyncio
    async def test_finished_job_is_not_reopened(
        self, poller, mock_client, catalog, course
    ):
        await catalog.update_lecture_video_status(
            course.id, "lec-1", status=COMPLETE, video_url=video_url("job-1"), job_id="job-1"
        )

        url = await poller.track_job(course.id, "lec-1", "job-1")

        assert url == video_url("job-1")
        mock_client.check_status.assert_not_awaited()
        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is COMPLETE

    @pytest.mark.asyncio
    async def test_failed_job_is_not_reopened(self, poller, mock_client, catalog, course):
        await catalog.update_lecture_video_status(
            course.id, "lec-1", status=FAILED, video_url=video_url("job-1"), job_id="job-1"
        )

        with pytest.raises(TranscodeFailedError):
            await poller.track_job(course.id, "lec-1", "job-1")

        mock_client.check_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_lecture(self, poller, mock_client, course):
        with pytest.raises(LectureNotFoundError):
            await poller.track_job(course.id, "lec-99", "job-1")

        mock_client.check_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_late_result_for_replaced_upload_is_ignored(
        self, poller, mock_client, catalog, course
    ):
        first_polling = asyncio.Event()
        release_first = asyncio.Event()

        async def check_status(job_id):
            if job_id == "job-A":
                first_polling.set()
                await release_first.wait()
            return observed(COMPLETE, job_id)

        mock_client.check_status.side_effect = check_status

        first = asyncio.create_task(poller.track_job(course.id, "lec-1", "job-A"))
        await first_polling.wait()

        # Re-upload while the first job is still being polled
        assert await poller.track_job(course.id, "lec-1", "job-B") == video_url("job-B")

        release_first.set()
        await first

        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.video_job_id == "job-B"
        assert lecture.video_url == video_url("job-B")
        assert lecture.processing_status is COMPLETE

    def test_max_attempts_must_be_positive(self, catalog, mock_client):
        with pytest.raises(ValueError):
            TranscodePoller(catalog, mock_client, max_attempts=0)


class TestBackgroundTracking:
    @pytest.mark.asyncio
    async def test_one_task_per_job(self, poller, mock_client, catalog, course):
        release = asyncio.Event()

        async def wait_then_complete(job_id):
            await release.wait()
            return observed(COMPLETE, job_id)

        mock_client.check_status.side_effect = wait_then_complete

        first = poller.start_tracking(course.id, "lec-1", "job-1")
        second = poller.start_tracking(course.id, "lec-1", "job-1")

        assert first is second
        assert poller.is_tracking("job-1")
        assert poller.active_jobs == ["job-1"]

        release.set()
        assert await first == video_url("job-1")
        assert not poller.is_tracking("job-1")

    @pytest.mark.asyncio
    async def test_background_failure_is_logged_not_raised(
        self, poller, mock_client, catalog, course
    ):
        mock_client.check_status.return_value = observed(FAILED)

        task = poller.start_tracking(course.id, "lec-1", "job-1")

        assert await task is None
        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is FAILED

    @pytest.mark.asyncio
    async def test_shutdown_cancels_and_leaves_processing(
        self, poller, mock_client, catalog, course
    ):
        started = asyncio.Event()

        async def never_finishes(job_id):
            started.set()
            await asyncio.Event().wait()

        mock_client.check_status.side_effect = never_finishes

        task = poller.start_tracking(course.id, "lec-1", "job-1")
        await started.wait()

        await poller.shutdown()

        assert task.cancelled()
        assert poller.active_jobs == []
        lecture = await catalog.get_lecture(course.id, "lec-1")
        assert lecture.processing_status is PROCESSING
