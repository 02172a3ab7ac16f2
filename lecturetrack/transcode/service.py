"""Transcode job poller.

Drives the per-job state machine

    SUBMITTED -> PROCESSING -> {COMPLETE, FAILED}

by polling the job status endpoint and mirroring each observed status onto the
lecture's video fields in the catalog. Timeouts and unexpected errors end in
FAILED; the derived video URL is kept either way.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

import structlog

from lecturetrack.catalog import CourseCatalog, Lecture, VideoProcessingStatus
from lecturetrack.core.context import set_job_id

from .client import JobStatusClient
from .models import (
    JobObservation,
    JobStatusError,
    TranscodeFailedError,
    TranscodeTimeoutError,
)


logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_SECONDS = 5.0


class TranscodePoller:
    """Polls transcode jobs and writes their status into the catalog.

    Args:
        catalog: Catalog owning the lecture video fields.
        client: Job status client.
        max_attempts: Poll attempts before a job is declared timed out.
        interval_seconds: Sleep between attempts.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self,
        catalog: CourseCatalog,
        client: JobStatusClient,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.catalog = catalog
        self.client = client
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task[str | None]] = {}

    # ==========================================================================
    # Tracking
    # ==========================================================================

    async def track_job(
        self,
        course_id: str,
        lecture_id: str,
        job_id: str,
        provisional_video_url: str | None = None,
    ) -> str:
        """Poll a job to a terminal status and return the final video URL.

        Raises:
            TranscodeFailedError: The job reported FAILED.
            TranscodeTimeoutError: No terminal status within the attempt budget.
            NotFoundError: The course or lecture does not exist.
        """
        log = logger.bind(job_id=job_id, course_id=course_id, lecture_id=lecture_id)
        video_url = self.client.build_video_url(job_id)
        if provisional_video_url and provisional_video_url != video_url:
            log.debug(
                "provisional_video_url_replaced",
                provisional_video_url=provisional_video_url,
                video_url=video_url,
            )

        lecture = await self.catalog.update_lecture_video_status(
            course_id,
            lecture_id,
            status=VideoProcessingStatus.PROCESSING,
            video_url=video_url,
            job_id=job_id,
        )
        stored_status = lecture.processing_status
        if stored_status is not None and stored_status.is_terminal:
            # Another poller already finished this job
            return self._resolve_stored(lecture, job_id)

        log.info("transcode_tracking_started", max_attempts=self.max_attempts)

        try:
            observation = await self._poll(job_id, log)
        except asyncio.CancelledError:
            log.info("transcode_tracking_cancelled")
            raise
        except Exception:
            log.exception("transcode_tracking_error")
            await self._write_status(
                course_id, lecture_id, job_id, VideoProcessingStatus.FAILED, video_url
            )
            raise

        if observation is None:
            await self._write_status(
                course_id, lecture_id, job_id, VideoProcessingStatus.FAILED, video_url
            )
            log.warning("transcode_timed_out", attempts=self.max_attempts)
            raise TranscodeTimeoutError(job_id, self.max_attempts)

        stored = await self._write_status(
            course_id, lecture_id, job_id, observation.status, video_url
        )
        if stored.video_job_id != job_id:
            log.warning(
                "transcode_result_superseded",
                status=observation.status.value,
                current_job_id=stored.video_job_id,
            )

        if observation.status is VideoProcessingStatus.FAILED:
            log.warning("transcode_failed", message=observation.message)
            raise TranscodeFailedError(job_id, observation.message)

        log.info("transcode_completed", video_url=video_url)
        return video_url

    async def _poll(
        self, job_id: str, log: structlog.stdlib.BoundLogger
    ) -> JobObservation | None:
        """Poll until a terminal observation; ``None`` when the budget runs out."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                observation = await self.client.check_status(job_id)
            except JobStatusError as e:
                log.warning(
                    "transcode_poll_attempt_failed",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=e.message,
                )
            else:
                if observation.is_terminal:
                    log.info(
                        "transcode_terminal_status_observed",
                        attempt=attempt,
                        status=observation.status.value,
                    )
                    return observation
                log.debug(
                    "transcode_still_processing",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                )

            if attempt < self.max_attempts:
                await self._sleep(self.interval_seconds)

        return None

    async def _write_status(
        self,
        course_id: str,
        lecture_id: str,
        job_id: str,
        status: VideoProcessingStatus,
        video_url: str,
    ) -> Lecture:
        return await self.catalog.update_lecture_video_status(
            course_id,
            lecture_id,
            status=status,
            video_url=video_url,
            job_id=job_id,
        )

    def _resolve_stored(self, lecture: Lecture, job_id: str) -> str:
        status = lecture.processing_status
        logger.info(
            "transcode_already_terminal",
            job_id=job_id,
            lecture_id=lecture.id,
            status=status.value if status else None,
        )
        if status is VideoProcessingStatus.FAILED:
            raise TranscodeFailedError(job_id)
        return lecture.video_url or self.client.build_video_url(job_id)

    # ==========================================================================
    # Detached execution
    # ==========================================================================

    def is_tracking(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    @property
    def active_jobs(self) -> list[str]:
        return [job_id for job_id, task in self._tasks.items() if not task.done()]

    def start_tracking(
        self,
        course_id: str,
        lecture_id: str,
        job_id: str,
        provisional_video_url: str | None = None,
    ) -> asyncio.Task[str | None]:
        """Run :meth:`track_job` in the background, one task per job id.

        A second request for a job that is already tracked returns the
        existing task.
        """
        existing = self._tasks.get(job_id)
        if existing is not None and not existing.done():
            logger.debug("transcode_tracking_reused", job_id=job_id)
            return existing

        task = asyncio.create_task(
            self._run_tracked(course_id, lecture_id, job_id, provisional_video_url),
            name=f"transcode_poller:{job_id}",
        )
        self._tasks[job_id] = task
        task.add_done_callback(lambda done: self._forget(job_id, done))
        return task

    def _forget(self, job_id: str, task: asyncio.Task[str | None]) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]

    async def _run_tracked(
        self,
        course_id: str,
        lecture_id: str,
        job_id: str,
        provisional_video_url: str | None,
    ) -> str | None:
        set_job_id(job_id)
        try:
            return await self.track_job(
                course_id, lecture_id, job_id, provisional_video_url
            )
        except TranscodeFailedError as e:
            logger.warning(
                "transcode_background_job_failed",
                job_id=job_id,
                code=e.code,
                error=e.message,
            )
        except Exception:
            logger.exception("transcode_background_job_error", job_id=job_id)
        return None

    async def shutdown(self) -> None:
        """Cancel all in-flight tracking tasks."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()
        logger.info("transcode_poller_stopped", cancelled=len(tasks))
