"""Playback gating on a lecture's transcode status.

- PROCESSING: not playable, the player shows a waiting state
- FAILED: not playable, the player offers a retry upload
- COMPLETE, or no transcode metadata at all: playable

A URL alone never makes a lecture playable while its job is processing.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from lecturetrack.catalog import CourseCatalog, Lecture, VideoProcessingStatus

from .service import TranscodePoller


logger = structlog.get_logger(__name__)


class PlaybackState(str, Enum):
    """What the player should show for a lecture."""

    PLAYABLE = "playable"
    WAITING = "waiting"
    ERROR = "error"


@dataclass(frozen=True)
class PlaybackDecision:
    """Playback state plus the fields the player needs to act on it."""

    course_id: str
    lecture_id: str
    state: PlaybackState
    video_url: str | None = None
    job_id: str | None = None
    processing_status: VideoProcessingStatus | None = None
    message: str | None = None

    @property
    def is_playable(self) -> bool:
        return self.state is PlaybackState.PLAYABLE


def decide_playback(course_id: str, lecture: Lecture) -> PlaybackDecision:
    status = lecture.processing_status

    if status is VideoProcessingStatus.PROCESSING:
        state = PlaybackState.WAITING
        message = "Video is still processing"
    elif status is VideoProcessingStatus.FAILED:
        state = PlaybackState.ERROR
        message = "Video processing failed, please upload it again"
    else:
        state = PlaybackState.PLAYABLE
        message = None

    return PlaybackDecision(
        course_id=course_id,
        lecture_id=lecture.id,
        state=state,
        video_url=lecture.video_url,
        job_id=lecture.video_job_id,
        processing_status=status,
        message=message,
    )


class LecturePlaybackGate:
    """Resolves playback state and resumes tracking of processing jobs."""

    def __init__(self, catalog: CourseCatalog, poller: TranscodePoller):
        self.catalog = catalog
        self.poller = poller

    async def open_lecture(self, course_id: str, lecture_id: str) -> PlaybackDecision:
        """Playback state for a lecture about to be opened.

        A lecture still processing gets its job tracked (idempotently), so a
        job whose upload-side poller died still converges.

        Raises:
            CourseNotFoundError: If the course does not exist.
            LectureNotFoundError: If the lecture is not in the course.
        """
        lecture = await self.catalog.get_lecture(course_id, lecture_id)
        decision = decide_playback(course_id, lecture)

        if decision.state is PlaybackState.WAITING and decision.job_id:
            self.poller.start_tracking(
                course_id, lecture_id, decision.job_id, decision.video_url
            )

        logger.debug(
            "lecture_playback_resolved",
            course_id=course_id,
            lecture_id=lecture_id,
            state=decision.state.value,
            job_id=decision.job_id,
        )
        return decision
