"""Transcode job observations and errors."""

from dataclasses import dataclass

from lecturetrack.catalog import VideoProcessingStatus
from lecturetrack.core.exceptions import LectureTrackError


@dataclass(frozen=True)
class JobObservation:
    """One status reading of a transcode job."""

    job_id: str
    status: VideoProcessingStatus
    video_url: str
    message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class JobStatusError(LectureTrackError):
    """A status request failed or returned an unreadable body.

    Counts as one failed poll attempt; never surfaces past the poller.
    """

    def __init__(self, message: str):
        super().__init__(message, "job_status_unavailable")


class TranscodeFailedError(LectureTrackError):
    """Transcoding ended in FAILED; the lecture is marked FAILED."""

    def __init__(
        self,
        job_id: str,
        message: str | None = None,
        code: str = "transcode_failed",
    ):
        super().__init__(message or "Video processing failed", code)
        self.job_id = job_id


class TranscodeTimeoutError(TranscodeFailedError):
    """The poll budget ran out before the job reached a terminal status."""

    def __init__(self, job_id: str, attempts: int):
        super().__init__(
            job_id,
            f"Processing timeout after {attempts} polling attempts",
            code="transcode_timeout",
        )
        self.attempts = attempts
