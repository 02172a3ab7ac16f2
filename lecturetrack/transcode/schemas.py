"""Pydantic schemas for transcode tracking and playback."""

from pydantic import BaseModel, Field

from lecturetrack.catalog import VideoProcessingStatus

from .playback import PlaybackDecision, PlaybackState


class TrackJobRequest(BaseModel):
    """Start tracking a transcode job submitted by the upload path."""

    course_id: str = Field(..., min_length=1, description="Course id")
    lecture_id: str = Field(..., min_length=1, description="Lecture id")
    job_id: str = Field(..., min_length=1, description="Transcode job id")
    video_url: str | None = Field(
        default=None, description="Provisional URL from the upload response"
    )


class TrackJobResponse(BaseModel):
    """Accepted job; status is PROCESSING until the poller finishes."""

    course_id: str
    lecture_id: str
    job_id: str
    status: VideoProcessingStatus
    video_url: str
    already_tracking: bool = False


class PlaybackResponse(BaseModel):
    """Playback state of one lecture."""

    course_id: str
    lecture_id: str
    state: PlaybackState
    playable: bool
    video_url: str | None = None
    job_id: str | None = None
    processing_status: VideoProcessingStatus | None = None
    message: str | None = None

    @classmethod
    def from_decision(cls, decision: PlaybackDecision) -> "PlaybackResponse":
        """Create response from a playback decision."""
        return cls(
            course_id=decision.course_id,
            lecture_id=decision.lecture_id,
            state=decision.state,
            playable=decision.is_playable,
            video_url=decision.video_url,
            job_id=decision.job_id,
            processing_status=decision.processing_status,
            message=decision.message,
        )
