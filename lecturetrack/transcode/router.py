"""Transcode tracking API endpoints.

Provides routes for:
- Registering an uploaded video's transcode job for background polling
- Resolving a lecture's playback state
"""

from fastapi import APIRouter, status

from lecturetrack.catalog import VideoProcessingStatus
from lecturetrack.core.dependencies import CurrentUserId
from lecturetrack.core.exceptions import LectureTrackError

from .dependencies import (
    CatalogDep,
    PlaybackGateDep,
    TranscodePollerDep,
    handle_transcode_error,
)
from .schemas import PlaybackResponse, TrackJobRequest, TrackJobResponse


router = APIRouter(prefix="/v1/transcode", tags=["transcode"])


@router.post(
    "/jobs",
    response_model=TrackJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Track a transcode job",
)
async def track_job(
    data: TrackJobRequest,
    catalog: CatalogDep,
    poller: TranscodePollerDep,
    user_id: CurrentUserId,
) -> TrackJobResponse:
    """Start polling a job in the background.

    Returns immediately; the lecture reads PROCESSING until the job ends.
    Repeated calls for the same job share one poller.
    """
    try:
        await catalog.get_lecture(data.course_id, data.lecture_id)
    except LectureTrackError as e:
        raise handle_transcode_error(e) from e

    already_tracking = poller.is_tracking(data.job_id)
    poller.start_tracking(data.course_id, data.lecture_id, data.job_id, data.video_url)

    return TrackJobResponse(
        course_id=data.course_id,
        lecture_id=data.lecture_id,
        job_id=data.job_id,
        status=VideoProcessingStatus.PROCESSING,
        video_url=poller.client.build_video_url(data.job_id),
        already_tracking=already_tracking,
    )


@router.get(
    "/courses/{course_id}/lectures/{lecture_id}/playback",
    response_model=PlaybackResponse,
    summary="Get lecture playback state",
)
async def get_playback(
    course_id: str,
    lecture_id: str,
    gate: PlaybackGateDep,
    user_id: CurrentUserId,
) -> PlaybackResponse:
    """Whether the lecture can play; resumes tracking if still processing."""
    try:
        decision = await gate.open_lecture(course_id, lecture_id)
    except LectureTrackError as e:
        raise handle_transcode_error(e) from e

    return PlaybackResponse.from_decision(decision)
