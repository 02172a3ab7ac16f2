"""Learning progress API endpoints.

Provides routes for:
- Lecture progress writes from the player
- Course progress and resume position
- My Learnings and next-lecture navigation
- Enrollment initialization
"""

from fastapi import APIRouter, HTTPException, status

from lecturetrack.core.dependencies import CurrentUserId
from lecturetrack.core.exceptions import LectureTrackError

from .dependencies import (
    ProgressAggregatorDep,
    ProgressStoreDep,
    handle_progress_error,
)
from .schemas import (
    CourseProgressResponse,
    LectureProgressResponse,
    LectureProgressUpdate,
    MyLearningsResponse,
    NextLectureResponse,
    ProgressUpdateResponse,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.put(
    "/lecture",
    response_model=ProgressUpdateResponse,
    summary="Update lecture progress",
)
async def update_lecture_progress(
    data: LectureProgressUpdate,
    progress_store: ProgressStoreDep,
    user_id: CurrentUserId,
) -> ProgressUpdateResponse:
    """Record a playback position and return the recomputed course rollup.

    Sent by the player every ~10 seconds during playback and on pause.
    Lectures auto-complete at 90% watched.
    """
    try:
        result = await progress_store.update(user_id, data)
    except LectureTrackError as e:
        raise handle_progress_error(e) from e

    return ProgressUpdateResponse(
        lecture=LectureProgressResponse.from_entity(result.lecture),
        course=CourseProgressResponse.from_entity(result.course),
    )


@router.get(
    "/courses/{course_id}/lectures/{lecture_id}",
    response_model=LectureProgressResponse,
    summary="Get lecture progress",
)
async def get_lecture_progress(
    course_id: str,
    lecture_id: str,
    progress_store: ProgressStoreDep,
    user_id: CurrentUserId,
) -> LectureProgressResponse:
    """Watch state for the resume prompt; zero when never watched."""
    try:
        progress = await progress_store.get(user_id, course_id, lecture_id)
    except LectureTrackError as e:
        raise handle_progress_error(e) from e

    return LectureProgressResponse.from_entity(progress)


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: str,
    aggregator: ProgressAggregatorDep,
    user_id: CurrentUserId,
) -> CourseProgressResponse:
    """Course rollup, created on first read."""
    try:
        progress = await aggregator.get_course_progress(user_id, course_id)
    except LectureTrackError as e:
        raise handle_progress_error(e) from e

    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Course {course_id} not found",
        )
    return CourseProgressResponse.from_entity(progress)


@router.post(
    "/courses/{course_id}/enroll",
    response_model=CourseProgressResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initialize course progress",
)
async def enroll(
    course_id: str,
    aggregator: ProgressAggregatorDep,
    user_id: CurrentUserId,
) -> CourseProgressResponse:
    """Create the progress row on enrollment. Safe to repeat."""
    try:
        progress = await aggregator.initialize_course_progress(user_id, course_id)
    except LectureTrackError as e:
        raise handle_progress_error(e) from e

    return CourseProgressResponse.from_entity(progress)


@router.get(
    "/courses/{course_id}/lectures/{lecture_id}/next",
    response_model=NextLectureResponse,
    summary="Get next lecture",
)
async def get_next_lecture(
    course_id: str,
    lecture_id: str,
    aggregator: ProgressAggregatorDep,
    user_id: CurrentUserId,
) -> NextLectureResponse:
    """Next lecture by order index, null after the last one."""
    try:
        next_id = await aggregator.get_next_lecture_id(course_id, lecture_id)
    except LectureTrackError as e:
        raise handle_progress_error(e) from e

    return NextLectureResponse(
        course_id=course_id,
        current_lecture_id=lecture_id,
        next_lecture_id=next_id,
    )


@router.get(
    "/my-learnings",
    response_model=MyLearningsResponse,
    summary="List my learnings",
)
async def my_learnings(
    aggregator: ProgressAggregatorDep,
    user_id: CurrentUserId,
) -> MyLearningsResponse:
    """Every course the user has progress in, most recent first."""
    try:
        items = await aggregator.get_my_learnings(user_id)
    except LectureTrackError as e:
        raise handle_progress_error(e) from e

    return MyLearningsResponse(items=items, total=len(items))
