"""FastAPI dependencies for progress tracking.

Provides dependency injection for:
- Lecture progress store and course progress aggregator
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from lecturetrack.core.exceptions import LectureTrackError

from .aggregator import CourseProgressAggregator
from .service import LectureProgressStore


async def get_progress_store(request: Request) -> LectureProgressStore:
    """Get lecture progress store from app state."""
    progress_store = getattr(request.app.state, "progress_store", None)
    if progress_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return progress_store


async def get_progress_aggregator(request: Request) -> CourseProgressAggregator:
    """Get course progress aggregator from app state."""
    aggregator = getattr(request.app.state, "progress_aggregator", None)
    if aggregator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return aggregator


# Type aliases for dependency injection
ProgressStoreDep = Annotated[LectureProgressStore, Depends(get_progress_store)]
ProgressAggregatorDep = Annotated[
    CourseProgressAggregator, Depends(get_progress_aggregator)
]


def handle_progress_error(error: LectureTrackError) -> HTTPException:
    """Convert domain errors to HTTP exceptions."""
    status_map = {
        "not_found": status.HTTP_404_NOT_FOUND,
        "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
