"""FastAPI dependencies for transcode tracking."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from lecturetrack.catalog import CourseCatalog
from lecturetrack.core.exceptions import LectureTrackError

from .playback import LecturePlaybackGate
from .service import TranscodePoller


async def get_catalog(request: Request) -> CourseCatalog:
    """Get course catalog from app state."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog not available",
        )
    return catalog


async def get_transcode_poller(request: Request) -> TranscodePoller:
    """Get transcode poller from app state."""
    poller = getattr(request.app.state, "transcode_poller", None)
    if poller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Transcode tracking not available",
        )
    return poller


async def get_playback_gate(request: Request) -> LecturePlaybackGate:
    """Get playback gate from app state."""
    gate = getattr(request.app.state, "playback_gate", None)
    if gate is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Playback service not available",
        )
    return gate


# Type aliases for dependency injection
CatalogDep = Annotated[CourseCatalog, Depends(get_catalog)]
TranscodePollerDep = Annotated[TranscodePoller, Depends(get_transcode_poller)]
PlaybackGateDep = Annotated[LecturePlaybackGate, Depends(get_playback_gate)]


def handle_transcode_error(error: LectureTrackError) -> HTTPException:
    """Convert domain errors to HTTP exceptions."""
    status_map = {
        "not_found": status.HTTP_404_NOT_FOUND,
        "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
        "transcode_failed": status.HTTP_502_BAD_GATEWAY,
        "transcode_timeout": status.HTTP_504_GATEWAY_TIMEOUT,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
