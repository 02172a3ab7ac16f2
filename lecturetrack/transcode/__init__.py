"""Video transcode tracking module.

Provides:
- Job status client for the external transcoding pipeline
- Background poller mirroring job status onto lecture video fields
- Playback gating on transcode status
"""

from .client import JobStatusClient
from .models import (
    JobObservation,
    JobStatusError,
    TranscodeFailedError,
    TranscodeTimeoutError,
)
from .playback import LecturePlaybackGate, PlaybackDecision, PlaybackState
from .service import TranscodePoller


__all__ = [
    "JobObservation",
    "JobStatusClient",
    "JobStatusError",
    "LecturePlaybackGate",
    "PlaybackDecision",
    "PlaybackState",
    "TranscodeFailedError",
    "TranscodePoller",
    "TranscodeTimeoutError",
]
