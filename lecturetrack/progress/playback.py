"""Player-side progress reporting.

Turns the player's position callbacks into progress writes:
- periodic writes during playback, throttled by time and distance moved
- an unconditional write on pause, navigation away or unmount
- an explicit completion write when playback ends
"""

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from lecturetrack.core.exceptions import LectureTrackError, StoreUnavailableError

from .schemas import LectureProgressUpdate
from .service import LectureProgressStore, ProgressUpdateResult


if TYPE_CHECKING:
    from lecturetrack.config.settings import Settings

logger = structlog.get_logger(__name__)


class PlaybackProgressReporter:
    """Reports one learner's playback of one lecture.

    Periodic write failures are dropped; the next tick or the final save
    carries the position. Final saves retry once and return ``None`` when
    they still fail.
    """

    def __init__(
        self,
        progress_store: LectureProgressStore,
        user_id: str,
        course_id: str,
        lecture_id: str,
        sync_interval_seconds: float = 10.0,
        min_delta_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.progress_store = progress_store
        self.user_id = user_id
        self.course_id = course_id
        self.lecture_id = lecture_id
        self.sync_interval_seconds = sync_interval_seconds
        self.min_delta_seconds = min_delta_seconds
        self._clock = clock
        self._last_sent_at: float | None = None
        self._last_sent_position: float | None = None

    @classmethod
    def from_settings(
        cls,
        progress_store: LectureProgressStore,
        settings: "Settings",
        user_id: str,
        course_id: str,
        lecture_id: str,
    ) -> "PlaybackProgressReporter":
        """Reporter using the configured sync cadence."""
        return cls(
            progress_store,
            user_id,
            course_id,
            lecture_id,
            sync_interval_seconds=settings.progress_sync_interval_seconds,
            min_delta_seconds=settings.progress_sync_min_delta_seconds,
        )

    @property
    def last_sent_position(self) -> float | None:
        return self._last_sent_position

    async def resume_position(self) -> float:
        """Stored position to seek to when the player opens."""
        progress = await self.progress_store.get(
            self.user_id, self.course_id, self.lecture_id
        )
        self._last_sent_position = progress.watched_duration_seconds
        return progress.watched_duration_seconds

    def _payload(self, position_seconds: float, is_completed: bool) -> LectureProgressUpdate:
        return LectureProgressUpdate(
            course_id=self.course_id,
            lecture_id=self.lecture_id,
            watched_duration_seconds=position_seconds,
            is_completed=is_completed,
        )

    def _mark_sent(self, position_seconds: float) -> None:
        self._last_sent_at = self._clock()
        self._last_sent_position = position_seconds

    def should_sync(self, position_seconds: float) -> bool:
        """Whether a periodic tick at this position warrants a write."""
        now = self._clock()
        if (
            self._last_sent_at is not None
            and now - self._last_sent_at < self.sync_interval_seconds
        ):
            return False
        if self._last_sent_position is None:
            return True
        return abs(position_seconds - self._last_sent_position) >= self.min_delta_seconds

    async def on_position(self, position_seconds: float) -> bool:
        """Periodic tick during active playback. Returns True if written."""
        if not self.should_sync(position_seconds):
            return False

        try:
            await self.progress_store.update(
                self.user_id, self._payload(position_seconds, False)
            )
        except LectureTrackError as e:
            logger.debug(
                "periodic_progress_write_dropped",
                course_id=self.course_id,
                lecture_id=self.lecture_id,
                position_seconds=position_seconds,
                error=e.message,
            )
            return False

        self._mark_sent(position_seconds)
        return True

    async def save(
        self, position_seconds: float, is_completed: bool = False
    ) -> ProgressUpdateResult | None:
        """Unconditional write on pause, navigation away or unmount."""
        payload = self._payload(position_seconds, is_completed)
        for attempt in (1, 2):
            try:
                result = await self.progress_store.update(self.user_id, payload)
            except StoreUnavailableError as e:
                if attempt == 1:
                    logger.debug(
                        "progress_save_retrying",
                        course_id=self.course_id,
                        lecture_id=self.lecture_id,
                        error=e.message,
                    )
                    continue
                logger.warning(
                    "progress_save_failed",
                    course_id=self.course_id,
                    lecture_id=self.lecture_id,
                    position_seconds=position_seconds,
                    error=e.message,
                )
                return None
            except LectureTrackError as e:
                logger.warning(
                    "progress_save_failed",
                    course_id=self.course_id,
                    lecture_id=self.lecture_id,
                    position_seconds=position_seconds,
                    error=e.message,
                    code=e.code,
                )
                return None

            self._mark_sent(position_seconds)
            return result

        return None

    async def on_pause(self, position_seconds: float) -> ProgressUpdateResult | None:
        return await self.save(position_seconds)

    async def on_ended(self, duration_seconds: float) -> ProgressUpdateResult | None:
        """Playback reached the end; the lecture is explicitly completed."""
        return await self.save(duration_seconds, is_completed=True)
