"""Learning progress entities.

Two collections:
- user_lecture_progress: watch state per (user, course, lecture)
- user_course_progress: derived rollup per (user, course)

Document ids are deterministic composites of the identity fields, so every
write is an idempotent upsert.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from lecturetrack.utils import ensure_utc_aware, parse_timestamp


LECTURE_PROGRESS_COLLECTION = "user_lecture_progress"
COURSE_PROGRESS_COLLECTION = "user_course_progress"

# Fields kept in the store's lookup table, per collection
PROGRESS_INDEXED_FIELDS: dict[str, tuple[str, ...]] = {
    LECTURE_PROGRESS_COLLECTION: ("user_id", "course_id"),
    COURSE_PROGRESS_COLLECTION: ("user_id",),
}


class CourseProgressStatus(str, Enum):
    """Course progress status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ==============================================================================
# Helper Functions
# ==============================================================================


def lecture_progress_key(user_id: str, course_id: str, lecture_id: str) -> str:
    return f"{user_id}_{course_id}_{lecture_id}"


def course_progress_key(user_id: str, course_id: str) -> str:
    return f"{user_id}_{course_id}"


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def completion_percentage(completed: int, total: int) -> int:
    """Whole-number completion percentage, 0 for a course with no lectures."""
    if total <= 0:
        return 0
    return min(100, round_half_up(Decimal(100) * completed / total))


def derive_status(completed_count: int, percentage: int) -> CourseProgressStatus:
    if percentage == 100:
        return CourseProgressStatus.COMPLETED
    if completed_count > 0 or percentage > 0:
        return CourseProgressStatus.IN_PROGRESS
    return CourseProgressStatus.NOT_STARTED


# ==============================================================================
# Entity Classes
# ==============================================================================


class LectureProgress:
    """Watch state of one lecture for one user.

    Attributes:
        user_id: User identifier
        course_id: Course identifier
        lecture_id: Lecture identifier
        watched_duration_seconds: Furthest stored position, clamped to duration
        is_completed: Whether the lecture counts as watched
        last_watched_at: Last write timestamp
    """

    def __init__(
        self,
        user_id: str,
        course_id: str,
        lecture_id: str,
        watched_duration_seconds: float = 0,
        is_completed: bool = False,
        last_watched_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.lecture_id = lecture_id
        self.watched_duration_seconds = watched_duration_seconds
        self.is_completed = is_completed
        self.last_watched_at = ensure_utc_aware(last_watched_at)

    @property
    def key(self) -> str:
        return lecture_progress_key(self.user_id, self.course_id, self.lecture_id)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "LectureProgress":
        """Create LectureProgress instance from a stored document."""
        return cls(
            user_id=doc["user_id"],
            course_id=doc["course_id"],
            lecture_id=doc["lecture_id"],
            watched_duration_seconds=doc.get("watched_duration_seconds") or 0,
            is_completed=bool(doc.get("is_completed")),
            last_watched_at=parse_timestamp(doc.get("last_watched_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "lecture_id": self.lecture_id,
            "watched_duration_seconds": self.watched_duration_seconds,
            "is_completed": self.is_completed,
            "last_watched_at": self.last_watched_at,
        }

    def __repr__(self) -> str:
        done = "completed" if self.is_completed else "watching"
        return (
            f"<LectureProgress user={self.user_id} lecture={self.lecture_id} "
            f"{self.watched_duration_seconds}s {done}>"
        )


class CourseProgress:
    """Per-course rollup for a user, always recomputed from lecture rows.

    Attributes:
        user_id: User identifier
        course_id: Course identifier
        completed_lectures_count: Completed lectures still in the catalog
        total_lectures: Catalog lecture count at recompute time
        completion_percentage: Whole percentage (0-100), rounded half-up
        status: not_started, in_progress or completed
        last_accessed_lecture_id: Last lecture touched, for resume
        last_played_timestamp_seconds: Position in that lecture
        last_accessed_at: Last progress write or recompute
        started_at: Set once, the first time any lecture is completed
        completed_at: Set once, the first time the course reaches 100%
    """

    def __init__(
        self,
        user_id: str,
        course_id: str,
        completed_lectures_count: int = 0,
        total_lectures: int = 0,
        completion_percentage: int = 0,
        status: str = CourseProgressStatus.NOT_STARTED.value,
        last_accessed_lecture_id: str | None = None,
        last_played_timestamp_seconds: float = 0,
        last_accessed_at: datetime | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.completed_lectures_count = completed_lectures_count
        self.total_lectures = total_lectures
        self.completion_percentage = completion_percentage
        self.status = status
        self.last_accessed_lecture_id = last_accessed_lecture_id
        self.last_played_timestamp_seconds = last_played_timestamp_seconds
        self.last_accessed_at = ensure_utc_aware(last_accessed_at) or datetime.now(UTC)
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)

    @property
    def key(self) -> str:
        return course_progress_key(self.user_id, self.course_id)

    @property
    def is_completed(self) -> bool:
        return self.status == CourseProgressStatus.COMPLETED.value

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "CourseProgress":
        """Create CourseProgress instance from a stored document."""
        return cls(
            user_id=doc["user_id"],
            course_id=doc["course_id"],
            completed_lectures_count=doc.get("completed_lectures_count") or 0,
            total_lectures=doc.get("total_lectures") or 0,
            completion_percentage=doc.get("completion_percentage") or 0,
            status=doc.get("status") or CourseProgressStatus.NOT_STARTED.value,
            last_accessed_lecture_id=doc.get("last_accessed_lecture_id"),
            last_played_timestamp_seconds=doc.get("last_played_timestamp_seconds")
            or 0,
            last_accessed_at=parse_timestamp(doc.get("last_accessed_at")),
            started_at=parse_timestamp(doc.get("started_at")),
            completed_at=parse_timestamp(doc.get("completed_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "completed_lectures_count": self.completed_lectures_count,
            "total_lectures": self.total_lectures,
            "completion_percentage": self.completion_percentage,
            "status": self.status,
            "last_accessed_lecture_id": self.last_accessed_lecture_id,
            "last_played_timestamp_seconds": self.last_played_timestamp_seconds,
            "last_accessed_at": self.last_accessed_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }

    def __repr__(self) -> str:
        return (
            f"<CourseProgress user={self.user_id} course={self.course_id} "
            f"{self.status} {self.completion_percentage}%>"
        )
