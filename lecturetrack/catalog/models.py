"""Course catalog entities.

A course is one document in the ``courses`` collection, keyed by course id,
with its lectures embedded as an ordered list. Each lecture carries the video
fields written by the transcode poller.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from lecturetrack.utils import ensure_utc_aware, parse_timestamp


COURSES_COLLECTION = "courses"


class VideoProcessingStatus(str, Enum):
    """Transcode status mirrored onto a lecture."""

    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not VideoProcessingStatus.PROCESSING


class Lecture:
    """One video unit within a course; the smallest unit of progress.

    Attributes:
        id: Lecture identifier, unique within the course
        title: Lecture title
        video_duration: Authoritative duration in minutes
        order_index: Position within the course
        video_url: Playback URL (HLS master playlist)
        video_processing_status: Last observed transcode status, if any
        video_job_id: Transcode job that produced ``video_url``
        video_uploaded_at: First time a video was attached
        video_processed_at: Time a terminal transcode status was written
    """

    def __init__(
        self,
        id: str,
        title: str = "",
        video_duration: float = 0,
        order_index: int = 0,
        video_url: str | None = None,
        video_processing_status: str | None = None,
        video_job_id: str | None = None,
        video_uploaded_at: datetime | None = None,
        video_processed_at: datetime | None = None,
    ):
        self.id = id
        self.title = title
        self.video_duration = video_duration
        self.order_index = order_index
        self.video_url = video_url
        self.video_processing_status = video_processing_status
        self.video_job_id = video_job_id
        self.video_uploaded_at = ensure_utc_aware(video_uploaded_at)
        self.video_processed_at = ensure_utc_aware(video_processed_at)

    @property
    def duration_seconds(self) -> float:
        """Duration converted from catalog minutes."""
        return float(self.video_duration or 0) * 60

    @property
    def processing_status(self) -> VideoProcessingStatus | None:
        if not self.video_processing_status:
            return None
        return VideoProcessingStatus(self.video_processing_status)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Lecture":
        """Create Lecture instance from an embedded lecture document."""
        return cls(
            id=doc["id"],
            title=doc.get("title") or "",
            video_duration=doc.get("video_duration") or 0,
            order_index=doc.get("order_index") or 0,
            video_url=doc.get("video_url"),
            video_processing_status=doc.get("video_processing_status"),
            video_job_id=doc.get("video_job_id"),
            video_uploaded_at=parse_timestamp(doc.get("video_uploaded_at")),
            video_processed_at=parse_timestamp(doc.get("video_processed_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "video_duration": self.video_duration,
            "order_index": self.order_index,
            "video_url": self.video_url,
            "video_processing_status": self.video_processing_status,
            "video_job_id": self.video_job_id,
            "video_uploaded_at": self.video_uploaded_at,
            "video_processed_at": self.video_processed_at,
        }

    def __repr__(self) -> str:
        return f"<Lecture {self.id} #{self.order_index} ({self.video_duration} min)>"


class Course:
    """Course entity with its embedded, ordered lectures.

    Attributes:
        id: Course identifier
        title: Course title
        thumbnail_url: Cover image URL
        instructor_name: Display name of the instructor
        lectures: Lectures in stored order
        updated_at: Last catalog write
    """

    def __init__(
        self,
        id: str,
        title: str = "",
        thumbnail_url: str | None = None,
        instructor_name: str | None = None,
        lectures: list[Lecture] | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self.title = title
        self.thumbnail_url = thumbnail_url
        self.instructor_name = instructor_name
        self.lectures = lectures or []
        self.updated_at = ensure_utc_aware(updated_at) or datetime.now(UTC)

    @property
    def total_lectures(self) -> int:
        return len(self.lectures)

    def ordered_lectures(self) -> list[Lecture]:
        """Lectures sorted by ``order_index`` (stable for ties)."""
        return sorted(self.lectures, key=lambda lecture: lecture.order_index)

    def get_lecture(self, lecture_id: str) -> Lecture | None:
        for lecture in self.lectures:
            if lecture.id == lecture_id:
                return lecture
        return None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Course":
        """Create Course instance from a ``courses`` document."""
        return cls(
            id=doc["id"],
            title=doc.get("title") or "",
            thumbnail_url=doc.get("thumbnail_url"),
            instructor_name=doc.get("instructor_name"),
            lectures=[Lecture.from_document(item) for item in doc.get("lectures") or []],
            updated_at=parse_timestamp(doc.get("updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "thumbnail_url": self.thumbnail_url,
            "instructor_name": self.instructor_name,
            "lectures": [lecture.to_dict() for lecture in self.lectures],
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.title} ({self.total_lectures} lectures)>"
