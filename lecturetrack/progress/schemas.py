"""Pydantic schemas for learning progress.

Request and response models for:
- Lecture progress writes and reads
- Course progress rollups and resume position
- My Learnings summaries
"""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .models import CourseProgress, CourseProgressStatus, LectureProgress


if TYPE_CHECKING:
    from lecturetrack.catalog import Course


# ==============================================================================
# Lecture Progress Schemas
# ==============================================================================


class LectureProgressUpdate(BaseModel):
    """Progress write sent by the player (periodic or on pause)."""

    course_id: str = Field(..., min_length=1, description="Course id")
    lecture_id: str = Field(..., min_length=1, description="Lecture id")
    watched_duration_seconds: float = Field(
        ..., description="Playback position; clamped to the lecture duration"
    )
    is_completed: bool = Field(
        default=False, description="Explicit completion (e.g. playback ended)"
    )


class LectureProgressResponse(BaseModel):
    """Lecture watch state."""

    model_config = ConfigDict(from_attributes=True)

    lecture_id: str
    watched_duration_seconds: float = 0
    is_completed: bool = False
    last_watched_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: LectureProgress) -> "LectureProgressResponse":
        """Create response from entity."""
        return cls(
            lecture_id=entity.lecture_id,
            watched_duration_seconds=entity.watched_duration_seconds,
            is_completed=entity.is_completed,
            last_watched_at=entity.last_watched_at,
        )


# ==============================================================================
# Course Progress Schemas
# ==============================================================================


class CourseProgressResponse(BaseModel):
    """Course rollup with the resume position."""

    model_config = ConfigDict(from_attributes=True)

    course_id: str
    completion_percentage: int = Field(ge=0, le=100)
    status: CourseProgressStatus
    completed_lectures_count: int
    total_lectures: int
    last_accessed_lecture_id: str | None = None
    last_played_timestamp_seconds: float = 0
    last_accessed_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: CourseProgress) -> "CourseProgressResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            completion_percentage=entity.completion_percentage,
            status=CourseProgressStatus(entity.status),
            completed_lectures_count=entity.completed_lectures_count,
            total_lectures=entity.total_lectures,
            last_accessed_lecture_id=entity.last_accessed_lecture_id,
            last_played_timestamp_seconds=entity.last_played_timestamp_seconds,
            last_accessed_at=entity.last_accessed_at,
            started_at=entity.started_at,
            completed_at=entity.completed_at,
        )


class ProgressUpdateResponse(BaseModel):
    """Result of a lecture progress write and the recomputed rollup."""

    lecture: LectureProgressResponse
    course: CourseProgressResponse


class NextLectureResponse(BaseModel):
    """Next lecture in course order, ``None`` after the last one."""

    course_id: str
    current_lecture_id: str
    next_lecture_id: str | None = None


# ==============================================================================
# My Learnings Schemas
# ==============================================================================


class CourseProgressSummary(BaseModel):
    """Course progress joined with course display fields."""

    course_id: str
    course_title: str
    thumbnail_url: str | None = None
    instructor_name: str | None = None
    completion_percentage: int
    status: CourseProgressStatus
    completed_lectures_count: int
    total_lectures: int
    last_accessed_lecture_id: str | None = None
    last_played_timestamp_seconds: float = 0
    last_accessed_at: datetime

    @classmethod
    def from_entities(
        cls, progress: CourseProgress, course: "Course"
    ) -> "CourseProgressSummary":
        """Join a progress rollup with its course."""
        return cls(
            course_id=progress.course_id,
            course_title=course.title,
            thumbnail_url=course.thumbnail_url,
            instructor_name=course.instructor_name,
            completion_percentage=progress.completion_percentage,
            status=CourseProgressStatus(progress.status),
            completed_lectures_count=progress.completed_lectures_count,
            total_lectures=progress.total_lectures,
            last_accessed_lecture_id=progress.last_accessed_lecture_id,
            last_played_timestamp_seconds=progress.last_played_timestamp_seconds,
            last_accessed_at=progress.last_accessed_at,
        )


class MyLearningsResponse(BaseModel):
    """All courses a user has progress in."""

    items: list[CourseProgressSummary]
    total: int
