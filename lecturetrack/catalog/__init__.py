"""Course catalog module.

Provides:
- Course and lecture entities with per-lecture video fields
- CourseCache for course documents
- CourseCatalog read/write service
"""

from .cache import CourseCache
from .models import Course, Lecture, VideoProcessingStatus
from .service import (
    CourseCatalog,
    CourseNotFoundError,
    LectureNotFoundError,
)


__all__ = [
    "Course",
    "CourseCache",
    "CourseCatalog",
    "CourseNotFoundError",
    "Lecture",
    "LectureNotFoundError",
    "VideoProcessingStatus",
]
