"""Shared fixtures: in-memory store, catalog, progress services, sample courses,
and an API client wired to the in-memory store."""

import asyncio
from collections.abc import Callable, Iterator

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from lecturetrack.catalog import Course, CourseCache, CourseCatalog, Lecture
from lecturetrack.catalog.models import COURSES_COLLECTION
from lecturetrack.config import Settings
from lecturetrack.core.database import InMemoryDocumentStore
from lecturetrack.main import create_app
from lecturetrack.progress import CourseProgressAggregator, LectureProgressStore


USER_ID = "user-1"
COURSE_ID = "course-1"


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: in-memory store, console logging, no polling delay."""
    return Settings(
        environment="testing",
        store_backend="memory",
        log_level="WARNING",
        log_requests=False,
        transcode_status_api_base_url="http://transcoder.test/api/status",
        video_public_base_url="https://media.test",
        transcode_poll_max_attempts=3,
        transcode_poll_interval_seconds=0,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def catalog(store: InMemoryDocumentStore) -> CourseCatalog:
    return CourseCatalog(store, CourseCache(ttl_seconds=60, max_size=100))


@pytest.fixture
def aggregator(
    store: InMemoryDocumentStore, catalog: CourseCatalog
) -> CourseProgressAggregator:
    return CourseProgressAggregator(store, catalog)


@pytest.fixture
def progress_store(
    store: InMemoryDocumentStore,
    catalog: CourseCatalog,
    aggregator: CourseProgressAggregator,
) -> LectureProgressStore:
    return LectureProgressStore(store, catalog, aggregator)


@pytest.fixture
def make_course() -> Callable[..., Course]:
    """Build a course with ``count`` lectures of ``minutes`` each.

    Lecture ids are ``lec-1``..``lec-N`` with order index 1..N.
    """

    def _make(
        course_id: str = COURSE_ID,
        count: int = 2,
        minutes: float = 10,
        title: str = "Python for Data Work",
    ) -> Course:
        return Course(
            id=course_id,
            title=title,
            thumbnail_url=f"https://img.test/{course_id}.png",
            instructor_name="Ada Lovelace",
            lectures=[
                Lecture(
                    id=f"lec-{i}",
                    title=f"Lecture {i}",
                    video_duration=minutes,
                    order_index=i,
                )
                for i in range(1, count + 1)
            ],
        )

    return _make


@pytest_asyncio.fixture
async def course(catalog: CourseCatalog, make_course: Callable[..., Course]) -> Course:
    """Two 10-minute lectures, saved in the catalog."""
    return await catalog.save_course(make_course())


def complete_status_handler(request: httpx.Request) -> httpx.Response:
    """Job status endpoint that reports every job finished."""
    job_id = request.url.path.rsplit("/", 1)[-1]
    return httpx.Response(200, json={"status": "COMPLETE", "jobId": job_id})


@pytest.fixture
def client(
    settings: Settings,
    store: InMemoryDocumentStore,
    make_course: Callable[..., Course],
) -> Iterator[TestClient]:
    """API client acting as ``USER_ID`` with the default course seeded."""
    asyncio.run(
        store.upsert(
            COURSES_COLLECTION, COURSE_ID, make_course().to_dict(), merge=False
        )
    )
    app = create_app(
        settings,
        store=store,
        status_transport=httpx.MockTransport(complete_status_handler),
    )
    with TestClient(app, headers={"X-User-ID": USER_ID}) as test_client:
        yield test_client
