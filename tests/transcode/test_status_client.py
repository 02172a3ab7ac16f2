"""Tests for the transcode job status client."""

import httpx
import pytest
import pytest_asyncio

from lecturetrack.catalog import VideoProcessingStatus
from lecturetrack.transcode import JobStatusClient, JobStatusError


STATUS_BASE = "http://transcoder.test/api/status"
MEDIA_BASE = "https://media.test"


def client_for(handler) -> JobStatusClient:
    return JobStatusClient(
        STATUS_BASE, MEDIA_BASE, transport=httpx.MockTransport(handler)
    )


@pytest_asyncio.fixture
async def make_client():
    clients: list[JobStatusClient] = []

    def _make(handler) -> JobStatusClient:
        client = client_for(handler)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()


class TestBuildVideoUrl:
    def test_derived_from_job_id(self):
        client = JobStatusClient(STATUS_BASE, MEDIA_BASE + "/")

        assert (
            client.build_video_url("job-1")
            == "https://media.test/hls/job-1/master.m3u8"
        )

    def test_empty_job_id(self):
        client = JobStatusClient(STATUS_BASE, MEDIA_BASE)

        with pytest.raises(ValueError):
            client.build_video_url("")


class TestCheckStatus:
    @pytest.mark.asyncio
    async def test_requests_job_url(self, make_client):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"status": "COMPLETE", "jobId": "job-1"})

        observation = await make_client(handler).check_status("job-1")

        assert seen == [f"{STATUS_BASE}/job-1"]
        assert observation.status is VideoProcessingStatus.COMPLETE
        assert observation.is_terminal
        assert observation.video_url == "https://media.test/hls/job-1/master.m3u8"

    @pytest.mark.asyncio
    async def test_status_is_case_insensitive(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"status": "failed"}))

        observation = await client.check_status("job-1")

        assert observation.status is VideoProcessingStatus.FAILED

    @pytest.mark.asyncio
    async def test_missing_status_means_processing(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"jobId": "job-1"}))

        observation = await client.check_status("job-1")

        assert observation.status is VideoProcessingStatus.PROCESSING
        assert not observation.is_terminal

    @pytest.mark.asyncio
    async def test_url_ignores_response_body(self, make_client):
        client = make_client(
            lambda request: httpx.Response(
                200,
                json={"status": "COMPLETE", "jobId": "other", "videoUrl": "http://x"},
            )
        )

        observation = await client.check_status("job-1")

        assert observation.video_url == "https://media.test/hls/job-1/master.m3u8"

    @pytest.mark.asyncio
    async def test_message_is_kept(self, make_client):
        client = make_client(
            lambda request: httpx.Response(
                200, json={"status": "FAILED", "message": "codec not supported"}
            )
        )

        observation = await client.check_status("job-1")

        assert observation.message == "codec not supported"

    @pytest.mark.asyncio
    async def test_server_error(self, make_client):
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(JobStatusError) as exc_info:
            await client.check_status("job-1")

        assert exc_info.value.code == "job_status_unavailable"

    @pytest.mark.asyncio
    async def test_unknown_status(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"status": "QUEUED"}))

        with pytest.raises(JobStatusError):
            await client.check_status("job-1")

    @pytest.mark.asyncio
    async def test_non_json_body(self, make_client):
        client = make_client(lambda request: httpx.Response(200, text="<html></html>"))

        with pytest.raises(JobStatusError):
            await client.check_status("job-1")

    @pytest.mark.asyncio
    async def test_non_object_body(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json=["COMPLETE"]))

        with pytest.raises(JobStatusError):
            await client.check_status("job-1")

    @pytest.mark.asyncio
    async def test_transport_error(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(JobStatusError):
            await make_client(handler).check_status("job-1")
