"""HTTP client for the external transcode job status endpoint.

``GET {status_api_base_url}/{job_id}`` returns
``{"status": "PROCESSING" | "COMPLETE" | "FAILED", "jobId": ..., "message": ...}``.
The playback URL is never taken from the response: it is derived from the
job id so it is known before the job finishes.
"""

from typing import Any

import httpx
import structlog

from lecturetrack.catalog import VideoProcessingStatus

from .models import JobObservation, JobStatusError


logger = structlog.get_logger(__name__)


class JobStatusClient:
    """Reads transcode job status over HTTP.

    Args:
        status_api_base_url: Base of the status endpoint.
        video_public_base_url: Base URL where HLS output is published.
        timeout_seconds: Timeout of a single status request.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        status_api_base_url: str,
        video_public_base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.status_api_base_url = status_api_base_url.rstrip("/")
        self.video_public_base_url = video_public_base_url.rstrip("/")

        headers = {"Accept": "application/json"}
        # ngrok tunnels serve an HTML interstitial unless told otherwise
        if "ngrok" in self.status_api_base_url:
            headers["ngrok-skip-browser-warning"] = "true"

        self._client = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers=headers,
            transport=transport,
        )

    def build_video_url(self, job_id: str) -> str:
        """Public HLS master playlist URL for a job.

        Raises:
            ValueError: If ``job_id`` is empty.
        """
        if not job_id:
            raise ValueError("job_id is required to build a video URL")
        return f"{self.video_public_base_url}/hls/{job_id}/master.m3u8"

    async def check_status(self, job_id: str) -> JobObservation:
        """Fetch one status observation.

        Raises:
            JobStatusError: On transport errors, non-2xx responses or an
                unreadable body.
        """
        url = f"{self.status_api_base_url}/{job_id}"

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise JobStatusError(f"Status request timed out: {e}") from e
        except httpx.RequestError as e:
            raise JobStatusError(f"Status request error: {e}") from e

        if not response.is_success:
            logger.warning(
                "job_status_request_failed",
                job_id=job_id,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise JobStatusError(f"Status check failed: {response.status_code}")

        try:
            data: Any = response.json()
        except ValueError as e:
            raise JobStatusError("Status response is not JSON") from e
        if not isinstance(data, dict):
            raise JobStatusError("Status response is not an object")

        raw_status = str(data.get("status") or VideoProcessingStatus.PROCESSING.value)
        try:
            status = VideoProcessingStatus(raw_status.upper())
        except ValueError as e:
            raise JobStatusError(f"Unknown job status: {raw_status}") from e

        observation = JobObservation(
            job_id=job_id,
            status=status,
            video_url=self.build_video_url(job_id),
            message=data.get("message"),
        )
        logger.debug(
            "job_status_checked",
            job_id=job_id,
            status=status.value,
            reported_job_id=data.get("jobId"),
        )
        return observation

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
