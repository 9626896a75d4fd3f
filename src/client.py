"""HTTP client that submits a demo video and polls until it is ready."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 2.0
MAX_POLLS = 150

# An id the server does not know will not appear later
TERMINAL_STATUSES = {"completed", "failed", "not_found"}


@dataclass
class PollOutcome:
    """Final state observed by the client."""

    job_id: str
    status: str
    message: str
    artifacts: dict[str, str] = field(default_factory=dict)
    polls: int = 0

    @property
    def timed_out(self) -> bool:
        return self.status == "timeout"


class VideoJobClient:
    """Client for the /api/video endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_polls: int = MAX_POLLS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the VideoJobClient.

        Args:
            base_url: Server root URL
            poll_interval: Seconds between status polls
            max_polls: Polls before giving up with a timeout outcome
            transport: Custom httpx transport (optional)
        """
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, transport=self.transport, timeout=60.0)

    async def submit(
        self,
        video_path: Path,
        app_name: str,
        description: str,
        template: Optional[str] = None,
    ) -> str:
        """
        Upload a video and return the new job identifier.

        Raises:
            httpx.HTTPStatusError: If the server rejects the request
        """
        data = {"appName": app_name, "description": description}
        if template:
            data["template"] = template

        async with self._client() as client:
            with Path(video_path).open("rb") as handle:
                response = await client.post(
                    "/api/video/process",
                    data=data,
                    files={"demoVideo": (Path(video_path).name, handle, "video/mp4")},
                )
            response.raise_for_status()

        job_id = response.json()["job_id"]
        logger.info(f"Submitted {video_path} as job {job_id}")
        return job_id

    async def get_status(self, job_id: str) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.get(f"/api/video/status/{job_id}")
            response.raise_for_status()
            return response.json()

    async def wait_for_completion(
        self,
        job_id: str,
        on_update: Optional[Callable[[dict[str, Any]], None]] = None,
    ) -> PollOutcome:
        """
        Poll the job until it completes, fails, is unknown to the server, or
        the poll budget runs out.

        Running out of polls only stops this client; the server keeps
        working on the job.
        """
        last: dict[str, Any] = {"status": "queued", "message": ""}

        for poll in range(1, self.max_polls + 1):
            try:
                last = await self.get_status(job_id)
            except httpx.HTTPError as e:
                logger.warning(f"Status check error for job {job_id} (poll {poll}): {e}")
            else:
                if on_update:
                    on_update(last)
                if last.get("status") in TERMINAL_STATUSES:
                    return PollOutcome(
                        job_id=job_id,
                        status=last["status"],
                        message=last.get("message", ""),
                        artifacts=last.get("artifacts") or {},
                        polls=poll,
                    )

            if poll < self.max_polls:
                await asyncio.sleep(self.poll_interval)

        return PollOutcome(
            job_id=job_id,
            status="timeout",
            message="Processing timed out. Please try again.",
            artifacts=last.get("artifacts") or {},
            polls=self.max_polls,
        )

    def download_url(self, outcome: PollOutcome) -> str:
        """Cloud download URL when present, else the server's download route."""
        return outcome.artifacts.get("download") or f"{self.base_url}/api/video/download/{outcome.job_id}"
