"""Tests for the HTTP surface: intake, status, delivery and health.

Feature: demo-video-narrator
Property 7: Invalid intake is rejected before a job exists
Property 8: The job identifier is returned before the pipeline runs
"""

import asyncio
from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient
from hypothesis import HealthCheck, given, settings, strategies as st

from src.api.deps import (
    get_delivery_dep,
    get_orchestrator_dep,
    get_registry_dep,
    get_settings_dep,
)
from src.api.routes import _save_upload
from src.config import Settings
from src.main import app
from src.models.job import JobStatus
from src.services.delivery import OutputDelivery
from src.services.job_registry import JobRegistry, InMemoryJobStore


class FakeOrchestrator:
    """Records submitted jobs instead of processing them."""

    def __init__(self) -> None:
        self.requests = []

    async def run(self, request):
        self.requests.append(request)


class CompletingOrchestrator:
    """Notes the status seen when the pipeline starts, then completes the job."""

    def __init__(self, registry: JobRegistry, events: list) -> None:
        self.registry = registry
        self.events = events

    async def run(self, request):
        self.events.append(("pipeline started", self.registry.get(request.job_id).status))
        self.registry.update_status(request.job_id, JobStatus.PROCESSING, "Processing video...")
        self.registry.update_status(request.job_id, JobStatus.COMPLETED, "Video ready for preview!")


@pytest.fixture
def api(workdirs):
    """TestClient wired to an isolated registry, orchestrator and output dir."""
    registry = JobRegistry(InMemoryJobStore())
    orchestrator = FakeOrchestrator()
    app_settings = Settings(
        upload_dir=str(workdirs["uploads"]),
        temp_dir=str(workdirs["temp"]),
        output_dir=str(workdirs["output"]),
    )

    app.dependency_overrides[get_settings_dep] = lambda: app_settings
    app.dependency_overrides[get_registry_dep] = lambda: registry
    app.dependency_overrides[get_orchestrator_dep] = lambda: orchestrator
    app.dependency_overrides[get_delivery_dep] = lambda: OutputDelivery(registry, workdirs["output"])

    client = TestClient(app)
    client.registry = registry
    client.orchestrator = orchestrator
    client.settings = app_settings
    yield client
    app.dependency_overrides.clear()


def _upload(content: bytes = b"\x00\x00\x00\x18ftypmp42data"):
    return {"demoVideo": ("demo.mp4", content, "video/mp4")}


def _completed_with_file(api, workdirs, job_id: str, size: int = 5000) -> tuple[Path, bytes]:
    data = bytes(i % 251 for i in range(size))
    path = workdirs["output"] / f"{job_id}_with_narration.mp4"
    path.write_bytes(data)
    api.registry.create(job_id)
    api.registry.update_status(job_id, JobStatus.COMPLETED, "Video ready for preview!", {"local": str(path)})
    return path, data


class TestProcessVideo:
    def test_accepts_upload(self, api, workdirs) -> None:
        response = api.post(
            "/api/video/process",
            data={"appName": "Acme", "description": "task manager", "template": "tech_minimal"},
            files=_upload(),
        )

        assert response.status_code == 200
        body = response.json()
        job_id = body["job_id"]
        assert body["message"] == "Video processing started"
        assert body["estimated_time"] == "3-5 minutes"

        record = api.registry.get(job_id)
        assert record.status == JobStatus.QUEUED
        [request] = api.orchestrator.requests
        assert request.job_id == job_id
        assert request.app_name == "Acme"
        assert request.template == "tech_minimal"
        assert request.video_path == workdirs["uploads"] / f"{job_id}.mp4"
        assert request.video_path.read_bytes() == b"\x00\x00\x00\x18ftypmp42data"

    def test_each_upload_gets_its_own_job(self, api) -> None:
        ids = {
            api.post(
                "/api/video/process",
                data={"appName": "Acme", "description": "task manager"},
                files=_upload(),
            ).json()["job_id"]
            for _ in range(3)
        }
        assert len(ids) == 3

    def test_empty_template_becomes_default(self, api) -> None:
        api.post(
            "/api/video/process",
            data={"appName": "Acme", "description": "task manager", "template": " "},
            files=_upload(),
        )
        assert api.orchestrator.requests[0].template is None

    @settings(
        max_examples=20,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(
        missing=st.sets(st.sampled_from(["demoVideo", "appName", "description"]), min_size=1)
    )
    def test_missing_fields_rejected(self, api, missing: set[str]) -> None:
        """Property 7: *for any* non-empty set of missing fields, the
        response SHALL be 400 and no job SHALL be created."""
        data = {key: value for key, value in {"appName": "Acme", "description": "x"}.items() if key not in missing}
        files = None if "demoVideo" in missing else _upload()

        before = len(api.registry.store)
        response = api.post("/api/video/process", data=data, files=files)

        assert response.status_code == 400
        body = response.json()
        assert body["error_type"] == "IntakeError"
        for field in missing:
            assert field in body["detail"]
        assert len(api.registry.store) == before

    def test_blank_fields_rejected(self, api) -> None:
        response = api.post(
            "/api/video/process", data={"appName": "  ", "description": "x"}, files=_upload()
        )
        assert response.status_code == 400
        assert api.orchestrator.requests == []

    def test_empty_file_rejected(self, api, workdirs) -> None:
        response = api.post(
            "/api/video/process",
            data={"appName": "Acme", "description": "x"},
            files=_upload(b""),
        )
        assert response.status_code == 400
        assert list(workdirs["uploads"].iterdir()) == []

    def test_oversized_file_rejected(self, api, workdirs) -> None:
        api.settings.max_upload_mb = 0
        response = api.post(
            "/api/video/process",
            data={"appName": "Acme", "description": "x"},
            files=_upload(b"x" * 10),
        )
        assert response.status_code == 413
        assert list(workdirs["uploads"].iterdir()) == []
        assert len(api.registry.store) == 0


class TestProperty8JobIdBeforePipeline:
    """
    Property 8: The job identifier is returned before the pipeline runs

    *For any* accepted upload, the response carrying the job id SHALL be
    sent while the job is still queued, and processing SHALL happen after.
    """

    @pytest.mark.asyncio
    async def test_response_sent_before_pipeline_starts(self, api) -> None:
        events: list = []
        app.dependency_overrides[get_orchestrator_dep] = lambda: CompletingOrchestrator(api.registry, events)

        async def recording_app(scope, receive, send):
            async def recording_send(message):
                await send(message)
                if message["type"] == "http.response.body" and not message.get("more_body", False):
                    events.append(("response sent", None))

            await app(scope, receive, recording_send)

        transport = httpx.ASGITransport(app=recording_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://narrator.test") as client:
            response = await client.post(
                "/api/video/process",
                data={"appName": "Acme", "description": "task manager"},
                files=_upload(),
            )

        assert response.status_code == 200
        job_id = response.json()["job_id"]
        assert events == [("response sent", None), ("pipeline started", JobStatus.QUEUED)]
        assert api.registry.get(job_id).status == JobStatus.COMPLETED


class TestSaveUpload:
    @pytest.mark.asyncio
    async def test_chunks_written_off_event_loop(self, tmp_path) -> None:
        destination = tmp_path / "uploads" / "job.mp4"
        upload = UploadFile(file=BytesIO(b"ftypmp42"), filename="demo.mp4")
        real_to_thread = asyncio.to_thread
        offloaded = []

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(func)
            return await real_to_thread(func, *args, **kwargs)

        with patch("src.api.routes.asyncio.to_thread", recording_to_thread):
            written = await _save_upload(upload, destination, max_bytes=1024)

        assert written == 8
        assert destination.read_bytes() == b"ftypmp42"
        assert [func.__name__ for func in offloaded] == ["write"]


class TestStatus:
    def test_unknown_job(self, api) -> None:
        response = api.get("/api/video/status/never-submitted")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "not_found"
        assert body["progress"] is None

    def test_known_job(self, api) -> None:
        api.registry.create("job-1")
        api.registry.update_status("job-1", JobStatus.MUXING, "Mixing narration into video...")
        body = api.get("/api/video/status/job-1").json()
        assert body["status"] == "muxing"
        assert body["message"] == "Mixing narration into video..."


class TestStreaming:
    @pytest.mark.parametrize("route", ["stream", "preview"])
    def test_partial_content(self, api, workdirs, route: str) -> None:
        _, data = _completed_with_file(api, workdirs, "job-r")

        response = api.get(f"/api/video/{route}/job-r", headers={"Range": "bytes=0-99"})

        assert response.status_code == 206
        assert response.headers["content-length"] == "100"
        assert response.headers["content-range"] == f"bytes 0-99/{len(data)}"
        assert response.headers["accept-ranges"] == "bytes"
        assert response.headers["content-type"] == "video/mp4"
        assert response.content == data[:100]

    def test_whole_file(self, api, workdirs) -> None:
        _, data = _completed_with_file(api, workdirs, "job-w")
        response = api.get("/api/video/stream/job-w")
        assert response.status_code == 200
        assert response.headers["content-length"] == str(len(data))
        assert response.content == data

    def test_unsatisfiable_range(self, api, workdirs) -> None:
        _completed_with_file(api, workdirs, "job-u", size=1000)
        response = api.get("/api/video/stream/job-u", headers={"Range": "bytes=5000-"})
        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */1000"

    def test_still_processing(self, api) -> None:
        api.registry.create("job-p")
        api.registry.update_status("job-p", JobStatus.GENERATING, "Generating AI narration...")
        response = api.get("/api/video/stream/job-p")
        assert response.status_code == 202
        assert response.json()["status"] == "generating"

    def test_unknown(self, api) -> None:
        response = api.get("/api/video/stream/nope")
        assert response.status_code == 404
        assert response.json()["detail"] == "Video not found"

    def test_remote_redirect_when_local_gone(self, api) -> None:
        api.registry.create("job-c")
        api.registry.update_status(
            "job-c", JobStatus.COMPLETED, "done", {"streaming": "https://cdn.example/v.mp4"}
        )
        response = api.get("/api/video/stream/job-c", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "https://cdn.example/v.mp4"


class TestDownload:
    def test_remote_download_preferred(self, api, workdirs) -> None:
        _completed_with_file(api, workdirs, "job-d")
        api.registry.store.save(
            api.registry.get("job-d").model_copy(
                update={"artifacts": {"download": "https://cdn.example/signed"}}
            )
        )
        response = api.get("/api/video/download/job-d", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "https://cdn.example/signed"

    def test_local_file(self, api, workdirs) -> None:
        _, data = _completed_with_file(api, workdirs, "job-l")
        response = api.get("/api/video/download/job-l")
        assert response.status_code == 200
        assert response.content == data
        assert "job-l_with_narration.mp4" in response.headers["content-disposition"]

    def test_pending(self, api) -> None:
        api.registry.create("job-q")
        assert api.get("/api/video/download/job-q").status_code == 202

    def test_missing(self, api) -> None:
        response = api.get("/api/video/download/ghost")
        assert response.status_code == 404
        assert response.json()["detail"] == "Video not found or still processing"


class TestDebugAndHealth:
    def test_debug_lists_job_files(self, api, workdirs) -> None:
        _completed_with_file(api, workdirs, "job-x", size=10)
        body = api.get("/api/video/debug/job-x").json()
        assert body["job_id"] == "job-x"
        assert body["total_files"] == 1
        assert body["files"][0]["name"] == "job-x_with_narration.mp4"
        assert body["files"][0]["size"] == 10

    def test_health(self, api) -> None:
        body = api.get("/health").json()
        assert body["status"] == "OK"
        assert "timestamp" in body
        assert set(body["directories"]) == {"uploads", "temp", "output"}
