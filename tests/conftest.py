"""Pytest fixtures for demo video narrator tests."""

import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import pytest

# Keep settings-driven directories out of the working tree
_WORK_ROOT = Path(tempfile.mkdtemp(prefix="narrator-tests-"))
for _name in ("upload", "temp", "output"):
    os.environ.setdefault(f"{_name.upper()}_DIR", str(_WORK_ROOT / _name))
for _key in ("GEMINI_API_KEY", "ELEVENLABS_API_KEY", "SUPABASE_URL", "SUPABASE_KEY"):
    os.environ[_key] = ""

from src.models.script import Script  # noqa: E402
from src.services.content_analysis import ContentAnalysisService  # noqa: E402
from src.services.job_registry import JobRegistry  # noqa: E402
from src.services.narration import NarrationService  # noqa: E402
from src.services.pipeline import JobRequest, PipelineOrchestrator  # noqa: E402
from src.services.storage import StorageService  # noqa: E402
from src.services.transcoder import TranscodeResult, TranscoderService  # noqa: E402
from src.utils.errors import TranscoderError  # noqa: E402


class FakeTranscoder(TranscoderService):
    """Transcoder that writes placeholder bytes instead of running ffmpeg.

    ``failures`` maps an operation name to how many times it should fail
    before succeeding; -1 fails forever.
    """

    def __init__(self, temp_dir: Path, output_dir: Path, failures: Optional[dict] = None) -> None:
        super().__init__(ffmpeg_binary="ffmpeg", temp_dir=temp_dir, output_dir=output_dir)
        self.failures = dict(failures or {})
        self.calls: list[tuple[str, list[str]]] = []

    async def run(self, args: Sequence[str], output_path: Path, operation: str, on_progress=None):
        self.calls.append((operation, list(args)))
        output_path = Path(output_path)
        self.ensure_directory(output_path.parent)
        remaining = self.failures.get(operation, 0)
        if remaining:
            if remaining > 0:
                self.failures[operation] = remaining - 1
            raise TranscoderError(operation, 1, f"simulated {operation} failure")
        output_path.write_bytes(f"{operation}:{output_path.name}".encode())
        return TranscodeResult(output_path=output_path, operation=operation)

    @property
    def operations(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeNarration(NarrationService):
    """Narration service returning a canned audio file or nothing."""

    def __init__(self, temp_dir: Path, produce_audio: bool = True) -> None:
        super().__init__(elevenlabs_api_key="test-key" if produce_audio else "", temp_dir=temp_dir)
        self.produce_audio = produce_audio
        self.scripts: list[Script] = []

    async def synthesize(self, script, job_id):
        self.scripts.append(script)
        if not self.produce_audio:
            return None
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        path = self.temp_dir / f"narration_{job_id}.mp3"
        path.write_bytes(b"ID3 narration")
        return path


class RecordingRegistry(JobRegistry):
    """Registry that keeps every status written, in order."""

    def __init__(self) -> None:
        super().__init__()
        self.history: dict[str, list[str]] = {}

    def update_status(self, job_id, status, message, artifacts=None):
        record = super().update_status(job_id, status, message, artifacts)
        self.history.setdefault(job_id, []).append(record.status.value)
        return record


@pytest.fixture
def workdirs(tmp_path: Path) -> dict[str, Path]:
    dirs = {name: tmp_path / name for name in ("uploads", "temp", "output")}
    for path in dirs.values():
        path.mkdir()
    return dirs


@pytest.fixture
def source_video(workdirs: dict[str, Path]) -> Path:
    path = workdirs["uploads"] / "job-under-test.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 256)
    return path


@pytest.fixture
def registry() -> RecordingRegistry:
    return RecordingRegistry()


@pytest.fixture
def make_orchestrator(workdirs, registry):
    """Factory building an orchestrator from fakes."""

    def _make(
        failures: Optional[dict] = None,
        produce_audio: bool = True,
        storage: Optional[StorageService] = None,
        combine_strategy: str = "narration",
        max_concurrent_jobs: int = 0,
        transcoder: Optional[TranscoderService] = None,
    ) -> PipelineOrchestrator:
        transcoder = transcoder or FakeTranscoder(workdirs["temp"], workdirs["output"], failures)
        return PipelineOrchestrator(
            registry=registry,
            transcoder=transcoder,
            content=ContentAnalysisService(),
            narration=FakeNarration(workdirs["temp"], produce_audio=produce_audio),
            storage=storage or StorageService(),
            output_dir=workdirs["output"],
            combine_strategy=combine_strategy,
            max_concurrent_jobs=max_concurrent_jobs,
        )

    return _make


@pytest.fixture
def make_request(source_video, registry):
    """Factory registering a job and returning its JobRequest."""

    def _make(job_id: str = "job-acme-001", template: Optional[str] = "tech_minimal") -> JobRequest:
        registry.create(job_id)
        return JobRequest(
            job_id=job_id,
            video_path=source_video,
            app_name="Acme",
            description="task manager",
            template=template,
        )

    return _make
