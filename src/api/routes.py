"""FastAPI routes for the demo video narrator API."""

import asyncio
import logging
from pathlib import Path
from typing import Optional
from uuid import uuid4

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    Request,
    UploadFile,
)
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse, StreamingResponse
from pydantic import BaseModel

from src.api.deps import (
    get_delivery_dep,
    get_orchestrator_dep,
    get_registry_dep,
    get_settings_dep,
)
from src.config import Settings
from src.models.job import JobRecord, JobStatus
from src.services.delivery import (
    VIDEO_CONTENT_TYPE,
    OutputDelivery,
    RangeNotSatisfiable,
    iter_file_window,
    plan_byte_window,
)
from src.services.job_registry import JobRegistry
from src.services.pipeline import JobRequest, PipelineOrchestrator
from src.utils.errors import (
    DemoNarratorError,
    IntakeError,
    StorageError,
    TranscoderError,
)

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024

# Create router
router = APIRouter(prefix="/api/video")


# ==================== Error Response Model ====================


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    error_type: str


# ==================== Exception Handlers ====================


async def intake_exception_handler(request: Request, exc: IntakeError) -> JSONResponse:
    """Handle malformed intake requests."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": str(exc),
            "error_type": type(exc).__name__,
        },
    )


async def demo_narrator_exception_handler(
    request: Request, exc: DemoNarratorError
) -> JSONResponse:
    """Handle application-specific errors."""
    status_code = 500

    if isinstance(exc, (TranscoderError, StorageError)):
        status_code = 502  # Bad Gateway for external tool/service errors

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "error_type": type(exc).__name__,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_type": "HTTPException",
        },
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": "InternalError",
        },
    )


# ==================== Request/Response Models ====================


class ProcessResponse(BaseModel):
    """Response model for the intake endpoint."""

    job_id: str
    message: str
    estimated_time: str = "3-5 minutes"


class DebugResponse(BaseModel):
    """Response model for the debug endpoint."""

    job_id: str
    total_files: int
    files: list[dict]


# ==================== Helpers ====================


async def _save_upload(upload: UploadFile, destination: Path, max_bytes: int) -> int:
    """Stream an upload to disk, enforcing the size ceiling."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    try:
        with destination.open("wb") as out:
            while True:
                chunk = await upload.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise IntakeError(
                        413, f"File too large: limit is {max_bytes // (1024 * 1024)} MB"
                    )
                await asyncio.to_thread(out.write, chunk)
    except IntakeError:
        destination.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    if written == 0:
        destination.unlink(missing_ok=True)
        raise IntakeError(400, "Uploaded video is empty")
    return written


def _pending_response(record: JobRecord) -> Optional[JSONResponse]:
    """202 for jobs that are still running, so clients can tell them from missing ones."""
    if record.status in (JobStatus.NOT_FOUND, JobStatus.COMPLETED, JobStatus.FAILED):
        return None
    return JSONResponse(
        status_code=202,
        content={
            "job_id": record.job_id,
            "status": record.status.value,
            "message": "Video is still processing",
        },
    )


def _stream_video(path: Path, range_header: Optional[str]) -> StreamingResponse:
    try:
        file_size = path.stat().st_size
    except OSError as exc:
        raise HTTPException(status_code=404, detail="Video not found") from exc

    try:
        window = plan_byte_window(range_header, file_size)
    except RangeNotSatisfiable as exc:
        raise HTTPException(
            status_code=416,
            detail="Requested range not satisfiable",
            headers={"Content-Range": f"bytes */{file_size}"},
        ) from exc

    logger.info(f"Streaming video: {path} ({window.start}-{window.end}/{file_size})")
    return StreamingResponse(
        iter_file_window(path, window),
        status_code=206 if window.partial else 200,
        media_type=VIDEO_CONTENT_TYPE,
        headers=window.headers(),
    )


# ==================== Endpoints ====================


@router.post("/process", response_model=ProcessResponse)
async def process_video(
    background_tasks: BackgroundTasks,
    demo_video: Optional[UploadFile] = File(None, alias="demoVideo"),
    app_name: Optional[str] = Form(None, alias="appName"),
    description: Optional[str] = Form(None),
    template: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings_dep),
    registry: JobRegistry = Depends(get_registry_dep),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator_dep),
) -> ProcessResponse:
    """
    Accept a demo video and start processing it.

    Returns immediately with a job_id; the pipeline runs in the background
    and progress is read from the status endpoint.
    """
    missing = []
    if demo_video is None or not demo_video.filename:
        missing.append("demoVideo")
    if not (app_name or "").strip():
        missing.append("appName")
    if not (description or "").strip():
        missing.append("description")
    if missing:
        raise IntakeError(400, f"Missing required fields: {', '.join(missing)}")

    job_id = str(uuid4())
    suffix = Path(demo_video.filename).suffix.lower() or ".mp4"
    upload_path = Path(settings.upload_dir) / f"{job_id}{suffix}"
    size = await _save_upload(demo_video, upload_path, settings.max_upload_bytes)

    registry.create(job_id, "Video upload received")
    logger.info(f"Starting video processing job: {job_id} ({size} bytes)")

    background_tasks.add_task(
        orchestrator.run,
        JobRequest(
            job_id=job_id,
            video_path=upload_path,
            app_name=app_name.strip(),
            description=description.strip(),
            template=(template or "").strip() or None,
        ),
    )

    return ProcessResponse(job_id=job_id, message="Video processing started")


@router.get("/status/{job_id}", response_model=JobRecord)
async def get_status(
    job_id: str,
    registry: JobRegistry = Depends(get_registry_dep),
) -> JobRecord:
    """
    Get processing status for a job.

    Unknown identifiers yield the ``not_found`` record rather than an error.
    """
    return registry.get(job_id)


@router.get("/download/{job_id}")
async def download_video(
    job_id: str,
    registry: JobRegistry = Depends(get_registry_dep),
    delivery: OutputDelivery = Depends(get_delivery_dep),
):
    """Download the finished video, from cloud storage when it was uploaded."""
    remote = delivery.remote_url(job_id, "download")
    if remote:
        return RedirectResponse(remote, status_code=307)

    path = delivery.resolve_local(job_id)
    if path is not None:
        return FileResponse(path, media_type=VIDEO_CONTENT_TYPE, filename=path.name)

    pending = _pending_response(registry.get(job_id))
    if pending is not None:
        return pending
    raise HTTPException(status_code=404, detail="Video not found or still processing")


@router.get("/preview/{job_id}")
@router.get("/stream/{job_id}")
async def stream_video(
    job_id: str,
    range_header: Optional[str] = Header(None, alias="range"),
    registry: JobRegistry = Depends(get_registry_dep),
    delivery: OutputDelivery = Depends(get_delivery_dep),
):
    """
    Stream the video with HTTP byte-range support.

    The local file is served whenever it exists, including while the
    upload to cloud storage is still running.
    """
    path = delivery.resolve_local(job_id)
    if path is not None:
        return _stream_video(path, range_header)

    remote = delivery.remote_url(job_id, "streaming")
    if remote:
        return RedirectResponse(remote, status_code=307)

    pending = _pending_response(registry.get(job_id))
    if pending is not None:
        return pending
    raise HTTPException(status_code=404, detail="Video not found")


@router.get("/debug/{job_id}", response_model=DebugResponse)
async def debug_job_files(
    job_id: str,
    delivery: OutputDelivery = Depends(get_delivery_dep),
) -> DebugResponse:
    """List output files belonging to a job."""
    files = delivery.list_job_files(job_id)
    return DebugResponse(job_id=job_id, total_files=len(files), files=files)
