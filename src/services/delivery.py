"""Output delivery: locate a job's video and plan byte-range responses."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from src.models.job import JobStatus
from src.services.job_registry import JobRegistry

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"
CHUNK_SIZE = 1 << 16

# Probe order for outputs written before the registry tracked locations
ARTIFACT_SUFFIXES = (
    "_with_narration.mp4",
    "_final.mp4",
    "_professional_complete.mp4",
    "_fallback.mp4",
)


class RangeNotSatisfiable(Exception):
    """Raised when a Range header cannot be served for the file."""

    def __init__(self, file_size: int) -> None:
        self.file_size = file_size
        super().__init__(f"Requested range not satisfiable for {file_size} bytes")


@dataclass(frozen=True)
class ByteWindow:
    """Inclusive byte span to serve."""

    start: int
    end: int
    file_size: int
    partial: bool

    @property
    def length(self) -> int:
        return max(self.end - self.start + 1, 0)

    def headers(self) -> dict[str, str]:
        headers = {
            "Accept-Ranges": "bytes",
            "Content-Length": str(self.length),
        }
        if self.partial:
            headers["Content-Range"] = f"bytes {self.start}-{self.end}/{self.file_size}"
        return headers


def plan_byte_window(range_header: Optional[str], file_size: int) -> ByteWindow:
    """
    Work out which bytes to send for an optional ``Range`` header.

    Only single ``bytes=start-end`` ranges are honored; the end defaults to
    the last byte and is clamped to the file. Multi-range requests get the
    whole file.

    Raises:
        RangeNotSatisfiable: If the header is malformed or starts past the end
    """
    if not range_header or "," in range_header:
        return ByteWindow(start=0, end=file_size - 1, file_size=file_size, partial=False)

    header = range_header.strip()
    if not header.lower().startswith("bytes=") or file_size <= 0:
        raise RangeNotSatisfiable(file_size)

    start_token, sep, end_token = header[len("bytes="):].strip().partition("-")
    if not sep:
        raise RangeNotSatisfiable(file_size)

    if not start_token:
        # bytes=-N: the final N bytes
        if not end_token.isdigit() or int(end_token) <= 0:
            raise RangeNotSatisfiable(file_size)
        start = max(file_size - int(end_token), 0)
        end = file_size - 1
    else:
        if not start_token.isdigit():
            raise RangeNotSatisfiable(file_size)
        start = int(start_token)
        if start >= file_size:
            raise RangeNotSatisfiable(file_size)
        if end_token:
            if not end_token.isdigit() or int(end_token) < start:
                raise RangeNotSatisfiable(file_size)
            end = min(int(end_token), file_size - 1)
        else:
            end = file_size - 1

    return ByteWindow(start=start, end=end, file_size=file_size, partial=True)


def iter_file_window(path: Path, window: ByteWindow) -> Iterator[bytes]:
    """Yield the bytes of ``window`` from ``path`` in chunks."""
    remaining = window.length
    if remaining <= 0:
        return

    with path.open("rb") as stream:
        stream.seek(window.start)
        while remaining > 0:
            chunk = stream.read(min(CHUNK_SIZE, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


class OutputDelivery:
    """Resolves job identifiers to deliverable videos."""

    def __init__(self, registry: JobRegistry, output_dir: Path | str = "output") -> None:
        self.registry = registry
        self.output_dir = Path(output_dir)

    def resolve_local(self, job_id: str) -> Optional[Path]:
        """
        Find the local video for a job.

        The location recorded on the job wins; otherwise known filename
        suffixes are tried in order, then any output file containing the
        job identifier.
        """
        if not job_id or "/" in job_id or "\\" in job_id or job_id in (".", ".."):
            return None

        recorded = self.registry.get(job_id).artifacts.get("local")
        if recorded and Path(recorded).is_file():
            return Path(recorded)

        for suffix in ARTIFACT_SUFFIXES:
            candidate = self.output_dir / f"{job_id}{suffix}"
            if candidate.is_file():
                logger.info(f"Found video file: {candidate}")
                return candidate

        if not self.output_dir.is_dir():
            return None
        matches = sorted(p for p in self.output_dir.iterdir() if p.is_file() and job_id in p.name)
        if matches:
            logger.info(f"Available files for job {job_id}: {[p.name for p in matches]}")
            return matches[0]

        logger.info(f"No video found for job {job_id}")
        return None

    def remote_url(self, job_id: str, kind: str = "download") -> Optional[str]:
        """Durable-storage URL recorded on a completed job, if any."""
        record = self.registry.get(job_id)
        if record.status != JobStatus.COMPLETED:
            return None
        return record.artifacts.get(kind)

    def list_job_files(self, job_id: str) -> list[dict]:
        """Describe every output file whose name contains the job identifier."""
        if not self.output_dir.is_dir():
            return []
        files = []
        for path in sorted(self.output_dir.iterdir()):
            if path.is_file() and job_id in path.name:
                stat = path.stat()
                files.append({"name": path.name, "size": stat.st_size, "modified": stat.st_mtime})
        return files


def create_output_delivery() -> OutputDelivery:
    """Create an OutputDelivery bound to the process-wide registry."""
    from src.config import get_settings
    from src.services.job_registry import get_job_registry

    return OutputDelivery(get_job_registry(), get_settings().output_dir)
