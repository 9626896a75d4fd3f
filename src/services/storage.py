"""Durable storage service backed by Supabase Storage."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from src.utils.errors import StorageError

logger = logging.getLogger(__name__)

SIGNED_URL_TTL_SECONDS = 24 * 3600


@dataclass(frozen=True)
class UploadedArtifact:
    """Reference to an uploaded output video."""

    public_id: str
    public_url: str


class StorageService:
    """Uploads finished videos and hands out playback URLs."""

    def __init__(
        self,
        supabase_client: Optional[Any] = None,
        bucket: str = "demo-videos",
        folder: str = "outputs",
    ) -> None:
        """
        Initialize the StorageService.

        Args:
            supabase_client: Supabase client; None means storage is disabled
            bucket: Storage bucket holding output videos
            folder: Folder inside the bucket
        """
        self.supabase = supabase_client
        self.bucket = bucket
        self.folder = folder

    @property
    def is_configured(self) -> bool:
        return self.supabase is not None

    def _bucket(self) -> Any:
        if not self.supabase:
            raise StorageError("Supabase client not configured")
        return self.supabase.storage.from_(self.bucket)

    async def upload(self, path: Path, job_id: str) -> UploadedArtifact:
        """
        Upload a finished video.

        Args:
            path: Local file to upload
            job_id: Job identifier used to name the object

        Returns:
            UploadedArtifact with the object path and its public URL

        Raises:
            StorageError: If the upload fails
        """
        bucket = self._bucket()
        public_id = f"{self.folder}/output_{job_id}{Path(path).suffix or '.mp4'}"

        try:
            data = await asyncio.to_thread(Path(path).read_bytes)
            await asyncio.to_thread(
                bucket.upload,
                path=public_id,
                file=data,
                file_options={"content-type": "video/mp4", "upsert": "true"},
            )
            public_url = bucket.get_public_url(public_id)
        except Exception as e:
            raise StorageError(f"Failed to upload {path}: {e}") from e

        logger.info(f"Uploaded {path} to {self.bucket}/{public_id}")
        return UploadedArtifact(public_id=public_id, public_url=public_url)

    def generate_streaming_url(self, public_id: str) -> str:
        """URL suitable for inline playback."""
        return self._bucket().get_public_url(public_id)

    def generate_download_url(self, public_id: str, filename: str = "video.mp4") -> str:
        """URL that makes browsers save the file instead of playing it."""
        bucket = self._bucket()
        try:
            signed = bucket.create_signed_url(
                public_id, SIGNED_URL_TTL_SECONDS, {"download": filename}
            )
            url = signed.get("signedURL") or signed.get("signedUrl")
            if url:
                return url
        except Exception as e:
            logger.warning(f"Could not sign download URL for {public_id}: {e}")
        return bucket.get_public_url(public_id)

    @staticmethod
    def delete_local_files(paths: Iterable[Optional[Path]]) -> list[Path]:
        """
        Delete local files, best effort.

        Missing files and permission errors are logged and skipped.

        Returns:
            The paths that were actually removed
        """
        removed: list[Path] = []
        seen: set[Path] = set()
        for path in paths:
            if not path:
                continue
            path = Path(path)
            if path in seen:
                continue
            seen.add(path)
            try:
                path.unlink()
                removed.append(path)
                logger.info(f"Cleaned up local file: {path}")
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not clean up {path}: {e}")
        return removed


def create_storage_service() -> StorageService:
    """
    Create a StorageService instance using application settings.

    Returns:
        StorageService, unconfigured when Supabase credentials are absent
    """
    from src.config import get_settings

    settings = get_settings()
    if not settings.storage_configured:
        logger.info("Supabase storage not configured - outputs stay local")
        return StorageService(bucket=settings.storage_bucket)

    from supabase import create_client

    client = create_client(settings.supabase_url, settings.supabase_key)
    return StorageService(supabase_client=client, bucket=settings.storage_bucket)
