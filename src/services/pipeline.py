"""Pipeline orchestrator: drives one job from upload to narrated video.

Stage order is fixed: extract audio, transcribe, analyze features, write
the script, clean the video, narrate, combine, publish. Audio extraction
and video cleaning are fatal on failure; every other stage degrades to a
deterministic fallback.
"""

import asyncio
import logging
import shutil
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

from src.models.job import JobRecord, JobStatus
from src.models.script import FeatureAnalysis, Script
from src.models.template import VideoTemplate, get_template
from src.services.content_analysis import ContentAnalysisService
from src.services.job_registry import JobRegistry
from src.services.narration import NarrationService
from src.services.storage import StorageService
from src.services.transcoder import TranscoderService
from src.utils.errors import NarrationError, StorageError
from src.utils.fallback import Attempt, FallbackExhaustedError, first_success

logger = logging.getLogger(__name__)

COMBINE_NARRATION = "narration"
COMBINE_SEGMENTS = "segments"


@dataclass(frozen=True)
class JobRequest:
    """Validated intake data for one job."""

    job_id: str
    video_path: Path
    app_name: str
    description: str
    template: Optional[str] = None


@dataclass
class PipelineRun:
    """Artifacts produced by one pipeline run, in creation order."""

    request: JobRequest
    audio_path: Optional[Path] = None
    clean_path: Optional[Path] = None
    narration_path: Optional[Path] = None
    output_path: Optional[Path] = None
    transcript: str = ""
    features: Optional[FeatureAnalysis] = None
    script: Optional[Script] = None
    combine_method: str = ""
    scratch: list[Path] = field(default_factory=list)

    @property
    def job_id(self) -> str:
        return self.request.job_id

    def intermediates(self) -> list[Optional[Path]]:
        """Stage artifacts that are not the deliverable."""
        return [self.audio_path, self.clean_path, self.narration_path, *self.scratch]


class PipelineOrchestrator:
    """Runs jobs through every stage and records each transition."""

    def __init__(
        self,
        registry: JobRegistry,
        transcoder: TranscoderService,
        content: ContentAnalysisService,
        narration: NarrationService,
        storage: StorageService,
        output_dir: Path | str = "output",
        combine_strategy: str = COMBINE_NARRATION,
        max_concurrent_jobs: int = 0,
    ) -> None:
        """
        Initialize the PipelineOrchestrator.

        Args:
            registry: Job registry updated at every transition
            transcoder: ffmpeg wrapper
            content: Transcript, feature and script provider
            narration: Text-to-speech provider
            storage: Durable storage; may be unconfigured
            output_dir: Directory for final videos
            combine_strategy: ``narration`` (default) or ``segments``
            max_concurrent_jobs: Admission limit; 0 disables it
        """
        if combine_strategy not in (COMBINE_NARRATION, COMBINE_SEGMENTS):
            raise ValueError(f"Unknown combine strategy: {combine_strategy}")
        self.registry = registry
        self.transcoder = transcoder
        self.content = content
        self.narration = narration
        self.storage = storage
        self.output_dir = Path(output_dir)
        self.combine_strategy = combine_strategy
        self._admission = asyncio.Semaphore(max_concurrent_jobs) if max_concurrent_jobs > 0 else None

    # ==================== Entry point ====================

    async def run(self, request: JobRequest) -> JobRecord:
        """
        Drive a job to ``completed`` or ``failed``.

        Never raises; the outcome is recorded in the registry and returned.
        """
        pipeline_run = PipelineRun(request=request)

        try:
            async with AsyncExitStack() as stack:
                if self._admission is not None:
                    await stack.enter_async_context(self._admission)
                await self._run_stages(pipeline_run)
        except Exception as e:
            logger.exception(f"Job {request.job_id} failed: {e}")
            self._mark_failed(request.job_id, str(e) or type(e).__name__)
            StorageService.delete_local_files([*pipeline_run.intermediates(), pipeline_run.output_path])

        return self.registry.get(request.job_id)

    def _mark_failed(self, job_id: str, message: str) -> None:
        if not self.registry.exists(job_id):
            logger.error(f"Job {job_id} was never registered; cannot record failure")
            return
        if self.registry.get(job_id).status.is_terminal:
            return
        self.registry.update_status(job_id, JobStatus.FAILED, message)

    async def _run_stages(self, run: PipelineRun) -> None:
        request = run.request
        self.registry.update_status(request.job_id, JobStatus.PROCESSING, "Processing video...")

        # Fatal: without audio there is nothing to transcribe
        run.audio_path = await self.transcoder.extract_audio(request.video_path, request.job_id)

        run.transcript = await self.content.transcribe_audio(run.audio_path)
        run.features = await self.content.analyze_features(
            request.app_name, request.description, run.transcript
        )
        run.script = await self.content.generate_script(
            request.app_name, request.description, run.transcript, request.template
        )

        # Fatal: every combine path starts from the cleaned video
        run.clean_path = await self.transcoder.clean_video(request.video_path, request.job_id)

        self.registry.update_status(request.job_id, JobStatus.GENERATING, "Generating AI narration...")
        run.output_path = await self._combine(run)

        await self._publish(run)

    # ==================== Combine ====================

    async def _combine(self, run: PipelineRun) -> Path:
        if self.combine_strategy == COMBINE_SEGMENTS:
            return await self.assemble_segments(run)

        try:
            run.narration_path = await self.narration.synthesize(run.script, run.job_id)
        except NarrationError as e:
            logger.warning(f"Narration unavailable for job {run.job_id}: {e}")
            return await self.assemble_segments(run)

        try:
            return await self.combine_with_narration(run)
        except FallbackExhaustedError as e:
            logger.error(f"Narration branch exhausted for job {run.job_id}: {e}")
            return await self.assemble_segments(run)

    async def combine_with_narration(self, run: PipelineRun) -> Path:
        """
        Put the narration under the cleaned video's picture.

        Ladder: stream-copy mux, re-encode mux, then a plain copy of the
        cleaned video. Without narration audio only the copy rung runs.
        """
        output_path = self.output_dir / f"{run.job_id}_with_narration.mp4"
        clean_path = run.clean_path
        narration_path = run.narration_path

        attempts: list[Attempt[Path]] = []
        if narration_path is not None:
            self.registry.update_status(
                run.job_id, JobStatus.MUXING, "Mixing narration into video..."
            )
            attempts.append(Attempt(
                "mux (stream copy)",
                lambda: self.transcoder.mux_audio(clean_path, narration_path, output_path, "copy"),
            ))
            attempts.append(Attempt(
                "mux (re-encode)",
                lambda: self.transcoder.mux_audio(clean_path, narration_path, output_path, "reencode"),
            ))
        else:
            logger.info(f"No narration for job {run.job_id}, copying cleaned video")
        attempts.append(Attempt(
            "copy cleaned video",
            lambda: self._copy_file(clean_path, output_path),
        ))

        run.combine_method, result = await first_success(attempts)
        return result

    async def assemble_segments(self, run: PipelineRun) -> Path:
        """
        Legacy path: intro card + captioned main clip + outro card.

        The two concatenations run pairwise; the intermediate is removed
        once the second concatenation has consumed it.
        """
        request = run.request
        template = get_template(request.template)
        temp_dir = self.transcoder.temp_dir

        intro_path = temp_dir / f"{run.job_id}_intro.mp4"
        outro_path = temp_dir / f"{run.job_id}_outro.mp4"
        concat_path = temp_dir / f"{run.job_id}_concat.mp4"
        output_path = self.output_dir / f"{run.job_id}_final.mp4"
        run.scratch.extend([intro_path, outro_path, concat_path])

        intro = await self.transcoder.render_placeholder_clip(request.app_name, intro_path, template)
        outro = await self.transcoder.render_placeholder_clip(
            f"Try {request.app_name} today", outro_path, template
        )
        captioned = await self.add_captions(run, template)

        await self.transcoder.concat_pair(intro, captioned, concat_path)
        await self.transcoder.concat_pair(concat_path, outro, output_path)
        StorageService.delete_local_files([concat_path])

        await self.transcoder.generate_formats(output_path, run.job_id)
        run.combine_method = "segment assembly"
        return output_path

    async def add_captions(self, run: PipelineRun, template: VideoTemplate) -> Path:
        """
        Burn the script's captions into the cleaned video, best effort.

        Ladder: subtitle burn-in, single static overlay of the first
        caption, then the unmodified input.
        """
        source = run.clean_path
        script = run.script
        if script is None or not script.segments:
            logger.info("No script segments, skipping captions")
            return source

        captioned_path = self.transcoder.temp_dir / f"{run.job_id}_captioned.mp4"
        srt_path = self.transcoder.temp_dir / f"{run.job_id}_captions.srt"
        run.scratch.extend([srt_path, captioned_path])

        async def burn_in() -> Path:
            written = self.transcoder.write_subtitles(script, run.job_id)
            return await self.transcoder.burn_subtitles(source, written, captioned_path, template)

        async def overlay() -> Path:
            return await self.transcoder.draw_text_overlay(
                source, script.first_caption or "Demo Video", captioned_path, template
            )

        async def unmodified() -> Path:
            return source

        _, result = await first_success([
            Attempt("subtitle burn-in", burn_in),
            Attempt("static text overlay", overlay),
            Attempt("uncaptioned video", unmodified),
        ])
        return result

    @staticmethod
    async def _copy_file(source: Path, destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, source, destination)
        logger.info(f"Original video copied to: {destination}")
        return destination

    # ==================== Publish ====================

    async def _publish(self, run: PipelineRun) -> None:
        job_id = run.job_id
        output_path = run.output_path
        local = {"local": str(output_path)}

        if not self.storage.is_configured:
            StorageService.delete_local_files(run.intermediates())
            self.registry.update_status(
                job_id, JobStatus.COMPLETED, self._completion_message(run), local
            )
            return

        # Local copy stays streamable while the upload runs
        self.registry.update_status(job_id, JobStatus.UPLOADING, "Uploading to cloud storage...", local)

        try:
            uploaded = await self.storage.upload(output_path, job_id)
        except StorageError as e:
            logger.error(f"Upload failed for job {job_id}, keeping local video: {e}")
            StorageService.delete_local_files(run.intermediates())
            self.registry.update_status(
                job_id,
                JobStatus.COMPLETED,
                f"{self._completion_message(run)} Cloud upload failed; serving local copy.",
            )
            return

        artifacts = {
            "public_id": uploaded.public_id,
            "public": uploaded.public_url,
            "streaming": uploaded.public_url,
            "download": uploaded.public_url,
        }
        try:
            artifacts["streaming"] = self.storage.generate_streaming_url(uploaded.public_id)
            artifacts["download"] = self.storage.generate_download_url(
                uploaded.public_id, f"{job_id}.mp4"
            )
        except Exception as e:
            logger.warning(f"Could not build playback URLs for job {job_id}: {e}")

        StorageService.delete_local_files(
            [*run.intermediates(), output_path, run.request.video_path]
        )
        self.registry.update_status(
            job_id, JobStatus.COMPLETED, self._completion_message(run), artifacts
        )

    @staticmethod
    def _completion_message(run: PipelineRun) -> str:
        if run.combine_method.startswith("mux"):
            return "Video ready for preview!"
        if run.combine_method == "segment assembly":
            return "Video processing complete!"
        return "Video ready for preview (narration unavailable)."


@lru_cache
def get_pipeline_orchestrator() -> PipelineOrchestrator:
    """
    Get the process-wide PipelineOrchestrator built from application settings.

    Returns:
        Configured PipelineOrchestrator instance
    """
    from src.config import get_settings
    from src.services.content_analysis import create_content_analysis_service
    from src.services.job_registry import get_job_registry
    from src.services.narration import create_narration_service
    from src.services.storage import create_storage_service
    from src.services.transcoder import create_transcoder_service

    settings = get_settings()
    return PipelineOrchestrator(
        registry=get_job_registry(),
        transcoder=create_transcoder_service(),
        content=create_content_analysis_service(),
        narration=create_narration_service(),
        storage=create_storage_service(),
        output_dir=settings.output_dir,
        combine_strategy=settings.combine_strategy,
        max_concurrent_jobs=settings.max_concurrent_jobs,
    )
