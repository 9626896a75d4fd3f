"""Transcoder service wrapping the ffmpeg command-line tool."""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from src.models.script import Feature, Script, srt_time_to_seconds
from src.models.template import VideoTemplate, get_template
from src.utils.errors import TranscoderError

logger = logging.getLogger(__name__)

PROGRESS_PATTERN = re.compile(r"time=(\d+:\d+:\d+\.\d+)")

# Cap on retained diagnostic text per invocation
MAX_DIAGNOSTIC_CHARS = 64 * 1024

CLIP_WIDTH = 1280
CLIP_HEIGHT = 720

MUX_PROFILES: dict[str, list[str]] = {
    # Keep the picture as-is, only encode the narration track
    "copy": ["-c:v", "copy", "-c:a", "aac"],
    # Slower path for sources whose video stream cannot be stream-copied
    "reencode": ["-c:v", "libx264", "-c:a", "aac", "-preset", "ultrafast", "-crf", "28"],
}


def escape_filter_value(value: str) -> str:
    """Escape a value for use inside an ffmpeg filtergraph option.

    Applies option-level escaping first, then filtergraph-level escaping,
    so paths and captions containing quotes, colons or commas are passed
    through literally.
    """
    option_level = value.replace("\\", "\\\\").replace("'", "\\'").replace(":", "\\:")
    return "".join("\\" + ch if ch in "\\'[],;" else ch for ch in option_level)


def _slug(name: str) -> str:
    slug = re.sub(r"[^0-9A-Za-z]+", "_", name).strip("_").lower()
    return slug or "segment"


@dataclass(frozen=True)
class TranscodeResult:
    """Outcome of a successful ffmpeg invocation."""

    output_path: Path
    operation: str
    last_progress: Optional[str] = None


class TranscoderService:
    """Runs discrete ffmpeg operations as awaitable units."""

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        temp_dir: Path | str = "temp",
        output_dir: Path | str = "output",
    ) -> None:
        """
        Initialize the TranscoderService.

        Args:
            ffmpeg_binary: Name or path of the ffmpeg executable
            temp_dir: Directory for intermediate artifacts
            output_dir: Directory for final artifacts
        """
        self.ffmpeg_binary = ffmpeg_binary
        self.temp_dir = Path(temp_dir)
        self.output_dir = Path(output_dir)

    @staticmethod
    def ensure_directory(path: Path) -> Path:
        """Create ``path`` if absent. Safe to call repeatedly."""
        path.mkdir(parents=True, exist_ok=True)
        return path

    def build_command(self, args: Sequence[str], output_path: Path) -> list[str]:
        return [self.ffmpeg_binary, "-hide_banner", "-y", *args, str(output_path)]

    async def run(
        self,
        args: Sequence[str],
        output_path: Path,
        operation: str,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> TranscodeResult:
        """
        Invoke ffmpeg and wait for it to finish.

        The diagnostic stream is read while the process runs so the latest
        ``time=`` marker can be reported as progress.

        Args:
            args: ffmpeg arguments between the global flags and the output path
            output_path: File ffmpeg is expected to produce
            operation: Short operation name used in logs and errors
            on_progress: Optional callback receiving each progress timestamp

        Returns:
            TranscodeResult for the produced file

        Raises:
            TranscoderError: On spawn failure, non-zero exit, or a missing
                or empty output file
        """
        output_path = Path(output_path)
        self.ensure_directory(output_path.parent)
        cmd = self.build_command(args, output_path)
        logger.debug(f"ffmpeg {operation}: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscoderError(operation, None, str(e)) from e

        diagnostics = ""
        last_progress: Optional[str] = None
        while True:
            chunk = await proc.stderr.read(4096)
            if not chunk:
                break
            text = chunk.decode(errors="ignore")
            diagnostics = (diagnostics + text)[-MAX_DIAGNOSTIC_CHARS:]
            matches = PROGRESS_PATTERN.findall(text)
            if matches:
                last_progress = matches[-1]
                logger.debug(f"{operation} progress: {last_progress}")
                if on_progress:
                    on_progress(last_progress)

        returncode = await proc.wait()
        if returncode != 0:
            self._discard_partial(output_path)
            raise TranscoderError(operation, returncode, diagnostics)

        if not output_path.exists() or output_path.stat().st_size == 0:
            self._discard_partial(output_path)
            raise TranscoderError(
                operation, returncode, diagnostics + "\noutput file missing or empty"
            )

        logger.info(f"ffmpeg {operation} complete: {output_path}")
        return TranscodeResult(output_path=output_path, operation=operation, last_progress=last_progress)

    @staticmethod
    def _discard_partial(output_path: Path) -> None:
        try:
            output_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove partial output {output_path}: {e}")

    async def extract_audio(
        self,
        video_path: Path,
        job_id: str,
        sample_rate: int = 16000,
        channels: int = 1,
    ) -> Path:
        """Extract a mono WAV track suitable for transcription."""
        output_path = self.temp_dir / f"audio_{job_id}.wav"
        args = [
            "-i", str(video_path),
            "-vn",
            "-ar", str(sample_rate),
            "-ac", str(channels),
            "-f", "wav",
        ]
        result = await self.run(args, output_path, "extract_audio")
        return result.output_path

    async def clean_video(self, video_path: Path, job_id: str) -> Path:
        """Re-encode the upload to H.264/AAC MP4 with faststart."""
        output_path = self.temp_dir / f"{job_id}_clean.mp4"
        args = [
            "-i", str(video_path),
            "-c:v", "libx264",
            "-c:a", "aac",
            "-preset", "fast",
            "-crf", "23",
            "-movflags", "+faststart",
            "-f", "mp4",
        ]
        result = await self.run(args, output_path, "clean_video")
        return result.output_path

    async def mux_audio(
        self,
        video_path: Path,
        audio_path: Path,
        output_path: Path,
        profile: str = "copy",
    ) -> Path:
        """
        Replace the video's audio with ``audio_path``.

        Args:
            video_path: Source of the picture track
            audio_path: Source of the new audio track
            output_path: Destination file
            profile: ``copy`` to stream-copy video, ``reencode`` for the
                slower, more compatible encode

        Returns:
            Path to the muxed file
        """
        if profile not in MUX_PROFILES:
            raise ValueError(f"Unknown mux profile: {profile}")
        args = [
            "-i", str(video_path),
            "-i", str(audio_path),
            *MUX_PROFILES[profile],
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-shortest",
        ]
        result = await self.run(args, output_path, f"mux_audio[{profile}]")
        return result.output_path

    async def concat_pair(self, first: Path, second: Path, output_path: Path) -> Path:
        """Concatenate two clips, normalizing both to the same frame size."""
        fit = (
            f"scale={CLIP_WIDTH}:{CLIP_HEIGHT}:force_original_aspect_ratio=decrease,"
            f"pad={CLIP_WIDTH}:{CLIP_HEIGHT}:(ow-iw)/2:(oh-ih)/2,setsar=1"
        )
        filter_complex = (
            f"[0:v:0]{fit}[v0];[1:v:0]{fit}[v1];"
            "[v0][0:a:0][v1][1:a:0]concat=n=2:v=1:a=1[outv][outa]"
        )
        args = [
            "-i", str(first),
            "-i", str(second),
            "-filter_complex", filter_complex,
            "-map", "[outv]",
            "-map", "[outa]",
            "-c:v", "libx264",
            "-c:a", "aac",
        ]
        result = await self.run(args, output_path, "concat")
        return result.output_path

    async def segment(
        self, video_path: Path, output_path: Path, start_seconds: float, duration: float
    ) -> Path:
        """Cut ``duration`` seconds starting at ``start_seconds``."""
        if duration <= 0:
            raise ValueError("segment duration must be positive")
        args = [
            "-ss", f"{start_seconds:.3f}",
            "-i", str(video_path),
            "-t", f"{duration:.3f}",
            "-c:v", "libx264",
            "-c:a", "aac",
        ]
        result = await self.run(args, output_path, "segment")
        return result.output_path

    async def segment_by_features(
        self, video_path: Path, features: Sequence[Feature], job_id: str
    ) -> dict[str, Path]:
        """Cut one clip per feature using its ``HH:MM:SS,mmm`` time span."""
        segments: dict[str, Path] = {}
        for feature in features:
            start = srt_time_to_seconds(feature.start_time)
            end = srt_time_to_seconds(feature.end_time)
            output_path = self.temp_dir / f"{job_id}_{_slug(feature.name)}.mp4"
            logger.info(f"Segmenting {feature.name}: {feature.start_time} to {feature.end_time}")
            segments[feature.name] = await self.segment(video_path, output_path, start, end - start)
        return segments

    def write_subtitles(self, script: Script, job_id: str) -> Path:
        """Render the script to ``<temp>/<job_id>_captions.srt``."""
        self.ensure_directory(self.temp_dir)
        srt_path = self.temp_dir / f"{job_id}_captions.srt"
        srt_path.write_text(script.to_srt(), encoding="utf-8")
        return srt_path

    async def burn_subtitles(
        self,
        video_path: Path,
        srt_path: Path,
        output_path: Path,
        template: Optional[VideoTemplate] = None,
    ) -> Path:
        """Render subtitle file captions into the picture."""
        template = template or get_template(None)
        style = (
            f"FontName=Arial,FontSize={template.caption_font_size},"
            "PrimaryColour=&H00FFFFFF,BackColour=&H80000000,BorderStyle=1,Outline=2"
        )
        video_filter = (
            f"subtitles=filename={escape_filter_value(srt_path.resolve().as_posix())}"
            f":force_style={escape_filter_value(style)}"
        )
        args = [
            "-i", str(video_path),
            "-vf", video_filter,
            "-c:v", "libx264",
            "-c:a", "aac",
        ]
        result = await self.run(args, output_path, "burn_subtitles")
        return result.output_path

    def _drawtext(self, text: str, font_size: int, color: str, y: str) -> str:
        return (
            f"drawtext=expansion=none:text={escape_filter_value(text)}"
            f":fontcolor={color}:fontsize={font_size}:x=(w-text_w)/2:y={y}"
        )

    async def draw_text_overlay(
        self,
        video_path: Path,
        text: str,
        output_path: Path,
        template: Optional[VideoTemplate] = None,
    ) -> Path:
        """Overlay a single static caption near the bottom of the frame."""
        template = template or get_template(None)
        args = [
            "-i", str(video_path),
            "-vf", self._drawtext(text, template.caption_font_size, template.text_color, "h-100"),
            "-c:v", "libx264",
            "-c:a", "aac",
        ]
        result = await self.run(args, output_path, "draw_text")
        return result.output_path

    async def render_placeholder_clip(
        self,
        text: str,
        output_path: Path,
        template: Optional[VideoTemplate] = None,
        duration: float = 3.0,
    ) -> Path:
        """Render a solid-color title card with a silent audio track."""
        template = template or get_template(None)
        args = [
            "-f", "lavfi",
            "-i", f"color=c={template.background_color}:s={CLIP_WIDTH}x{CLIP_HEIGHT}:d={duration}:r=30",
            "-f", "lavfi",
            "-i", "anullsrc=channel_layout=stereo:sample_rate=44100",
            "-vf", self._drawtext(text, 48, template.text_color, "(h-text_h)/2"),
            "-t", str(duration),
            "-c:v", "libx264",
            "-pix_fmt", "yuv420p",
            "-c:a", "aac",
            "-shortest",
        ]
        result = await self.run(args, output_path, "placeholder_clip")
        return result.output_path

    async def generate_formats(self, video_path: Path, job_id: str) -> list[Path]:
        """Alternative output formats (square, vertical). Not produced yet."""
        logger.info(f"Format generation disabled for job {job_id}; using {video_path} only")
        return []


def create_transcoder_service() -> TranscoderService:
    """
    Create a TranscoderService instance using application settings.

    Returns:
        Configured TranscoderService instance
    """
    from src.config import get_settings

    settings = get_settings()
    return TranscoderService(
        ffmpeg_binary=settings.ffmpeg_binary,
        temp_dir=settings.temp_dir,
        output_dir=settings.output_dir,
    )
