"""Content analysis service: transcript, feature list and narration script.

Every operation has a deterministic local fallback, so provider trouble
never fails a job.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from src.agents.analyst import FEATURE_ANALYSIS_PROMPT
from src.agents.scriptwriter import SCRIPT_PROMPT
from src.models.script import Feature, FeatureAnalysis, Script, ScriptSegment
from src.utils.errors import ContentAnalysisError, QuotaExceededError
from src.utils.retry import with_retry

logger = logging.getLogger(__name__)

PLACEHOLDER_TRANSCRIPT = (
    "This is a demo video showcasing an innovative SaaS application. "
    "The user demonstrates various features including user interface elements, "
    "core functionality, and key benefits. The application appears to be "
    "designed for productivity and user engagement with modern interface patterns."
)

QUOTA_MARKERS = ("429", "quota", "rate limit", "resource_exhausted")


def classify_provider_error(error: Exception) -> ContentAnalysisError:
    """Map a provider exception onto the content analysis error hierarchy."""
    if isinstance(error, ContentAnalysisError):
        return error
    status_code = getattr(error, "status_code", None)
    message = str(error)
    if status_code == 429 or any(marker in message.lower() for marker in QUOTA_MARKERS):
        return QuotaExceededError(f"Provider quota exceeded: {message}")
    return ContentAnalysisError(f"Provider request failed: {message}")


class ContentAnalysisService:
    """Service wrapping the text-generation provider."""

    def __init__(
        self,
        transcription_agent: Optional[Any] = None,
        feature_agent: Optional[Any] = None,
        script_agent: Optional[Any] = None,
        use_ai_script: bool = False,
        max_retry_attempts: int = 2,
        base_delay: float = 5.0,
    ) -> None:
        """
        Initialize the ContentAnalysisService.

        Args:
            transcription_agent: Agent turning audio into text (optional)
            feature_agent: Agent producing a FeatureAnalysis (optional)
            script_agent: Agent producing a Script (optional)
            use_ai_script: Try the provider before the local script generator
            max_retry_attempts: Provider attempts for script generation
            base_delay: Backoff base delay in seconds
        """
        self.transcription_agent = transcription_agent
        self.feature_agent = feature_agent
        self.script_agent = script_agent
        self.use_ai_script = use_ai_script
        self.max_retry_attempts = max(1, max_retry_attempts)
        self.base_delay = base_delay

    # ==================== Transcription ====================

    async def transcribe_audio(self, audio_path: Path) -> str:
        """
        Transcribe the extracted audio track.

        Falls back to a fixed placeholder transcript on any provider failure.
        """
        if self.transcription_agent is None:
            logger.info("No transcription provider configured, using placeholder transcript")
            return PLACEHOLDER_TRANSCRIPT

        try:
            from pydantic_ai import BinaryContent

            data = await asyncio.to_thread(Path(audio_path).read_bytes)
            audio = BinaryContent(data=data, media_type="audio/wav")
            result = await self.transcription_agent.run(
                ["Transcribe the narration in this product demo.", audio]
            )
            transcript = (result.output or "").strip()
            if not transcript:
                raise ContentAnalysisError("Provider returned an empty transcript")
            logger.info(f"Transcribed {audio_path}: {len(transcript)} characters")
            return transcript
        except Exception as e:
            logger.warning(f"Transcription failed, using placeholder: {e}")
            return PLACEHOLDER_TRANSCRIPT

    # ==================== Feature analysis ====================

    async def analyze_features(
        self, app_name: str, description: str, transcript: str
    ) -> FeatureAnalysis:
        """Identify the main features shown in the demo."""
        if self.feature_agent is None:
            return self.generate_fallback_features(app_name)

        prompt = FEATURE_ANALYSIS_PROMPT.format(
            app_name=app_name, description=description, transcript=transcript
        )
        try:
            result = await self.feature_agent.run(prompt)
            analysis = result.output
            if not isinstance(analysis, FeatureAnalysis) or not analysis.features:
                raise ContentAnalysisError("Provider returned no usable features")
            logger.info(f"Identified {len(analysis.features)} features for {app_name}")
            return analysis
        except Exception as e:
            logger.warning(f"Feature analysis failed, using fallback features: {e}")
            return self.generate_fallback_features(app_name)

    @staticmethod
    def generate_fallback_features(app_name: str) -> FeatureAnalysis:
        """Deterministic feature list derived from the app name."""
        return FeatureAnalysis(
            features=[
                Feature(
                    name="Auto Content Generator",
                    start_time="00:00:06,000",
                    end_time="00:00:12,000",
                    description="User demonstrates automatic content generation with different tones",
                ),
                Feature(
                    name="Personal Writing Assistant",
                    start_time="00:00:12,000",
                    end_time="00:00:18,000",
                    description="Shows AI-powered writing assistance and editing capabilities",
                ),
                Feature(
                    name=f"{app_name} Core Features",
                    start_time="00:00:18,000",
                    end_time="00:00:24,000",
                    description="Main functionality demonstration and user interface walkthrough",
                ),
            ]
        )

    # ==================== Script generation ====================

    async def generate_script(
        self,
        app_name: str,
        description: str,
        transcript: str,
        template: Optional[str] = None,
    ) -> Script:
        """
        Produce the narration script.

        The local generator is used unless ``use_ai_script`` is set and a
        provider is configured, to stay clear of provider quotas.
        """
        if self.use_ai_script and self.script_agent is not None:
            return await self.generate_script_with_retry(app_name, description, transcript, template)

        logger.info("Using local script generation to avoid provider quota limits")
        return self.generate_fallback_script(app_name, description, template)

    async def generate_script_with_retry(
        self,
        app_name: str,
        description: str,
        transcript: str,
        template: Optional[str] = None,
    ) -> Script:
        """
        Try the provider with backoff, then fall back to the local generator.

        A quota or rate-limit error stops retrying at once.
        """
        if self.script_agent is None:
            return self.generate_fallback_script(app_name, description, template)

        call = with_retry(
            max_attempts=self.max_retry_attempts,
            base_delay=self.base_delay,
            exceptions=(ContentAnalysisError,),
            abort_on=(QuotaExceededError,),
        )(self._request_script)

        try:
            script = await call(app_name, description, transcript, template)
            logger.info(f"Generated script via provider: {len(script.segments)} segments")
            return script
        except QuotaExceededError:
            logger.warning("Quota exceeded - switching to fallback script")
        except ContentAnalysisError as e:
            logger.warning(f"Script generation attempts exhausted: {e}")

        return self.generate_fallback_script(app_name, description, template)

    async def _request_script(
        self,
        app_name: str,
        description: str,
        transcript: str,
        template: Optional[str],
    ) -> Script:
        prompt = SCRIPT_PROMPT.format(
            app_name=app_name,
            description=description,
            template=template or "professional",
            transcript=transcript,
        )
        try:
            result = await self.script_agent.run(prompt)
        except Exception as e:
            raise classify_provider_error(e) from e

        script = result.output
        if not isinstance(script, Script) or not script.segments:
            raise ContentAnalysisError("Could not parse a script from the provider response")
        return script

    @staticmethod
    def generate_fallback_script(
        app_name: str, description: str, template: Optional[str] = None
    ) -> Script:
        """Deterministic six-segment, thirty-second script.

        Depends only on its arguments; ``template`` does not change the
        wording today but is accepted so callers pass the full request.
        """
        captions = [
            ("hook", "intro", f"Discover the power of {app_name}."),
            ("value", "benefit", f"Revolutionize your {description.lower()} workflow."),
            ("demo", "main", "See how easy it is to get started with our intuitive interface."),
            ("feature", "benefits", "Powerful features designed to save you time and boost productivity."),
            ("social_proof", "testimonial", f"Join thousands who are already succeeding with {app_name}."),
            ("cta", "outro", "Ready to transform your workflow? Get started today!"),
        ]
        segments = [
            ScriptSegment(
                start_time=f"00:00:{index * 5:02d},000",
                end_time=f"00:00:{(index + 1) * 5:02d},000",
                caption=caption,
                type=segment_type,
                feature=feature,
            )
            for index, (segment_type, feature, caption) in enumerate(captions)
        ]
        return Script(segments=segments)


def create_content_analysis_service() -> ContentAnalysisService:
    """
    Create a ContentAnalysisService instance using application settings.

    Agents are only built when a provider key is configured.

    Returns:
        Configured ContentAnalysisService instance
    """
    from src.config import get_settings

    settings = get_settings()
    transcription_agent = feature_agent = script_agent = None

    if settings.gemini_api_key:
        from src.agents.analyst import create_feature_agent, create_transcription_agent
        from src.agents.scriptwriter import create_scriptwriter_agent

        transcription_agent = create_transcription_agent()
        feature_agent = create_feature_agent()
        script_agent = create_scriptwriter_agent()
    else:
        logger.warning("GEMINI_API_KEY not set - content analysis uses local fallbacks")

    return ContentAnalysisService(
        transcription_agent=transcription_agent,
        feature_agent=feature_agent,
        script_agent=script_agent,
        use_ai_script=settings.use_ai_script,
        max_retry_attempts=settings.max_retry_attempts,
        base_delay=settings.base_delay_seconds,
    )
