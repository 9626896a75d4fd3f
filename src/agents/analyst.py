"""Demo analyst agent configuration.

The analyst listens to the demo's audio track and picks out the product
features a viewer should notice.
"""

import os

from pydantic_ai import Agent

from src.config import get_settings
from src.models.script import FeatureAnalysis

TRANSCRIBE_SYSTEM_PROMPT = """
You transcribe the spoken audio of software product demo recordings.

RULES:
- Return only the transcript text, no headings or commentary
- Keep the speaker's wording; fix obvious filler words only
- If nothing intelligible is spoken, describe what the audio contains in one sentence
"""

FEATURE_ANALYSIS_SYSTEM_PROMPT = """
You analyze SaaS application demo videos and identify the key features shown.

RULES:
- Identify 2-3 main features shown in the video
- Give each feature a start and end timestamp formatted HH:MM:SS,mmm
- Feature spans must be in order and must not overlap
- Keep each description to one sentence about what the feature does
"""

FEATURE_ANALYSIS_PROMPT = """Analyze this SaaS application demo and identify key features:

App Name: {app_name}
Description: {description}
Transcript: {transcript}
"""


def _export_api_key() -> None:
    settings = get_settings()

    # Set environment variable for pydantic-ai to pick up
    if settings.gemini_api_key:
        os.environ["GEMINI_API_KEY"] = settings.gemini_api_key


def create_transcription_agent() -> Agent[None, str]:
    """Create the agent that turns demo audio into text.

    Returns:
        A PydanticAI Agent producing a plain-text transcript.
    """
    _export_api_key()
    return Agent(
        get_settings().analysis_model,
        system_prompt=TRANSCRIBE_SYSTEM_PROMPT,
        output_type=str,
        retries=1,
    )


def create_feature_agent() -> Agent[None, FeatureAnalysis]:
    """Create the feature analysis agent.

    Returns:
        A PydanticAI Agent producing a structured FeatureAnalysis.
    """
    _export_api_key()
    return Agent(
        get_settings().analysis_model,
        system_prompt=FEATURE_ANALYSIS_SYSTEM_PROMPT,
        output_type=FeatureAnalysis,
        retries=2,
    )
