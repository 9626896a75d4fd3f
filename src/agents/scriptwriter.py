"""Scriptwriter agent configuration.

Writes short, marketing-focused narration for product demo videos.
"""

import os

from pydantic_ai import Agent

from src.config import get_settings
from src.models.script import Script

SCRIPTWRITER_SYSTEM_PROMPT = """
You write professional narration scripts for SaaS product demo videos.

TONE: Confident, friendly, benefit-driven. No jargon.

STRUCTURE:
- 4-5 segments, each exactly 5 seconds long, back to back from 00:00:00,000
- Timestamps use the HH:MM:SS,mmm format
- Open with a hook, show value, demo the product, close with a call to action
- Each caption is one spoken sentence of at most 15 words

Set each segment's type to one of: hook, value, demo, feature, social_proof, cta.
"""

SCRIPT_PROMPT = """Create a professional video script for this SaaS application:

App: {app_name}
Description: {description}
Template: {template}
Transcript of the demo: {transcript}
"""


def create_scriptwriter_agent() -> Agent[None, Script]:
    """Create the scriptwriter agent.

    Returns:
        A PydanticAI Agent producing a validated Script.
    """
    settings = get_settings()

    # Set environment variable for pydantic-ai to pick up
    if settings.gemini_api_key:
        os.environ["GEMINI_API_KEY"] = settings.gemini_api_key

    return Agent(
        settings.analysis_model,
        system_prompt=SCRIPTWRITER_SYSTEM_PROMPT,
        output_type=Script,
        retries=1,
    )
