"""PydanticAI agent configurations for demo analysis and scriptwriting."""

from src.agents.analyst import (
    FEATURE_ANALYSIS_PROMPT,
    FEATURE_ANALYSIS_SYSTEM_PROMPT,
    TRANSCRIBE_SYSTEM_PROMPT,
    create_feature_agent,
    create_transcription_agent,
)
from src.agents.scriptwriter import (
    SCRIPT_PROMPT,
    SCRIPTWRITER_SYSTEM_PROMPT,
    create_scriptwriter_agent,
)

__all__ = [
    "create_feature_agent",
    "create_transcription_agent",
    "create_scriptwriter_agent",
    "FEATURE_ANALYSIS_PROMPT",
    "FEATURE_ANALYSIS_SYSTEM_PROMPT",
    "TRANSCRIBE_SYSTEM_PROMPT",
    "SCRIPT_PROMPT",
    "SCRIPTWRITER_SYSTEM_PROMPT",
]
