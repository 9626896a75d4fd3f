"""Pydantic data models for the demo video narrator."""

from src.models.job import JobRecord, JobStatus
from src.models.script import (
    Feature,
    FeatureAnalysis,
    Script,
    ScriptSegment,
    seconds_to_srt_time,
    srt_time_to_seconds,
)
from src.models.template import TEMPLATES, VideoTemplate, get_template

__all__ = [
    "JobRecord",
    "JobStatus",
    "Feature",
    "FeatureAnalysis",
    "Script",
    "ScriptSegment",
    "seconds_to_srt_time",
    "srt_time_to_seconds",
    "TEMPLATES",
    "VideoTemplate",
    "get_template",
]
