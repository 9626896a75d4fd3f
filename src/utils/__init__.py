"""Utility modules for the demo video narrator."""

from src.utils.errors import (
    ContentAnalysisError,
    DemoNarratorError,
    IntakeError,
    JobStateError,
    NarrationError,
    QuotaExceededError,
    StorageError,
    TranscoderError,
)
from src.utils.fallback import Attempt, FallbackExhaustedError, first_success
from src.utils.retry import with_retry

__all__ = [
    "DemoNarratorError",
    "TranscoderError",
    "ContentAnalysisError",
    "QuotaExceededError",
    "NarrationError",
    "StorageError",
    "JobStateError",
    "IntakeError",
    "Attempt",
    "FallbackExhaustedError",
    "first_success",
    "with_retry",
]
