"""Custom exception classes for the demo video narrator."""

from typing import Optional


class DemoNarratorError(Exception):
    """Base exception for all application errors."""

    pass


class TranscoderError(DemoNarratorError):
    """ffmpeg exited non-zero or could not be spawned."""

    def __init__(
        self, operation: str, returncode: Optional[int], stderr: str = ""
    ) -> None:
        self.operation = operation
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no diagnostic output"
        if returncode is None:
            super().__init__(f"ffmpeg {operation} could not start: {detail}")
        else:
            super().__init__(f"ffmpeg {operation} failed with code {returncode}: {detail}")


class ContentAnalysisError(DemoNarratorError):
    """Errors from the text-generation provider."""

    pass


class QuotaExceededError(ContentAnalysisError):
    """Provider reported a quota or rate-limit condition."""

    pass


class NarrationError(DemoNarratorError):
    """Narration client is misconfigured."""

    pass


class StorageError(DemoNarratorError):
    """Durable storage upload failed."""

    pass


class JobStateError(DemoNarratorError):
    """Illegal job status transition."""

    pass


class IntakeError(DemoNarratorError):
    """Malformed intake request, rejected before a job is created."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message)
