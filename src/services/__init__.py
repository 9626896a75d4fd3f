"""Service layer for the demo video narrator."""

from src.services.content_analysis import ContentAnalysisService, create_content_analysis_service
from src.services.delivery import OutputDelivery, create_output_delivery
from src.services.job_registry import InMemoryJobStore, JobRegistry, JobStore, get_job_registry
from src.services.narration import NarrationService, create_narration_service
from src.services.pipeline import JobRequest, PipelineOrchestrator, get_pipeline_orchestrator
from src.services.storage import StorageService, UploadedArtifact, create_storage_service
from src.services.transcoder import TranscodeResult, TranscoderService, create_transcoder_service

__all__ = [
    "ContentAnalysisService",
    "create_content_analysis_service",
    "OutputDelivery",
    "create_output_delivery",
    "InMemoryJobStore",
    "JobRegistry",
    "JobStore",
    "get_job_registry",
    "NarrationService",
    "create_narration_service",
    "JobRequest",
    "PipelineOrchestrator",
    "get_pipeline_orchestrator",
    "StorageService",
    "UploadedArtifact",
    "create_storage_service",
    "TranscodeResult",
    "TranscoderService",
    "create_transcoder_service",
]
