"""FastAPI dependencies for the demo video narrator API."""

from src.config import Settings, get_settings
from src.services.delivery import OutputDelivery, create_output_delivery
from src.services.job_registry import JobRegistry, get_job_registry
from src.services.pipeline import PipelineOrchestrator, get_pipeline_orchestrator


def get_settings_dep() -> Settings:
    """Dependency for application settings."""
    return get_settings()


def get_registry_dep() -> JobRegistry:
    """Dependency for the job registry."""
    return get_job_registry()


def get_orchestrator_dep() -> PipelineOrchestrator:
    """Dependency for the pipeline orchestrator."""
    return get_pipeline_orchestrator()


def get_delivery_dep() -> OutputDelivery:
    """Dependency for output delivery."""
    return create_output_delivery()
