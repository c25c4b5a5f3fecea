from fastapi import Depends, Request

from capture_service.capture.orchestrator import CaptureOrchestrator
from capture_service.core.config import Settings, get_settings
from capture_service.storage.base import ArtifactStore, get_artifact_store


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_orchestrator(settings: Settings = Depends(get_app_settings)) -> CaptureOrchestrator:
    return CaptureOrchestrator.from_settings(settings)


def get_store(settings: Settings = Depends(get_app_settings)) -> ArtifactStore:
    return get_artifact_store(settings)
