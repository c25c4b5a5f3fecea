from __future__ import annotations

from typing import Protocol

from capture_service.capture.errors import StoreError
from capture_service.core.config import Settings


class ArtifactStore(Protocol):
    def save(self, data: bytes, key: str, content_type: str) -> str:
        ...


def validate_key(key: str) -> str:
    if not key or "/" in key or "\\" in key or key in {".", ".."}:
        raise StoreError(key, "Artifact keys must be plain file names")
    return key


def get_artifact_store(settings: Settings) -> ArtifactStore:
    backend = settings.storage_backend.lower()
    if backend == "s3":
        from capture_service.storage.s3 import S3ArtifactStore

        return S3ArtifactStore.from_settings(settings)
    if backend == "local":
        from capture_service.storage.local import LocalArtifactStore

        return LocalArtifactStore.from_settings(settings)
    raise ValueError(f"Unknown storage backend '{settings.storage_backend}'. Available: local, s3")
