from __future__ import annotations

from pathlib import Path

from loguru import logger

from capture_service.capture.errors import StoreError
from capture_service.core.config import Settings
from capture_service.storage.base import validate_key


class LocalArtifactStore:
    """Keeps artifacts on local disk; the app serves ``root`` under ``/{prefix}``."""

    def __init__(self, data_dir: str | Path, public_base_url: str, prefix: str = "captures") -> None:
        self.prefix = prefix.strip("/")
        self.root = Path(data_dir) / self.prefix
        self.public_base_url = public_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> LocalArtifactStore:
        return cls(settings.local_data_dir, settings.public_base_url, settings.storage_prefix)

    def ensure_dirs(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def get_path(self, key: str) -> Path:
        return self.root / validate_key(key)

    def save(self, data: bytes, key: str, content_type: str) -> str:
        path = self.get_path(key)
        try:
            self.ensure_dirs()
            path.write_bytes(data)
        except OSError as exc:
            raise StoreError(key, f"Could not write {path}: {exc}") from exc
        logger.info("Stored {} ({}, {} bytes) at {}", key, content_type, len(data), path)
        return f"{self.public_base_url}/{self.prefix}/{key}"
