from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from capture_service.capture.types import CaptureResult, StoredArtifact, Success, artifact_key
from capture_service.storage.base import ArtifactStore


@dataclass
class PersistedCapture:
    front: StoredArtifact | None = None
    back: StoredArtifact | None = None
    errors: dict[str, str] = field(default_factory=dict)

    def urls(self) -> dict[str, str | None]:
        return {
            "front": self.front.url if self.front else None,
            "back": self.back.url if self.back else None,
        }


async def _store_view(store: ArtifactStore, customization_id: str, view: Success) -> StoredArtifact:
    key = artifact_key(customization_id, view.view_name)
    url = await asyncio.to_thread(store.save, view.image_bytes, key, view.encoding)
    return StoredArtifact(key=key, url=url)


async def persist_capture(result: CaptureResult, customization_id: str, store: ArtifactStore) -> PersistedCapture:
    """Store every successful view; failed views and failed uploads map to ``None``."""
    persisted = PersistedCapture()
    successes = result.successes()
    outcomes = await asyncio.gather(
        *(_store_view(store, customization_id, view) for view in successes),
        return_exceptions=True,
    )

    for view, outcome in zip(successes, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Storing {} view of {} failed: {}", view.view_name, customization_id, outcome)
            persisted.errors[view.view_name] = str(outcome)
            continue
        setattr(persisted, view.view_name, outcome)

    logger.info("Images saved: {}", persisted.urls())
    return persisted
