from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from capture_service.capture.errors import StoreError
from capture_service.capture.types import CaptureResult, artifact_key
from capture_service.storage.base import validate_key


@dataclass
class CleanupReport:
    removed: list[Path] = field(default_factory=list)
    failed: dict[Path, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def spool_capture(result: CaptureResult, customization_id: str, directory: str | Path) -> list[Path]:
    """
    Write local copies of the captured views, returning their paths.

    Views whose key is not a plain file name are skipped. If a write fails,
    the copies already written are removed before the error propagates.
    """
    root = Path(directory)
    root.mkdir(parents=True, exist_ok=True)
    paths: list[Path] = []
    for view in result.successes():
        try:
            key = validate_key(artifact_key(customization_id, view.view_name))
        except StoreError as exc:
            logger.warning("Not spooling {} view: {}", view.view_name, exc)
            continue
        path = root / key
        try:
            path.write_bytes(view.image_bytes)
        except OSError:
            cleanup_spool(paths)
            raise
        paths.append(path)
    return paths


def cleanup_spool(paths: list[Path]) -> CleanupReport:
    report = CleanupReport()
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            report.failed[path] = str(exc)
            logger.warning("Could not remove spooled capture {}: {}", path, exc)
            continue
        report.removed.append(path)
    if report.removed:
        logger.info("Removed {} spooled capture file(s)", len(report.removed))
    return report
