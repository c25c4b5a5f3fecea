from __future__ import annotations

import asyncio
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from capture_service.api.deps import get_app_settings, get_orchestrator, get_store
from capture_service.capture.errors import OrchestratorError
from capture_service.capture.orchestrator import CaptureOrchestrator
from capture_service.capture.types import CaptureRequest, CaptureResult
from capture_service.core.config import Settings
from capture_service.schemas.capture import CaptureImages, CaptureRequestBody, CaptureResponse, ErrorResponse
from capture_service.services.persistence import persist_capture
from capture_service.services.spool import cleanup_spool, spool_capture
from capture_service.storage.base import ArtifactStore

router = APIRouter(prefix="/api", tags=["capture"])


def _failed(message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=500)


async def _spool(result: CaptureResult, customization_id: str, settings: Settings) -> list[Path]:
    if not settings.spool_dir:
        return []
    try:
        return await asyncio.to_thread(spool_capture, result, customization_id, settings.spool_dir)
    except OSError as exc:
        logger.warning("Could not spool captures to {}: {}", settings.spool_dir, exc)
        return []


@router.post(
    "/capture",
    response_model=CaptureResponse,
    responses={500: {"model": ErrorResponse}},
)
async def capture(
    payload: CaptureRequestBody,
    settings: Settings = Depends(get_app_settings),
    orchestrator: CaptureOrchestrator = Depends(get_orchestrator),
    store: ArtifactStore = Depends(get_store),
):
    logger.info("Capture request: {}", payload.model_dump(by_alias=True))
    camera = payload.camera_settings.to_camera() if payload.camera_settings else settings.default_camera()
    request = CaptureRequest(customization_id=payload.customization_id, camera_settings=camera)

    try:
        result = await orchestrator.capture(request)
    except OrchestratorError as exc:
        logger.error("Capture failed: {}", exc)
        return _failed("Capture failed")
    except Exception:
        logger.exception("Capture failed")
        return _failed("Capture failed")

    spooled = await _spool(result, request.customization_id, settings)
    persisted = await persist_capture(result, request.customization_id, store)
    if spooled and settings.spool_cleanup:
        report = await asyncio.to_thread(cleanup_spool, spooled)
        if not report.ok:
            logger.warning("Spool cleanup left {} file(s) behind", len(report.failed))

    return CaptureResponse(success=True, images=CaptureImages(**persisted.urls()))
