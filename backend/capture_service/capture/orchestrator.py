from __future__ import annotations

import asyncio
import uuid
from urllib.parse import quote

from loguru import logger

from capture_service.capture.browser import BrowserLauncher, chromium_launcher
from capture_service.capture.errors import ErrorKind, LaunchError, OrchestratorError
from capture_service.capture.session import CaptureSession
from capture_service.capture.types import (
    VIEW_NAMES,
    CaptureRequest,
    CaptureResult,
    Failure,
    Success,
    Viewport,
    ViewCaptureResult,
)
from capture_service.capture.view_task import ViewCaptureTask
from capture_service.core.config import Settings


class CaptureOrchestrator:
    """
    Runs one capture request end to end: opens a session, captures the front
    and back views concurrently and always tears the session down.

    Per-view problems come back as ``Failure`` entries of the result. Only a
    browser that cannot be launched raises, as ``OrchestratorError``.
    """

    def __init__(
        self,
        render_target_base_url: str,
        viewport: Viewport,
        *,
        page_load_timeout: float = 120.0,
        surface_timeout: float = 5.0,
        session_timeout: float = 300.0,
        launcher: BrowserLauncher | None = None,
    ) -> None:
        self.render_target_base_url = render_target_base_url.rstrip("/")
        self.viewport = viewport
        self.page_load_timeout = page_load_timeout
        self.surface_timeout = surface_timeout
        self.session_timeout = session_timeout
        self.launcher = launcher or chromium_launcher()

    @classmethod
    def from_settings(cls, settings: Settings, launcher: BrowserLauncher | None = None) -> CaptureOrchestrator:
        return cls(
            settings.render_target_base_url,
            settings.viewport(),
            page_load_timeout=settings.page_load_timeout_ms / 1000,
            surface_timeout=settings.surface_timeout_ms / 1000,
            session_timeout=settings.session_timeout_ms / 1000,
            launcher=launcher
            or chromium_launcher(headless=settings.browser_headless, args=settings.browser_arg_list),
        )

    def view_url(self, customization_id: str, view_name: str) -> str:
        return f"{self.render_target_base_url}/{quote(customization_id, safe='')}/{view_name}"

    def open_session(self) -> CaptureSession:
        return CaptureSession(self.launcher, self.viewport, self.session_timeout)

    async def capture(self, request: CaptureRequest) -> CaptureResult:
        request_id = uuid.uuid4().hex
        logger.info("Capture {} started for customization {}", request_id, request.customization_id)

        try:
            async with self.open_session() as session:
                tasks = [
                    ViewCaptureTask(
                        session,
                        view_name,
                        self.view_url(request.customization_id, view_name),
                        request.camera_settings,
                        page_load_timeout=self.page_load_timeout,
                        surface_timeout=self.surface_timeout,
                    )
                    for view_name in VIEW_NAMES
                ]
                outcomes = await asyncio.gather(*(task.run() for task in tasks), return_exceptions=True)
        except LaunchError as exc:
            logger.error("Capture {} could not start: {}", request_id, exc)
            raise OrchestratorError(str(exc)) from exc

        front, back = (
            _as_view_result(view_name, outcome) for view_name, outcome in zip(VIEW_NAMES, outcomes)
        )
        result = CaptureResult(request_id=request_id, front=front, back=back)
        logger.info("Capture {} finished: {}", request_id, result.overall_status.value)
        return result


def _as_view_result(view_name: str, outcome: object) -> ViewCaptureResult:
    if isinstance(outcome, (Success, Failure)):
        return outcome
    if isinstance(outcome, BaseException):
        logger.error("Capture of {} view raised {!r}", view_name, outcome)
        return Failure(view_name, ErrorKind.INTERNAL, str(outcome) or outcome.__class__.__name__)
    return Failure(view_name, ErrorKind.INTERNAL, f"Unexpected capture outcome {outcome!r}")
