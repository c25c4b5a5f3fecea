from __future__ import annotations

import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger

from capture_service.capture.browser import BrowserHandle, BrowserLauncher
from capture_service.capture.errors import ContextError, LaunchError
from capture_service.capture.types import Viewport


class CaptureSession:
    """
    One browser process scoped to a single capture request.

    Use as an async context manager so the process is torn down on every exit
    path. ``close`` is idempotent.
    """

    def __init__(self, launcher: BrowserLauncher, viewport: Viewport, lifetime_sec: float) -> None:
        self.session_id = uuid.uuid4().hex
        self.viewport = viewport
        self.lifetime_sec = lifetime_sec
        self.created_at: datetime | None = None
        self.deadline: datetime | None = None
        self._launcher = launcher
        self._browser: BrowserHandle | None = None
        self._contexts: list[Any] = []
        self._deadline_clock: float | None = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._browser is not None and not self._closed

    @property
    def open_context_count(self) -> int:
        return len(self._contexts)

    def remaining(self) -> float:
        if self._deadline_clock is None:
            return self.lifetime_sec
        return max(0.0, self._deadline_clock - time.monotonic())

    async def open(self) -> CaptureSession:
        if self._closed:
            raise LaunchError(f"Session {self.session_id} was already closed")
        try:
            self._browser = await self._launcher()
        except Exception as exc:
            self._closed = True
            raise LaunchError(f"Could not launch browser: {exc}") from exc

        self.created_at = datetime.now(timezone.utc)
        self.deadline = self.created_at + timedelta(seconds=self.lifetime_sec)
        self._deadline_clock = time.monotonic() + self.lifetime_sec
        logger.info("Capture session {} launched", self.session_id)
        return self

    async def new_context(self):
        if not self.is_open:
            raise ContextError(f"Session {self.session_id} is not open")
        width, height = self.viewport.width, self.viewport.height
        try:
            context = await self._browser.new_context(
                viewport={"width": width, "height": height},
                device_scale_factor=self.viewport.device_scale_factor,
            )
        except Exception as exc:
            raise ContextError(f"Could not open browsing context: {exc}") from exc
        self._contexts.append(context)
        return context

    async def release_context(self, context) -> None:
        if context not in self._contexts:
            return
        self._contexts.remove(context)
        try:
            await context.close()
        except Exception as exc:
            logger.warning("Closing browsing context in session {} failed: {}", self.session_id, exc)

    async def close(self) -> None:
        if self._closed and self._browser is None:
            return
        self._closed = True
        for context in list(self._contexts):
            await self.release_context(context)

        browser, self._browser = self._browser, None
        if browser is None:
            return
        try:
            await browser.close()
        except Exception as exc:
            logger.warning("Terminating browser for session {} failed: {}", self.session_id, exc)
        else:
            logger.info("Capture session {} closed", self.session_id)

    async def __aenter__(self) -> CaptureSession:
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
