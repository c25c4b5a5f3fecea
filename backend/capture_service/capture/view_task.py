from __future__ import annotations

import asyncio
import base64
import binascii
from io import BytesIO

from loguru import logger
from PIL import Image, UnidentifiedImageError
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from capture_service.capture.errors import (
    CaptureTimeout,
    EncodingError,
    ErrorKind,
    NavigationError,
    NoSurfaceError,
    ViewCaptureError,
)
from capture_service.capture.session import CaptureSession
from capture_service.capture.types import (
    PNG_CONTENT_TYPE,
    CameraSettings,
    Failure,
    Success,
    ViewCaptureResult,
)

SURFACE_SELECTOR = "canvas"

INJECT_SETTINGS_SCRIPT = "(settings) => { window.captureSettings = settings; }"

EXPORT_SURFACE_SCRIPT = """() => {
  const canvas = document.querySelector("canvas");
  if (!canvas) return null;
  return canvas.toDataURL("image/png");
}"""

DATA_URL_PREFIX = "data:image/png;base64,"


def decode_png_data_url(data_url: object) -> tuple[bytes, int, int]:
    if not isinstance(data_url, str) or not data_url.startswith(DATA_URL_PREFIX):
        raise EncodingError("Surface export did not return a PNG data URL")
    try:
        data = base64.b64decode(data_url[len(DATA_URL_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncodingError(f"Surface export is not valid base64: {exc}") from exc
    if not data:
        raise EncodingError("Surface export returned an empty image")

    try:
        with Image.open(BytesIO(data)) as image:
            if image.format != "PNG":
                raise EncodingError(f"Surface export returned {image.format} data, expected PNG")
            width, height = image.size
    except (UnidentifiedImageError, OSError) as exc:
        raise EncodingError(f"Surface export could not be decoded: {exc}") from exc
    return data, width, height


class ViewCaptureTask:
    """Captures one named view of a customization inside its own browsing context."""

    def __init__(
        self,
        session: CaptureSession,
        view_name: str,
        url: str,
        camera: CameraSettings,
        *,
        page_load_timeout: float,
        surface_timeout: float,
    ) -> None:
        self.session = session
        self.view_name = view_name
        self.url = url
        self.camera = camera
        self.page_load_timeout = page_load_timeout
        self.surface_timeout = surface_timeout

    async def run(self) -> ViewCaptureResult:
        try:
            data, width, height = await self._capture()
        except ViewCaptureError as exc:
            logger.warning("Capture of {} view failed ({}): {}", self.view_name, exc.kind.value, exc)
            return Failure(self.view_name, exc.kind, str(exc))
        except Exception as exc:
            logger.exception("Unexpected error capturing {} view", self.view_name)
            return Failure(self.view_name, ErrorKind.INTERNAL, str(exc) or exc.__class__.__name__)

        logger.info("Captured {} view: {} bytes, {}x{}", self.view_name, len(data), width, height)
        return Success(self.view_name, data, PNG_CONTENT_TYPE, width, height)

    async def _capture(self) -> tuple[bytes, int, int]:
        context = await self.session.new_context()
        try:
            page = await context.new_page()
            await self._navigate(page)
            await self._inject_settings(page)
            await self._wait_for_surface(page)
            return decode_png_data_url(await self._export_surface(page))
        finally:
            await self.session.release_context(context)

    def _budget(self, limit: float) -> float:
        return min(limit, self.session.remaining())

    async def _navigate(self, page) -> None:
        budget = self._budget(self.page_load_timeout)
        if budget <= 0:
            raise CaptureTimeout("Session deadline passed before navigation started")

        logger.info("Loading {} view from {}", self.view_name, self.url)
        try:
            await asyncio.wait_for(self._load(page, budget * 1000), timeout=budget)
        except (asyncio.TimeoutError, PlaywrightTimeoutError) as exc:
            raise CaptureTimeout(f"Loading {self.url} exceeded {budget:g}s") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Loading {self.url} failed: {exc.message}") from exc

    async def _load(self, page, timeout_ms: float) -> None:
        await page.goto(self.url, wait_until="load", timeout=timeout_ms)
        await page.wait_for_load_state("networkidle", timeout=timeout_ms)

    async def _inject_settings(self, page) -> None:
        try:
            await page.evaluate(INJECT_SETTINGS_SCRIPT, self.camera.as_payload())
        except PlaywrightError as exc:
            raise NavigationError(f"Page rejected capture settings: {exc.message}") from exc

    async def _wait_for_surface(self, page) -> None:
        budget = self._budget(self.surface_timeout)
        # Playwright treats a zero timeout as "wait forever".
        if budget <= 0:
            raise CaptureTimeout("Session deadline passed before the surface was ready")
        try:
            surface = await page.wait_for_selector(
                SURFACE_SELECTOR, state="attached", timeout=budget * 1000
            )
        except PlaywrightTimeoutError as exc:
            raise NoSurfaceError(f"No drawable surface appeared within {budget:g}s") from exc
        except PlaywrightError as exc:
            raise NoSurfaceError(f"Looking up drawable surface failed: {exc.message}") from exc
        if surface is None:
            raise NoSurfaceError("Page has no drawable surface")

    async def _export_surface(self, page) -> object:
        try:
            data_url = await page.evaluate(EXPORT_SURFACE_SCRIPT)
        except PlaywrightError as exc:
            raise EncodingError(f"Surface export failed: {exc.message}") from exc
        if data_url is None:
            raise NoSurfaceError("Drawable surface vanished before export")
        return data_url
