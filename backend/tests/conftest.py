from __future__ import annotations

import asyncio
import base64
import time
from io import BytesIO

import pytest
from PIL import Image
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from capture_service.capture.errors import StoreError
from capture_service.capture.orchestrator import CaptureOrchestrator
from capture_service.capture.types import CameraSettings, CaptureRequest, Viewport


def png_bytes(width: int, height: int, color: tuple[int, int, int] = (200, 40, 40)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def png_data_url(width: int, height: int, color: tuple[int, int, int] = (200, 40, 40)) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes(width, height, color)).decode()


class FakeRenderTarget:
    """
    Stand-in for the page serving ``/{customizationId}/{view}``.

    ``behaviours`` maps a view name to one of: ok, hang, load_error,
    load_timeout, no_canvas, bad_export, export_error, crash.
    """

    COLORS = {"front": (200, 40, 40), "back": (40, 40, 200)}

    def __init__(self, behaviours: dict[str, str] | None = None) -> None:
        self.behaviours = behaviours or {}
        self.visited: list[str] = []
        self.injected: dict[str, dict] = {}
        self.events: list[tuple[str, str, float]] = []

    def behaviour(self, view: str) -> str:
        return self.behaviours.get(view, "ok")

    def record(self, view: str, event: str) -> None:
        self.events.append((view, event, time.monotonic()))


class FakePage:
    def __init__(self, target: FakeRenderTarget, options: dict) -> None:
        self.target = target
        self.options = options
        self.view: str | None = None

    async def goto(self, url: str, wait_until: str | None = None, timeout: float | None = None):
        self.view = url.rstrip("/").rsplit("/", 1)[-1]
        self.target.visited.append(url)
        self.target.record(self.view, "goto")
        behaviour = self.target.behaviour(self.view)
        if behaviour == "hang":
            await asyncio.sleep(3600)
        if behaviour == "load_error":
            raise PlaywrightError("net::ERR_CONNECTION_REFUSED")
        if behaviour == "load_timeout":
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        if behaviour == "crash":
            raise RuntimeError("renderer crashed")
        return None

    async def wait_for_load_state(self, state: str = "load", timeout: float | None = None) -> None:
        await asyncio.sleep(0)

    async def wait_for_selector(self, selector: str, state: str | None = None, timeout: float | None = None):
        if self.target.behaviour(self.view) == "no_canvas":
            raise PlaywrightTimeoutError(f"waiting for locator('{selector}')")
        return object()

    async def evaluate(self, script: str, arg=None):
        if arg is not None:
            self.target.injected[self.view] = arg
            return None
        behaviour = self.target.behaviour(self.view)
        if behaviour == "bad_export":
            return "data:image/png;base64,not-an-image"
        if behaviour == "export_error":
            raise PlaywrightError("SecurityError: The canvas has been tainted")
        viewport = self.options["viewport"]
        scale = self.options["device_scale_factor"]
        width, height = int(viewport["width"] * scale), int(viewport["height"] * scale)
        self.target.record(self.view, "export")
        return png_data_url(width, height, FakeRenderTarget.COLORS.get(self.view, (0, 0, 0)))


class FakeContext:
    def __init__(self, browser: FakeBrowser, options: dict) -> None:
        self.browser = browser
        self.options = options
        self.closed = False

    async def new_page(self) -> FakePage:
        return FakePage(self.browser.target, self.options)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.browser.contexts_closed += 1


class FakeBrowser:
    def __init__(self, target: FakeRenderTarget, fail_contexts: bool = False) -> None:
        self.target = target
        self.fail_contexts = fail_contexts
        self.contexts: list[FakeContext] = []
        self.contexts_closed = 0
        self.close_calls = 0

    @property
    def contexts_opened(self) -> int:
        return len(self.contexts)

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def new_context(self, **options) -> FakeContext:
        if self.fail_contexts:
            raise PlaywrightError("Target page, context or browser has been closed")
        context = FakeContext(self, options)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.close_calls += 1


class FakeLauncher:
    def __init__(self, target: FakeRenderTarget | None = None, fail: bool = False, fail_contexts: bool = False):
        self.target = target or FakeRenderTarget()
        self.fail = fail
        self.fail_contexts = fail_contexts
        self.browsers: list[FakeBrowser] = []
        self.attempts = 0

    async def __call__(self) -> FakeBrowser:
        self.attempts += 1
        if self.fail:
            raise RuntimeError("Failed to launch the browser process!")
        browser = FakeBrowser(self.target, fail_contexts=self.fail_contexts)
        self.browsers.append(browser)
        return browser


class MemoryStore:
    def __init__(self, fail_keys: tuple[str, ...] = ()) -> None:
        self.fail_keys = set(fail_keys)
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.calls: list[str] = []

    def save(self, data: bytes, key: str, content_type: str) -> str:
        self.calls.append(key)
        if key in self.fail_keys:
            raise StoreError(key, "bucket rejected the upload")
        self.objects[key] = (data, content_type)
        return f"https://storage.example.com/captures/{key}"


@pytest.fixture
def viewport() -> Viewport:
    return Viewport(width=10, height=10, device_scale_factor=1)


@pytest.fixture
def camera() -> CameraSettings:
    return CameraSettings(
        field_of_view=60,
        near_plane=0.01,
        far_plane=100,
        position=(0.0, 1.0, 3.0),
        target=(0.0, 0.0, 0.0),
    )


@pytest.fixture
def capture_request(camera: CameraSettings) -> CaptureRequest:
    return CaptureRequest(customization_id="abc123", camera_settings=camera)


@pytest.fixture
def make_orchestrator(viewport: Viewport):
    def factory(launcher: FakeLauncher, **overrides) -> CaptureOrchestrator:
        options = {"page_load_timeout": 2.0, "surface_timeout": 1.0, "session_timeout": 10.0}
        options.update(overrides)
        return CaptureOrchestrator("http://render.test/capture", viewport, launcher=launcher, **options)

    return factory
