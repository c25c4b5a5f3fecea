from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

from playwright.async_api import Browser, Playwright, async_playwright


class BrowserHandle(Protocol):
    async def new_context(self, **options: Any) -> Any:
        ...

    async def close(self) -> None:
        ...


BrowserLauncher = Callable[[], Awaitable[BrowserHandle]]


class PlaywrightBrowser:
    """Chromium instance together with the Playwright driver that owns it."""

    def __init__(self, playwright: Playwright, browser: Browser) -> None:
        self._playwright = playwright
        self._browser = browser

    async def new_context(self, **options: Any):
        return await self._browser.new_context(**options)

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


def chromium_launcher(headless: bool = True, args: list[str] | None = None) -> BrowserLauncher:
    async def launch() -> PlaywrightBrowser:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=headless, args=args or [])
        except Exception:
            await playwright.stop()
            raise
        return PlaywrightBrowser(playwright, browser)

    return launch
