"""Rendering sessions backed by headless Chromium (playwright).

A session exposes exactly four operations to the measurement core:
present, read_geometry, await_font_ready and close.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Optional, Sequence

from . import markup
from .config import MeasureConfig
from .errors import ElementNotFound, EngineConnectionError, PresentTimeout
from .models import Geometry

if TYPE_CHECKING:
    from playwright.async_api import Browser, Page, Playwright


LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-extensions",
]
VIEWPORT = {"width": 1920, "height": 1080}
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

_READ_GEOMETRY_JS = """
(selectors) => {
  const out = {};
  for (const sel of selectors) {
    const el = document.querySelector(sel);
    if (!el) { out[sel] = null; continue; }
    const rect = el.getBoundingClientRect();
    out[sel] = [rect.width, rect.height];
  }
  return out;
}
"""

# kick off loading without waiting on it; failures surface through check()
_REQUEST_FONT_JS = """
(query) => {
  try { document.fonts.load(query).catch(() => {}); } catch (e) {}
  return true;
}
"""

_CHECK_FONT_JS = """
(query) => {
  try { return document.fonts.status === 'loaded' && document.fonts.check(query); }
  catch (e) { return false; }
}
"""


class RenderingSession(ABC):
    @abstractmethod
    async def present(self, document: str, load_timeout: int) -> None:
        """Replace the current document; PresentTimeout after load_timeout ms."""

    @abstractmethod
    async def read_geometry(self, selectors: Sequence[str]) -> Dict[str, Geometry]:
        """Bounding boxes of named elements; ElementNotFound if any is absent."""

    @abstractmethod
    async def await_font_ready(self, font_name: str, size: int, max_wait_ms: int) -> bool:
        """Best effort; False means proceed with possibly degraded results."""

    @abstractmethod
    async def close(self) -> None:
        pass


class PlaywrightSession(RenderingSession):
    def __init__(self, page: "Page", poll_interval: float = 0.05, context=None):
        self._page = page
        self._context = context
        self._poll_interval = poll_interval

    async def present(self, document: str, load_timeout: int) -> None:
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        try:
            await self._page.set_content(
                document, wait_until="domcontentloaded", timeout=load_timeout
            )
            await self._page.wait_for_function(
                f"() => window.{markup.READY_FLAG} === true", timeout=load_timeout
            )
        except PlaywrightTimeoutError as e:
            raise PresentTimeout(f"Document not ready after {load_timeout}ms") from e

    async def read_geometry(self, selectors: Sequence[str]) -> Dict[str, Geometry]:
        raw = await self._page.evaluate(_READ_GEOMETRY_JS, list(selectors))
        missing = [sel for sel in selectors if raw.get(sel) is None]
        if missing:
            raise ElementNotFound(missing)
        return {sel: Geometry(float(raw[sel][0]), float(raw[sel][1])) for sel in selectors}

    async def await_font_ready(self, font_name: str, size: int, max_wait_ms: int) -> bool:
        query = f"{size}px {font_name}"
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait_ms / 1000.0
        await self._page.evaluate(_REQUEST_FONT_JS, query)
        while True:
            if await self._page.evaluate(_CHECK_FONT_JS, query):
                return True
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(self._poll_interval)

    async def close(self) -> None:
        await self._page.close()
        if self._context is not None:
            await self._context.close()


class ChromiumEngine:
    """Owns the playwright driver and one browser; hands out page sessions.

    Usage:
        async with ChromiumEngine(config) as engine:
            session = await engine.new_session()
    """

    def __init__(self, config: MeasureConfig):
        self.config = config
        self._playwright: Optional["Playwright"] = None
        self._browser: Optional["Browser"] = None

    async def start(self) -> None:
        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless, args=LAUNCH_ARGS
            )
        except Exception as e:
            await self.stop()
            raise EngineConnectionError(f"Could not launch Chromium: {e}") from e

    async def new_session(self) -> PlaywrightSession:
        if self._browser is None:
            raise EngineConnectionError("Engine not started")
        try:
            context = await self._browser.new_context(
                viewport=VIEWPORT, user_agent=USER_AGENT
            )
            page = await context.new_page()
            page.set_default_timeout(self.config.page_timeout)
        except Exception as e:
            raise EngineConnectionError(f"Could not open a browser page: {e}") from e
        return PlaywrightSession(
            page, poll_interval=self.config.font_poll_interval, context=context
        )

    async def stop(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> "ChromiumEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
