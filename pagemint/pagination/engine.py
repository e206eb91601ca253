"""Headless rendering engine capability and its Playwright implementation.

The orchestrator and the local print backend only ever talk to the
:class:`RenderingEngine` and :class:`EnginePage` protocols: load markup,
execute script, wait on a DOM predicate, serialise the DOM, print to PDF.
Pages are exclusively owned scoped handles obtained with
``async with engine.page() as page`` and are released on every exit path,
cancellation included.

Example
-------
>>> import asyncio
>>> async def main():
...     async with PlaywrightEngine(max_pages=2) as engine:
...         async with engine.page() as page:
...             await page.set_content("<p>Hello</p>")
...             return await page.evaluate("() => document.body.textContent")
>>> asyncio.run(main())  # doctest: +SKIP
'Hello'
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import typing as typ

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from pagemint.errors import EngineError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from playwright.async_api import Browser, BrowserContext, Page, Playwright

    from pagemint.geometry import PageGeometry

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 5
DEFAULT_LAUNCH_ARGS = ("--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu")


class EnginePage(typ.Protocol):
    """One exclusively-owned rendering engine page."""

    errors: list[str]

    async def set_content(self, html: str) -> None: ...

    async def evaluate(self, script: str, arg: object = None) -> typ.Any: ...

    async def wait_for_function(self, script: str, arg: object = None) -> None: ...

    async def content(self) -> str: ...

    async def pdf(self, geometry: PageGeometry) -> bytes: ...


class RenderingEngine(typ.Protocol):
    """Source of scoped :class:`EnginePage` handles."""

    @property
    def active_pages(self) -> int: ...

    def page(self) -> contextlib.AbstractAsyncContextManager[EnginePage]: ...


class PlaywrightPage:
    """:class:`EnginePage` backed by a Playwright Chromium page.

    Uncaught page exceptions are collected in :attr:`errors` so callers can
    fail a render on the first script error instead of waiting for a timeout.
    """

    def __init__(self, page: Page) -> None:
        self._page = page
        self.errors: list[str] = []
        page.on("pageerror", self._record_error)

    def _record_error(self, error: PlaywrightError) -> None:
        logger.debug("Page error: %s", error)
        self.errors.append(str(error))

    async def set_content(self, html: str) -> None:
        try:
            await self._page.set_content(html, wait_until="load", timeout=0)
        except PlaywrightError as exc:
            raise EngineError(str(exc)) from exc

    async def evaluate(self, script: str, arg: object = None) -> typ.Any:
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise EngineError(str(exc)) from exc

    async def wait_for_function(self, script: str, arg: object = None) -> None:
        # Timeouts are enforced by the caller.
        try:
            await self._page.wait_for_function(script, arg=arg, timeout=0, polling=50)
        except PlaywrightError as exc:
            raise EngineError(str(exc)) from exc

    async def content(self) -> str:
        try:
            return await self._page.content()
        except PlaywrightError as exc:
            raise EngineError(str(exc)) from exc

    async def pdf(self, geometry: PageGeometry) -> bytes:
        try:
            return await self._page.pdf(
                width=f"{geometry.width_in:.4f}in",
                height=f"{geometry.height_in:.4f}in",
                print_background=True,
                prefer_css_page_size=True,
                margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
            )
        except PlaywrightError as exc:
            raise EngineError(str(exc)) from exc


class PlaywrightEngine:
    """Shared headless Chromium with a cap on concurrently open pages."""

    def __init__(
        self,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        headless: bool = True,
        launch_args: cabc.Sequence[str] = DEFAULT_LAUNCH_ARGS,
    ) -> None:
        if max_pages < 1:
            msg = "max_pages must be at least 1"
            raise ValueError(msg)
        self.max_pages = max_pages
        self.headless = headless
        self.launch_args = list(launch_args)
        self._slots = asyncio.Semaphore(max_pages)
        self._start_lock = asyncio.Lock()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._active = 0

    @property
    def active_pages(self) -> int:
        """Return the number of pages currently checked out."""
        return self._active

    async def __aenter__(self) -> PlaywrightEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def start(self) -> None:
        """Launch Chromium unless it is already running."""
        async with self._start_lock:
            if self._browser is not None and self._browser.is_connected():
                return
            logger.debug("Launching Chromium (headless=%s)", self.headless)
            try:
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless, args=self.launch_args
                )
            except PlaywrightError as exc:
                raise EngineError(f"Chromium failed to launch: {exc}") from exc

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()

    @contextlib.asynccontextmanager
    async def page(self) -> cabc.AsyncIterator[EnginePage]:
        """Check out a fresh page in its own browser context."""
        await self.start()
        async with self._slots:
            if self._browser is None:
                msg = "Chromium is not running"
                raise EngineError(msg)
            try:
                context: BrowserContext = await self._browser.new_context()
            except PlaywrightError as exc:
                raise EngineError(str(exc)) from exc
            self._active += 1
            try:
                try:
                    page = await context.new_page()
                except PlaywrightError as exc:
                    raise EngineError(str(exc)) from exc
                yield PlaywrightPage(page)
            finally:
                try:
                    await context.close()
                finally:
                    self._active -= 1


__all__ = [
    "DEFAULT_MAX_PAGES",
    "EnginePage",
    "PlaywrightEngine",
    "PlaywrightPage",
    "RenderingEngine",
]
