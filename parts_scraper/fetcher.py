# fetcher.py
import logging
from typing import Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright
from playwright_stealth import Stealth

from .config import Settings
from .errors import ContentNotFound, NavigationFailed, NavigationTimeout, PageExtractionError

logger = logging.getLogger(__name__)

# Hides navigator.webdriver and friends before stealth patches the rest
LAUNCH_ARGS = ["--disable-blink-features=AutomationControlled"]


def _first_line(e: Exception) -> str:
    # playwright errors carry a multi-line call log after the message
    msg = str(e).strip()
    return msg.splitlines()[0] if msg else type(e).__name__


CLOSED_MARKERS = ("Target closed", "has been closed", "Browser closed")


def _is_closed(e: Exception) -> bool:
    return any(m in str(e) for m in CLOSED_MARKERS)


class RenderSession:
    """
    One headless Chromium with a single context and page. Navigations are
    never overlapped: callers await each one before starting the next.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._pw = None
        self._browser = None
        self._context = None
        self._page = None

    @property
    def is_open(self) -> bool:
        return self._page is not None

    async def open(self):
        s = self.settings
        try:
            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(headless=s.headless, args=LAUNCH_ARGS)
            self._context = await self._browser.new_context(
                user_agent=s.user_agent,
                extra_http_headers={"Accept-Language": s.accept_language},
            )
            await Stealth().apply_stealth_async(self._context)
            self._page = await self._context.new_page()
        except Exception:
            # tear down whatever did start so the driver process does not linger
            try:
                await self.close()
            except Exception:
                logger.exception("[SESSION] Cleanup after failed open also failed")
            raise
        return self

    async def close(self):
        try:
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
        finally:
            if self._pw is not None:
                await self._pw.stop()
            self._pw = self._browser = self._context = self._page = None

    async def navigate(self, url: str, timeout_ms: int):
        try:
            await self._page.goto(url, timeout=timeout_ms, wait_until=self.settings.wait_until)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(url, f"navigation exceeded {timeout_ms} ms") from e
        except PlaywrightError as e:
            raise NavigationFailed(url, _first_line(e), session_lost=_is_closed(e)) from e

    async def wait_for(self, url: str, selector: str, timeout_ms: int):
        try:
            await self._page.wait_for_selector(selector, timeout=timeout_ms, state="attached")
        except PlaywrightTimeoutError as e:
            raise ContentNotFound(url, f"'{selector}' did not appear within {timeout_ms} ms") from e
        except PlaywrightError as e:
            raise ContentNotFound(url, _first_line(e), session_lost=_is_closed(e)) from e

    async def content(self, url: str) -> str:
        try:
            return await self._page.content()
        except PlaywrightError as e:
            raise PageExtractionError(url, _first_line(e), session_lost=_is_closed(e)) from e

    async def evaluate(self, expression: str):
        # raw access to the live document; extraction itself reads content()
        return await self._page.evaluate(expression)


class SessionManager:
    """Owns the single live RenderSession and swaps it out on recycle()."""

    def __init__(self, factory: Callable[[], RenderSession]):
        self._factory = factory
        self._session: Optional[RenderSession] = None
        self.recycles = 0

    @property
    def session(self) -> RenderSession:
        if self._session is None:
            raise RuntimeError("no open render session")
        return self._session

    async def open(self) -> RenderSession:
        if self._session is not None:
            return self._session
        logger.info("[SESSION] Opening render session")
        session = self._factory()
        await session.open()
        self._session = session
        return session

    async def close(self):
        session, self._session = self._session, None
        if session is None:
            return
        logger.info("[SESSION] Closing render session")
        await session.close()

    async def recycle(self) -> RenderSession:
        logger.info("[SESSION] Recycling render session (#%d)", self.recycles + 1)
        try:
            await self.close()
        except Exception:
            logger.exception("[SESSION] Error while closing old session; opening a new one anyway")
        self.recycles += 1
        return await self.open()
