from __future__ import annotations

"""Thin wrapper around a Playwright ``Page``.

All browser access of the exploration engine goes through ``PageDriver`` so
that timeouts are applied consistently and expected driver failures
(timeouts, detached nodes, elements that are not interactable) come back as
``Attempt`` values instead of exceptions.
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import ElementHandle, Error as PlaywrightError, Page, async_playwright

from .config import ExplorerConfig
from .errors import DriverUnavailableError
from .models import ElementInfo

logger = logging.getLogger(__name__)

INTERACTIVE_SELECTOR = 'button, a[href], input, select, textarea, [role="button"], [onclick], [tabindex]'

# In-page scripts. Kept as module constants so every call site evaluates the
# exact same source.

PAGE_SNAPSHOT_JS = """
() => {
  const main = document.querySelector('main') || document.body;
  return {
    title: document.title,
    url: window.location.pathname,
    content: main ? (main.textContent || '').substring(0, 500) : ''
  };
}
"""

INVENTORY_JS = """
(els) => els.map((el, i) => ({
  index: i,
  tag: el.tagName,
  type: el.type || null,
  text: (el.textContent || '').trim().substring(0, 50),
  href: el.getAttribute('href'),
  role: el.getAttribute('role'),
  ariaLabel: el.getAttribute('aria-label'),
  id: el.id,
  classes: typeof el.className === 'string' ? el.className : ''
}))
"""

FOCUSED_ELEMENT_JS = """
() => {
  const el = document.activeElement;
  if (!el || el === document.body) return null;
  const rect = el.getBoundingClientRect();
  let hasFocusIndicator = null;
  try {
    const style = window.getComputedStyle(el);
    hasFocusIndicator = style.outlineStyle !== 'none' && parseFloat(style.outlineWidth) > 0;
  } catch (e) {
    hasFocusIndicator = null;
  }
  return {
    tag: el.tagName,
    id: el.id,
    text: (el.textContent || '').trim().substring(0, 30),
    hasFocusIndicator: hasFocusIndicator,
    visible: rect.width > 0 && rect.height > 0
  };
}
"""

SCROLL_METRICS_JS = """
() => ({
  scrollHeight: document.documentElement.scrollHeight,
  viewportHeight: window.innerHeight
})
"""

SCROLL_Y_JS = "() => window.scrollY"
SCROLL_TO_BOTTOM_JS = "() => window.scrollTo(0, document.documentElement.scrollHeight)"
SCROLL_TO_TOP_JS = "() => window.scrollTo(0, 0)"

ELEMENTS_VISIBLE_JS = """
(selector) => Array.from(document.querySelectorAll(selector)).some((el) => {
  const rect = el.getBoundingClientRect();
  const style = window.getComputedStyle(el);
  return rect.width > 0 && rect.height > 0 && style.visibility !== 'hidden' && style.display !== 'none';
})
"""

SELECT_OPTIONS_JS = "(opts) => opts.map((o) => o.value).filter((v) => v)"


@dataclass
class Attempt:
    """Outcome of one driver call: either a value or an error description."""

    ok: bool
    value: Any = None
    error: Optional[str] = None
    duration_ms: int = 0
    navigated: bool = False  # set by callers that watch the URL around the call


def describe_error(exc: BaseException) -> str:
    # Playwright appends a multi-line call log; the first line is the useful part
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


def _css_attr(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class PageDriver:
    def __init__(self, page: Page, config: ExplorerConfig) -> None:
        self.page = page
        self.config = config

    @property
    def url(self) -> str:
        return self.page.url

    # ------------------------------------------------------------------
    async def attempt(self, action: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Attempt:
        """Await ``action`` and turn a Playwright failure into an ``Attempt``.

        Only ``playwright.async_api.Error`` (which includes its
        ``TimeoutError``) is treated as an expected outcome. Anything else is
        a bug or a lost browser and propagates to the caller.
        """
        start = time.monotonic()
        try:
            value = await action(*args, **kwargs)
        except PlaywrightError as e:
            elapsed = int((time.monotonic() - start) * 1000)
            logger.debug("Driver call %s failed after %dms: %s", getattr(action, "__name__", action), elapsed, e)
            return Attempt(ok=False, error=describe_error(e), duration_ms=elapsed)
        return Attempt(ok=True, value=value, duration_ms=int((time.monotonic() - start) * 1000))

    # --- navigation -------------------------------------------------------
    async def navigate(self, url: str) -> Attempt:
        return await self.attempt(
            self.page.goto, url, wait_until="networkidle", timeout=self.config.navigation_timeout_ms
        )

    async def back(self) -> Attempt:
        return await self.attempt(self.page.go_back, wait_until="networkidle", timeout=self.config.back_timeout_ms)

    async def wait(self, ms: int) -> None:
        if ms > 0:
            await self.page.wait_for_timeout(ms)

    async def ensure_single_tab(self) -> None:
        """Close tabs opened by ``target=_blank`` links so the run stays on one page."""
        for extra in self.page.context.pages:
            if extra is self.page:
                continue
            closed = await self.attempt(extra.close)
            if not closed.ok:
                logger.debug("Could not close extra tab: %s", closed.error)

    # --- page inspection --------------------------------------------------
    async def evaluate(self, script: str, arg: Any = None) -> Attempt:
        if arg is None:
            return await self.attempt(self.page.evaluate, script)
        return await self.attempt(self.page.evaluate, script, arg)

    async def inventory(self, limit: int) -> List[ElementInfo]:
        raw = await self.page.eval_on_selector_all(INTERACTIVE_SELECTOR, INVENTORY_JS)
        return [ElementInfo.from_dict(item) for item in raw[:limit]]

    async def resolve(self, element: ElementInfo) -> Optional[ElementHandle]:
        """Find the live node for an inventoried element, or ``None``."""
        if element.dom_id:
            handle = await self.page.query_selector(f'[id="{_css_attr(element.dom_id)}"]')
            if handle is not None:
                return handle
        handles = await self.page.query_selector_all(INTERACTIVE_SELECTOR)
        if element.index < len(handles):
            return handles[element.index]
        return None

    async def screenshot(self, path: str) -> Attempt:
        return await self.attempt(self.page.screenshot, path=path, full_page=True)

    # --- input ------------------------------------------------------------
    async def press(self, key: str) -> Attempt:
        return await self.attempt(self.page.keyboard.press, key)

    # --- viewport ---------------------------------------------------------
    def viewport_size(self) -> Dict[str, int]:
        size = self.page.viewport_size
        if size:
            return {"width": size["width"], "height": size["height"]}
        return self.config.desktop.size()

    @asynccontextmanager
    async def viewport(
        self, size: Dict[str, int], restore: Optional[Dict[str, int]] = None
    ) -> AsyncIterator[Dict[str, int]]:
        """Temporarily switch the viewport.

        On exit the viewport is always set to ``restore``, or to the size it
        had before when ``restore`` is not given.
        """
        original = self.viewport_size()
        await self.page.set_viewport_size(size)
        try:
            yield original
        finally:
            await self.page.set_viewport_size(restore or original)


@asynccontextmanager
async def launch_page(config: ExplorerConfig) -> AsyncIterator[PageDriver]:
    """Start Chromium and yield a driver for a single page.

    Failing to get a page is the one condition a run cannot recover from, so
    it is raised as ``DriverUnavailableError``.
    """
    async with async_playwright() as pw:
        try:
            browser = await pw.chromium.launch(
                headless=config.headless, args=["--no-sandbox", "--disable-setuid-sandbox"]
            )
        except PlaywrightError as e:
            raise DriverUnavailableError(f"Could not launch browser: {describe_error(e)}") from e
        try:
            context = await browser.new_context(viewport=config.desktop.size(), has_touch=True)
            page = await context.new_page()
        except PlaywrightError as e:
            await browser.close()
            raise DriverUnavailableError(f"Could not open a page: {describe_error(e)}") from e
        logger.info("Browser ready (headless=%s, viewport=%sx%s)", config.headless, config.desktop.width, config.desktop.height)
        try:
            yield PageDriver(page, config)
        finally:
            await context.close()
            await browser.close()
