from typing import Any, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from .config import RunConfig
from .errors import DriverFailure, ElementNotFound, FrameCaptureFailed
from .types import Rect

# Driver-side bounded waits (ms)
LOAD_TIMEOUT_MS = 30000
ELEMENT_TIMEOUT_MS = 5000
NETWORK_IDLE_TIMEOUT_MS = 5000


class BrowserSession:
    """One Playwright browser with one page, driven from a single thread."""

    def __init__(self, playwright, context, page, browser=None):
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.page = page

    @classmethod
    def launch(cls, config: RunConfig) -> "BrowserSession":
        print("[Browser] Launching Playwright...")
        p = sync_playwright().start()
        viewport = {"width": config.viewport_width,
                    "height": config.viewport_height}
        browser = None
        try:
            if config.profile_dir:
                context = p.chromium.launch_persistent_context(
                    config.profile_dir,
                    headless=config.headless,
                    viewport=viewport,
                )
                page = context.pages[0] if context.pages else context.new_page()
            else:
                browser = p.chromium.launch(headless=config.headless)
                context = browser.new_context(viewport=viewport)
                page = context.new_page()
        except PlaywrightError as e:
            p.stop()
            raise DriverFailure(f"failed to launch browser: {e}")
        return cls(p, context, page, browser=browser)

    @classmethod
    def open(cls, url: str, config: RunConfig) -> "BrowserSession":
        """Launch a session and load the first page, releasing it if loading fails."""
        session = cls.launch(config)
        try:
            session.navigate(url)
            session.wait_for_network_idle(NETWORK_IDLE_TIMEOUT_MS)
        except Exception:
            session.close()
            raise
        return session

    def close(self) -> None:
        # Page first, then the browser that owns it
        for closer in (
            self.page.close,
            self.context.close,
            self.browser.close if self.browser else None,
            self.playwright.stop,
        ):
            if closer is None:
                continue
            try:
                closer()
            except PlaywrightError as e:
                print(f"[Browser] Close failed (ignored): {e}")

    # Navigation -----------------------------------------------------------

    def navigate(self, url: str) -> None:
        try:
            self.page.goto(url, wait_until="load", timeout=LOAD_TIMEOUT_MS)
        except PlaywrightError as e:
            raise DriverFailure(f"navigation to {url} failed: {e}")

    def wait_for_load(self) -> None:
        try:
            self.page.wait_for_load_state("load", timeout=LOAD_TIMEOUT_MS)
        except PlaywrightError as e:
            raise DriverFailure(f"page load wait failed: {e}")

    def wait_for_network_idle(self, timeout_ms: int = NETWORK_IDLE_TIMEOUT_MS) -> None:
        try:
            self.page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            # Long-polling pages never go idle; the bounded wait is enough
            pass
        except PlaywrightError as e:
            raise DriverFailure(f"network idle wait failed: {e}")

    # Elements -------------------------------------------------------------

    def _locator(self, selector: str):
        return self.page.locator(selector).first

    def find_element(self, selector: str) -> Rect:
        try:
            handle = self.page.query_selector(selector)
        except PlaywrightError as e:
            raise ElementNotFound(selector, str(e))
        if handle is None:
            raise ElementNotFound(selector)
        box = handle.bounding_box()
        if not box:
            raise ElementNotFound(selector, "not visible")
        return Rect(x=box["x"], y=box["y"], width=box["width"], height=box["height"])

    def click(self, selector: str) -> None:
        try:
            self._locator(selector).click(timeout=ELEMENT_TIMEOUT_MS)
        except PlaywrightError as e:
            raise ElementNotFound(selector, f"click failed: {e}")

    def hover(self, selector: str) -> None:
        try:
            self._locator(selector).hover(timeout=ELEMENT_TIMEOUT_MS)
        except PlaywrightError as e:
            raise ElementNotFound(selector, f"hover failed: {e}")

    def focus_and_clear(self, selector: str) -> None:
        locator = self._locator(selector)
        try:
            locator.click(timeout=ELEMENT_TIMEOUT_MS)
            locator.fill("", timeout=ELEMENT_TIMEOUT_MS)
        except PlaywrightError as e:
            raise ElementNotFound(selector, f"focus failed: {e}")

    # Input ----------------------------------------------------------------

    def type_char(self, ch: str) -> None:
        try:
            self.page.keyboard.type(ch)
        except PlaywrightError as e:
            raise DriverFailure(f"keyboard input failed: {e}")

    def scroll(self, dx: float, dy: float) -> None:
        try:
            self.page.mouse.wheel(dx, dy)
        except PlaywrightError as e:
            raise DriverFailure(f"scroll failed: {e}")

    def move_cursor(self, x: int, y: int) -> None:
        try:
            self.page.mouse.move(x, y)
        except PlaywrightError as e:
            raise DriverFailure(f"mouse move failed: {e}")

    # Capture --------------------------------------------------------------

    def screenshot(self) -> bytes:
        try:
            return self.page.screenshot(type="png")
        except PlaywrightError as e:
            raise FrameCaptureFailed(f"screenshot failed: {e}")

    def evaluate(self, script: str, arg: Optional[Any] = None) -> Any:
        try:
            if arg is None:
                return self.page.evaluate(script)
            return self.page.evaluate(script, arg)
        except PlaywrightError as e:
            raise DriverFailure(f"page evaluation failed: {e}")
