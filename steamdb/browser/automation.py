"""Browser automation used to harvest cookies from a real browser.

The fetch layer only needs one capability from a browser: open a URL, wait
until any anti-bot interstitial has cleared, and hand back the context's
cookies. :class:`PlaywrightAutomation` provides it with Chromium.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..errors import BrowserAutomationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT = 30.0
DEFAULT_POLL_INTERVAL = 0.5
NAVIGATION_TIMEOUT_MS = 60_000

DEFAULT_BROWSER_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
)

CHALLENGE_PROBE_SCRIPT = """() => {
    const text = document.body ? document.body.innerText : "";
    return text.includes("Checking your browser") ||
           text.includes("Just a moment") ||
           document.querySelector(".cf-challenge-running") !== null ||
           document.querySelector("#challenge-running") !== null;
}"""


def wait_for_challenge_resolution(page: Any,
                                  max_wait: float = DEFAULT_MAX_WAIT,
                                  poll_interval: float = DEFAULT_POLL_INTERVAL,
                                  clock: Callable[[], float] = time.monotonic,
                                  sleep: Callable[[float], None] = time.sleep) -> bool:
    """Poll ``page`` until the challenge text disappears.

    Polls at most ``max_wait / poll_interval`` times and never past
    ``max_wait`` seconds. Returns True once the page is clear; evaluation
    errors are logged and reported as False.
    """
    max_polls = max(1, int(max_wait / poll_interval))
    started = clock()

    for _ in range(max_polls):
        if clock() - started > max_wait:
            break
        try:
            has_challenge = page.evaluate(CHALLENGE_PROBE_SCRIPT)
        except Exception as e:
            logger.warning(f"Error waiting for challenge resolution: {e}")
            return False
        if not has_challenge:
            return True
        sleep(poll_interval)

    logger.warning(f"Challenge still present after {clock() - started:.1f}s")
    return False


class BrowserAutomation(ABC):
    """Capability to visit a URL in a real browser and collect its cookies."""

    @abstractmethod
    def harvest_cookies(self, url: str, *,
                        wait_for: Optional[float] = None,
                        solve_captcha: bool = False,
                        on_page: Optional[Callable[[Any], None]] = None) -> List[Dict[str, Any]]:
        """Navigate to ``url`` and return the browser cookies as records.

        Each record carries ``name``, ``value``, ``domain``, ``path``,
        ``secure``, ``httpOnly`` and ``expires`` (epoch seconds, -1 for
        session cookies).
        """
        pass


class PlaywrightAutomation(BrowserAutomation):
    """Chromium driven through ``playwright.sync_api``."""

    def __init__(self, headless: bool = True, args: Sequence[str] = DEFAULT_BROWSER_ARGS,
                 max_wait: float = DEFAULT_MAX_WAIT,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 **launch_options: Any):
        self.headless = headless
        self.args = list(args)
        self.max_wait = max_wait
        self.poll_interval = poll_interval
        self.launch_options = launch_options

    def harvest_cookies(self, url: str, *,
                        wait_for: Optional[float] = None,
                        solve_captcha: bool = False,
                        on_page: Optional[Callable[[Any], None]] = None) -> List[Dict[str, Any]]:
        try:
            from playwright.sync_api import Error as PlaywrightError
            from playwright.sync_api import sync_playwright
        except ImportError as e:
            raise BrowserAutomationError(
                "playwright is required for browser authentication. "
                "Install with: pip install 'steamdb[browser]' && playwright install chromium"
            ) from e

        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(
                    headless=self.headless, args=self.args, **self.launch_options
                )
                try:
                    context = browser.new_context()
                    page = context.new_page()
                    logger.info(f"Opening {url} in Chromium")
                    page.goto(
                        url,
                        wait_until="domcontentloaded" if wait_for else "networkidle",
                        timeout=NAVIGATION_TIMEOUT_MS,
                    )

                    if solve_captcha:
                        wait_for_challenge_resolution(page, self.max_wait, self.poll_interval)

                    if on_page is not None:
                        on_page(page)

                    if wait_for:
                        page.wait_for_timeout(wait_for * 1000)

                    return list(context.cookies())
                finally:
                    browser.close()
        except PlaywrightError as e:
            raise BrowserAutomationError(f"Browser automation failed: {e}") from e
