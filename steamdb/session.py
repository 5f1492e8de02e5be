"""Session bootstrap: seed a client's cookie jar before regular traffic.

Cookies can come from already-built :class:`Cookie` values, loosely keyed
records (for example exported from a browser), a raw ``Cookie:`` header, a
challenge solver, or a full browser-automation run.
"""

import logging
from dataclasses import dataclass
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .browser import BrowserAutomation, PlaywrightAutomation
from .challenge.solver import ChallengeSolver, FlareSolverrSolver
from .config import Settings
from .constants import BASE_URL, DEFAULT_DOMAIN
from .errors import SolverError
from .http.client import HttpClient
from .http.cookies import Cookie, cookie_from_mapping

logger = logging.getLogger(__name__)

CookieLike = Union[Cookie, Mapping[str, Any]]


@dataclass
class BootstrapResult:
    """Outcome of a solver-driven bootstrap."""
    success: bool
    cookies_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success, "cookies_count": self.cookies_count}
        if self.error is not None:
            result["error"] = self.error
        return result


def convert_cookies(cookies: Iterable[Mapping[str, Any]],
                    default_domain: str = DEFAULT_DOMAIN) -> List[Cookie]:
    """Turn browser cookie records into :class:`Cookie` values."""
    return [cookie_from_mapping(cookie, default_domain) for cookie in cookies]


class Session:
    """Loads externally obtained cookies into an :class:`HttpClient`."""

    def __init__(self, client: HttpClient):
        self.client = client

    def load_cookies(self, cookies: Union[CookieLike, Iterable[CookieLike]]) -> int:
        """Add cookies given as ``Cookie`` values or mappings; returns the count."""
        if isinstance(cookies, (Cookie, Mapping)):
            cookies = [cookies]

        count = 0
        for cookie in cookies:
            if isinstance(cookie, Cookie):
                self.client.add_cookie(cookie)
            elif isinstance(cookie, Mapping):
                self.client.add_cookie(cookie_from_mapping(cookie, DEFAULT_DOMAIN))
            else:
                raise TypeError(f"Unsupported cookie type: {type(cookie).__name__}")
            count += 1
        return count

    def load_cookie_header(self, header: str, uri: Optional[str] = None) -> int:
        return self.client.load_cookie_header(header, uri=uri)

    def authenticate_with_flaresolverr(self, solver: Optional[ChallengeSolver] = None,
                                       url: str = f"{BASE_URL}/") -> BootstrapResult:
        """Fetch ``url`` through a solver and keep the cookies it returns.

        Solver failures are reported in the result, never raised.
        """
        solver = solver or Settings.from_env().build_solver() or FlareSolverrSolver()

        try:
            result = solver.solve(url)
        except SolverError as e:
            logger.error(f"Solver bootstrap failed: {e}")
            return BootstrapResult(success=False, error=str(e))

        for cookie in result.cookies:
            self.client.add_cookie(cookie)

        logger.info(f"Loaded {len(result.cookies)} cookies from solver")
        return BootstrapResult(success=True, cookies_count=len(result.cookies))

    def authenticate_with_browser(self, automation: Optional[BrowserAutomation] = None,
                                  url: str = f"{BASE_URL}/",
                                  wait_for: Optional[float] = None,
                                  solve_captcha: bool = False,
                                  on_page: Optional[Callable[[Any], None]] = None) -> List[Dict[str, Any]]:
        """Harvest cookies from a real browser visit and load them.

        Returns the raw cookie records the browser reported.

        Raises:
            BrowserAutomationError: if the browser cannot be driven.
        """
        automation = automation or PlaywrightAutomation()
        cookies = automation.harvest_cookies(
            url, wait_for=wait_for, solve_captcha=solve_captcha, on_page=on_page
        )
        self.load_cookies(convert_cookies(cookies))
        logger.info(f"Loaded {len(cookies)} cookies from browser session")
        return cookies
