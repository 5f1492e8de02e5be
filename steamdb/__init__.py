"""Resilient fetch layer for SteamDB pages.

Retrieves pages from a site that actively blocks automated access, with:
- Response caching behind a pluggable store
- Persistent, lock-guarded cookie state
- Request pacing and user-agent rotation
- Cloudflare / Turnstile challenge detection
- Delegation to a FlareSolverr browser solver

Quick Start:
    >>> import steamdb
    >>>
    >>> client = steamdb.HttpClient()
    >>> response = steamdb.fetch_page(client, "/app/730/", region="us")
    >>>
    >>> # Route every request through FlareSolverr
    >>> client.configure_captcha(solver=steamdb.FlareSolverrSolver())
"""

from typing import Any, Mapping, Optional
from urllib.parse import urljoin

from .constants import (
    BASE_URL,
    DEFAULT_DOMAIN,
    DEFAULT_REGION,
    REGION_COOKIE,
    TARGET_URL,
)

from .errors import (
    BrowserAutomationError,
    ChallengeUnsolvedError,
    FetchError,
    HTTPStatusError,
    SolverError,
    SolverProtocolError,
    SolverTimeoutError,
    SolverTransportError,
    SteamDBError,
    TransportError,
)

from .http import (
    CacheEntry,
    CacheStore,
    ClientConfig,
    Cookie,
    CookieJar,
    CurlTransport,
    HttpClient,
    HttpResponse,
    InMemoryCache,
    Transport,
)

from .challenge import (
    CaptchaDetector,
    ChallengeInfo,
    ChallengeSolver,
    ChallengeType,
    FlareSolverr,
    FlareSolverrSolver,
    SolverResponse,
    detect,
    rate_limited,
    retry_after,
)

from .concurrency import (
    DEFAULT_USER_AGENTS,
    Throttle,
    UserAgentRotator,
)

from .browser import (
    BrowserAutomation,
    PlaywrightAutomation,
)

from .config import Settings
from .session import BootstrapResult, Session

__version__ = "0.1.0"
__title__ = "steamdb"
__description__ = "Resilient fetch layer for SteamDB with caching, cookies and challenge solving"


def fetch_page(client: HttpClient, path: str, region: str = DEFAULT_REGION,
               headers: Optional[Mapping[str, Any]] = None) -> HttpResponse:
    """Fetch ``path`` relative to ``BASE_URL`` and require a 2xx response.

    Raises:
        FetchError: when the request cannot complete.
        HTTPStatusError: when the response status is not 2xx.
    """
    response = client.fetch(urljoin(BASE_URL, path), headers=headers or {}, region=region)

    if not response.success:
        raise HTTPStatusError(f"Request failed with status {response.status}", response=response)

    return response


__all__ = [
    # Constants
    "BASE_URL",
    "DEFAULT_DOMAIN",
    "DEFAULT_REGION",
    "DEFAULT_USER_AGENTS",
    "REGION_COOKIE",
    "TARGET_URL",

    # Errors
    "SteamDBError",
    "FetchError",
    "TransportError",
    "SolverError",
    "SolverTransportError",
    "SolverTimeoutError",
    "SolverProtocolError",
    "ChallengeUnsolvedError",
    "HTTPStatusError",
    "BrowserAutomationError",

    # HTTP
    "CacheEntry",
    "CacheStore",
    "ClientConfig",
    "Cookie",
    "CookieJar",
    "CurlTransport",
    "HttpClient",
    "HttpResponse",
    "InMemoryCache",
    "Transport",

    # Challenges
    "CaptchaDetector",
    "ChallengeInfo",
    "ChallengeSolver",
    "ChallengeType",
    "FlareSolverr",
    "FlareSolverrSolver",
    "SolverResponse",
    "detect",
    "rate_limited",
    "retry_after",

    # Concurrency
    "Throttle",
    "UserAgentRotator",

    # Session bootstrap
    "BootstrapResult",
    "BrowserAutomation",
    "PlaywrightAutomation",
    "Session",
    "Settings",

    # Facade
    "fetch_page",

    # Version info
    "__version__",
    "__title__",
    "__description__",
]


def _initialize_logging():
    """Attach a default handler to the package logger."""
    import logging

    logger = logging.getLogger(__name__)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.WARNING)


_initialize_logging()
