"""Challenge solvers backed by a remote browser-automation service.

FlareSolverr (https://github.com/FlareSolverr/FlareSolverr) renders pages in
a real browser and hands back the final status, headers, body and cookies.
This module speaks its JSON-over-HTTP protocol and exposes it through the
:class:`ChallengeSolver` capability the HTTP client depends on.

Setup::

    docker run -d -p 8191:8191 ghcr.io/flaresolverr/flaresolverr:latest
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from curl_cffi import CurlError
from curl_cffi import requests as curl_requests
from curl_cffi.requests.exceptions import Timeout

from ..constants import DEFAULT_DOMAIN, DEFAULT_FLARESOLVERR_ENDPOINT
from ..errors import (
    ChallengeUnsolvedError,
    SolverProtocolError,
    SolverTimeoutError,
    SolverTransportError,
)
from ..http.cookies import Cookie, cookie_from_mapping

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 60_000
DEFAULT_MAX_TIMEOUT_MS = 120_000
CONNECT_TIMEOUT = 10
# Local read timeout must outlast the remote solve timeout
TIMEOUT_BUFFER = 10
PROBE_TIMEOUT = 5


@dataclass
class SolverResponse:
    """Page rendered by a solver."""
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    cookies: List[Cookie] = field(default_factory=list)
    user_agent: Optional[str] = None

    @property
    def cookie_dict(self) -> Dict[str, str]:
        return {cookie.name: cookie.value for cookie in self.cookies}


class ChallengeSolver(ABC):
    """Capability to fetch a URL past an anti-bot challenge."""

    @abstractmethod
    def solve(self, url: str) -> SolverResponse:
        """Fetch ``url`` through the solver.

        Raises:
            SolverError: if the solver cannot produce a page.
        """
        pass

    def available(self) -> bool:
        """Best-effort liveness probe."""
        return True

    def close(self) -> None:
        """Release any resources held by the solver."""
        pass


class FlareSolverr:
    """Client for the FlareSolverr JSON API.

    Each call is stateless unless a session is held; while one is held
    every request carries its id so the service reuses one browser.
    """

    def __init__(self, endpoint: str = DEFAULT_FLARESOLVERR_ENDPOINT,
                 timeout: int = DEFAULT_TIMEOUT_MS,
                 max_timeout: int = DEFAULT_MAX_TIMEOUT_MS):
        self.endpoint = endpoint
        self.max_timeout = int(max_timeout)
        self.timeout = min(int(timeout), self.max_timeout)
        self.session_id: Optional[str] = None

    def __enter__(self):
        self.create_session()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.destroy_session()

    def create_session(self) -> str:
        """Allocate a persistent browser context on the service."""
        response = self._make_request({"cmd": "sessions.create"})
        self.session_id = response.get("session")
        logger.info(f"Created FlareSolverr session {self.session_id}")
        return self.session_id

    def destroy_session(self) -> None:
        """Release the held session; no-op when none is held."""
        if not self.session_id:
            return

        session_id = self.session_id
        self._make_request({"cmd": "sessions.destroy", "session": session_id})
        self.session_id = None
        logger.info(f"Destroyed FlareSolverr session {session_id}")

    def get(self, url: str, max_timeout: Optional[int] = None) -> SolverResponse:
        """GET ``url`` through the service."""
        params: Dict[str, Any] = {"cmd": "request.get", "url": url}
        return self._solve(params, max_timeout)

    def post(self, url: str, post_data: Optional[str] = None,
             max_timeout: Optional[int] = None) -> SolverResponse:
        """POST ``post_data`` (form-encoded string) to ``url`` through the service."""
        params: Dict[str, Any] = {"cmd": "request.post", "url": url}
        if post_data is not None:
            params["postData"] = post_data
        return self._solve(params, max_timeout)

    def available(self) -> bool:
        """True when the service root answers with a 2xx status."""
        try:
            response = curl_requests.get(self._root_url(), timeout=PROBE_TIMEOUT)
            return 200 <= response.status_code < 300
        except Exception as e:
            logger.debug(f"FlareSolverr probe failed: {e}")
            return False

    def version(self) -> Dict[str, Any]:
        """Probe the service root and report its state."""
        try:
            response = curl_requests.get(self._root_url(), timeout=PROBE_TIMEOUT)
        except Exception as e:
            return {"status": "error", "error": str(e), "endpoint": self.endpoint}

        info: Dict[str, Any] = {"endpoint": self.endpoint}
        if 200 <= response.status_code < 300:
            info["status"] = "running"
            try:
                payload = json.loads(response.text)
            except ValueError:
                payload = {}
            if isinstance(payload, dict) and payload.get("version"):
                info["version"] = payload["version"]
        else:
            info["status"] = "unknown"
        return info

    def _solve(self, params: Dict[str, Any], max_timeout: Optional[int]) -> SolverResponse:
        params["maxTimeout"] = int(max_timeout or self.timeout)
        if self.session_id:
            params["session"] = self.session_id

        response = self._make_request(params)
        solution = response.get("solution")
        if not solution:
            raise ChallengeUnsolvedError("No solution returned from FlareSolverr")
        if not isinstance(solution, Mapping):
            raise SolverProtocolError("FlareSolverr solution is not a JSON object")

        body = solution.get("response") or ""
        if not isinstance(body, str):
            raise SolverProtocolError("FlareSolverr solution body is not a string")

        try:
            return SolverResponse(
                status=int(solution.get("status") or 0),
                headers=dict(solution.get("headers") or {}),
                body=body,
                cookies=self._parse_cookies(solution.get("cookies") or [], params.get("url")),
                user_agent=solution.get("userAgent"),
            )
        except (TypeError, ValueError) as e:
            raise SolverProtocolError(f"Malformed FlareSolverr solution: {e}") from e

    def _make_request(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params.setdefault("maxTimeout", self.timeout)
        read_timeout = params["maxTimeout"] / 1000 + TIMEOUT_BUFFER

        logger.debug(f"FlareSolverr {params['cmd']} {params.get('url', '')}")
        try:
            response = curl_requests.post(
                self.endpoint,
                json=params,
                headers={"Content-Type": "application/json"},
                timeout=(CONNECT_TIMEOUT, read_timeout),
            )
        except Timeout as e:
            raise SolverTimeoutError(f"FlareSolverr timeout: {e}") from e
        except CurlError as e:
            raise SolverTransportError(f"FlareSolverr request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise SolverTransportError(
                f"FlareSolverr HTTP error: {response.status_code} {getattr(response, 'reason', '')}".strip(),
                status_code=response.status_code,
            )

        try:
            result = json.loads(response.text)
        except ValueError as e:
            raise SolverProtocolError(f"Failed to parse FlareSolverr response: {e}") from e

        if not isinstance(result, dict):
            raise SolverProtocolError("FlareSolverr response is not a JSON object")

        if result.get("status") == "error":
            raise SolverProtocolError(f"FlareSolverr error: {result.get('message') or 'Unknown error'}")

        return result

    def _root_url(self) -> str:
        parsed = urlparse(self.endpoint)
        return f"{parsed.scheme}://{parsed.netloc}/"

    @staticmethod
    def _parse_cookies(cookies: List[Dict[str, Any]], url: Optional[str]) -> List[Cookie]:
        default_domain = (urlparse(url).hostname if url else None) or DEFAULT_DOMAIN
        parsed = []
        for raw in cookies:
            if not isinstance(raw, Mapping):
                logger.debug(f"Skipping malformed cookie from FlareSolverr: {raw!r}")
                continue
            try:
                parsed.append(cookie_from_mapping(raw, default_domain))
            except ValueError:
                logger.debug(f"Skipping unnamed cookie from FlareSolverr: {raw!r}")
        return parsed


class FlareSolverrSolver(ChallengeSolver):
    """:class:`ChallengeSolver` backed by a FlareSolverr service.

    With ``use_session=True`` a browser session is created on the first
    solve and reused until :meth:`close`.
    """

    def __init__(self, flaresolverr: Optional[FlareSolverr] = None,
                 endpoint: str = DEFAULT_FLARESOLVERR_ENDPOINT,
                 timeout: int = DEFAULT_TIMEOUT_MS,
                 use_session: bool = False):
        self.flaresolverr = flaresolverr or FlareSolverr(endpoint=endpoint, timeout=timeout)
        self.use_session = use_session
        self._session_lock = threading.Lock()

    def solve(self, url: str) -> SolverResponse:
        if self.use_session:
            with self._session_lock:
                if not self.flaresolverr.session_id:
                    self.flaresolverr.create_session()
        return self.flaresolverr.get(url)

    def available(self) -> bool:
        return self.flaresolverr.available()

    def close(self) -> None:
        with self._session_lock:
            self.flaresolverr.destroy_session()
