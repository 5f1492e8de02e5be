"""HTTP client orchestrating cache, throttle, cookies and challenge solving.

``HttpClient.fetch`` resolves a path against the target site, serves fresh
responses from the cache, paces outbound traffic, and either performs a
direct request (rotating user agents and composing cookies) or hands the
URL to a configured challenge solver.
"""

import hashlib
import logging
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Union
from urllib.parse import urljoin, urlsplit, urlunsplit

from ..challenge.detector import detect
from ..concurrency import DEFAULT_USER_AGENTS, Throttle, UserAgentRotator
from ..constants import (
    BASE_URL,
    DEFAULT_ACCEPT_LANGUAGE,
    DEFAULT_CACHE_TTL,
    DEFAULT_DOMAIN,
    DEFAULT_REGION,
    DEFAULT_TIMEOUT,
    REGION_COOKIE,
)
from ..errors import FetchError, SolverError, TransportError
from .cache import CacheStore, InMemoryCache, is_cache_store
from .cookies import Cookie, CookieJar, parse_cookie_header
from .response import HttpResponse
from .transport import CurlTransport, Transport

if TYPE_CHECKING:
    from ..challenge.solver import ChallengeSolver

logger = logging.getLogger(__name__)

CACHE_KEY_SEPARATOR = "\x00"


@dataclass
class ClientConfig:
    """Configuration for one ``HttpClient``."""
    user_agents: List[str] = field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    open_timeout: float = DEFAULT_TIMEOUT
    read_timeout: float = DEFAULT_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    # No throttling by default; the solver paces its own traffic
    throttle_interval: float = 0.0
    solver: Optional["ChallengeSolver"] = None
    captcha_enabled: bool = True
    # Retry budget for callers; fetch itself never retries
    max_retries: int = 3
    base_url: str = BASE_URL
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    detect_challenges: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientConfig":
        """Build a config from a plain mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)} - {"solver"}
        return cls(**{key: value for key, value in data.items() if key in known})


def normalize_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Lower-case header names and drop ``None`` values."""
    return {
        str(key).lower(): str(value)
        for key, value in (headers or {}).items()
        if value is not None
    }


def canonical_header_name(name: str) -> str:
    return "-".join(part.capitalize() for part in name.split("-"))


def normalize_url(url: str) -> str:
    """Lower-case scheme and host, default the path to ``/``, drop fragments."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, ""))


def cache_key_for(url: str, headers: Mapping[str, str], region: str) -> str:
    """SHA-256 over the URL, sorted header pairs and region."""
    parts = [url]
    for key, value in sorted(headers.items()):
        parts.extend([key, value])
    parts.append(str(region))
    return hashlib.sha256(CACHE_KEY_SEPARATOR.join(parts).encode("utf-8")).hexdigest()


class HttpClient:
    """Resilient fetch client for the target site.

    One instance owns its cookie jar, cache store reference and throttle
    state; use separate instances for isolated sessions. Safe to share
    across threads.
    """

    def __init__(self, config: Optional[ClientConfig] = None, *,
                 cookies: Optional[Mapping[str, str]] = None,
                 cache_store: Optional[CacheStore] = None,
                 transport: Optional[Transport] = None):
        self.config = config or ClientConfig()
        self._cookie_jar = CookieJar()
        self._throttle = Throttle(self.config.throttle_interval)
        self._user_agents = UserAgentRotator(self.config.user_agents, default=DEFAULT_USER_AGENTS[0])
        self._cache_store = cache_store if cache_store is not None else InMemoryCache()
        self._transport = transport or CurlTransport()
        self._cookie_proxy = CookieProxy(self)

        for name, value in (cookies or {}).items():
            self.set_cookie(name, value)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def target_url(self) -> str:
        """Origin cookies are composed for."""
        parts = urlsplit(self.config.base_url)
        return f"{parts.scheme}://{parts.netloc}/"

    @property
    def cookie_jar(self) -> CookieJar:
        return self._cookie_jar

    @property
    def cookies(self) -> "CookieProxy":
        return self._cookie_proxy

    @property
    def captcha_enabled(self) -> bool:
        return self.config.captcha_enabled and self.config.solver is not None

    def fetch(self, uri: str, headers: Optional[Mapping[str, Any]] = None,
              region: str = DEFAULT_REGION) -> HttpResponse:
        """Fetch ``uri`` (absolute, or relative to ``base_url``).

        Non-2xx responses are returned as-is.

        Raises:
            FetchError: when the transport or the solver fails.
        """
        url = self.build_url(uri)
        header_map = normalize_headers(headers)
        cache_key = cache_key_for(url, header_map, region)

        cached = self._read_cache(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit for {url}")
            return cached

        try:
            self._throttle.wait()
        except Exception as e:
            logger.warning(f"Throttle failed, continuing: {e}")

        try:
            response = self._perform_request(url, header_map, region)
        except (TransportError, SolverError) as e:
            logger.error(f"Fetch failed for {url}: {e}")
            raise FetchError(f"Failed to fetch {url}: {e}", url=url) from e

        self._store_cache(cache_key, response)
        return response

    def build_url(self, uri: str) -> str:
        uri = str(uri)
        if not urlsplit(uri).scheme:
            uri = urljoin(self.config.base_url.rstrip("/") + "/", uri)
        return normalize_url(uri)

    # Configuration

    def configure_throttle(self, interval: float) -> None:
        self.config.throttle_interval = float(interval)
        self._throttle.configure(interval)

    def configure_cache(self, store: Optional[CacheStore] = None, ttl: float = 60) -> None:
        if store is not None:
            if not is_cache_store(store):
                raise TypeError("cache store must provide fetch() and write()")
            self._cache_store = store
        self.config.cache_ttl = float(ttl)

    def configure_captcha(self, solver: Optional["ChallengeSolver"] = None,
                          enabled: bool = True, max_retries: int = 3) -> None:
        if solver is not None:
            self.config.solver = solver
        self.config.captcha_enabled = enabled
        self.config.max_retries = int(max_retries)

    def configure_user_agents(self, user_agents: List[str]) -> None:
        self.config.user_agents = list(user_agents)
        self._user_agents.reset(self.config.user_agents)

    # Cookies

    def add_cookie(self, cookie: Cookie) -> None:
        if not isinstance(cookie, Cookie):
            raise TypeError("cookie must be a steamdb.http.Cookie")
        self._cookie_jar.add(cookie)

    def set_cookie(self, name: str, value: str, domain: str = DEFAULT_DOMAIN, path: str = "/") -> None:
        self.add_cookie(Cookie(name=str(name), value=str(value), domain=domain, path=path))

    def load_cookie_header(self, header: str, uri: Optional[str] = None) -> int:
        """Add every cookie from a ``Cookie:``-style header; returns the count."""
        cookies = parse_cookie_header(header, uri or self.target_url)
        for cookie in cookies:
            self.add_cookie(cookie)
        return len(cookies)

    def clear_cookie(self, name: str) -> None:
        self._cookie_jar.delete(name)

    def cookie_value(self, name: str) -> Optional[str]:
        return self._cookie_jar.get(name, self.target_url)

    def close(self) -> None:
        """Release the solver session, if the solver holds one."""
        solver = self.config.solver
        if solver is not None and hasattr(solver, "close"):
            try:
                solver.close()
            except SolverError as e:
                logger.warning(f"Failed to close challenge solver: {e}")

    # Request execution

    def _perform_request(self, url: str, headers: Dict[str, str], region: str) -> HttpResponse:
        if self.captcha_enabled:
            return self._perform_via_solver(url)
        return self._perform_direct(url, headers, region)

    def _perform_via_solver(self, url: str) -> HttpResponse:
        logger.info(f"Fetching {url} via challenge solver")
        result = self.config.solver.solve(url)

        for cookie in result.cookies:
            self.add_cookie(cookie)

        return HttpResponse(status=result.status, headers=result.headers, body=result.body)

    def _perform_direct(self, url: str, headers: Dict[str, str], region: str) -> HttpResponse:
        request_headers = self._compose_headers(headers, region)
        timeout = (self.config.open_timeout, self.config.read_timeout)

        response = self._transport.request("GET", url, request_headers, timeout=timeout)

        if self.config.detect_challenges:
            challenge = detect(response)
            if challenge is not None:
                logger.warning(
                    f"{challenge.type.value} challenge detected on {url} "
                    f"(status={response.status}, sitekey={challenge.sitekey})"
                )
                response = response.with_challenge(challenge)
        return response

    def _compose_headers(self, headers: Dict[str, str], region: str) -> Dict[str, str]:
        composed = {
            "accept-language": self.config.accept_language,
            "user-agent": self._user_agents.next(),
        }
        composed.update({key: value for key, value in headers.items() if key != "cookie"})
        composed["cookie"] = self._merged_cookies(region, headers.get("cookie"))

        return {canonical_header_name(key): value for key, value in composed.items() if value}

    def _merged_cookies(self, region: str, extra_cookie_header: Optional[str]) -> str:
        target = self.target_url
        jar = self._cookie_jar.copy()

        if jar.get(REGION_COOKIE, target) is None:
            jar.add(Cookie(name=REGION_COOKIE, value=str(region), domain=urlsplit(target).hostname, path="/"))

        for cookie in parse_cookie_header(extra_cookie_header, target):
            jar.add(cookie)

        return jar.header_for(target)

    # Cache

    def _cache_active(self) -> bool:
        return self._cache_store is not None and self.config.cache_ttl > 0

    def _read_cache(self, cache_key: str) -> Optional[HttpResponse]:
        if not self._cache_active():
            return None
        try:
            return self._cache_store.fetch(cache_key)
        except Exception as e:
            logger.warning(f"Cache read failed, treating as miss: {e}")
            return None

    def _store_cache(self, cache_key: str, response: HttpResponse) -> None:
        if not self._cache_active():
            return
        try:
            self._cache_store.write(cache_key, response, expires_in=self.config.cache_ttl)
        except Exception as e:
            logger.warning(f"Cache write failed: {e}")


class CookieProxy:
    """Dict-like view over a client's cookies for the target origin."""

    def __init__(self, client: HttpClient):
        self._client = client

    def __getitem__(self, name: str) -> Optional[str]:
        return self._client.cookie_value(name)

    def __setitem__(self, name: str, value: str) -> None:
        self._client.set_cookie(name, value)

    def __delitem__(self, name: str) -> None:
        self._client.clear_cookie(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._client.cookie_value(name) is not None

    def __iter__(self) -> Iterator[str]:
        return (cookie.name for cookie in self._client.cookie_jar.cookies_for(self._client.target_url))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self._client.cookie_value(name)
        return default if value is None else value

    def update(self, cookies: Union[Mapping[str, str], None] = None, **kwargs: str) -> "CookieProxy":
        for name, value in dict(cookies or {}, **kwargs).items():
            self[name] = value
        return self
