"""Cookie jar for the fetch layer.

Cookies are identified by ``(name, domain, path)``; a later write with the
same identity replaces the earlier cookie. The jar is guarded by its own
lock so concurrent fetches can clone it while another thread loads cookies.
"""

import dataclasses
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

CookieKey = Tuple[str, str, str]


def normalize_domain(domain: Optional[str]) -> str:
    """Lower-case a cookie domain and drop the leading dot."""
    return (domain or "").strip().lower().lstrip(".")


@dataclass
class Cookie:
    """Represents an HTTP cookie."""
    name: str
    value: str
    domain: str = ""
    path: str = "/"
    secure: bool = False
    http_only: bool = False
    expires: Optional[datetime] = None

    def __post_init__(self):
        self.name = str(self.name)
        self.value = "" if self.value is None else str(self.value)
        self.domain = normalize_domain(self.domain)
        self.path = self.path or "/"
        if self.expires is not None and self.expires.tzinfo is None:
            self.expires = self.expires.replace(tzinfo=timezone.utc)

    @property
    def key(self) -> CookieKey:
        return (self.name, self.domain, self.path)

    @property
    def is_expired(self) -> bool:
        """Check if cookie is expired."""
        if self.expires is None:
            return False
        return datetime.now(timezone.utc) > self.expires

    def matches_domain(self, host: str) -> bool:
        """Check if cookie applies to ``host`` (exact or subdomain)."""
        if not self.domain:
            return False
        host = (host or "").lower()
        return host == self.domain or host.endswith("." + self.domain)

    def matches_path(self, path: str) -> bool:
        """Check if cookie matches path."""
        if self.path == "/":
            return True
        if not path.startswith(self.path):
            return False
        # Exact match, or the cookie path ends at a segment boundary
        return (len(path) == len(self.path)
                or self.path.endswith("/")
                or path[len(self.path)] == "/")

    def to_header_value(self) -> str:
        """Convert cookie to header value format."""
        return f"{self.name}={self.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "secure": self.secure,
            "httpOnly": self.http_only,
            "expires": self.expires.isoformat() if self.expires else None,
        }


class CookieJar:
    """Thread-safe cookie jar keyed by name, domain and path."""

    def __init__(self, cookies: Optional[List[Cookie]] = None):
        self._cookies: Dict[CookieKey, Cookie] = {}
        self._lock = threading.RLock()
        for cookie in cookies or []:
            self.add(cookie)

    def add(self, cookie: Cookie) -> None:
        """Add cookie to jar, replacing any cookie with the same identity."""
        if not isinstance(cookie, Cookie):
            raise TypeError(f"expected Cookie, got {type(cookie).__name__}")
        with self._lock:
            self._cookies.pop(cookie.key, None)
            self._cookies[cookie.key] = cookie

    def delete(self, name: str) -> int:
        """Remove every cookie called ``name`` (case-insensitive)."""
        target = str(name).lower()
        with self._lock:
            keys = [key for key in self._cookies if key[0].lower() == target]
            for key in keys:
                del self._cookies[key]
        return len(keys)

    def get(self, name: str, url: str) -> Optional[str]:
        """Value of the first cookie called ``name`` sent to ``url``."""
        target = str(name).lower()
        for cookie in self.cookies_for(url):
            if cookie.name.lower() == target:
                return cookie.value
        return None

    def cookies_for(self, url: str) -> List[Cookie]:
        """Unexpired cookies applicable to ``url``, most specific path first."""
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        path = parsed.path or "/"
        is_secure = parsed.scheme == "https"

        with self._lock:
            candidates = list(self._cookies.values())

        matching = [
            cookie for cookie in candidates
            if not cookie.is_expired
            and cookie.matches_domain(host)
            and cookie.matches_path(path)
            and (is_secure or not cookie.secure)
        ]
        matching.sort(key=lambda c: -len(c.path))
        return matching

    def header_for(self, url: str) -> str:
        """``Cookie`` header value for ``url`` (empty string when none)."""
        return "; ".join(cookie.to_header_value() for cookie in self.cookies_for(url))

    def copy(self) -> "CookieJar":
        """Independent clone; mutating it leaves this jar untouched."""
        with self._lock:
            cookies = [dataclasses.replace(cookie) for cookie in self._cookies.values()]
        return CookieJar(cookies)

    def all(self) -> List[Cookie]:
        with self._lock:
            return list(self._cookies.values())

    def clear(self) -> None:
        with self._lock:
            self._cookies.clear()

    def to_list(self) -> List[Dict[str, Any]]:
        return [cookie.to_dict() for cookie in self.all()]

    def __iter__(self) -> Iterator[Cookie]:
        return iter(self.all())

    def __len__(self) -> int:
        with self._lock:
            return len(self._cookies)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        target = name.lower()
        return any(cookie.name.lower() == target for cookie in self.all())


def _parse_expires(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        timestamp = float(value)
    except (TypeError, ValueError):
        return None
    # Browsers report session cookies as -1
    if timestamp <= 0:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def cookie_from_mapping(data: Mapping[Any, Any], default_domain: str,
                        default_path: str = "/") -> Cookie:
    """Build a cookie from a loosely keyed record.

    Accepts string keys (``name``, ``httpOnly``) as well as their
    snake-case forms; ``domain`` and ``path`` fall back to the defaults.
    """

    def pick(*names: str) -> Any:
        for name in names:
            if name in data and data[name] is not None:
                return data[name]
        return None

    name = pick("name")
    if name is None:
        raise ValueError("cookie record has no name")

    return Cookie(
        name=name,
        value=pick("value"),
        domain=pick("domain") or default_domain,
        path=pick("path") or default_path,
        secure=bool(pick("secure")),
        http_only=bool(pick("httpOnly", "http_only", "httponly")),
        expires=_parse_expires(pick("expires", "expiry")),
    )


def parse_cookie_header(cookie_header: Optional[str], url: str) -> List[Cookie]:
    """Parse a ``Cookie:`` header into cookies scoped to the host of ``url``."""
    cookies: List[Cookie] = []
    if not cookie_header:
        return cookies

    host = urlparse(url).hostname or ""
    for part in str(cookie_header).split(";"):
        part = part.strip()
        if "=" not in part:
            continue
        name, value = part.split("=", 1)
        name = name.strip()
        if not name:
            continue
        cookies.append(Cookie(name=name, value=value.strip().strip('"'), domain=host, path="/"))

    return cookies
