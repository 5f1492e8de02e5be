"""Response value shared by the transport, the solver path and the cache.

Provides an immutable response with case-insensitive headers and the
derived success predicate page parsers rely on.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional, Tuple, Union

if TYPE_CHECKING:
    from ..challenge.detector import ChallengeInfo


class ResponseHeaders(Mapping):
    """Read-only, case-insensitive header mapping.

    Original header names are preserved for iteration; lookups ignore case.
    """

    def __init__(self, headers: Optional[Union[Mapping[str, Any], "ResponseHeaders"]] = None):
        self._store: Dict[str, Tuple[str, str]] = {}
        for key, value in (headers or {}).items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                value = ", ".join(str(v) for v in value)
            self._store[str(key).lower()] = (str(key), str(value))

    def __getitem__(self, key: str) -> str:
        return self._store[key.lower()][1]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._store

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            other_lower = {str(k).lower(): str(v) for k, v in other.items()}
            return other_lower == {k: v for k, (_, v) in self._store.items()}
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset((k, v) for k, (_, v) in self._store.items()))

    def __repr__(self) -> str:
        return f"ResponseHeaders({dict(self.items())!r})"

    def to_dict(self) -> Dict[str, str]:
        """Plain dict with lower-cased names."""
        return {k: v for k, (_, v) in self._store.items()}


@dataclass(frozen=True)
class HttpResponse:
    """HTTP response returned by ``HttpClient.fetch``.

    Non-2xx statuses are ordinary responses; callers inspect ``success``.
    ``challenge`` carries the detector's classification for direct-path
    responses and takes no part in equality.
    """
    status: int
    headers: ResponseHeaders = field(default_factory=ResponseHeaders)
    body: bytes = b""
    challenge: Optional["ChallengeInfo"] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.headers, ResponseHeaders):
            object.__setattr__(self, "headers", ResponseHeaders(self.headers))
        if self.body is None:
            object.__setattr__(self, "body", b"")
        elif isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))
        object.__setattr__(self, "status", int(self.status))

    @property
    def success(self) -> bool:
        """True for 2xx statuses."""
        return 200 <= self.status <= 299

    @property
    def encoding(self) -> Optional[str]:
        """Charset from the Content-Type header."""
        content_type = self.headers.get("content-type", "")
        if "charset=" in content_type:
            return content_type.split("charset=")[1].split(";")[0].strip()
        return None

    @property
    def text(self) -> str:
        """Decoded body text."""
        try:
            return self.body.decode(self.encoding or "utf-8")
        except (UnicodeDecodeError, LookupError):
            return self.body.decode("utf-8", errors="replace")

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get header value (case-insensitive)."""
        return self.headers.get(name, default)

    def with_challenge(self, challenge: Optional["ChallengeInfo"]) -> "HttpResponse":
        """Copy of this response carrying a challenge classification."""
        return HttpResponse(self.status, self.headers, self.body, challenge)

    def __repr__(self) -> str:
        return f"<HttpResponse [{self.status}] {len(self.body)} bytes>"
