"""Shared fixtures for the steamdb test suite."""

import threading
from typing import Any, Dict, List, Optional, Tuple

import pytest

from steamdb.http import HttpResponse, Transport


class RecordingTransport(Transport):
    """Transport double that records requests and replays canned responses."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def request(self, method: str, url: str, headers, timeout=None) -> HttpResponse:
        with self._lock:
            self.calls.append({
                "method": method,
                "url": url,
                "headers": dict(headers),
                "timeout": timeout,
            })
            response = self.responses.pop(0) if self.responses else HttpResponse(200, {}, b"ok")

        if isinstance(response, Exception):
            raise response
        return response

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def header(self, index: int, name: str) -> Optional[str]:
        return self.calls[index]["headers"].get(name)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def transport():
    """Transport double answering 200 OK unless told otherwise."""
    return RecordingTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def challenge_page() -> Tuple[int, Dict[str, str], bytes]:
    """Cloudflare interstitial as served with a 503."""
    body = b"""<!DOCTYPE html>
<html>
<head><title>Just a moment...</title></head>
<body>
    <div id="cf-wrapper">
        <h1>Checking your browser before accessing steamdb.info.</h1>
        <p>Enable JavaScript and cookies to continue</p>
        <div class="ray-id">Ray ID: <code>7d9c8b7a6f5e4d3c</code></div>
    </div>
</body>
</html>"""
    return 503, {"Content-Type": "text/html; charset=UTF-8", "Server": "cloudflare"}, body


@pytest.fixture
def turnstile_page() -> bytes:
    return b"""<!DOCTYPE html>
<html>
<head><title>Verify you are human</title></head>
<body>
    <div class="cf-turnstile" data-sitekey="0x4AAAAAAABkMYinukE8nzY" data-callback="done"></div>
    <script src="https://challenges.cloudflare.com/turnstile/v0/api.js" async defer></script>
</body>
</html>"""
