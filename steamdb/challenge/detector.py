"""Cloudflare challenge detection and classification.

Classifies an HTTP response as a generic Cloudflare challenge, a Turnstile
widget challenge, or no challenge at all, and pulls out the fields useful
for diagnosing it. Everything here is a pure function of the response.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


class ChallengeType(Enum):
    """Types of anti-bot challenges."""
    CLOUDFLARE = "cloudflare"
    TURNSTILE = "turnstile"


@dataclass
class ChallengeInfo:
    """Information about a detected challenge."""
    type: ChallengeType
    url: Optional[str] = None
    sitekey: Optional[str] = None
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    ray_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "url": self.url,
            "sitekey": self.sitekey,
            "ray_id": self.ray_id,
            "body_length": len(self.body),
        }


CLOUDFLARE_INDICATORS = [
    re.compile(r"cf-challenge", re.IGNORECASE),
    re.compile(r"cf_chl_", re.IGNORECASE),
    re.compile(r"cf-browser-verification", re.IGNORECASE),
    re.compile(r"Checking your browser", re.IGNORECASE),
    re.compile(r"Just a moment", re.IGNORECASE),
    re.compile(r"Enable JavaScript and cookies to continue", re.IGNORECASE),
    re.compile(r"Ray ID:", re.IGNORECASE),
    re.compile(r"cloudflare", re.IGNORECASE),
]

TURNSTILE_INDICATORS = [
    re.compile(r"turnstile", re.IGNORECASE),
    re.compile(r"cf-turnstile", re.IGNORECASE),
    re.compile(r"cf-turnstile-response", re.IGNORECASE),
    re.compile(r"data-sitekey", re.IGNORECASE),
    re.compile(r"challenges\.cloudflare\.com", re.IGNORECASE),
]

SITEKEY_PATTERNS = [
    re.compile(r"""data-sitekey=["']([^"']+)["']"""),
    re.compile(r"""sitekey:\s*["']([^"']+)["']"""),
    re.compile(r"""<input[^>]+name=["']cf-turnstile-response["'][^>]+data-sitekey=["']([^"']+)["']"""),
    re.compile(r"""window\._cf_chl_opt\s*=\s*\{[^}]*sitekey:\s*["']([^"']+)["']"""),
]

META_REFRESH_PATTERN = re.compile(
    r"""<meta[^>]+http-equiv=["']refresh["'][^>]+content=["'][^"]*url=([^"']+)["']""",
    re.IGNORECASE,
)

RAY_ID_PATTERNS = [
    re.compile(r"Ray ID:\s*(?:<[^>]+>\s*)*([a-f0-9]+)", re.IGNORECASE),
    re.compile(r"""data-ray=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"cf-ray:\s*([a-f0-9\-]+)", re.IGNORECASE),
]

RATE_LIMIT_PATTERNS = [
    re.compile(r"rate limit", re.IGNORECASE),
    re.compile(r"too many requests", re.IGNORECASE),
    re.compile(r"slow down", re.IGNORECASE),
]

CHALLENGE_STATUSES = (403, 503)


def _body_text(body: Union[bytes, str, None]) -> Optional[str]:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return str(body)


def _status(response: Any) -> int:
    try:
        return int(getattr(response, "status", 0) or 0)
    except (TypeError, ValueError):
        return 0


def _header(response: Any, name: str) -> Optional[str]:
    headers = getattr(response, "headers", None) or {}
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive
        for key, candidate in headers.items():
            if str(key).lower() == name.lower():
                return candidate
    return value


def _is_success(response: Any) -> bool:
    return 200 <= _status(response) <= 299


def contains_challenge(body: Union[bytes, str, None]) -> bool:
    """Check if a body contains Cloudflare challenge indicators."""
    text = _body_text(body)
    if not text:
        return False
    return any(pattern.search(text) for pattern in CLOUDFLARE_INDICATORS)


def identify_challenge_type(response: Any) -> Optional[ChallengeType]:
    """Classify the challenge a response carries, if any."""
    text = _body_text(getattr(response, "body", None)) or ""

    if any(pattern.search(text) for pattern in TURNSTILE_INDICATORS):
        return ChallengeType.TURNSTILE
    if any(pattern.search(text) for pattern in CLOUDFLARE_INDICATORS):
        return ChallengeType.CLOUDFLARE
    if is_challenge_status(_status(response)):
        return ChallengeType.CLOUDFLARE
    return None


def extract_sitekey(body: Union[bytes, str, None]) -> Optional[str]:
    """Extract a Turnstile sitekey; the first matching pattern wins."""
    text = _body_text(body)
    if not text:
        return None

    for pattern in SITEKEY_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def extract_challenge_url(response: Any) -> Optional[str]:
    """Challenge URL from the Location header or a meta refresh."""
    location = _header(response, "location")
    if location:
        return location

    text = _body_text(getattr(response, "body", None))
    if text:
        match = META_REFRESH_PATTERN.search(text)
        if match:
            return match.group(1)
    return None


def extract_ray_id(body: Union[bytes, str, None]) -> Optional[str]:
    """Cloudflare Ray ID from a challenge page."""
    text = _body_text(body)
    if not text:
        return None

    for pattern in RAY_ID_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def is_challenge_status(status: int) -> bool:
    """Check if status code indicates a challenge."""
    try:
        return int(status) in CHALLENGE_STATUSES
    except (TypeError, ValueError):
        return False


def detect(response: Any) -> Optional[ChallengeInfo]:
    """Detect a challenge in ``response``; ``None`` when there is none."""
    if response is None:
        return None

    body = getattr(response, "body", None)
    if _is_success(response) and not contains_challenge(body):
        return None

    challenge_type = identify_challenge_type(response)
    if challenge_type is None:
        return None

    raw_body = body if isinstance(body, bytes) else (_body_text(body) or "").encode("utf-8")
    ray_id = _header(response, "cf-ray") or extract_ray_id(body)

    return ChallengeInfo(
        type=challenge_type,
        url=extract_challenge_url(response),
        sitekey=extract_sitekey(body),
        body=raw_body,
        headers=getattr(response, "headers", None) or {},
        ray_id=ray_id,
    )


def rate_limited(response: Any) -> bool:
    """Check if response indicates rate limiting."""
    if response is None:
        return False
    if _status(response) == 429:
        return True

    text = _body_text(getattr(response, "body", None))
    if text:
        return any(pattern.search(text) for pattern in RATE_LIMIT_PATTERNS)
    return False


def retry_after(response: Any, now: Optional[datetime] = None) -> Optional[int]:
    """Seconds to wait according to the Retry-After header.

    Accepts delta-seconds or an HTTP-date; dates in the past clamp to 0.
    """
    if response is None:
        return None

    value = _header(response, "retry-after")
    if value is None:
        return None
    value = str(value).strip()

    if re.fullmatch(r"\d+", value, re.ASCII):
        return int(value)

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_at is None:
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    return max(int((retry_at - now).total_seconds()), 0)


class CaptchaDetector:
    """Class facade over the detection functions."""

    detect = staticmethod(detect)
    contains_challenge = staticmethod(contains_challenge)
    identify_challenge_type = staticmethod(identify_challenge_type)
    extract_sitekey = staticmethod(extract_sitekey)
    extract_challenge_url = staticmethod(extract_challenge_url)
    extract_ray_id = staticmethod(extract_ray_id)
    is_challenge_status = staticmethod(is_challenge_status)
    rate_limited = staticmethod(rate_limited)
    retry_after = staticmethod(retry_after)
