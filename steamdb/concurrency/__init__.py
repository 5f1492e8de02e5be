"""Concurrency helpers shared by every fetch on a client."""

from .rate_limiter import (
    DEFAULT_USER_AGENTS,
    Throttle,
    UserAgentRotator,
)

__all__ = [
    "DEFAULT_USER_AGENTS",
    "Throttle",
    "UserAgentRotator",
]
