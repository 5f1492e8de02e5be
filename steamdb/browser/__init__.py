"""Browser automation for cookie bootstrap."""

from .automation import (
    CHALLENGE_PROBE_SCRIPT,
    BrowserAutomation,
    PlaywrightAutomation,
    wait_for_challenge_resolution,
)

__all__ = [
    "CHALLENGE_PROBE_SCRIPT",
    "BrowserAutomation",
    "PlaywrightAutomation",
    "wait_for_challenge_resolution",
]
