"""Request pacing and user-agent rotation.

Both helpers keep a single piece of shared state behind their own lock so
that many threads can share one client without holding a lock across
network I/O.
"""

import logging
import threading
import time
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:128.0) Gecko/20100101 Firefox/128.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_5) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (iPad; CPU OS 17_5 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.5 Mobile/15E148 Safari/604.1",
)


class Throttle:
    """Minimum spacing between consecutive outbound requests.

    Each caller reserves the next free slot under the lock, then sleeps
    until that slot outside the lock. An interval of zero or less disables
    throttling.
    """

    def __init__(self, interval: float = 0.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self._interval = float(interval)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_available_at = 0.0

    @property
    def interval(self) -> float:
        return self._interval

    def configure(self, interval: float) -> None:
        with self._lock:
            self._interval = float(interval)

    def wait(self) -> float:
        """Block until the caller may proceed; returns the time slept."""
        with self._lock:
            interval = self._interval
            if interval <= 0:
                return 0.0
            now = self._clock()
            start_at = max(now, self._next_available_at)
            self._next_available_at = start_at + interval
            sleep_time = start_at - now

        if sleep_time > 0:
            logger.debug(f"Throttling request for {sleep_time:.3f}s")
            self._sleep(sleep_time)
        return sleep_time


class UserAgentRotator:
    """Round-robin cursor over a list of user agents."""

    def __init__(self, agents: Optional[Sequence[str]] = None,
                 default: str = DEFAULT_USER_AGENTS[0]):
        self._agents: List[str] = [agent for agent in (agents or []) if agent]
        self._default = default
        self._index = 0
        self._lock = threading.Lock()

    @property
    def agents(self) -> List[str]:
        return list(self._agents)

    def next(self) -> str:
        """Return the next agent, wrapping around the list."""
        with self._lock:
            if not self._agents:
                return self._default
            agent = self._agents[self._index % len(self._agents)]
            self._index += 1
            return agent

    def reset(self, agents: Optional[Sequence[str]] = None) -> None:
        with self._lock:
            if agents is not None:
                self._agents = [agent for agent in agents if agent]
            self._index = 0
