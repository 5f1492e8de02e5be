"""Settings read from the process environment.

The solver endpoint is the only setting the fetch layer takes from the
environment; everything else is configured on the client explicitly.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .challenge.solver import DEFAULT_TIMEOUT_MS, FlareSolverr, FlareSolverrSolver
from .constants import FLARESOLVERR_URL_ENV


@dataclass
class Settings:
    """Environment-derived settings."""
    flaresolverr_url: Optional[str] = None
    flaresolverr_timeout: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        url = (environ.get(FLARESOLVERR_URL_ENV) or "").strip()
        return cls(flaresolverr_url=url or None)

    def build_solver(self, use_session: bool = False) -> Optional[FlareSolverrSolver]:
        """Solver for the configured endpoint, or ``None`` when unset."""
        if not self.flaresolverr_url:
            return None
        flaresolverr = FlareSolverr(endpoint=self.flaresolverr_url, timeout=self.flaresolverr_timeout)
        return FlareSolverrSolver(flaresolverr, use_session=use_session)
