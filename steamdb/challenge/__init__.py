"""Challenge handling for Cloudflare-protected pages.

Detection classifies responses; solvers fetch pages past a challenge
through an external browser-automation service.
"""

from .detector import (
    CaptchaDetector,
    ChallengeInfo,
    ChallengeType,
    contains_challenge,
    detect,
    extract_challenge_url,
    extract_ray_id,
    extract_sitekey,
    identify_challenge_type,
    is_challenge_status,
    rate_limited,
    retry_after,
)

from .solver import (
    ChallengeSolver,
    FlareSolverr,
    FlareSolverrSolver,
    SolverResponse,
)

__all__ = [
    # Detection
    "CaptchaDetector",
    "ChallengeInfo",
    "ChallengeType",
    "contains_challenge",
    "detect",
    "extract_challenge_url",
    "extract_ray_id",
    "extract_sitekey",
    "identify_challenge_type",
    "is_challenge_status",
    "rate_limited",
    "retry_after",

    # Solvers
    "ChallengeSolver",
    "FlareSolverr",
    "FlareSolverrSolver",
    "SolverResponse",
]
