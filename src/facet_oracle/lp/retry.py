"""
Solver invocation with a retry ladder.

Simplex codes report basis corruption or a singular basis matrix now and
then; recomputing the starting basis usually cures it. Every solve runs
through a small state machine:

    FRESH_BASIS  --bad basis / singular-->  RETRY_BASIS
    FRESH_BASIS  --solver failed------->    RETRY_FAIL
    RETRY_BASIS  --solver failed------->    RETRY_FAIL
    any tier     --anything else------->    GIVE_UP (return the code)

Each simplex call is counted, and the wall-clock time of the whole ladder
is accumulated.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from .backend import ReturnCode, SimplexBackend, SolverParams
from .problem import LinearProgram


logger = logging.getLogger(__name__)


class RetryTier(Enum):
    """Position in the retry ladder."""
    FRESH_BASIS = "fresh_basis"
    RETRY_BASIS = "retry_basis"
    RETRY_FAIL = "retry_fail"
    GIVE_UP = "give_up"


_BASIS_TROUBLE = (ReturnCode.BAD_BASIS, ReturnCode.SINGULAR)


def next_tier(tier: RetryTier, code: ReturnCode) -> RetryTier:
    """
    Transition of the retry ladder after a simplex call returned `code`.

    GIVE_UP means stop and hand `code` to the caller.
    """
    if code is ReturnCode.OK or tier is RetryTier.GIVE_UP:
        return RetryTier.GIVE_UP
    if tier is RetryTier.FRESH_BASIS and code in _BASIS_TROUBLE:
        return RetryTier.RETRY_BASIS
    if tier in (RetryTier.FRESH_BASIS, RetryTier.RETRY_BASIS) and code is ReturnCode.FAILED:
        return RetryTier.RETRY_FAIL
    return RetryTier.GIVE_UP


@dataclass
class SolveOutcome:
    """Final return code and the tiers that were attempted."""
    code: ReturnCode
    tiers: List[RetryTier] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        return len(self.tiers)


class SolveLadder:
    """
    Runs a backend through the retry ladder and keeps call statistics.

    Parameters
    ----------
    backend : SimplexBackend
        The LP solver.
    params : SolverParams
        Parameters for every simplex call.
    scale : bool
        Scale the matrix on the fresh and the basis-retry tiers.
    """

    def __init__(self, backend: SimplexBackend, params: SolverParams, scale: bool = True):
        self.backend = backend
        self.params = params
        self.scale = scale
        self.call_count = 0
        self.elapsed_ms = 0.0

    def _attempt(self, lp: LinearProgram, tier: RetryTier) -> ReturnCode:
        if tier is RetryTier.FRESH_BASIS:
            self.backend.sort_matrix(lp)
        if self.scale and tier in (RetryTier.FRESH_BASIS, RetryTier.RETRY_BASIS):
            self.backend.scale(lp)
        self.backend.advanced_basis(lp)
        self.call_count += 1
        return self.backend.simplex(lp, self.params)

    def solve(self, lp: LinearProgram) -> SolveOutcome:
        """Solve `lp`, retrying per the ladder; return the last code."""
        start = time.monotonic()
        outcome = SolveOutcome(code=ReturnCode.OK)
        tier = RetryTier.FRESH_BASIS
        try:
            while tier is not RetryTier.GIVE_UP:
                outcome.tiers.append(tier)
                outcome.code = self._attempt(lp, tier)
                following = next_tier(tier, outcome.code)
                if following is not RetryTier.GIVE_UP:
                    logger.warning(
                        "simplex: %s on %s, retrying (%s)",
                        outcome.code.message, tier.value, following.value,
                    )
                tier = following
        finally:
            self.elapsed_ms += (time.monotonic() - start) * 1000.0
        return outcome

    @property
    def time_hundredths(self) -> int:
        """Accumulated solver time in 0.01 seconds."""
        return int((self.elapsed_ms + 5.0) // 10.0)
