"""
Linear programming layer of the oracle.

Implements:
- The oracle LP instance with its lambda column
- The simplex backend contract and a HiGHS (scipy) implementation
- The retry ladder around every solve

Main entry points:
- `assemble_problem(vlp)`: build the LP from a parsed vlp file
- `HighsBackend()`: default solver
- `SolveLadder(backend, params)`: solve with retries and statistics
"""

from .problem import (
    Direction,
    LinearProgram,
    assemble_problem,
)

from .backend import (
    HighsBackend,
    ReturnCode,
    SimplexBackend,
    SolutionStatus,
    SolverParams,
    scale_constraints,
    solver_params_from_config,
)

from .retry import (
    RetryTier,
    SolveLadder,
    SolveOutcome,
    next_tier,
)

__all__ = [
    # LP instance
    "Direction",
    "LinearProgram",
    "assemble_problem",
    # Backend
    "HighsBackend",
    "ReturnCode",
    "SimplexBackend",
    "SolutionStatus",
    "SolverParams",
    "scale_constraints",
    "solver_params_from_config",
    # Retry ladder
    "RetryTier",
    "SolveLadder",
    "SolveOutcome",
    "next_tier",
]
