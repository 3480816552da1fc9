"""
Reader for the vlp polyhedron description format.

Main entry point:
- `read_vlp(path, ...)`: parse a vlp file into a VlpProblem
"""

from .loader import (
    Bound,
    BoundKind,
    ProblemDimensions,
    VlpProblem,
    normalize_line,
    read_vlp,
)

__all__ = [
    "Bound",
    "BoundKind",
    "ProblemDimensions",
    "VlpProblem",
    "normalize_line",
    "read_vlp",
]
