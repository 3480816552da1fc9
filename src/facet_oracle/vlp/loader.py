"""
Reader for polyhedron descriptions in the vlp format.

A vlp file describes a multi-objective linear program. Lines are
normalized (lower case, blanks merged) and dispatched on their first
character:

    c <text>                          comment
    p vlp min|max <rows> <cols> <nz> <objs> <nz>
    j <col> <kind> [v1 [v2]]          column bound
    i <row> <kind> [v1 [v2]]          row bound
    a <row> <col> <value>             constraint coefficient
    o <obj> <col> <value>             objective coefficient
    x <obj> <value>                   interior point coordinate
    e                                 end of data

Bound kinds are f (free), l (lower), u (upper), s (fixed) and d (double
bounded) taking 0, 1, 1, 1 and 2 values respectively.

The result is laid out as the LP the oracle solves:

     x (cols)        lambda        RHS

    AAAAAAAAAAA         0         bounds from i lines
    PPPPPPPPPPP        -d         = interior point
   ------------------------------------
    00000000000         1         maximize

Rows and columns may be randomly permuted; every index stored in the
result refers to the permuted layout.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from scipy import sparse

from ..config import POLYTOPE_EPS
from ..errors import ModelError, VlpFileError, VlpFormatError


logger = logging.getLogger(__name__)


# =============================================================================
# Bounds
# =============================================================================

class BoundKind(Enum):
    """Bound type of a row or column, keyed by its vlp character."""
    FREE = "f"
    LOWER = "l"
    UPPER = "u"
    FIXED = "s"
    DOUBLE = "d"

    @property
    def arity(self) -> int:
        """Number of numeric values following the kind character."""
        if self is BoundKind.FREE:
            return 0
        if self is BoundKind.DOUBLE:
            return 2
        return 1


@dataclass(frozen=True)
class Bound:
    """
    A row or column bound.

    Unused limits are infinite, so `lower <= a.x <= upper` always reads
    correctly.
    """
    kind: BoundKind
    lower: float = -np.inf
    upper: float = np.inf

    @classmethod
    def from_values(cls, kind: BoundKind, values: List[float]) -> "Bound":
        if len(values) != kind.arity:
            raise ValueError(
                f"bound '{kind.value}' takes {kind.arity} value(s), got {len(values)}"
            )
        if kind is BoundKind.FREE:
            return cls(kind)
        if kind is BoundKind.LOWER:
            return cls(kind, lower=values[0])
        if kind is BoundKind.UPPER:
            return cls(kind, upper=values[0])
        if kind is BoundKind.FIXED:
            return cls(kind, lower=values[0], upper=values[0])
        return cls(kind, lower=values[0], upper=values[1])


FREE = Bound(BoundKind.FREE)
ZERO = Bound(BoundKind.FIXED, 0.0, 0.0)
NONNEGATIVE = Bound(BoundKind.LOWER, lower=0.0)


# =============================================================================
# Problem
# =============================================================================

@dataclass(frozen=True)
class ProblemDimensions:
    """Sizes fixed by the p line."""
    rows: int
    cols: int
    objectives: int

    @property
    def lp_rows(self) -> int:
        """Constraint rows plus one fixed row per objective."""
        return self.rows + self.objectives

    @property
    def lp_cols(self) -> int:
        """Structural columns plus the lambda column."""
        return self.cols + 1


@dataclass
class VlpProblem:
    """
    A parsed vlp file in LP layout.

    Attributes
    ----------
    path : Path
        Source file.
    dimensions : ProblemDimensions
        rows, cols, objectives.
    direction : str
        "min" or "max" as written on the p line; objective coefficients of a
        "max" problem are already negated.
    row_bounds, col_bounds : list of Bound
        Indexed by LP position. Rows default to free, columns to fixed zero.
    matrix : scipy.sparse.dok_matrix
        Coefficients, shape (rows + objectives, cols + 1).
    interior : np.ndarray
        The interior point, one coordinate per objective.
    objective_rows : np.ndarray
        LP row realising each objective.
    lambda_index : int
        LP column of the scale variable.
    comments : list of str
        Comment lines seen before the p line.
    """
    path: Path
    dimensions: ProblemDimensions
    direction: str
    row_bounds: List[Bound]
    col_bounds: List[Bound]
    matrix: sparse.dok_matrix
    interior: np.ndarray
    objective_rows: np.ndarray
    lambda_index: int
    comments: List[str] = field(default_factory=list)


# =============================================================================
# Line handling
# =============================================================================

def normalize_line(raw: str) -> str:
    """
    Lower-case a line, drop control characters and merge blanks.

    Returns an empty string for blank lines.
    """
    chars = []
    pending_space = False
    for ch in raw:
        if ch in " \t":
            pending_space = True
            continue
        if ch <= " " or ch > "~":
            continue
        if pending_space and chars:
            chars.append(" ")
        pending_space = False
        chars.append(ch.lower())
    return "".join(chars)


def _shuffled_index(n: int, shuffle: bool, rng: Optional[np.random.Generator]) -> np.ndarray:
    if not shuffle:
        return np.arange(n)
    if rng is None:
        rng = np.random.default_rng()
    return rng.permutation(n)


class _Reader:
    """Line-by-line state of a vlp load."""

    def __init__(self, path: Path, shuffle: bool, rng: Optional[np.random.Generator]):
        self.path = path
        self.shuffle = shuffle
        self.rng = rng
        self.lineno = 0
        self.line = ""
        self.dims: Optional[ProblemDimensions] = None
        self.direction = "min"
        self.sign = 1.0
        self.comments: List[str] = []

    def fail(self, what: str) -> VlpFormatError:
        return VlpFormatError(
            f"read_vlp: {what} in {self.path} line {self.lineno}:\n   {self.line}"
        )

    def _int(self, token: str, what: str) -> int:
        try:
            return int(token)
        except ValueError:
            raise self.fail(f"wrong {what} line") from None

    def _float(self, token: str, what: str) -> float:
        try:
            return float(token)
        except ValueError:
            raise self.fail(f"wrong {what} line") from None

    def _index(self, token: str, limit: int, what: str) -> int:
        """Parse a 1-based index and return it 0-based."""
        idx = self._int(token, what)
        if idx < 1 or idx > limit:
            raise self.fail(f"wrong {what} line")
        return idx - 1

    # -------------------------------------------------------------------------
    # p line
    # -------------------------------------------------------------------------

    def header(self, fields: List[str]) -> None:
        if self.dims is not None:
            raise self.fail("second p line")
        if len(fields) != 8 or fields[1] != "vlp" or fields[2] not in ("min", "max"):
            raise self.fail("wrong p line")
        rows = self._int(fields[3], "p")
        cols = self._int(fields[4], "p")
        objs = self._int(fields[6], "p")
        if rows <= 1 or cols <= 1 or objs < 1:
            raise self.fail("wrong p line")
        self.direction = fields[2]
        self.sign = -1.0 if self.direction == "max" else 1.0
        self.dims = ProblemDimensions(rows, cols, objs)
        self.allocate()

    def allocate(self) -> None:
        dims = self.dims
        try:
            self.row_idx = _shuffled_index(dims.lp_rows, self.shuffle, self.rng)
            self.col_idx = _shuffled_index(dims.lp_cols, self.shuffle, self.rng)
            self.matrix = sparse.dok_matrix((dims.lp_rows, dims.lp_cols), dtype=np.float64)
        except MemoryError:
            raise self.fail("out of memory") from None
        self.row_bounds = [FREE] * dims.lp_rows
        self.col_bounds = [ZERO] * dims.lp_cols
        self.interior = np.zeros(dims.objectives)
        self.objective_rows = self.row_idx[dims.rows:].copy()
        self.lambda_index = int(self.col_idx[dims.cols])
        self.col_bounds[self.lambda_index] = NONNEGATIVE

    # -------------------------------------------------------------------------
    # structural lines
    # -------------------------------------------------------------------------

    def bound(self, fields: List[str], limit: int) -> Tuple[int, Bound]:
        what = fields[0]
        if len(fields) < 3:
            raise self.fail(f"wrong {what} line")
        idx = self._index(fields[1], limit, what)
        kind_char = fields[2]
        try:
            kind = BoundKind(kind_char)
        except ValueError:
            raise self.fail(f"wrong {what} line") from None
        values = [self._float(tok, what) for tok in fields[3:]]
        try:
            return idx, Bound.from_values(kind, values)
        except ValueError:
            raise self.fail(f"wrong {what} line") from None

    def handle(self, fields: List[str]) -> None:
        tag = fields[0]
        if tag == "p":
            self.header(fields)
            return
        if self.dims is None:
            raise self.fail(f"{tag} line before p")
        dims = self.dims
        if tag == "j":
            j, bound = self.bound(fields, dims.cols)
            self.col_bounds[self.col_idx[j]] = bound
        elif tag == "i":
            i, bound = self.bound(fields, dims.rows)
            self.row_bounds[self.row_idx[i]] = bound
        elif tag == "a":
            if len(fields) != 4:
                raise self.fail("wrong a line")
            i = self._index(fields[1], dims.rows, "a")
            j = self._index(fields[2], dims.cols, "a")
            self.matrix[self.row_idx[i], self.col_idx[j]] = self._float(fields[3], "a")
        elif tag == "o":
            if len(fields) != 4:
                raise self.fail("wrong o line")
            k = self._index(fields[1], dims.objectives, "o")
            j = self._index(fields[2], dims.cols, "o")
            value = self.sign * self._float(fields[3], "o")
            self.matrix[self.objective_rows[k], self.col_idx[j]] = value
        elif tag == "x":
            if len(fields) != 3:
                raise self.fail("wrong x line")
            k = self._index(fields[1], dims.objectives, "x")
            self.interior[k] = self._float(fields[2], "x")
        else:
            raise self.fail("unknown line")


# =============================================================================
# Public entry point
# =============================================================================

def read_vlp(
    path: Union[str, Path],
    tolerance: float = POLYTOPE_EPS,
    shuffle: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> VlpProblem:
    """
    Read a vlp file.

    Parameters
    ----------
    path : str or Path
        The vlp file.
    tolerance : float
        Every interior point coordinate must be at least this large.
    shuffle : bool
        Randomly permute rows and columns of the LP layout.
    rng : np.random.Generator, optional
        Source of the permutation; a fresh generator when omitted.

    Returns
    -------
    VlpProblem

    Raises
    ------
    VlpFileError
        If the file cannot be opened.
    VlpFormatError
        On any malformed, out of order or out of range line.
    ModelError
        If an interior point coordinate is below the tolerance.
    """
    path = Path(path)
    reader = _Reader(path, shuffle, rng)
    try:
        fh = open(path, "r", encoding="ascii", errors="replace")
    except OSError as exc:
        raise VlpFileError(f"Cannot open vlp file {path} for reading: {exc.strerror}") from exc

    with fh:
        for lineno, raw in enumerate(fh, start=1):
            line = normalize_line(raw)
            if not line:
                continue
            reader.lineno = lineno
            reader.line = line
            if line[0] == "c":
                if reader.dims is None and len(line) > 1:
                    text = line[1:].strip()
                    reader.comments.append(text)
                    logger.info("C %s", text)
                continue
            if line[0] == "e":
                break
            reader.handle(line.split(" "))

    if reader.dims is None:
        raise VlpFormatError(f"read_vlp: no 'p' line in {path}")

    for k, value in enumerate(reader.interior):
        if value < tolerance:
            raise ModelError(
                f"read_vlp: initial value[{k + 1}]={value:g} not positive"
            )

    dims = reader.dims
    logger.info(
        "Loaded %s: %d rows, %d columns, %d objectives (%s)",
        path, dims.rows, dims.cols, dims.objectives, reader.direction,
    )
    return VlpProblem(
        path=path,
        dimensions=dims,
        direction=reader.direction,
        row_bounds=reader.row_bounds,
        col_bounds=reader.col_bounds,
        matrix=reader.matrix,
        interior=reader.interior,
        objective_rows=reader.objective_rows,
        lambda_index=reader.lambda_index,
        comments=reader.comments,
    )
