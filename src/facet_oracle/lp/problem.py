"""
The LP instance solved by the oracle.

Built once from a parsed vlp file: the vlp constraints, one fixed
row per objective (pinned to the interior point) and the extra lambda
column. Only the lambda column, its bounds and the objective direction
change afterwards.
"""

from enum import Enum
from typing import Sequence

import numpy as np
from scipy import sparse

from ..errors import ResourceError
from ..vlp.loader import Bound, VlpProblem


class Direction(Enum):
    """Optimization direction of the LP objective."""
    MINIMIZE = 1
    MAXIMIZE = -1


class LinearProgram:
    """
    A bounded LP:  optimize c.x  subject to  row_lower <= A x <= row_upper,
    col_lower <= x <= col_upper.

    Parameters
    ----------
    matrix : scipy.sparse matrix
        Constraint matrix, shape (n_rows, n_cols).
    row_bounds, col_bounds : sequence of Bound
        One bound per row / column.
    objective : np.ndarray
        Objective coefficients, length n_cols.
    direction : Direction
        Minimize or maximize.
    """

    def __init__(
        self,
        matrix,
        row_bounds: Sequence[Bound],
        col_bounds: Sequence[Bound],
        objective: np.ndarray,
        direction: Direction = Direction.MINIMIZE,
    ):
        self.matrix = sparse.csc_matrix(matrix, dtype=np.float64)
        n_rows, n_cols = self.matrix.shape
        if len(row_bounds) != n_rows or len(col_bounds) != n_cols:
            raise ValueError(
                f"bounds do not match matrix shape {self.matrix.shape}: "
                f"{len(row_bounds)} row and {len(col_bounds)} column bounds"
            )
        self.row_lower = np.array([b.lower for b in row_bounds], dtype=np.float64)
        self.row_upper = np.array([b.upper for b in row_bounds], dtype=np.float64)
        self.col_lower = np.array([b.lower for b in col_bounds], dtype=np.float64)
        self.col_upper = np.array([b.upper for b in col_bounds], dtype=np.float64)
        self.objective = np.asarray(objective, dtype=np.float64).copy()
        if self.objective.shape != (n_cols,):
            raise ValueError(f"objective must have length {n_cols}")
        self.direction = direction

    @property
    def n_rows(self) -> int:
        return self.matrix.shape[0]

    @property
    def n_cols(self) -> int:
        return self.matrix.shape[1]

    def set_row_bounds(self, i: int, bound: Bound) -> None:
        self.row_lower[i] = bound.lower
        self.row_upper[i] = bound.upper

    def set_col_bounds(self, j: int, bound: Bound) -> None:
        self.col_lower[j] = bound.lower
        self.col_upper[j] = bound.upper

    def set_objective_direction(self, direction: Direction) -> None:
        self.direction = direction

    def set_column(self, j: int, rows: Sequence[int], values: Sequence[float]) -> None:
        """
        Replace column j: rows[k] gets values[k], every other entry is zero.
        """
        rows = np.asarray(rows, dtype=np.int64)
        values = np.asarray(values, dtype=np.float64)
        if rows.shape != values.shape:
            raise ValueError("rows and values must have the same length")
        if len(np.unique(rows)) != len(rows):
            raise ValueError("duplicate row index in column")
        column = np.zeros(self.n_rows)
        column[rows] = values
        lil = self.matrix.tolil()
        lil[:, j] = column.reshape(-1, 1)
        self.matrix = lil.tocsc()
        self.matrix.eliminate_zeros()

    def column(self, j: int) -> np.ndarray:
        """Dense copy of column j."""
        return self.matrix[:, j].toarray().ravel()


def assemble_problem(vlp: VlpProblem) -> LinearProgram:
    """
    Build the oracle LP from a parsed vlp file.

    The lambda column is left all zero; objective rows are fixed to the
    interior point; the objective is to maximize lambda.

    Raises
    ------
    ResourceError
        If the LP instance cannot be allocated.
    """
    dims = vlp.dimensions
    try:
        matrix = vlp.matrix.tocsc()
        objective = np.zeros(dims.lp_cols)
        lp = LinearProgram(
            matrix, vlp.row_bounds, vlp.col_bounds, objective,
            direction=Direction.MAXIMIZE,
        )
    except MemoryError:
        raise ResourceError(
            f"out of memory building a {dims.lp_rows}x{dims.lp_cols} LP for {vlp.path}"
        ) from None

    lp.set_column(vlp.lambda_index, [], [])
    for k, row in enumerate(vlp.objective_rows):
        value = float(vlp.interior[k])
        lp.row_lower[row] = value
        lp.row_upper[row] = value
    lp.col_lower[vlp.lambda_index] = 0.0
    lp.col_upper[vlp.lambda_index] = np.inf
    lp.objective[vlp.lambda_index] = 1.0
    return lp
