"""
Error taxonomy and result types of the facet separation oracle.

Loader and certifier raise the exceptions below; the oracle engine turns
them into an OracleResult so the caller decides whether to abort the run.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np


class ErrorKind(Enum):
    """Classification of everything that can go wrong."""
    FILE = "file"
    FORMAT = "format"
    RESOURCE = "resource"
    MODEL = "model"
    SOLVER_STATUS = "solver_status"
    NUMERICAL = "numerical"
    LIMIT = "limit"
    EMPTY = "empty"


class OracleError(Exception):
    """Base class of the oracle exceptions; carries an ErrorKind."""
    kind = ErrorKind.NUMERICAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class VlpFileError(OracleError):
    """The vlp file cannot be opened."""
    kind = ErrorKind.FILE


class VlpFormatError(OracleError):
    """Malformed, out of order or out of range vlp line."""
    kind = ErrorKind.FORMAT


class ResourceError(OracleError):
    """The LP instance could not be built."""
    kind = ErrorKind.RESOURCE


class ModelError(OracleError):
    """The interior point is not strictly positive."""
    kind = ErrorKind.MODEL


class SolverStatusError(OracleError):
    """The LP solver returned a status that cannot be retried."""
    kind = ErrorKind.SOLVER_STATUS


class NumericalError(OracleError):
    """The solution violates the geometric contract of the oracle."""
    kind = ErrorKind.NUMERICAL


class OracleStateError(RuntimeError):
    """An oracle operation was called in the wrong state."""


class OracleStatus(Enum):
    """Outcome of an oracle operation."""
    OK = "ok"
    INSIDE = "inside"
    EMPTY = "empty"
    LIMIT = "limit"
    FAIL = "fail"


@dataclass
class OracleResult:
    """
    Result of load, initialize or ask.

    Attributes
    ----------
    status : OracleStatus
        OK, INSIDE, EMPTY, LIMIT or FAIL.
    message : str
        Human-readable description.
    facet : np.ndarray, optional
        The separating facet (normal followed by the offset) when status is
        OK after an ask.
    error : ErrorKind, optional
        Classification when status is not OK or INSIDE.
    lam : float, optional
        Optimal value of the scale variable, when one was computed.
    """
    status: OracleStatus
    message: str
    facet: Optional[np.ndarray] = None
    error: Optional[ErrorKind] = None
    lam: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status is OracleStatus.OK

    @property
    def fatal(self) -> bool:
        return self.status is OracleStatus.FAIL
