"""
Command line front end: load a vlp file, verify its interior point and ask
the oracle about a few points.

Usage:
    python -m facet_oracle.cli problem.vlp \\
        --ask 1,0,0 --ask -1,0.5,0 --shuffle --seed 7 --verbose

Each --ask takes k + 1 comma separated homogeneous coordinates; the last one
is 0 for a direction. Negative first coordinates need no quoting or "=".
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import (
    DEFAULT_ITERATION_LIMIT, DEFAULT_TIME_LIMIT, POLYTOPE_EPS,
    OracleConfig,
)
from .errors import OracleStatus
from .oracle import FacetOracle


def parse_point(text: str) -> List[float]:
    """Parse "a,b,c" into a list of floats."""
    try:
        return [float(tok) for tok in text.split(",")]
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a comma separated point: {text!r}") from None


def join_ask_values(argv: List[str]) -> List[str]:
    """
    Rewrite "--ask VALUE" pairs as "--ask=VALUE".

    argparse takes a value such as "-1,0,0" for an option flag, so a point
    with a negative first coordinate would otherwise be rejected.
    """
    joined = []
    i = 0
    while i < len(argv):
        if argv[i] == "--ask" and i + 1 < len(argv):
            joined.append(f"--ask={argv[i + 1]}")
            i += 2
        else:
            joined.append(argv[i])
            i += 1
    return joined


def _format_vector(values) -> str:
    return " ".join(f"{v:.10g}" for v in values)


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(
        description="Facet separation oracle for a vlp polyhedron"
    )
    parser.add_argument("vlp", help="vlp file describing the polyhedron")
    parser.add_argument(
        "--ask", type=parse_point, action="append", default=[],
        help="query point, k+1 comma separated coordinates (repeatable)"
    )
    parser.add_argument(
        "--tolerance", type=float, default=POLYTOPE_EPS,
        help=f"positivity tolerance (default: {POLYTOPE_EPS})"
    )
    parser.add_argument(
        "--method", choices=["primal", "dual"], default="primal",
        help="simplex method (default: primal)"
    )
    parser.add_argument(
        "--pricing", choices=["standard", "steepest"], default="steepest",
        help="pricing rule (default: steepest)"
    )
    parser.add_argument(
        "--iteration-limit", type=int, default=DEFAULT_ITERATION_LIMIT,
        help=f"simplex iteration limit, 0 for none (default: {DEFAULT_ITERATION_LIMIT})"
    )
    parser.add_argument(
        "--time-limit", type=int, default=DEFAULT_TIME_LIMIT,
        help=f"time limit per LP in seconds, 0 for none (default: {DEFAULT_TIME_LIMIT})"
    )
    parser.add_argument(
        "--no-scale", action="store_true",
        help="do not scale the constraint matrix"
    )
    parser.add_argument(
        "--shuffle", action="store_true",
        help="randomly permute rows and columns"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="seed for --shuffle"
    )
    parser.add_argument(
        "--round", action="store_true",
        help="round facet coefficients to nearby rationals"
    )
    parser.add_argument(
        "--message-level", type=int, choices=[0, 1, 2, 3], default=1,
        help="0 quiet, 1 errors, 2 progress, 3 debug (default: 1)"
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="same as --message-level 2"
    )

    args = parser.parse_args(join_ask_values(list(argv)))
    level = max(args.message_level, 2 if args.verbose else 0)
    logging.basicConfig(
        level={0: logging.CRITICAL + 1, 1: logging.WARNING, 2: logging.INFO}.get(level, logging.DEBUG),
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = OracleConfig(
        tolerance=args.tolerance,
        message_level=level,
        method=args.method,
        pricing=args.pricing,
        iteration_limit=args.iteration_limit,
        time_limit=args.time_limit,
        scale=not args.no_scale,
        shuffle=args.shuffle,
        round_facets=args.round,
        seed=args.seed,
    )
    oracle = FacetOracle(config)

    result = oracle.load(args.vlp)
    if not result.ok:
        print(f"load: {result.message}", file=sys.stderr)
        return 1

    result = oracle.initialize()
    if not result.ok:
        print(f"initialize: {result.status.value}: {result.message}", file=sys.stderr)
        return 1
    print(f"interior point {_format_vector(oracle.interior)} verified")

    exit_code = 0
    for point in args.ask:
        if len(point) != oracle.objectives + 1:
            print(
                f"{_format_vector(point)} -> needs {oracle.objectives + 1} coordinates",
                file=sys.stderr,
            )
            exit_code = 1
            continue
        result = oracle.ask(point)
        if result.status is OracleStatus.OK:
            print(f"{_format_vector(point)} -> facet {_format_vector(result.facet)}")
        elif result.status is OracleStatus.INSIDE:
            print(f"{_format_vector(point)} -> inside")
        else:
            print(f"{_format_vector(point)} -> {result.status.value}: {result.message}")
            exit_code = 1
            if result.fatal:
                break

    stats = oracle.get_stats()
    print(
        f"{stats.call_count} LP calls, {stats.iteration_count} iterations, "
        f"{stats.time_hundredths / 100:.2f} s, {stats.solver_version}"
    )
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
