"""Exact linear balancing of chemical equations.

The composition matrix ``A`` (see :mod:`chembalance.matrix`) turns balancing into
the homogeneous system ``A @ x = 0``. The system is reduced to row-echelon form
with exact rational arithmetic (:class:`fractions.Fraction`), and a positive
null-space vector is scaled to the smallest integer solution.

Free-variable assignments are tried in this order:

1. the first free column set to 1 and the others to 0;
2. every free column set to 1;
3. a bounded integer search (``scipy.optimize.milp``) minimising the sum of
   coefficients, verified afterwards in exact integer arithmetic.

Steps 2 and 3 only run when ``SolverConfig.search_alternatives`` is set. With a
one-dimensional null space only step 1 can succeed.

For equations with ions, :func:`balance` first solves the matrix extended by a
charge row and falls back to the element rows alone when that has no positive
solution.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from fractions import Fraction
from functools import reduce
from typing import Sequence

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, milp

from chembalance.equation import parse_equation
from chembalance.errors import BalanceInvariantError, UnbalanceableError
from chembalance.matrix import build_matrix
from chembalance.models import BalancedEquation, CompositionMatrix, ParsedFormula
from chembalance.validation import validate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverConfig:
    """Solver options.

    Attributes:
        search_alternatives: Retry other free-variable assignments and the
            bounded integer search when the first assignment is not positive.
        max_coefficient: Upper bound on any coefficient in the integer search.
    """

    search_alternatives: bool = True
    max_coefficient: int = 1000

    def __post_init__(self) -> None:
        if self.max_coefficient < 1:
            raise ValueError("max_coefficient must be at least 1")


@dataclass(frozen=True)
class Solution:
    coefficients: tuple[int, ...]
    nullity: int
    strategy: str

    @property
    def degenerate(self) -> bool:
        return self.nullity > 1


def reduced_row_echelon(
    rows: Sequence[Sequence[int]],
) -> tuple[list[list[Fraction]], list[int]]:
    """Return the reduced row-echelon form of ``rows`` and its pivot columns."""
    matrix = [[Fraction(value) for value in row] for row in rows]
    n_rows = len(matrix)
    n_cols = len(matrix[0]) if matrix else 0
    pivots: list[int] = []
    rank = 0
    for col in range(n_cols):
        if rank == n_rows:
            break
        pivot_row = next((r for r in range(rank, n_rows) if matrix[r][col] != 0), None)
        if pivot_row is None:
            continue
        matrix[rank], matrix[pivot_row] = matrix[pivot_row], matrix[rank]
        lead = matrix[rank][col]
        matrix[rank] = [value / lead for value in matrix[rank]]
        for r in range(n_rows):
            factor = matrix[r][col]
            if r != rank and factor != 0:
                matrix[r] = [a - factor * b for a, b in zip(matrix[r], matrix[rank])]
        pivots.append(col)
        rank += 1
    return matrix, pivots


def null_space_basis(matrix: CompositionMatrix) -> list[list[Fraction]]:
    """One rational basis vector per free column, in column order."""
    n_cols = len(matrix.species)
    rref, pivots = reduced_row_echelon(matrix.rows)
    free_columns = [col for col in range(n_cols) if col not in pivots]
    basis = []
    for free in free_columns:
        vector = [Fraction(0)] * n_cols
        vector[free] = Fraction(1)
        for row, pivot in enumerate(pivots):
            vector[pivot] = -rref[row][free]
        basis.append(vector)
    return basis


def to_minimal_integers(vector: Sequence[Fraction]) -> tuple[int, ...]:
    """Scale a rational vector by the LCM of its denominators, then divide by the GCD."""
    multiple = reduce(math.lcm, (value.denominator for value in vector), 1)
    integers = [int(value * multiple) for value in vector]
    divisor = reduce(math.gcd, (abs(value) for value in integers), 0)
    if divisor == 0:
        return tuple(integers)
    return tuple(value // divisor for value in integers)


def _is_balanced(matrix: CompositionMatrix, coefficients: Sequence[int]) -> bool:
    return all(sum(a * x for a, x in zip(row, coefficients)) == 0 for row in matrix.rows)


def _integer_search(matrix: CompositionMatrix, max_coefficient: int) -> tuple[int, ...] | None:
    a = matrix.to_array().astype(float)
    n_species = a.shape[1]
    result = milp(
        c=np.ones(n_species),
        constraints=LinearConstraint(a, 0.0, 0.0),
        integrality=np.ones(n_species),
        bounds=Bounds(1, max_coefficient),
    )
    if not result.success or result.x is None:
        logger.debug("Integer search failed: %s", result.message)
        return None
    candidate = [int(round(value)) for value in result.x]
    if not _is_balanced(matrix, candidate):
        logger.debug("Integer search returned an inexact solution %s", candidate)
        return None
    divisor = reduce(math.gcd, candidate, 0)
    return tuple(value // divisor for value in candidate)


def solve(matrix: CompositionMatrix, config: SolverConfig | None = None) -> Solution:
    """Find the smallest positive integer coefficients with ``A @ x == 0``.

    Raises:
        UnbalanceableError: The system only has the trivial solution, or no
            assignment tried produced strictly positive coefficients.
    """
    config = config or SolverConfig()
    basis = null_space_basis(matrix)
    nullity = len(basis)
    logger.debug(
        "Matrix %dx%d for %s has nullity %d", *matrix.shape, " + ".join(matrix.species), nullity
    )
    if nullity == 0:
        raise UnbalanceableError(
            f"Only the trivial solution exists for {', '.join(matrix.species)}: "
            "the species cannot be balanced"
        )

    candidates = [("first-free", basis[0])]
    if config.search_alternatives and nullity > 1:
        candidates.append(("all-free", [sum(column) for column in zip(*basis)]))

    for strategy, vector in candidates:
        coefficients = to_minimal_integers(vector)
        if all(value > 0 for value in coefficients):
            logger.debug("Solved with %s assignment: %s", strategy, coefficients)
            return Solution(coefficients, nullity, strategy)
        logger.debug("%s assignment not positive: %s", strategy, coefficients)

    if config.search_alternatives and nullity > 1:
        logger.info(
            "Free-variable assignments gave no positive solution; "
            "searching integer coefficients up to %d",
            config.max_coefficient,
        )
        coefficients = _integer_search(matrix, config.max_coefficient)
        if coefficients is not None:
            return Solution(coefficients, nullity, "integer-search")

    raise UnbalanceableError(
        f"No strictly positive coefficients balance {', '.join(matrix.species)}"
    )


def format_term(formula: ParsedFormula, coefficient: int) -> str:
    return formula.formula if coefficient == 1 else f"{coefficient}{formula.formula}"


def format_equation(
    reactants: Sequence[ParsedFormula],
    products: Sequence[ParsedFormula],
    coefficients: Sequence[int],
) -> str:
    """Render ``2H2 + O2 = 2H2O``, omitting coefficients equal to 1."""
    n_reactants = len(reactants)
    left = " + ".join(format_term(f, c) for f, c in zip(reactants, coefficients[:n_reactants]))
    right = " + ".join(format_term(f, c) for f, c in zip(products, coefficients[n_reactants:]))
    return f"{left} = {right}"


def _solve_equation(
    reactants: Sequence[ParsedFormula],
    products: Sequence[ParsedFormula],
    config: SolverConfig | None,
) -> Solution:
    if any(f.charge for f in (*reactants, *products)):
        try:
            return solve(build_matrix(reactants, products, charge=True), config)
        except UnbalanceableError as exc:
            logger.info("No charge-balanced solution (%s); balancing elements only", exc)
    return solve(build_matrix(reactants, products), config)


def balance(text: str, config: SolverConfig | None = None) -> BalancedEquation:
    """Balance an equation such as ``"Fe + O2 = Fe2O3"``.

    Any coefficients already present in ``text`` are ignored. When a species
    carries a charge, coefficients that also balance charge are preferred;
    elements alone are balanced only if no such coefficients exist.

    Returns:
        The balanced equation. Its ``warnings`` hold non-fatal diagnostics such
        as a degenerate solution space or a charge imbalance.
    """
    reactants, products = parse_equation(text)
    solution = _solve_equation(reactants, products, config)
    balanced = BalancedEquation(
        reactants=reactants,
        products=products,
        coefficients=solution.coefficients,
        equation=format_equation(reactants, products, solution.coefficients),
        nullity=solution.nullity,
    )
    report = validate(balanced)
    if not report.element_balanced:
        raise BalanceInvariantError(
            f"Solver returned unbalanced coefficients {solution.coefficients} "
            f"for {text!r}: {'; '.join(report.errors)}"
        )
    return dataclasses.replace(balanced, warnings=report.warnings)
