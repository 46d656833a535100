"""Independent checks on a balanced equation."""

from __future__ import annotations

import logging
import math
from functools import reduce

from chembalance.errors import BalanceInvariantError
from chembalance.mass import molar_mass
from chembalance.models import BalancedEquation, ValidationReport

logger = logging.getLogger(__name__)

MASS_TOLERANCE = 1e-9


def _side_totals(balanced: BalancedEquation) -> dict[str, list[int]]:
    totals: dict[str, list[int]] = {}
    for side, formula, coefficient in balanced.terms():
        slot = 0 if side == "reactant" else 1
        for symbol, count in formula.elements.items():
            totals.setdefault(symbol, [0, 0])[slot] += coefficient * count
    return totals


def validate(balanced: BalancedEquation) -> ValidationReport:
    """Run every check and report all findings together.

    Element and mass balance failures are errors (``ok`` is False). Charge
    imbalance and a degenerate solution space are warnings.

    Raises:
        BalanceInvariantError: The coefficients are not one per species or
            their GCD is not 1; both indicate a solver bug.
    """
    coefficients = balanced.coefficients
    if len(coefficients) != len(balanced.species):
        raise BalanceInvariantError(
            f"{len(coefficients)} coefficients for {len(balanced.species)} species"
        )
    if reduce(math.gcd, coefficients, 0) != 1:
        raise BalanceInvariantError(f"Coefficients {coefficients} are not minimal")

    errors: list[str] = []
    warnings: list[str] = []

    if any(c <= 0 for c in coefficients):
        errors.append(f"Coefficients must be positive, got {coefficients}")

    totals = _side_totals(balanced)
    unbalanced = {symbol: t for symbol, t in totals.items() if t[0] != t[1]}
    for symbol, (left, right) in unbalanced.items():
        errors.append(f"{symbol} is unbalanced: {left} on reactant side, {right} on product side")

    reactant_mass = sum(
        c * molar_mass(f) for f, c in zip(balanced.reactants, balanced.reactant_coefficients)
    )
    product_mass = sum(
        c * molar_mass(f) for f, c in zip(balanced.products, balanced.product_coefficients)
    )
    mass_balanced = math.isclose(reactant_mass, product_mass, rel_tol=MASS_TOLERANCE)
    if not mass_balanced:
        errors.append(
            f"Mass is not conserved: {reactant_mass:.6f} g/mol reactants, "
            f"{product_mass:.6f} g/mol products"
        )

    charge_balanced = True
    if any(f.charge for f in balanced.species):
        reactant_charge = sum(
            c * f.charge for f, c in zip(balanced.reactants, balanced.reactant_coefficients)
        )
        product_charge = sum(
            c * f.charge for f, c in zip(balanced.products, balanced.product_coefficients)
        )
        charge_balanced = reactant_charge == product_charge
        if not charge_balanced:
            warnings.append(
                f"Charge is not balanced: {reactant_charge:+d} on reactant side, "
                f"{product_charge:+d} on product side"
            )

    if balanced.degenerate:
        warnings.append(
            f"Solution space has dimension {balanced.nullity}; "
            "this is one of several independent balanced forms"
        )

    for message in warnings:
        logger.debug("%s: %s", balanced.equation, message)

    return ValidationReport(
        ok=not errors,
        element_balanced=not unbalanced,
        charge_balanced=charge_balanced,
        mass_balanced=mass_balanced,
        element_totals={symbol: (t[0], t[1]) for symbol, t in totals.items()},
        warnings=tuple(warnings),
        errors=tuple(errors),
    )
