"""Stoichiometric quantities derived from a balanced equation.

Every species amount is a linear scaling of one reference amount:

    moles_i = (reference_moles / reference_coefficient) * coefficient_i
    grams_i = moles_i * molar_mass_i
"""

from __future__ import annotations

import logging
import math
from typing import Mapping

import numpy as np

from chembalance.balancer import balance
from chembalance.errors import ChemBalanceError, InvalidQuantityError, UnknownSpeciesError
from chembalance.formula import parse_formula
from chembalance.mass import molar_mass
from chembalance.models import (
    BalancedEquation,
    LimitingReagentResult,
    SpeciesAmount,
    StoichiometryResult,
)

logger = logging.getLogger(__name__)


def _as_balanced(equation: BalancedEquation | str) -> BalancedEquation:
    return balance(equation) if isinstance(equation, str) else equation


def _check_quantity(value: float, unit: str) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise InvalidQuantityError(f"Amount in {unit} must be a finite number >= 0, got {value}")
    return value


def species_index(balanced: BalancedEquation, species: str) -> int:
    """Position of ``species`` among reactants then products.

    Exact formula text wins; otherwise the first species with the same element
    counts and charge is used.
    """
    formulas = [f.formula for f in balanced.species]
    if species in formulas:
        return formulas.index(species)
    available = ", ".join(formulas)
    try:
        wanted = parse_formula(species.strip())
    except ChemBalanceError as exc:
        raise UnknownSpeciesError(
            f"Species {species!r} not found in the equation. Available species: {available}"
        ) from exc
    for index, formula in enumerate(balanced.species):
        if formula.elements == wanted.elements and formula.charge == wanted.charge:
            return index
    raise UnknownSpeciesError(
        f"Species {species!r} not found in the equation. Available species: {available}"
    )


def ratios(equation: BalancedEquation | str, reference: str) -> dict[str, float]:
    """Coefficient of every species divided by the reference coefficient."""
    balanced = _as_balanced(equation)
    ref = balanced.coefficients[species_index(balanced, reference)]
    return {f.formula: c / ref for f, c in zip(balanced.species, balanced.coefficients)}


def species_info(equation: BalancedEquation | str) -> dict[str, dict[str, object]]:
    balanced = _as_balanced(equation)
    return {
        formula.formula: {
            "side": side,
            "coefficient": coefficient,
            "molar_mass": molar_mass(formula),
        }
        for side, formula, coefficient in balanced.terms()
    }


def from_moles(
    equation: BalancedEquation | str, reference: str, moles: float
) -> StoichiometryResult:
    """Moles and grams of every species given ``moles`` of ``reference``.

    Raises:
        UnknownSpeciesError: ``reference`` is not part of the equation.
        InvalidQuantityError: ``moles`` is negative or not finite.
    """
    balanced = _as_balanced(equation)
    moles = _check_quantity(moles, "moles")
    index = species_index(balanced, reference)

    coefficients = np.array(balanced.coefficients, dtype=float)
    masses = np.array([molar_mass(f) for f in balanced.species])
    species_moles = moles / coefficients[index] * coefficients
    species_grams = species_moles * masses
    logger.debug(
        "Scaled %s from %g mol %s", balanced.equation, moles, balanced.species[index].formula
    )

    amounts = tuple(
        SpeciesAmount(
            formula=formula.formula,
            side=side,
            coefficient=coefficient,
            molar_mass=float(mass),
            moles=float(n),
            grams=float(g),
        )
        for (side, formula, coefficient), mass, n, g in zip(
            balanced.terms(), masses, species_moles, species_grams
        )
    )
    return StoichiometryResult(reference=balanced.species[index].formula, amounts=amounts)


def from_grams(
    equation: BalancedEquation | str, reference: str, grams: float
) -> StoichiometryResult:
    """Like :func:`from_moles`, starting from a mass of ``reference`` in grams."""
    balanced = _as_balanced(equation)
    grams = _check_quantity(grams, "grams")
    index = species_index(balanced, reference)
    moles = grams / molar_mass(balanced.species[index])
    return from_moles(balanced, balanced.species[index].formula, moles)


def limiting_reagent(
    equation: BalancedEquation | str,
    available: Mapping[str, float],
    unit: str = "moles",
) -> LimitingReagentResult:
    """Find the reactant that runs out first.

    Args:
        equation: Balanced equation or equation text.
        available: Amount of each supplied reactant.
        unit: ``"moles"`` or ``"grams"`` for the values in ``available``.

    Returns:
        The limiting reactant, the stoichiometry it allows and the moles of
        every other supplied reactant left over.
    """
    if unit not in ("moles", "grams"):
        raise ValueError(f"Unknown unit: {unit}")
    if not available:
        raise InvalidQuantityError("At least one reactant amount is required")
    balanced = _as_balanced(equation)

    supplied: dict[str, float] = {}
    for species, amount in available.items():
        index = species_index(balanced, species)
        if index >= len(balanced.reactants):
            raise UnknownSpeciesError(f"{species!r} is not a reactant of {balanced.equation}")
        formula = balanced.species[index]
        amount = _check_quantity(amount, unit)
        if unit == "grams":
            amount /= molar_mass(formula)
        supplied[formula.formula] = supplied.get(formula.formula, 0.0) + amount

    extents = {
        name: moles / balanced.coefficients[species_index(balanced, name)]
        for name, moles in supplied.items()
    }
    limiting = min(extents, key=extents.get)
    result = from_moles(balanced, limiting, supplied[limiting])
    excess = {
        name: max(moles - result[name].moles, 0.0)
        for name, moles in supplied.items()
        if name != limiting
    }
    return LimitingReagentResult(limiting=limiting, result=result, excess=excess)
