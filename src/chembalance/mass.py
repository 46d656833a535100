"""Molar mass and mass composition."""

from __future__ import annotations

from chembalance.constants import ATOMIC_WEIGHTS
from chembalance.errors import UnknownElementError
from chembalance.formula import parse_formula
from chembalance.models import ParsedFormula


def _as_parsed(formula: ParsedFormula | str) -> ParsedFormula:
    return parse_formula(formula) if isinstance(formula, str) else formula


def molar_mass(formula: ParsedFormula | str) -> float:
    """Molar mass in g/mol, e.g. ``molar_mass("H2O") ~= 18.015``."""
    parsed = _as_parsed(formula)
    total = 0.0
    for symbol, count in parsed.elements.items():
        weight = ATOMIC_WEIGHTS.get(symbol)
        if weight is None:
            raise UnknownElementError(symbol, formula=parsed.formula)
        total += count * weight
    return total


def mass_fractions(formula: ParsedFormula | str) -> dict[str, float]:
    """Fraction of the molar mass contributed by each element."""
    parsed = _as_parsed(formula)
    total = molar_mass(parsed)
    return {
        symbol: count * ATOMIC_WEIGHTS[symbol] / total
        for symbol, count in parsed.elements.items()
    }
