"""Data structures for formulas, equations and stoichiometric results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Tuple

import numpy as np


@dataclass(frozen=True)
class ParsedFormula:
    """A chemical formula reduced to its element counts.

    Attributes:
        formula: The formula text as written (without any coefficient hint).
        elements: Element symbol -> count, every count > 0.
        charge: Net ionic charge.
    """

    formula: str
    elements: Mapping[str, int] = field(hash=False)
    charge: int = 0
    tree: Any = field(default=None, compare=False, repr=False)

    def count(self, symbol: str) -> int:
        return self.elements.get(symbol, 0)

    @property
    def is_ion(self) -> bool:
        return self.charge != 0

    def __str__(self) -> str:
        return self.formula


EquationSide = Tuple[ParsedFormula, ...]


@dataclass(frozen=True)
class CompositionMatrix:
    """Signed element counts, one row per element and one column per species.

    Reactant columns are positive and product columns negative so that a balanced
    coefficient vector ``x`` satisfies ``A @ x == 0``.
    """

    elements: tuple[str, ...]
    species: tuple[str, ...]
    rows: tuple[tuple[int, ...], ...]
    n_reactants: int

    @property
    def shape(self) -> tuple[int, int]:
        return len(self.elements), len(self.species)

    @property
    def n_products(self) -> int:
        return len(self.species) - self.n_reactants

    def column(self, index: int) -> tuple[int, ...]:
        return tuple(row[index] for row in self.rows)

    def to_array(self) -> np.ndarray:
        return np.array(self.rows, dtype=np.int64).reshape(self.shape)


@dataclass(frozen=True)
class BalancedEquation:
    """A chemically balanced equation with minimal integer coefficients.

    Attributes:
        reactants: Reactant formulas in input order.
        products: Product formulas in input order.
        coefficients: One positive integer per species, reactants then products.
        equation: The reconstructed equation text, e.g. ``"2H2 + O2 = 2H2O"``.
        nullity: Dimension of the solution space; above 1 the answer is one of
            several independent balanced forms.
        warnings: Non-fatal diagnostics (degenerate solution, charge imbalance).
    """

    reactants: EquationSide
    products: EquationSide
    coefficients: tuple[int, ...]
    equation: str
    nullity: int = 1
    warnings: tuple[str, ...] = ()

    @property
    def species(self) -> EquationSide:
        return self.reactants + self.products

    @property
    def reactant_coefficients(self) -> tuple[int, ...]:
        return self.coefficients[: len(self.reactants)]

    @property
    def product_coefficients(self) -> tuple[int, ...]:
        return self.coefficients[len(self.reactants):]

    @property
    def degenerate(self) -> bool:
        return self.nullity > 1

    def terms(self) -> Iterator[tuple[str, ParsedFormula, int]]:
        """Yield ``(side, formula, coefficient)`` for every species."""
        for index, (formula, coefficient) in enumerate(zip(self.species, self.coefficients)):
            side = "reactant" if index < len(self.reactants) else "product"
            yield side, formula, coefficient

    def as_dict(self) -> dict[str, Any]:
        return {
            "equation": self.equation,
            "reactants": {f.formula: c for f, c in zip(self.reactants, self.reactant_coefficients)},
            "products": {f.formula: c for f, c in zip(self.products, self.product_coefficients)},
            "coefficients": list(self.coefficients),
            "warnings": list(self.warnings),
        }

    def __str__(self) -> str:
        return self.equation


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of all independent checks on a balanced equation."""

    ok: bool
    element_balanced: bool
    charge_balanced: bool
    mass_balanced: bool
    element_totals: Mapping[str, tuple[int, int]] = field(hash=False)
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class SpeciesAmount:
    formula: str
    side: str
    coefficient: int
    molar_mass: float
    moles: float
    grams: float


@dataclass(frozen=True)
class StoichiometryResult:
    """Moles and grams of every species derived from one reference quantity."""

    reference: str
    amounts: tuple[SpeciesAmount, ...]

    def __iter__(self) -> Iterator[SpeciesAmount]:
        return iter(self.amounts)

    def __getitem__(self, formula: str) -> SpeciesAmount:
        for amount in self.amounts:
            if amount.formula == formula:
                return amount
        raise KeyError(formula)

    @property
    def reactants(self) -> dict[str, SpeciesAmount]:
        return {a.formula: a for a in self.amounts if a.side == "reactant"}

    @property
    def products(self) -> dict[str, SpeciesAmount]:
        return {a.formula: a for a in self.amounts if a.side == "product"}

    @property
    def moles(self) -> dict[str, float]:
        return {a.formula: a.moles for a in self.amounts}

    @property
    def grams(self) -> dict[str, float]:
        return {a.formula: a.grams for a in self.amounts}

    @property
    def reactant_mass(self) -> float:
        return float(sum(a.grams for a in self.amounts if a.side == "reactant"))

    @property
    def product_mass(self) -> float:
        return float(sum(a.grams for a in self.amounts if a.side == "product"))

    def as_dict(self, precision: int | None = None) -> dict[str, Any]:
        def _round(value: float) -> float:
            return round(value, precision) if precision is not None else value

        def _side(side: str) -> dict[str, dict[str, float]]:
            return {
                a.formula: {
                    "coefficient": a.coefficient,
                    "moles": _round(a.moles),
                    "grams": _round(a.grams),
                    "molar_mass": _round(a.molar_mass),
                }
                for a in self.amounts
                if a.side == side
            }

        return {
            "reference": self.reference,
            "reactants": _side("reactant"),
            "products": _side("product"),
            "total_mass": {
                "reactants": _round(self.reactant_mass),
                "products": _round(self.product_mass),
            },
        }


@dataclass(frozen=True)
class LimitingReagentResult:
    """The reactant that runs out first and the amounts it allows.

    Attributes:
        limiting: Formula of the limiting reactant.
        result: Stoichiometry scaled to the limiting reactant.
        excess: Moles left over of every other supplied reactant.
    """

    limiting: str
    result: StoichiometryResult
    excess: Mapping[str, float] = field(hash=False)
