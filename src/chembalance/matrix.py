"""Composition matrix of an equation."""

from __future__ import annotations

from typing import Sequence

from chembalance.models import CompositionMatrix, ParsedFormula

CHARGE_ROW = "charge"


def build_matrix(
    reactants: Sequence[ParsedFormula],
    products: Sequence[ParsedFormula],
    charge: bool = False,
) -> CompositionMatrix:
    """Build the signed element-count matrix ``A`` with ``A @ x == 0`` when balanced.

    Rows follow the first-seen order of elements, columns are reactants then
    products in input order. Product entries are negated. With ``charge`` set, a
    final ``"charge"`` row holds the net charge of each species.
    """
    species = list(reactants) + list(products)
    elements: list[str] = []
    for formula in species:
        for symbol in formula.elements:
            if symbol not in elements:
                elements.append(symbol)

    n_reactants = len(reactants)
    sign = [1 if index < n_reactants else -1 for index in range(len(species))]
    rows = [
        tuple(s * formula.count(symbol) for s, formula in zip(sign, species))
        for symbol in elements
    ]
    labels = list(elements)
    if charge:
        rows.append(tuple(s * formula.charge for s, formula in zip(sign, species)))
        labels.append(CHARGE_ROW)
    return CompositionMatrix(
        elements=tuple(labels),
        species=tuple(formula.formula for formula in species),
        rows=tuple(rows),
        n_reactants=n_reactants,
    )
