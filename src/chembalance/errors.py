"""Exceptions raised by the balancing engine."""

from __future__ import annotations


class ChemBalanceError(ValueError):
    """Base class for errors caused by user input."""


class FormulaSyntaxError(ChemBalanceError):
    """A chemical formula is malformed (bad grouping, stray characters, empty)."""

    def __init__(self, message: str, formula: str = "", position: int | None = None):
        if position is not None:
            message = f"{message} at position {position} in {formula!r}"
        elif formula:
            message = f"{message} in {formula!r}"
        super().__init__(message)
        self.formula = formula
        self.position = position


class UnknownElementError(ChemBalanceError):
    """A token looks like an element symbol but is not a known element."""

    def __init__(self, symbol: str, position: int | None = None, formula: str = ""):
        message = f"Unknown element {symbol!r}"
        if position is not None:
            message += f" at position {position}"
        if formula:
            message += f" in {formula!r}"
        super().__init__(message)
        self.symbol = symbol
        self.position = position
        self.formula = formula


class EquationSyntaxError(ChemBalanceError):
    """The equation text cannot be split into reactants and products."""


class UnbalanceableError(ChemBalanceError):
    """No strictly positive integer coefficients balance the equation."""


class UnknownSpeciesError(ChemBalanceError):
    """A stoichiometry query names a species absent from the equation."""


class InvalidQuantityError(ChemBalanceError):
    """A quantity (moles or grams) is negative or not a finite number."""


class BalanceInvariantError(AssertionError):
    """The solver produced coefficients violating balance or minimality."""
