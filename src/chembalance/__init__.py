"""ChemBalance core package."""

from chembalance.balancer import SolverConfig, balance, solve
from chembalance.equation import parse_equation
from chembalance.errors import (
    BalanceInvariantError,
    ChemBalanceError,
    EquationSyntaxError,
    FormulaSyntaxError,
    InvalidQuantityError,
    UnbalanceableError,
    UnknownElementError,
    UnknownSpeciesError,
)
from chembalance.formula import parse_formula
from chembalance.mass import mass_fractions, molar_mass
from chembalance.matrix import build_matrix
from chembalance.models import BalancedEquation, ParsedFormula, StoichiometryResult
from chembalance.stoichiometry import from_grams, from_moles, limiting_reagent
from chembalance.validation import validate

__all__ = [
    "BalanceInvariantError",
    "BalancedEquation",
    "ChemBalanceError",
    "EquationSyntaxError",
    "FormulaSyntaxError",
    "InvalidQuantityError",
    "ParsedFormula",
    "SolverConfig",
    "StoichiometryResult",
    "UnbalanceableError",
    "UnknownElementError",
    "UnknownSpeciesError",
    "balance",
    "build_matrix",
    "from_grams",
    "from_moles",
    "limiting_reagent",
    "mass_fractions",
    "molar_mass",
    "parse_equation",
    "parse_formula",
    "solve",
    "validate",
]
