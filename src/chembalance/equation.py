"""Splitting equation text into reactant and product formulas."""

from __future__ import annotations

import logging
import re

from chembalance.errors import EquationSyntaxError
from chembalance.formula import parse_formula
from chembalance.models import EquationSide

logger = logging.getLogger(__name__)

ARROW_PATTERN = re.compile(r"->|→|=")
_COEFFICIENT_HINT = re.compile(r"^(\d+)\s*")
_DIGIT_RUN = re.compile(r"\d+")
_SPACED_CHARGE = re.compile(r"\S+\s+\^?\d*[+-]+\d*")


def _split_sides(text: str) -> tuple[str, str]:
    arrows = list(ARROW_PATTERN.finditer(text))
    if len(arrows) != 1:
        raise EquationSyntaxError(
            f"Missing or duplicate reaction arrow in {text!r} "
            f"(found {len(arrows)}, expected exactly one of '=', '->', '→')"
        )
    arrow = arrows[0]
    return text[: arrow.start()], text[arrow.end():]


def _is_separator(side: str, index: int) -> bool:
    """Decide whether the ``+`` at ``index`` separates terms or is a charge sign."""
    if index == 0 or side[index - 1].isspace():
        return True
    if side[index - 1] == "^":
        return False
    rest = side[index + 1:].lstrip()
    if not rest:
        return False
    following = rest[0]
    if following in "+-":
        return False
    if following.isdigit():
        if side[index + 1].isspace():
            return True
        after = rest[_DIGIT_RUN.match(rest).end():]
        return bool(after) and (after[0].isupper() or after[0] in "([")
    return True


def split_terms(side: str) -> list[str]:
    """Split one side of an equation on top-level ``+`` separators."""
    terms = []
    start = 0
    depth = 0
    for index, char in enumerate(side):
        if char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        elif char == "+" and depth == 0 and _is_separator(side, index):
            terms.append(side[start:index])
            start = index + 1
    terms.append(side[start:])
    return [term.strip() for term in terms]


def _strip_hint(term: str) -> str:
    match = _COEFFICIENT_HINT.match(term)
    if match is None:
        return term
    logger.debug("Discarding coefficient hint %s on %r", match.group(1), term)
    return term[match.end():]


def _parse_side(side: str, label: str, text: str) -> EquationSide:
    if not side.strip():
        raise EquationSyntaxError(f"Empty {label} side in {text!r}")
    parsed = []
    for term in split_terms(side):
        if not term:
            raise EquationSyntaxError(f"Empty term on the {label} side of {text!r}")
        formula = _strip_hint(term)
        if not formula:
            raise EquationSyntaxError(f"Coefficient {term!r} without a formula in {text!r}")
        if any(char.isspace() for char in formula) and not _SPACED_CHARGE.fullmatch(formula):
            raise EquationSyntaxError(
                f"Unexpected whitespace in term {term!r} of {text!r}; missing '+'?"
            )
        parsed.append(parse_formula(formula))
    return tuple(parsed)


def parse_equation(text: str) -> tuple[EquationSide, EquationSide]:
    """Parse ``"Fe + O2 = Fe2O3"`` into reactant and product formulas.

    Leading integers on terms are treated as hints and discarded; the balancer
    always recomputes coefficients from scratch.

    Raises:
        EquationSyntaxError: Missing/duplicate arrow, empty side or malformed term.
        FormulaSyntaxError: A term is not a valid formula.
        UnknownElementError: A term names an unknown element.
    """
    if not isinstance(text, str):
        raise TypeError(f"Equation must be a string, got {type(text).__name__}")
    left, right = _split_sides(text)
    reactants = _parse_side(left, "reactant", text)
    products = _parse_side(right, "product", text)
    return reactants, products
