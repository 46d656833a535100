"""Recursive-descent parser for chemical formulas.

Parsing happens in two steps. The text is first turned into an immutable tree
made of three node kinds:

- ``ElementNode``: an element symbol with its count (``O2``).
- ``GroupNode``: a parenthesised or bracketed sub-formula with a count (``(OH)2``).
- ``AdductNode``: one hydrate/adduct component with its leading multiplier
  (``5H2O`` in ``CuSO4·5H2O``).

The tree is then folded into element counts. Counts for the same element
coming from different parts of the formula are summed.

A trailing charge may be written as ``^2-``, ``^-2``, ``+``, ``---``, ``+3``
or after a space (``SO4 2-``). Digits before an unmarked sign are the charge
only for a lone element symbol (``Fe3+``, ``O2-``); otherwise they stay an
element count (``NH4+``). Use ``^`` where that reading is wrong (``O2^-``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping, Union

from chembalance.constants import ELEMENTS, HYDRATE_SEPARATORS
from chembalance.errors import FormulaSyntaxError, UnknownElementError
from chembalance.models import ParsedFormula

logger = logging.getLogger(__name__)

_OPENING = {"(": ")", "[": "]"}
_CLOSING = frozenset(_OPENING.values())
_SIGNS = frozenset("+-")
_DIGITS = frozenset("0123456789")

# "Fe3+": digits between a lone element symbol and a final sign give the charge.
_MONATOMIC_CHARGE = re.compile(r"[0-9]+[+-]")
# "SO4 2-": a charge written after a space.
_SPACED_CHARGE = re.compile(r"\s+\^?[0-9]*[+-]+[0-9]*")


@dataclass(frozen=True)
class ElementNode:
    symbol: str
    count: int = 1


@dataclass(frozen=True)
class GroupNode:
    children: tuple["Node", ...]
    count: int = 1
    brackets: str = "()"


@dataclass(frozen=True)
class AdductNode:
    children: tuple["Node", ...]
    multiplier: int = 1


Node = Union[ElementNode, GroupNode, AdductNode]


@dataclass(frozen=True)
class FormulaTree:
    parts: tuple[AdductNode, ...]
    charge: int = 0


class _FormulaParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, message: str, position: int | None = None) -> FormulaSyntaxError:
        return FormulaSyntaxError(message, self.text, self.pos if position is None else position)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def parse(self) -> FormulaTree:
        parts = [AdductNode(self.parse_sequence(closing=None), 1)]
        while self.peek() in HYDRATE_SEPARATORS and not self.at_end():
            self.pos += 1
            multiplier = self.parse_count(default=1)
            parts.append(AdductNode(self.parse_sequence(closing=None), multiplier))

        if _SPACED_CHARGE.fullmatch(self.text, self.pos):
            while self.peek().isspace():
                self.pos += 1

        charge = 0
        if not self.at_end() and (
            self.peek() == "^" or self.peek() in _SIGNS or self.peek() in _DIGITS
        ):
            charge = self.parse_charge()
        if not self.at_end():
            raise self.error(f"Unexpected character {self.peek()!r}")
        return FormulaTree(tuple(parts), charge)

    def parse_sequence(self, closing: str | None) -> tuple[Node, ...]:
        start = self.pos
        children: list[Node] = []
        while not self.at_end():
            char = self.peek()
            if char in _OPENING:
                children.append(self.parse_group())
            elif char.isupper():
                children.append(self.parse_element())
            elif char in _CLOSING:
                if closing is None:
                    raise self.error(f"Unexpected {char!r}")
                break
            elif char.isspace():
                if closing is None and _SPACED_CHARGE.fullmatch(self.text, self.pos):
                    break
                raise self.error("Whitespace is not allowed")
            elif char in HYDRATE_SEPARATORS or char == "^" or char in _SIGNS:
                break
            elif char in _DIGITS and _MONATOMIC_CHARGE.fullmatch(self.text, self.pos):
                break
            elif char in _DIGITS:
                raise self.error("Count without an element or group")
            else:
                raise self.error(f"Unexpected character {char!r}")
        if not children:
            if self.at_end() and closing is None:
                raise self.error("Expected an element or group", start)
            raise self.error("Empty formula component", start)
        return tuple(children)

    def parse_element(self) -> ElementNode:
        start = self.pos
        self.pos += 1
        while self.pos - start < 3 and self.peek().islower():
            self.pos += 1
        symbol = self.text[start:self.pos]
        if symbol not in ELEMENTS:
            raise UnknownElementError(symbol, start, self.text)
        if start == 0 and _MONATOMIC_CHARGE.fullmatch(self.text, self.pos):
            return ElementNode(symbol)
        return ElementNode(symbol, self.parse_count(default=1))

    def parse_group(self) -> GroupNode:
        start = self.pos
        opening = self.peek()
        closing = _OPENING[opening]
        self.pos += 1
        children = self.parse_sequence(closing=closing)
        if self.peek() != closing:
            if self.at_end():
                raise self.error(f"Unclosed {opening!r}", start)
            raise self.error(f"Expected {closing!r} but found {self.peek()!r}")
        self.pos += 1
        return GroupNode(children, self.parse_count(default=1), opening + closing)

    def parse_count(self, default: int) -> int:
        start = self.pos
        while self.peek() in _DIGITS:
            self.pos += 1
        if start == self.pos:
            return default
        value = int(self.text[start:self.pos])
        if value == 0:
            raise self.error("Zero count", start)
        return value

    def parse_charge(self) -> int:
        start = self.pos
        if self.peek() == "^":
            self.pos += 1
            magnitude = self.parse_count(default=0)
            if self.peek() not in _SIGNS or self.at_end():
                raise self.error("Charge must carry a sign", start)
            sign = 1 if self.peek() == "+" else -1
            self.pos += 1
            if magnitude == 0:
                magnitude = self.parse_count(default=1)
            return sign * magnitude

        if self.peek() in _DIGITS:
            magnitude = self.parse_count(default=1)
            if self.peek() not in _SIGNS or self.at_end():
                raise self.error("Charge must carry a sign", start)
            sign = 1 if self.peek() == "+" else -1
            self.pos += 1
            return sign * magnitude

        sign_char = self.peek()
        sign = 1 if sign_char == "+" else -1
        repeats = 0
        while self.peek() == sign_char:
            self.pos += 1
            repeats += 1
        if repeats == 1 and self.peek() in _DIGITS:
            return sign * self.parse_count(default=1)
        return sign * repeats


def parse_tree(text: str) -> FormulaTree:
    """Parse formula text into a ``FormulaTree`` without folding it."""
    if not isinstance(text, str):
        raise TypeError(f"Formula must be a string, got {type(text).__name__}")
    if not text:
        raise FormulaSyntaxError("Empty formula")
    return _FormulaParser(text).parse()


def _accumulate(node: Node, multiplier: int, counts: dict[str, int]) -> None:
    if isinstance(node, ElementNode):
        counts[node.symbol] = counts.get(node.symbol, 0) + node.count * multiplier
    elif isinstance(node, GroupNode):
        for child in node.children:
            _accumulate(child, multiplier * node.count, counts)
    elif isinstance(node, AdductNode):
        for child in node.children:
            _accumulate(child, multiplier * node.multiplier, counts)
    else:
        raise TypeError(f"Unknown formula node {node!r}")


def element_counts(tree: FormulaTree) -> dict[str, int]:
    counts: dict[str, int] = {}
    for part in tree.parts:
        _accumulate(part, 1, counts)
    return {symbol: count for symbol, count in counts.items() if count > 0}


def parse_formula(text: str) -> ParsedFormula:
    """Parse a chemical formula such as ``"(NH4)2SO4"`` or ``"CuSO4·5H2O"``.

    Raises:
        FormulaSyntaxError: The text is empty or malformed.
        UnknownElementError: A symbol is not in the element table.
    """
    tree = parse_tree(text)
    parsed = ParsedFormula(
        formula=text,
        elements=element_counts(tree),
        charge=tree.charge,
        tree=tree,
    )
    logger.debug("Parsed %s -> %s (charge %d)", text, dict(parsed.elements), parsed.charge)
    return parsed


def format_charge(charge: int) -> str:
    if charge == 0:
        return ""
    sign = "+" if charge > 0 else "-"
    magnitude = abs(charge)
    return f"^{magnitude}{sign}" if magnitude > 1 else sign


def hill_formula(elements: Mapping[str, int], charge: int = 0) -> str:
    """Serialize element counts in Hill order (C, H, then alphabetical)."""
    if "C" in elements:
        order = ["C"] + (["H"] if "H" in elements else [])
        order += sorted(s for s in elements if s not in ("C", "H"))
    else:
        order = sorted(elements)
    body = "".join(
        symbol + (str(elements[symbol]) if elements[symbol] != 1 else "") for symbol in order
    )
    suffix = format_charge(charge)
    if len(order) == 1 and elements[order[0]] != 1 and abs(charge) == 1:
        # "Hg2+" would read as Hg with charge +2
        suffix = "^" + suffix
    return body + suffix
