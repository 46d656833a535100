import unittest

from chembalance.errors import FormulaSyntaxError, UnknownElementError
from chembalance.formula import (
    AdductNode,
    ElementNode,
    FormulaTree,
    GroupNode,
    element_counts,
    hill_formula,
    parse_formula,
    parse_tree,
)


class TestFormulaCounts(unittest.TestCase):
    def test_simple(self):
        self.assertEqual(dict(parse_formula("H2O").elements), {"H": 2, "O": 1})
        self.assertEqual(dict(parse_formula("NaCl").elements), {"Na": 1, "Cl": 1})

    def test_group_multiplier_merges_counts(self):
        parsed = parse_formula("(NH4)2SO4")
        self.assertEqual(dict(parsed.elements), {"N": 2, "H": 8, "S": 1, "O": 4})

    def test_nested_and_bracketed_groups(self):
        parsed = parse_formula("K4[Fe(CN)6]")
        self.assertEqual(dict(parsed.elements), {"K": 4, "Fe": 1, "C": 6, "N": 6})
        parsed = parse_formula("Ca3(PO4)2")
        self.assertEqual(dict(parsed.elements), {"Ca": 3, "P": 2, "O": 8})

    def test_repeated_element_is_summed(self):
        parsed = parse_formula("CH3COOH")
        self.assertEqual(dict(parsed.elements), {"C": 2, "H": 4, "O": 2})

    def test_hydrates(self):
        parsed = parse_formula("CuSO4·5H2O")
        self.assertEqual(dict(parsed.elements), {"Cu": 1, "S": 1, "O": 9, "H": 10})
        parsed = parse_formula("Na2CO3.10H2O")
        self.assertEqual(dict(parsed.elements), {"Na": 2, "C": 1, "O": 13, "H": 20})
        parsed = parse_formula("CaSO4*2H2O")
        self.assertEqual(parsed.count("H"), 4)

    def test_charges(self):
        cases = {
            "SO4^2-": -2,
            "Fe^3+": 3,
            "Fe^+3": 3,
            "NH4+": 1,
            "Cl-": -1,
            "Fe+3": 3,
            "Fe+++": 3,
            "O--": -2,
            "H2O": 0,
        }
        for text, charge in cases.items():
            with self.subTest(text=text):
                self.assertEqual(parse_formula(text).charge, charge)

    def test_charge_does_not_change_counts(self):
        self.assertEqual(dict(parse_formula("NH4+").elements), {"N": 1, "H": 4})
        self.assertEqual(dict(parse_formula("SO4^2-").elements), {"S": 1, "O": 4})

    def test_digits_before_sign_on_lone_element_are_charge(self):
        cases = {
            "Fe3+": ({"Fe": 1}, 3),
            "Cu2+": ({"Cu": 1}, 2),
            "O2-": ({"O": 1}, -2),
            "O2^-": ({"O": 2}, -1),
            "Hg2^2+": ({"Hg": 2}, 2),
            "H3O+": ({"H": 3, "O": 1}, 1),
        }
        for text, (elements, charge) in cases.items():
            with self.subTest(text=text):
                parsed = parse_formula(text)
                self.assertEqual(dict(parsed.elements), elements)
                self.assertEqual(parsed.charge, charge)

    def test_charge_after_space(self):
        parsed = parse_formula("SO4 2-")
        self.assertEqual(dict(parsed.elements), {"S": 1, "O": 4})
        self.assertEqual(parsed.charge, -2)
        self.assertEqual(parse_formula("Fe 3+").charge, 3)
        self.assertEqual(parse_formula("NH4 +").charge, 1)

    def test_parsed_formula_is_hashable(self):
        self.assertEqual(hash(parse_formula("H2O")), hash(parse_formula("H2O")))
        self.assertEqual(len({parse_formula("H2O"), parse_formula("H2O")}), 1)

    def test_parsed_formula_keeps_text(self):
        parsed = parse_formula("Ca(OH)2")
        self.assertEqual(parsed.formula, "Ca(OH)2")
        self.assertEqual(str(parsed), "Ca(OH)2")
        self.assertFalse(parsed.is_ion)


class TestFormulaErrors(unittest.TestCase):
    def test_unknown_element(self):
        with self.assertRaises(UnknownElementError) as ctx:
            parse_formula("UNKNOWNX")
        self.assertEqual(ctx.exception.symbol, "X")
        self.assertEqual(ctx.exception.position, 7)

    def test_unknown_two_letter_symbol(self):
        with self.assertRaises(UnknownElementError) as ctx:
            parse_formula("Xx2O")
        self.assertEqual(ctx.exception.symbol, "Xx")
        self.assertEqual(ctx.exception.position, 0)

    def test_syntax_errors(self):
        for text in [
            "", "H2 O", "(OH", "OH)", "()", "H0", "CuSO4·", "2H2O", "Fe2(SO4]3", "h2o", "NaCl^",
            "3+", "(SO4 2-)", "Fe 3",
        ]:
            with self.subTest(text=text):
                with self.assertRaises(FormulaSyntaxError):
                    parse_formula(text)

    def test_charge_must_be_last(self):
        with self.assertRaises(FormulaSyntaxError):
            parse_formula("Na+Cl")

    def test_errors_are_value_errors(self):
        with self.assertRaises(ValueError):
            parse_formula("((")


class TestFormulaTree(unittest.TestCase):
    def test_tree_shape(self):
        tree = parse_tree("Ca(OH)2")
        self.assertEqual(len(tree.parts), 1)
        children = tree.parts[0].children
        self.assertEqual(children[0], ElementNode("Ca", 1))
        self.assertIsInstance(children[1], GroupNode)
        self.assertEqual(children[1].count, 2)

    def test_hydrate_multiplier(self):
        tree = parse_tree("CuSO4·5H2O")
        self.assertEqual([part.multiplier for part in tree.parts], [1, 5])

    def test_unknown_node_is_rejected(self):
        tree = FormulaTree(parts=(AdductNode(children=("H",)),))
        with self.assertRaises(TypeError):
            element_counts(tree)


class TestHillFormula(unittest.TestCase):
    def test_hill_order(self):
        self.assertEqual(hill_formula({"O": 6, "H": 12, "C": 6}), "C6H12O6")
        self.assertEqual(hill_formula({"Na": 1, "Cl": 1}), "ClNa")
        self.assertEqual(hill_formula({"S": 1, "O": 4}, -2), "O4S^2-")
        self.assertEqual(hill_formula({"N": 1, "H": 4}, 1), "H4N+")
        self.assertEqual(hill_formula({"Fe": 1}, 3), "Fe^3+")
        self.assertEqual(hill_formula({"O": 2}, -1), "O2^-")

    def test_round_trip_preserves_counts(self):
        for text in [
            "(NH4)2SO4", "CuSO4·5H2O", "K4[Fe(CN)6]", "C6H12O6", "SO4^2-", "NH4+", "Fe",
            "Fe3+", "O2^-", "Hg2^2+",
        ]:
            with self.subTest(text=text):
                parsed = parse_formula(text)
                again = parse_formula(hill_formula(parsed.elements, parsed.charge))
                self.assertEqual(dict(again.elements), dict(parsed.elements))
                self.assertEqual(again.charge, parsed.charge)


if __name__ == '__main__':
    unittest.main()
