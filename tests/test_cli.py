import json
import tempfile
import unittest
from pathlib import Path

from typer.testing import CliRunner

from chembalance.cli import app


class TestCLI(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_balance(self):
        result = self.runner.invoke(app, ["balance", "Fe + O2 = Fe2O3"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.stdout.strip(), "4Fe + 3O2 = 2Fe2O3")

    def test_balance_json(self):
        result = self.runner.invoke(app, ["balance", "H2 + O2 -> H2O", "--json"])
        self.assertEqual(result.exit_code, 0)
        payload = json.loads(result.stdout)
        self.assertEqual(payload["coefficients"], [2, 1, 2])
        self.assertEqual(payload["reactants"], {"H2": 2, "O2": 1})

    def test_balance_error(self):
        result = self.runner.invoke(app, ["balance", "H2 = O2"])
        self.assertEqual(result.exit_code, 1)

    def test_mass(self):
        result = self.runner.invoke(app, ["mass", "C6H12O6"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.stdout.strip(), "180.156")

    def test_mass_unknown_element(self):
        result = self.runner.invoke(app, ["mass", "UNKNOWNX"])
        self.assertEqual(result.exit_code, 1)

    def test_stoich(self):
        result = self.runner.invoke(app, ["stoich", "H2 + O2 = H2O", "H2", "--moles", "4"])
        self.assertEqual(result.exit_code, 0)
        payload = json.loads(result.stdout)
        self.assertEqual(payload["reactants"]["O2"]["moles"], 2.0)
        self.assertEqual(payload["products"]["H2O"]["moles"], 4.0)

    def test_stoich_needs_one_quantity(self):
        result = self.runner.invoke(app, ["stoich", "H2 + O2 = H2O", "H2"])
        self.assertEqual(result.exit_code, 2)

    def test_run_config(self):
        config = {
            "solver": {"max_coefficient": 100},
            "precision": 3,
            "reactions": [
                {"equation": "H2 + O2 = H2O", "reference": "O2", "grams": 31.998},
                {"equation": "Ca(OH)2 + HCl = CaCl2 + H2O"},
                {"equation": "H2 O2 = H2O"},
            ],
        }
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "reactions.json"
            output_path = Path(tmp) / "out.json"
            config_path.write_text(json.dumps(config), encoding="utf-8")

            result = self.runner.invoke(app, ["run", str(config_path), "--output", str(output_path)])
            self.assertEqual(result.exit_code, 0)
            saved = json.loads(output_path.read_text(encoding="utf-8"))

        first, second, third = saved["results"]
        self.assertEqual(first["equation"], "2H2 + O2 = 2H2O")
        self.assertEqual(first["stoichiometry"]["products"]["H2O"]["moles"], 2.0)
        self.assertEqual(second["coefficients"], [1, 2, 1, 2])
        self.assertIn("error", third)

    def test_run_records_malformed_tasks(self):
        config = {
            "reactions": [
                {"reference": "O2", "moles": 1},
                {"equation": "H2 + O2 = H2O", "reference": "O2", "moles": "lots"},
                {"equation": "H2 + O2 = H2O", "reference": "O2", "grams": None},
                {"equation": "Fe + O2 = Fe2O3"},
            ],
        }
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "reactions.json"
            output_path = Path(tmp) / "out.json"
            config_path.write_text(json.dumps(config), encoding="utf-8")
            result = self.runner.invoke(app, ["run", str(config_path), "--output", str(output_path)])
            self.assertEqual(result.exit_code, 0)
            saved = json.loads(output_path.read_text(encoding="utf-8"))

        missing, not_a_number, null_amount, valid = saved["results"]
        self.assertIn("equation", missing["error"])
        self.assertEqual(not_a_number["equation"], "2H2 + O2 = 2H2O")
        self.assertIn("error", not_a_number)
        self.assertIn("error", null_amount)
        self.assertEqual(valid["equation"], "4Fe + 3O2 = 2Fe2O3")


if __name__ == '__main__':
    unittest.main()
