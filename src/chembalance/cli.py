"""Command-line entrypoints for ChemBalance."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Dict, NoReturn

import typer

from chembalance.balancer import SolverConfig, balance
from chembalance.errors import ChemBalanceError
from chembalance.formula import parse_formula
from chembalance.mass import mass_fractions, molar_mass
from chembalance.stoichiometry import from_grams, from_moles

app = typer.Typer(add_completion=False)

logger = logging.getLogger(__name__)


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _parse_solver(data: Dict[str, Any]) -> SolverConfig:
    return SolverConfig(
        search_alternatives=bool(data.get("search_alternatives", True)),
        max_coefficient=int(data.get("max_coefficient", 1000)),
    )


def _run_task(task: Dict[str, Any], solver: SolverConfig, precision: int | None) -> Dict[str, Any]:
    equation = task.get("equation")
    if not isinstance(equation, str):
        logger.warning("Skipping task without an equation: %r", task)
        return {"input": equation, "error": "Task needs an 'equation' string"}
    try:
        balanced = balance(equation, solver)
    except ChemBalanceError as exc:
        logger.warning("Skipping %r: %s", equation, exc)
        return {"input": equation, "error": str(exc)}

    entry: Dict[str, Any] = {"input": equation, **balanced.as_dict()}
    reference = task.get("reference")
    if reference is None:
        return entry

    try:
        if "grams" in task:
            result = from_grams(balanced, reference, float(task["grams"]))
        elif "moles" in task:
            result = from_moles(balanced, reference, float(task["moles"]))
        else:
            entry["error"] = f"Task for {reference!r} needs 'moles' or 'grams'"
            return entry
    except (ChemBalanceError, TypeError, ValueError) as exc:
        entry["error"] = str(exc)
        return entry
    entry["stoichiometry"] = result.as_dict(precision)
    return entry


@app.callback()
def main(
    log_level: Annotated[
        str,
        typer.Option(envvar="CHEMBALANCE_LOG_LEVEL", help="Logging level."),
    ] = "WARNING",
) -> None:
    """Balance chemical equations and derive stoichiometric quantities."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


@app.command("balance")
def balance_command(
    equation: Annotated[str, typer.Argument(help="Equation, e.g. 'Fe + O2 = Fe2O3'.")],
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON output.")] = False,
    max_coefficient: Annotated[
        int, typer.Option(help="Upper bound for the integer search.")
    ] = 1000,
) -> None:
    """Balance a chemical equation."""
    try:
        balanced = balance(equation, SolverConfig(max_coefficient=max_coefficient))
    except ChemBalanceError as exc:
        _fail(exc)

    if as_json:
        typer.echo(json.dumps(balanced.as_dict(), indent=2, ensure_ascii=False))
        return
    typer.echo(balanced.equation)
    for warning in balanced.warnings:
        typer.echo(f"Warning: {warning}", err=True)


@app.command("mass")
def mass_command(
    formula: Annotated[str, typer.Argument(help="Chemical formula, e.g. 'CuSO4·5H2O'.")],
    composition: Annotated[
        bool, typer.Option(help="Also print the mass fraction of each element.")
    ] = False,
) -> None:
    """Print the molar mass of a formula in g/mol."""
    try:
        parsed = parse_formula(formula)
        value = molar_mass(parsed)
    except ChemBalanceError as exc:
        _fail(exc)

    typer.echo(f"{value:.3f}")
    if composition:
        for symbol, fraction in mass_fractions(parsed).items():
            typer.echo(f"{symbol}: {fraction * 100:.2f}%")


@app.command("stoich")
def stoich_command(
    equation: Annotated[str, typer.Argument(help="Equation (balanced or not).")],
    species: Annotated[str, typer.Argument(help="Reference species.")],
    moles: Annotated[float | None, typer.Option(help="Moles of the reference.")] = None,
    grams: Annotated[float | None, typer.Option(help="Grams of the reference.")] = None,
    precision: Annotated[int, typer.Option(help="Decimal places in output.")] = 3,
) -> None:
    """Compute moles and grams of every species from one known amount."""
    if (moles is None) == (grams is None):
        typer.echo("Error: pass exactly one of --moles or --grams", err=True)
        raise typer.Exit(code=2)
    try:
        if moles is not None:
            result = from_moles(equation, species, moles)
        else:
            result = from_grams(equation, species, grams)
    except ChemBalanceError as exc:
        _fail(exc)

    typer.echo(json.dumps(result.as_dict(precision), indent=2, ensure_ascii=False))


@app.command()
def run(
    config_file: Annotated[
        Path, typer.Argument(help="Path to JSON configuration file.")
    ],
    output: Annotated[
        Path | None, typer.Option(help="Path to save output JSON.")
    ] = None,
) -> None:
    """Balance every reaction listed in a config file."""
    with open(config_file, "r", encoding="utf-8") as f:
        config = json.load(f)

    solver = _parse_solver(config.get("solver", {}))
    precision = config.get("precision")
    results = [_run_task(task, solver, precision) for task in config.get("reactions", [])]

    json_output = json.dumps({"results": results}, indent=2, ensure_ascii=False)
    typer.echo(json_output)

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(json_output)
