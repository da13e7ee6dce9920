"""
auditsampler CLI — command-line interface.

Usage:
    auditsampler benford ledger.csv --column amount
    auditsampler sample random receivables.csv --size 60 --seed 42
    auditsampler sample-size --population 5000 --confidence 95 --expected 1 --tolerable 5
    auditsampler mus-plan --population-value 2500000 --tolerable 75000
    auditsampler classical-plan --population 4000 --population-value 2500000 --tolerable 75000
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from auditsampler import __version__
from auditsampler.errors import SamplingError

app = typer.Typer(
    name="auditsampler",
    help="🔎 auditsampler — statistical audit sampling and Benford's Law screening",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

SAMPLING_METHODS = ("random", "systematic", "mus", "top-stratum")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold]auditsampler[/bold] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """🔎 auditsampler — Select. Test. Conclude."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _fail(error: Exception) -> NoReturn:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise typer.Exit(1)


@app.command()
def benford(
    file: str = typer.Argument(..., help="CSV file with the amounts to test"),
    column: str = typer.Option(None, "--column", "-c", help="Amount column (auto-detected if omitted)"),
    significance: float = typer.Option(None, "--significance", "-a", help="Test alpha (default from config)"),
    config: str = typer.Option("auditsampler.yaml", "--config", help="Path to config file"),
    output: str = typer.Option(None, "--output", "-o", help="Save report (.md or .csv)"),
) -> None:
    """Run a Benford's Law first-digit test on a CSV column."""
    from auditsampler.analyzers.benfords import BenfordsAnalyzer
    from auditsampler.config import AuditSamplerConfig
    from auditsampler.connectors.csv_connector import load_values

    try:
        cfg = AuditSamplerConfig.load(config)
        alpha = significance if significance is not None else cfg.benford.significance_level
        values = load_values(file, column or cfg.value_column)
        analysis = BenfordsAnalyzer.analyze(
            values,
            alpha,
            context=Path(file).stem,
            suspicious_threshold=cfg.benford.suspicious_threshold_pct,
        )
    except (SamplingError, ValidationError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(Panel.fit("[bold blue]Benford's Law Analysis[/bold blue]", subtitle=f"v{__version__}"))

    table = Table(title=f"First Digits — {analysis.total_records:,} records", show_lines=False)
    table.add_column("Digit", style="bold")
    table.add_column("Expected %", justify="right")
    table.add_column("Actual %", justify="right")
    table.add_column("Count", justify="right")
    table.add_column("Deviation %", justify="right")
    for r in analysis.results:
        style = "red" if r.digit in analysis.suspicious_digits else None
        table.add_row(
            str(r.digit),
            f"{r.expected_frequency * 100:.1f}",
            f"{r.actual_frequency * 100:.1f}",
            str(r.actual_count),
            f"{r.deviation_percentage:+.1f}",
            style=style,
        )
    console.print(table)

    verdict = "[green]PASS[/green]" if analysis.passed_test else "[red]FAIL[/red]"
    console.print(
        f"χ² = {analysis.chi_square_statistic:.4f} vs critical {analysis.critical_value:.3f} → {verdict}"
    )
    console.print(analysis.recommendation)

    if output:
        from auditsampler.exporters import benford_to_csv, render_markdown

        path = Path(output)
        content = benford_to_csv(analysis) if path.suffix == ".csv" else render_markdown(analysis)
        _save(path, content)


@app.command()
def sample(
    method: str = typer.Argument(..., help="random, systematic, mus or top-stratum"),
    file: str = typer.Argument(..., help="CSV file with the population"),
    size: int = typer.Option(..., "--size", "-n", help="Sample size (items below threshold for top-stratum)"),
    seed: int = typer.Option(None, "--seed", "-s", help="Seed for a reproducible selection"),
    threshold: float = typer.Option(None, "--threshold", "-t", help="Top-stratum threshold"),
    column: str = typer.Option(None, "--column", "-c", help="Value column (auto-detected if omitted)"),
    id_column: str = typer.Option(None, "--id-column", help="Identifier column"),
    config: str = typer.Option("auditsampler.yaml", "--config", help="Path to config file"),
    output: str = typer.Option(None, "--output", "-o", help="Save selection (.csv or .md)"),
) -> None:
    """Select an audit sample from a CSV population."""
    from auditsampler.analyzers.sampling import select_sample
    from auditsampler.config import AuditSamplerConfig
    from auditsampler.connectors.csv_connector import load_population

    if method not in SAMPLING_METHODS:
        console.print(f"[red]Error: method must be one of {', '.join(SAMPLING_METHODS)}[/red]")
        raise typer.Exit(1)
    if method == "top-stratum" and threshold is None:
        console.print("[red]Error: top-stratum sampling needs --threshold[/red]")
        raise typer.Exit(1)

    try:
        cfg = AuditSamplerConfig.load(config)
        kwargs: dict[str, object] = {"seed": seed if seed is not None else cfg.sampling.default_seed}
        if method == "top-stratum":
            kwargs["threshold"] = threshold
        population = load_population(file, column or cfg.value_column, id_column or cfg.id_column)
        result = select_sample(method, population, size, **kwargs)
    except (SamplingError, ValidationError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(Panel.fit(f"[bold blue]{result.selection_method}[/bold blue]", subtitle=f"v{__version__}"))

    summary = Table(title="Selection Summary", show_lines=True)
    summary.add_column("Metric", style="bold")
    summary.add_column("Value", justify="right")
    summary.add_row("Population Size", f"{result.population_size:,}")
    summary.add_row("Requested", str(result.requested_sample_size))
    summary.add_row("Selected", str(result.sample_size))
    if result.sampling_interval is not None:
        summary.add_row("Sampling Interval", f"{result.sampling_interval:,.2f}")
    summary.add_row("Seed", str(result.metadata.get("seed", "none")))
    console.print(summary)

    items = Table(title="Selected Items")
    items.add_column("ID", style="cyan")
    items.add_column("Value", justify="right")
    for item in result.selected_items[:25]:
        items.add_row(str(item.get("id")), f"{float(item['value']):,.2f}")
    console.print(items)
    if result.sample_size > 25:
        console.print(f"[dim]… and {result.sample_size - 25} more[/dim]")

    if output:
        from auditsampler.exporters import render_sample_markdown, sample_to_csv

        path = Path(output)
        content = render_sample_markdown(result) if path.suffix == ".md" else sample_to_csv(result)
        _save(path, content)


@app.command("sample-size")
def sample_size(
    population: int = typer.Option(..., "--population", "-p", help="Population size (items)"),
    confidence: int = typer.Option(None, "--confidence", help="Confidence level: 90, 95 or 99"),
    expected: float = typer.Option(None, "--expected", help="Expected error rate (%)"),
    tolerable: float = typer.Option(None, "--tolerable", help="Tolerable error rate (%)"),
    config: str = typer.Option("auditsampler.yaml", "--config", help="Path to config file"),
) -> None:
    """Calculate the attribute-sampling sample size."""
    from auditsampler.analyzers.sampling import SampleSelector
    from auditsampler.config import AuditSamplerConfig

    try:
        cfg = AuditSamplerConfig.load(config).sampling
        n = SampleSelector.calculate_sample_size(
            population,
            confidence if confidence is not None else cfg.default_confidence_level,
            expected if expected is not None else cfg.expected_error_rate,
            tolerable if tolerable is not None else cfg.tolerable_error_rate,
            fpc_population_limit=cfg.fpc_population_limit,
        )
    except (SamplingError, ValidationError, ValueError) as e:
        _fail(e)

    console.print(f"[green]✓[/green] Required sample size: [bold]{n}[/bold]")


@app.command("mus-plan")
def mus_plan(
    population_value: float = typer.Option(..., "--population-value", help="Total monetary value"),
    tolerable: float = typer.Option(..., "--tolerable", help="Tolerable misstatement"),
    expected: float = typer.Option(0.0, "--expected", help="Expected misstatement"),
    confidence: int = typer.Option(95, "--confidence", help="Confidence level"),
    population: int = typer.Option(None, "--population", "-p", help="Population size (caps the sample)"),
) -> None:
    """Plan a monetary unit sample (size and interval)."""
    from auditsampler.analyzers.evaluation import SampleEvaluator

    try:
        plan = SampleEvaluator.plan_mus_sample(
            population_value,
            tolerable,
            confidence_level=confidence,
            expected_misstatement=expected,
            population_size=population,
        )
    except SamplingError as e:
        _fail(e)

    table = Table(title="MUS Plan", show_lines=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Sample Size", str(plan.sample_size))
    table.add_row("Sampling Interval", f"{plan.sampling_interval:,}")
    table.add_row("Reliability Factor", f"{plan.reliability_factor:.2f}")
    table.add_row("Planned Errors", str(plan.expected_errors))
    console.print(table)


@app.command("classical-plan")
def classical_plan(
    population: int = typer.Option(..., "--population", "-p", help="Population size (items)"),
    population_value: float = typer.Option(None, "--population-value", help="Total monetary value"),
    tolerable: float = typer.Option(None, "--tolerable", help="Tolerable misstatement (precision)"),
    confidence: int = typer.Option(95, "--confidence", help="Confidence level: 90, 95 or 99"),
) -> None:
    """Plan a classical variables sample."""
    from auditsampler.analyzers.evaluation import SampleEvaluator

    try:
        plan = SampleEvaluator.plan_classical_variables_sample(
            population,
            confidence_level=confidence,
            population_value=population_value,
            tolerable_misstatement=tolerable,
        )
    except SamplingError as e:
        _fail(e)

    table = Table(title="Classical Variables Plan", show_lines=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Sample Size", str(plan.sample_size))
    table.add_row("Estimated Std. Deviation", f"{plan.standard_deviation:,.2f}")
    table.add_row("Precision", f"{plan.precision:,.2f}")
    console.print(table)


def _save(path: Path, content: str) -> None:
    """Save output to file."""
    path.write_text(content)
    console.print(f"[green]✓[/green] Saved to [bold]{path}[/bold]")


if __name__ == "__main__":
    app()
