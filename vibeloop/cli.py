"""CLI entry point for the verification and repair loop."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from vibeloop.models.config import VibeConfig
from vibeloop.models.test_result import ExecutionResult
from vibeloop.orchestrator import Orchestrator

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> VibeConfig:
    return VibeConfig.load_or_default(path)


def _make_orchestrator(config: str) -> Orchestrator:
    return Orchestrator(_load_config(config), Path.cwd())


def _print_result(result: ExecutionResult) -> None:
    table = Table(title="Test Results")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    status = "[green]PASSED[/green]" if result.success else "[red]FAILED[/red]"
    table.add_row("Status", status)
    table.add_row("Passed", f"{result.passed_tests}/{result.total_tests}")
    table.add_row("Failed", str(result.failed_tests))
    table.add_row("Failures", str(len(result.failures)))
    if result.error:
        table.add_row("Error", f"[red]{result.error}[/red]")
    console.print(table)

    for failure in result.failures:
        console.print(f"  [red]✗[/red] [bold]{failure.scenario}[/bold]: {failure.error}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Verify a web app against its YAML plan and repair it with AI."""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="vibe-config.json", help="Config file path")
def test(config: str) -> None:
    """Run the test plan once."""
    result = _make_orchestrator(config).run_tests()
    _print_result(result)
    sys.exit(0 if result.success else 1)


@cli.command()
@click.option("--config", "-c", default="vibe-config.json", help="Config file path")
def scan(config: str) -> None:
    """Run the build and report errors."""
    build = _make_orchestrator(config).scan()
    if build.ok:
        console.print("[green]Build passed. No errors detected.[/green]")
        return
    console.print("[red]Build failed[/red]")
    console.print(build.combined_output.strip())
    sys.exit(1)


@cli.command()
@click.option("--config", "-c", default="vibe-config.json", help="Config file path")
def fix(config: str) -> None:
    """Run the build and apply one AI fix to the broken file."""
    try:
        build, error = _make_orchestrator(config).fix()
    except EnvironmentError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    if build.ok:
        console.print("[green]Build passed. Nothing to fix.[/green]")
    elif error:
        console.print(f"[red]{error}[/red]")
        sys.exit(1)
    else:
        console.print("[green]Fix applied. Run 'vibeloop scan' to verify.[/green]")


@cli.command("generate-plan")
@click.argument("prompt", required=False, default="")
@click.option("--config", "-c", default="vibe-config.json", help="Config file path")
def generate_plan(prompt: str, config: str) -> None:
    """Generate or update the YAML test plan."""
    try:
        report = _make_orchestrator(config).generate_plan(prompt)
    except EnvironmentError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    console.print(f"[green]Plan written:[/green] {report.plan_path}")
    if report.backup_path:
        console.print(f"  Backup: [blue]{report.backup_path}[/blue]")
    style = "green" if report.validation.is_valid else "yellow"
    console.print(f"  [{style}]{report.validation.recommendation}[/{style}]")


@cli.command()
@click.argument("prompt", required=False, default="")
@click.option("--max-iterations", "-n", type=int, default=None, help="Override max iterations")
@click.option("--config", "-c", default="vibe-config.json", help="Config file path")
def loop(prompt: str, max_iterations: int | None, config: str) -> None:
    """Build, test and repair until the plan passes."""
    cfg = _load_config(config)
    if max_iterations is not None:
        cfg = cfg.model_copy(update={"max_iterations": max(1, max_iterations)})
    try:
        outcome = Orchestrator(cfg, Path.cwd()).run_loop(prompt)
    except EnvironmentError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if outcome.last_result is not None:
        _print_result(outcome.last_result)
    color = "green" if outcome.success else "red"
    console.print(f"[bold {color}]{outcome.message}[/bold {color}]")
    sys.exit(0 if outcome.success else 1)


@cli.command()
def init() -> None:
    """Create a default configuration file."""
    config_path = Path("vibe-config.json")
    if config_path.exists():
        if not click.confirm("vibe-config.json already exists. Overwrite?"):
            return
    VibeConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")


if __name__ == "__main__":
    cli()
