"""Command-line interface for conventest."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from conventest import __version__
from conventest.config import ConventestConfig, create_example_config
from conventest.core.model import ExitCode
from conventest.exceptions import CommandLineError


console = Console()


def print_banner() -> None:
    """Print the conventest banner."""
    console.print(
        Panel.fit(
            "[bold blue]conventest[/bold blue] - Convention-driven test runner",
            subtitle=f"v{__version__}",
        )
    )


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_config(config_path: Optional[str]) -> ConventestConfig:
    """Load the configuration named on the command line, or the nearest one."""
    try:
        if config_path:
            return ConventestConfig.from_file(config_path)
        return ConventestConfig.find_and_load()
    except FileNotFoundError as e:
        raise CommandLineError(str(e)) from e
    except ValueError as e:
        raise CommandLineError(f"Invalid configuration: {e}") from e


def fail(message: str) -> None:
    """Print an error and exit with the fatal exit code."""
    console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(int(ExitCode.FATAL_ERROR))


@click.group()
@click.version_option(version=__version__, prog_name="conventest")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False),
    help="Path to configuration file (default: conventest.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """conventest - convention-driven test discovery and execution.

    A convention decides which classes hold tests, which methods are test
    cases, how instances are built and how parameters are supplied.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config
    configure_logging(verbose)


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="conventest.json",
    help="Output path for configuration file",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
def init(output: str, force: bool) -> None:
    """Initialize a new conventest configuration file."""
    print_banner()

    output_path = Path(output)
    if output_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists:[/yellow] {output_path}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        create_example_config(output_path)
        console.print(f"[green]Created configuration file:[/green] {output_path}")
    except OSError as e:
        console.print(f"[red]Error creating configuration:[/red] {escape(str(e))}")
        sys.exit(1)


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("module")
@click.argument("arguments", nargs=-1, type=click.UNPROCESSED)
@click.option("--convention", help="Convention to apply, as 'module:ClassName'")
@click.option("--report", type=click.Path(), help="Write an HTML report to this path")
@click.option("--workers", type=int, help="Number of test classes run at the same time")
@click.option("--show-passed", is_flag=True, help="Print a line for every passing case")
@click.pass_context
def run(
    ctx: click.Context,
    module: str,
    arguments: tuple[str, ...],
    convention: Optional[str],
    report: Optional[str],
    workers: Optional[int],
    show_passed: bool,
) -> None:
    """Discover and run the tests in MODULE (a file path or module name).

    Arguments after MODULE (use -- to separate them) are passed to
    conventions that accept them. When the CONVENTEST_NAMED_PIPE
    environment variable is set, a host process drives the run instead.
    """
    from conventest.entry import run_entry

    try:
        config = load_config(ctx.obj.get("config_path"))
        config = apply_overrides(config, convention, report, workers, show_passed, arguments)
    except CommandLineError as e:
        fail(str(e))

    if ctx.obj.get("verbose"):
        print_banner()

    exit_code = run_entry(module, config, os.environ, console)
    sys.exit(exit_code)


def apply_overrides(
    config: ConventestConfig,
    convention: Optional[str],
    report: Optional[str],
    workers: Optional[int],
    show_passed: bool,
    arguments: tuple[str, ...],
) -> ConventestConfig:
    """Layer command line options over the loaded configuration."""
    data = config.model_dump()
    if convention is not None:
        data["run"]["convention"] = convention
    if workers is not None:
        data["run"]["workers"] = workers
    if arguments:
        data["run"]["arguments"] = list(arguments)
    if report is not None:
        data["report"]["output"] = report
    if show_passed:
        data["console"]["show_passed"] = show_passed

    try:
        return ConventestConfig.model_validate(data)
    except ValueError as e:
        raise CommandLineError(str(e)) from e


@main.command()
@click.argument("module")
@click.option("--convention", help="Convention to apply, as 'module:ClassName'")
@click.pass_context
def discover(ctx: click.Context, module: str, convention: Optional[str]) -> None:
    """List the tests the active conventions find in MODULE."""
    from conventest.entry import ModuleRunner

    try:
        config = load_config(ctx.obj.get("config_path"))
        config = apply_overrides(config, convention, None, None, False, ())
        tests = ModuleRunner.load(module, config).discover()
    except Exception as e:
        fail(str(e))

    if not tests:
        console.print("[yellow]No tests discovered[/yellow]")
        return

    table = Table(title="Discovered Tests")
    table.add_column("Class", style="cyan")
    table.add_column("Method")

    for test in tests:
        table.add_row(test.class_name, test.method_name)

    console.print(table)
    console.print(f"[dim]{len(tests)} test(s)[/dim]")


if __name__ == "__main__":
    main()
