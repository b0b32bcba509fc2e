"""Process entry: load a test module and run it standalone or for a host."""

import logging
from pathlib import Path
from types import ModuleType
from typing import Mapping, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from conventest.config import ConventestConfig, pipe_name
from conventest.core.bus import Bus
from conventest.core.catalog import ModuleCatalog
from conventest.core.convention import Convention
from conventest.core.listener import Listener
from conventest.core.loader import load_module, resolve_conventions
from conventest.core.model import ExecutionSummary, ExitCode, Test
from conventest.core.runner import Runner
from conventest.host.session import HostSession
from conventest.listeners.console import ConsoleListener
from conventest.listeners.report import ReportListener
from conventest.report.generator import ReportGenerator

log = logging.getLogger(__name__)


class ModuleRunner:
    """Discovers and runs the tests of one loaded module."""

    def __init__(self, module: ModuleType, conventions: Sequence[Convention], workers: int = 1):
        self.module = module
        self.conventions = list(conventions)
        self.workers = workers

    @classmethod
    def load(cls, target: Path | str, config: ConventestConfig) -> "ModuleRunner":
        """Import ``target`` and resolve the conventions to apply to it."""
        module = load_module(target)
        conventions = resolve_conventions(module, config.run.convention, config.run.arguments)
        return cls(module, conventions, workers=config.run.workers)

    def _runner(self, listeners: Sequence[Listener]) -> Runner:
        return Runner(Bus(listeners), self.conventions, workers=self.workers)

    def discover(self, listeners: Sequence[Listener] = ()) -> list[Test]:
        return self._runner(listeners).discover(ModuleCatalog(self.module))

    def run(
        self,
        listeners: Sequence[Listener] = (),
        tests: Optional[Sequence[Test]] = None,
    ) -> ExecutionSummary:
        return self._runner(listeners).run(ModuleCatalog(self.module), tests)


def default_listeners(
    config: ConventestConfig,
    console: Console,
    base_dir: Path | str | None = None,
) -> list[Listener]:
    """Listeners for a standalone run: the report (if configured) and the console."""
    listeners: list[Listener] = []

    report_path = config.get_report_path(base_dir)
    if report_path is not None:
        listeners.append(
            ReportListener(
                report_path,
                ReportGenerator(config.report.title),
                on_saved=lambda path: console.print(f"[green]Report generated:[/green] {path}"),
            )
        )

    listeners.append(ConsoleListener(console, show_passed=config.console.show_passed))
    return listeners


def run_standalone(
    runner: ModuleRunner,
    config: ConventestConfig,
    console: Console,
    tests: Optional[Sequence[Test]] = None,
) -> ExitCode:
    """Run with console (and report) listeners and map the summary to an exit code."""
    summary = runner.run(default_listeners(config, console), tests)

    if summary.total == 0:
        console.print("[red]Error:[/red] No tests were discovered")

    return ExitCode.for_summary(summary)


def run_entry(
    target: Path | str,
    config: ConventestConfig,
    environ: Mapping[str, str],
    console: Optional[Console] = None,
) -> int:
    """Run ``target`` and return the process exit code.

    When ``environ`` names a host channel the process serves one host
    command; otherwise it runs every test standalone.
    """
    console = console or Console()
    try:
        address = pipe_name(environ)

        if address is None:
            runner = ModuleRunner.load(target, config)
            return int(run_standalone(runner, config, console))

        log.info("Connecting to host channel %s", address)
        session = HostSession(lambda: ModuleRunner.load(target, config))
        session.connect(address)
        try:
            return int(session.serve())
        finally:
            session.pipe.close()
    except Exception as e:
        log.debug("Fatal error", exc_info=True)
        console.print(f"[red]Fatal Error:[/red] {escape(str(e))}")
        return int(ExitCode.FATAL_ERROR)
