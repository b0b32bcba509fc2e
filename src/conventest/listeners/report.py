"""Listener that writes the HTML report at the end of a run."""

import logging
from pathlib import Path
from typing import Callable, Optional

from conventest.core.listener import Listener
from conventest.core.messages import CaseResult
from conventest.core.model import Case, ExecutionSummary
from conventest.report.generator import ReportGenerator

log = logging.getLogger(__name__)


class ReportListener(Listener):
    """Collects every case and hands the final summary to the report generator."""

    def __init__(
        self,
        output_path: Path | str,
        generator: Optional[ReportGenerator] = None,
        on_saved: Optional[Callable[[Path], None]] = None,
    ):
        self.output_path = Path(output_path)
        self.generator = generator or ReportGenerator()
        self.on_saved = on_saved
        self.cases: list[Case] = []

    def on_run_started(self) -> None:
        self.cases = []

    def on_case_result(self, case: Case, outcome: CaseResult) -> None:
        self.cases.append(case)

    def on_run_completed(self, summary: ExecutionSummary) -> None:
        report_path = self.generator.generate(summary, self.cases, self.output_path)
        log.info("Report written to %s", report_path)
        if self.on_saved is not None:
            self.on_saved(report_path)
