"""Report generation using Jinja2 templates."""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from conventest.core.model import Case, CaseStatus, ExecutionSummary


class ReportGenerator:
    """Generates static HTML reports from a completed run."""

    def __init__(self, title: str = "Test Results"):
        """Initialize the report generator.

        Args:
            title: Report title
        """
        self.title = title

        template_dir = Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

        self.env.filters["duration_format"] = self._format_duration
        self.env.filters["datetime_format"] = self._format_datetime
        self.env.filters["percentage"] = self._format_percentage

    def render(
        self,
        summary: ExecutionSummary,
        cases: Sequence[Case],
        generated_at: Optional[datetime] = None,
    ) -> str:
        """Render the report document as a string."""
        context = self._prepare_context(summary, cases, generated_at or datetime.now())
        template = self.env.get_template("report.html")
        return template.render(**context)

    def generate(
        self,
        summary: ExecutionSummary,
        cases: Sequence[Case],
        output_path: Path | str,
    ) -> Path:
        """Write the HTML report.

        Returns:
            Path to the generated report file
        """
        report_path = Path(output_path)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(self.render(summary, cases), encoding="utf-8")
        return report_path

    def _prepare_context(
        self,
        summary: ExecutionSummary,
        cases: Sequence[Case],
        generated_at: datetime,
    ) -> dict[str, Any]:
        all_results = [case.to_dict() for case in cases]
        failed_tests = [r for r in all_results if r["status"] == CaseStatus.FAILED.value]
        passed_tests = [r for r in all_results if r["status"] == CaseStatus.PASSED.value]
        skipped_tests = [r for r in all_results if r["status"] == CaseStatus.SKIPPED.value]

        # Slowest first
        for tests in [failed_tests, passed_tests, skipped_tests]:
            tests.sort(key=lambda t: t.get("duration_ms", 0), reverse=True)

        pass_rate = (summary.passed / summary.total * 100) if summary.total > 0 else 0

        return {
            "title": self.title,
            "generated_at": generated_at,
            "total": summary.total,
            "passed": summary.passed,
            "failed": summary.failed,
            "skipped": summary.skipped,
            "pass_rate": pass_rate,
            "duration_ms": sum(r["duration_ms"] for r in all_results),
            "failed_tests": failed_tests,
            "passed_tests": passed_tests,
            "skipped_tests": skipped_tests,
            "all_results": all_results,
        }

    @staticmethod
    def _format_duration(ms: int) -> str:
        """Format duration in milliseconds to human-readable string."""
        if ms < 1000:
            return f"{ms}ms"
        elif ms < 60000:
            return f"{ms / 1000:.2f}s"
        else:
            minutes = ms // 60000
            seconds = (ms % 60000) / 1000
            return f"{minutes}m {seconds:.1f}s"

    @staticmethod
    def _format_datetime(dt: datetime) -> str:
        """Format a datetime for the report header."""
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    @staticmethod
    def _format_percentage(value: float) -> str:
        """Format a decimal as percentage."""
        return f"{value:.1f}%"
