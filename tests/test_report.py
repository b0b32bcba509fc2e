"""Tests for the report generator and the standalone listeners."""

from datetime import datetime
from io import StringIO

import pytest
from rich.console import Console

from conventest.core.bus import Bus
from conventest.core.catalog import TypeListCatalog
from conventest.core.convention import DefaultConvention
from conventest.core.runner import Runner
from conventest.listeners.console import ConsoleListener
from conventest.listeners.report import ReportListener
from conventest.markers import skip
from conventest.report.generator import ReportGenerator


class ReportSampleTests:
    def passes(self):
        pass

    def fails(self):
        try:
            raise KeyError("inner")
        except KeyError as e:
            raise ValueError("<b>bad</b> value") from e

    @skip("[bold]not now[/bold]")
    def skipped(self):
        pass


def run_with(*listeners):
    runner = Runner(Bus(listeners), [DefaultConvention()])
    return runner.run(TypeListCatalog([ReportSampleTests]))


@pytest.fixture
def console_output():
    """Console writing into a buffer."""
    buffer = StringIO()
    return Console(file=buffer, width=200, force_terminal=False), buffer


class TestReportGenerator:
    """Tests for ReportGenerator."""

    @pytest.fixture
    def generator(self):
        """Create a report generator."""
        return ReportGenerator(title="Nightly")

    def test_format_duration(self):
        """Test duration formatting."""
        assert ReportGenerator._format_duration(500) == "500ms"
        assert ReportGenerator._format_duration(1500) == "1.50s"
        assert ReportGenerator._format_duration(90000) == "1m 30.0s"

    def test_format_percentage(self):
        """Test percentage formatting."""
        assert ReportGenerator._format_percentage(66.666) == "66.7%"

    def test_format_datetime(self):
        """Test datetime formatting."""
        assert ReportGenerator._format_datetime(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02 03:04:05"

    def test_render(self, generator):
        """Test rendering a completed run."""
        listener = ReportListener("unused.html", generator)
        summary = run_with(listener)

        html = generator.render(summary, listener.cases, datetime(2024, 1, 2))

        assert "<title>Nightly</title>" in html
        assert "ReportSampleTests.fails" in html
        assert "caused by KeyError" in html
        assert "33.3%" in html
        assert "&lt;b&gt;bad&lt;/b&gt;" in html
        assert "<b>bad</b>" not in html

    def test_report_listener_writes_file(self, tmp_path, generator):
        """Test that the listener writes the report when the run completes."""
        saved = []
        output = tmp_path / "nested" / "report.html"

        run_with(ReportListener(output, generator, on_saved=saved.append))

        assert output.exists()
        assert saved == [output]
        assert "Nightly" in output.read_text()


class TestConsoleListener:
    """Tests for ConsoleListener."""

    def test_prints_failures_skips_and_summary(self, console_output):
        """Test console output for a mixed run."""
        console, buffer = console_output

        run_with(ConsoleListener(console))

        output = buffer.getvalue()
        assert "ReportSampleTests.fails failed" in output
        assert "ValueError: <b>bad</b> value" in output
        assert "caused by KeyError: 'inner'" in output
        assert "skipped: [bold]not now[/bold]" in output
        assert "Test Results Summary" in output
        assert "Some tests failed!" in output
        assert "ReportSampleTests.passes" not in output

    def test_show_passed(self, console_output):
        """Test listing passing cases when requested."""
        console, buffer = console_output

        run_with(ConsoleListener(console, show_passed=True))

        assert "ReportSampleTests.passes" in buffer.getvalue()
