"""HTML report generation."""

from conventest.report.generator import ReportGenerator

__all__ = ["ReportGenerator"]
