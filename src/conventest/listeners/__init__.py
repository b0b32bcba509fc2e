"""Listeners used by standalone runs."""

from conventest.listeners.console import ConsoleListener
from conventest.listeners.report import ReportListener

__all__ = ["ConsoleListener", "ReportListener"]
