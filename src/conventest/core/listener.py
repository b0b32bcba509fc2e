"""Listener interface consumed by the bus."""

from conventest.core.catalog import TypeDescriptor
from conventest.core.messages import CaseResult
from conventest.core.model import Case, ExecutionSummary, Test


class Listener:
    """Receives discovery and execution events.

    Every hook is a no-op by default; implementations override the ones they
    care about. Listeners must treat cases and messages as read-only.
    """

    def on_run_started(self) -> None:
        pass

    def on_method_discovered(self, test: Test) -> None:
        pass

    def on_class_started(self, test_class: TypeDescriptor) -> None:
        pass

    def on_case_result(self, case: Case, outcome: CaseResult) -> None:
        pass

    def on_class_completed(self, test_class: TypeDescriptor, summary: ExecutionSummary) -> None:
        pass

    def on_run_completed(self, summary: ExecutionSummary) -> None:
        """Called once per run with the complete, final summary."""
        pass
