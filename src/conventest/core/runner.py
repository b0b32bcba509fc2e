"""Test execution orchestration."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

from conventest.core.bus import Bus
from conventest.core.catalog import TypeCatalog, TypeDescriptor
from conventest.core.convention import Convention
from conventest.core.discoverer import Discoverer
from conventest.core.lifecycle import CaseAction
from conventest.core.messages import (
    ClassCompleted,
    ClassStarted,
    MethodDiscovered,
    RunCompleted,
    RunStarted,
    case_result,
)
from conventest.core.model import Case, CaseStatus, ExecutionSummary, Test
from conventest.exceptions import CASE_ERRORS, RunError

log = logging.getLogger(__name__)


@dataclass
class ClassPlan:
    """Cases of one test class, ready to run under a convention."""

    convention: Convention
    test_class: TypeDescriptor
    cases: list[Case]


class Runner:
    """Discovers tests with one or more conventions and runs them.

    Classes run one at a time in discovery order unless ``workers`` is
    greater than one, in which case whole classes run concurrently. Events of
    one class are always published from one worker, in discovery order, and
    the run summary is only ever updated on the calling thread.
    """

    def __init__(self, bus: Bus, conventions: Sequence[Convention], workers: int = 1):
        """Initialize the runner.

        Args:
            bus: Bus receiving discovery and execution events
            conventions: Conventions applied in order
            workers: Number of classes allowed to run at the same time
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.bus = bus
        self.conventions = list(conventions)
        self.workers = workers

    def discover(self, catalog: TypeCatalog) -> list[Test]:
        """Discover tests without running anything, publishing each one."""
        tests = []
        for convention in self.conventions:
            tests.extend(Discoverer(convention).discover_tests(catalog))

        for test in tests:
            self.bus.publish(MethodDiscovered(test))

        log.info("Discovered %d test(s)", len(tests))
        return tests

    def run(self, catalog: TypeCatalog, tests: Optional[Sequence[Test]] = None) -> ExecutionSummary:
        """Run every discovered case, or only those matching ``tests``.

        Raises:
            DiscoveryError: If a convention rule raised during discovery
            RunError: If a non-empty filter matched no cases
        """
        plans = self.plan(catalog, tests)

        self.bus.publish(RunStarted())

        summary = ExecutionSummary()
        if self.workers == 1 or len(plans) < 2:
            for plan in plans:
                summary.add(self._run_class(plan))
        else:
            summary = self._run_concurrently(plans)

        log.info(
            "Run complete: %d total, %d passed, %d failed, %d skipped",
            summary.total,
            summary.passed,
            summary.failed,
            summary.skipped,
        )
        self.bus.publish(RunCompleted(summary))
        return summary

    def plan(self, catalog: TypeCatalog, tests: Optional[Sequence[Test]] = None) -> list[ClassPlan]:
        """Discover all cases up front, applying the optional filter."""
        plans = []
        for convention in self.conventions:
            discoverer = Discoverer(convention)
            for test_class in discoverer.test_classes(catalog):
                cases = discoverer.cases(test_class)
                if tests:
                    cases = [c for c in cases if any(c.test.matches(t) for t in tests)]
                if cases:
                    plans.append(ClassPlan(convention, test_class, cases))

        if tests and not plans:
            raise RunError(f"None of the {len(tests)} requested test(s) matched a discovered case")

        return plans

    def _run_concurrently(self, plans: list[ClassPlan]) -> ExecutionSummary:
        summary = ExecutionSummary()
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="conventest") as pool:
            futures = [pool.submit(self._run_class, plan) for plan in plans]
            try:
                for future in futures:
                    summary.add(future.result())
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return summary

    def _run_class(self, plan: ClassPlan) -> ExecutionSummary:
        test_class = plan.test_class
        lifecycle = plan.convention.lifecycle_for(test_class)
        runnable = [case for case in plan.cases if case.status != CaseStatus.SKIPPED]

        self.bus.publish(ClassStarted(test_class))

        def run_cases(case_action: CaseAction) -> None:
            for case in runnable:
                try:
                    case_action(case)
                except CASE_ERRORS as e:
                    # Construction or disposal failed around this case.
                    case.fail(e)

        try:
            lifecycle.execute(test_class, run_cases)
        except CASE_ERRORS as e:
            log.debug("Lifecycle for %s raised: %r", test_class.name, e)
            for case in runnable:
                case.fail(e)

        summary = ExecutionSummary()
        for case in plan.cases:
            if case.status == CaseStatus.NOT_EXECUTED:
                case.skip(f"{type(lifecycle).__name__} did not run this case")
            summary.add_case(case)
            self.bus.publish(case_result(case))

        self.bus.publish(ClassCompleted(test_class, summary))
        return summary
