"""Lifecycle strategies: instance construction, sharing and disposal.

A lifecycle receives a test class and a ``run_cases`` callback. Calling
``run_cases(case_action)`` invokes ``case_action(case)`` once per case, in
discovery order; the lifecycle decides which instance each case runs against.
Case failures are already recorded on the case by the time ``case_action``
returns, so a failing case never stops its siblings.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from conventest.core.catalog import TypeDescriptor
from conventest.core.model import Case

log = logging.getLogger(__name__)

CaseAction = Callable[[Case], None]
RunCases = Callable[[CaseAction], None]


def dispose(obj: Any) -> None:
    """Release an instance or fixture that exposes ``close()``."""
    close = getattr(obj, "close", None)
    if callable(close):
        close()


class Lifecycle(ABC):
    """Strategy for running all cases of one test class."""

    @abstractmethod
    def execute(self, test_class: TypeDescriptor, run_cases: RunCases) -> None:
        """Run every case of ``test_class`` through ``run_cases``."""
        pass


class CreateInstancePerCase(Lifecycle):
    """Construct a fresh instance for every case and dispose it afterwards."""

    def execute(self, test_class: TypeDescriptor, run_cases: RunCases) -> None:
        def case_action(case: Case) -> None:
            instance = test_class.instantiate()
            try:
                case.execute(instance)
            finally:
                dispose(instance)

        run_cases(case_action)


class CreateInstancePerClass(Lifecycle):
    """Construct one instance, run every case against it, dispose it once."""

    def execute(self, test_class: TypeDescriptor, run_cases: RunCases) -> None:
        instance = test_class.instantiate()
        try:
            run_cases(lambda case: case.execute(instance))
        finally:
            dispose(instance)


class NoInstance(Lifecycle):
    """Run cases with no receiver, for static and class methods."""

    def execute(self, test_class: TypeDescriptor, run_cases: RunCases) -> None:
        run_cases(lambda case: case.execute(None))


class FixtureInjection(Lifecycle):
    """Build declared fixtures once per class and inject them per case.

    Fixtures come from ``@use_fixture(name, factory)`` on the class. Each
    case gets a fresh instance with every fixture injected, either through
    ``set_<name>(value)`` or plain attribute assignment. Case instances are
    disposed after each case; fixtures are disposed after the last case, in
    reverse order of creation.
    """

    def execute(self, test_class: TypeDescriptor, run_cases: RunCases) -> None:
        fixtures: list[tuple[str, Any]] = []
        try:
            for name, factory in test_class.fixtures:
                log.debug("Creating fixture %s for %s", name, test_class.name)
                fixtures.append((name, factory()))

            def case_action(case: Case) -> None:
                instance = test_class.instantiate()
                try:
                    for name, value in fixtures:
                        inject(instance, name, value)
                    case.execute(instance)
                finally:
                    dispose(instance)

            run_cases(case_action)
        finally:
            self._dispose_fixtures(fixtures)

    @staticmethod
    def _dispose_fixtures(fixtures: list[tuple[str, Any]]) -> None:
        errors = []
        for name, value in reversed(fixtures):
            try:
                dispose(value)
            except Exception as e:
                log.debug("Disposing fixture %s failed: %r", name, e)
                errors.append(e)
        if errors:
            raise errors[0]


def inject(instance: Any, name: str, value: Any) -> None:
    """Hand a fixture value to a test instance."""
    setter = getattr(instance, f"set_{name}", None)
    if callable(setter):
        setter(value)
    else:
        setattr(instance, name, value)
