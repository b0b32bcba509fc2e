"""Test discovery: applying a convention to a type catalog.

Discovery only inspects metadata. It never instantiates a class or invokes a
method, so it is safe to run without executing anything (e.g. when a host
asks for the list of tests).
"""

import logging
from typing import Any, Callable, Iterable

from conventest.core.catalog import MethodDescriptor, TypeCatalog, TypeDescriptor
from conventest.core.convention import Convention
from conventest.core.model import Case, Test
from conventest.exceptions import DiscoveryError

log = logging.getLogger(__name__)


class Discoverer:
    """Finds test classes, methods and cases according to a convention."""

    def __init__(self, convention: Convention):
        """Initialize the discoverer.

        Args:
            convention: Convention whose rules select and order tests
        """
        self.convention = convention
        self.config = convention.config

    def test_classes(self, catalog: TypeCatalog) -> list[TypeDescriptor]:
        """Return the catalog's types that satisfy every class condition."""
        selected = [
            test_class
            for test_class in catalog.types()
            if self._satisfies(self.config.class_conditions, test_class, test_class.qualified_name)
        ]

        if self.config.class_sort_key is not None:
            sort_key = self.config.class_sort_key
            selected = self._guard(
                lambda: sorted(selected, key=sort_key), "class ordering"
            )

        return selected

    def test_methods(self, test_class: TypeDescriptor) -> list[MethodDescriptor]:
        """Return the methods of ``test_class`` that satisfy every method condition."""
        methods = [
            method
            for method in test_class.methods()
            if self._satisfies(
                self.config.method_conditions, method, f"{test_class.qualified_name}.{method.name}"
            )
        ]

        for ordering in self.config.method_orderings:
            methods = self._guard(lambda: list(ordering(methods)), f"{test_class.name} method ordering")

        return methods

    def discover_tests(self, catalog: TypeCatalog) -> list[Test]:
        """Return the identities of every discovered test, without parameters."""
        return [
            Test(test_class.qualified_name, method.name)
            for test_class in self.test_classes(catalog)
            for method in self.test_methods(test_class)
        ]

    def cases(self, test_class: TypeDescriptor) -> list[Case]:
        """Build the cases of one class: one per parameter set, at least one per method."""
        cases = []
        for method in self.test_methods(test_class):
            for parameters in self.parameter_sets(method):
                test = Test(test_class.qualified_name, method.name, parameters)
                cases.append(Case(test=test, method=method, parameters=parameters))

        for case in cases:
            reason = self._skip_reason(case)
            if reason is not False:
                case.skip(reason)

        log.debug("Built %d case(s) for %s", len(cases), test_class.qualified_name)
        return cases

    def parameter_sets(self, method: MethodDescriptor) -> list[tuple]:
        """Collect parameter sets from every source; ``[()]`` when none yield any."""
        parameter_sets: list[tuple] = []
        for source in self.config.parameter_sources:
            produced = self._guard(
                lambda: [tuple(p) for p in source(method)],
                f"parameter source for {method.owner.__name__}.{method.name}",
            )
            parameter_sets.extend(produced)
        return parameter_sets or [()]

    def _skip_reason(self, case: Case) -> Any:
        """Return the skip reason for ``case``, or False when it should run."""
        for rule in self.config.skip_rules:
            if self._guard(lambda: bool(rule.predicate(case)), f"skip rule for {case.name}"):
                return self._guard(lambda: rule.reason_for(case), f"skip reason for {case.name}")
        return False

    @staticmethod
    def _satisfies(conditions: Iterable[Callable], subject: Any, subject_name: str) -> bool:
        for condition in conditions:
            try:
                if not condition(subject):
                    return False
            except Exception as e:
                raise DiscoveryError(
                    f"Convention rule raised while inspecting {subject_name}: {e!r}",
                    subject=subject_name,
                ) from e
        return True

    @staticmethod
    def _guard(action: Callable[[], Any], what: str) -> Any:
        try:
            return action()
        except Exception as e:
            raise DiscoveryError(f"Convention {what} raised: {e!r}") from e
