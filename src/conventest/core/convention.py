"""Conventions: pluggable rules for finding and running tests.

A convention is built once, in its constructor, through fluent expressions:

    class IntegrationConvention(Convention):
        def __init__(self):
            super().__init__()

            self.classes.name_ends_with("Tests").has("integration")

            self.methods.name_starts_with("should_").shuffle(seed=8675309)

            self.class_execution.lifecycle(CreateInstancePerClass)

The discoverer reads the resulting ``ConventionConfig``; expressions only
record rules and never inspect anything themselves.
"""

import inspect
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

from conventest.core.catalog import MethodDescriptor, TypeDescriptor
from conventest.core.lifecycle import CreateInstancePerCase, Lifecycle, NoInstance
from conventest.markers import SKIP_ATTR

log = logging.getLogger(__name__)

ClassPredicate = Callable[[TypeDescriptor], bool]
MethodPredicate = Callable[[MethodDescriptor], bool]
ParameterSource = Callable[[MethodDescriptor], Iterable[tuple]]
MethodOrdering = Callable[[list[MethodDescriptor]], list[MethodDescriptor]]


@dataclass
class SkipRule:
    """Skip a case when ``predicate`` holds, with a fixed or computed reason."""

    predicate: Callable[[Any], bool]
    reason: Union[str, Callable[[Any], Optional[str]], None] = None

    def reason_for(self, case: Any) -> Optional[str]:
        if callable(self.reason):
            return self.reason(case)
        return self.reason


@dataclass
class ConventionConfig:
    """Rules recorded by a convention's expressions."""

    class_conditions: list[ClassPredicate] = field(default_factory=list)
    method_conditions: list[MethodPredicate] = field(default_factory=list)
    parameter_sources: list[ParameterSource] = field(default_factory=list)
    skip_rules: list[SkipRule] = field(default_factory=list)
    method_orderings: list[MethodOrdering] = field(default_factory=list)
    class_sort_key: Optional[Callable[[TypeDescriptor], Any]] = None
    lifecycle: Lifecycle = field(default_factory=CreateInstancePerCase)


class ClassExpression:
    """Rules selecting test classes."""

    def __init__(self, config: ConventionConfig):
        self._config = config

    def where(self, predicate: ClassPredicate) -> "ClassExpression":
        self._config.class_conditions.append(predicate)
        return self

    def name_ends_with(self, *suffixes: str) -> "ClassExpression":
        return self.where(lambda t: t.name.endswith(suffixes))

    def name_starts_with(self, *prefixes: str) -> "ClassExpression":
        return self.where(lambda t: t.name.startswith(prefixes))

    def has(self, tag: str) -> "ClassExpression":
        return self.where(lambda t: t.has_tag(tag))

    def in_module(self, module: str) -> "ClassExpression":
        return self.where(lambda t: t.module == module)


class MethodExpression:
    """Rules selecting and ordering test methods."""

    def __init__(self, config: ConventionConfig):
        self._config = config

    def where(self, predicate: MethodPredicate) -> "MethodExpression":
        self._config.method_conditions.append(predicate)
        return self

    def name_starts_with(self, *prefixes: str) -> "MethodExpression":
        return self.where(lambda m: m.name.startswith(prefixes))

    def has(self, tag: str) -> "MethodExpression":
        return self.where(lambda m: tag in m.tags)

    def has_or_inherits(self, tag: str) -> "MethodExpression":
        return self.where(lambda m: tag in m.inherited_tags())

    def sort_by(self, key: Callable[[MethodDescriptor], Any]) -> "MethodExpression":
        self._config.method_orderings.append(lambda methods: sorted(methods, key=key))
        return self

    def shuffle(self, seed: Optional[int] = None) -> "MethodExpression":
        """Randomize method order within each class, reproducibly.

        Without a seed one is chosen now and logged, so a run can be repeated
        by passing it back in.
        """
        if seed is None:
            seed = random.randrange(2**31)
            log.info("Shuffling methods with seed %d", seed)

        def ordering(methods: list[MethodDescriptor]) -> list[MethodDescriptor]:
            shuffled = list(methods)
            random.Random(f"{seed}:{_owner_name(methods)}").shuffle(shuffled)
            return shuffled

        self._config.method_orderings.append(ordering)
        return self


def _owner_name(methods: list[MethodDescriptor]) -> str:
    return methods[0].owner.__qualname__ if methods else ""


class ParameterExpression:
    """Sources of parameter sets for test methods."""

    def __init__(self, config: ConventionConfig):
        self._config = config

    def add(self, source: ParameterSource) -> "ParameterExpression":
        self._config.parameter_sources.append(source)
        return self


class CaseExecutionExpression:
    """Per-case execution rules."""

    def __init__(self, config: ConventionConfig):
        self._config = config

    def skip(
        self,
        predicate: Callable[[Any], bool],
        reason: Union[str, Callable[[Any], Optional[str]], None] = None,
    ) -> "CaseExecutionExpression":
        self._config.skip_rules.append(SkipRule(predicate, reason))
        return self


class ClassExecutionExpression:
    """Per-class execution rules."""

    def __init__(self, config: ConventionConfig):
        self._config = config

    def lifecycle(self, lifecycle: Union[Lifecycle, type]) -> "ClassExecutionExpression":
        if isinstance(lifecycle, type):
            lifecycle = lifecycle()
        if not isinstance(lifecycle, Lifecycle):
            raise TypeError(f"Expected a Lifecycle, got {lifecycle!r}")
        self._config.lifecycle = lifecycle
        return self

    def sort_classes(self, key: Callable[[TypeDescriptor], Any]) -> "ClassExecutionExpression":
        self._config.class_sort_key = key
        return self


def from_cases_marker(method: MethodDescriptor) -> Iterable[tuple]:
    """Parameter source reading ``@cases`` declarations."""
    return method.parameter_sets


def _marker_skip_reason(case: Any) -> Optional[str]:
    method_reason = case.method.skip_reason
    if method_reason is not None:
        return method_reason or None
    owner_reason = getattr(case.method.owner, SKIP_ATTR, None)
    return owner_reason or None


def _has_skip_marker(case: Any) -> bool:
    return (
        case.method.skip_reason is not None
        or getattr(case.method.owner, SKIP_ATTR, None) is not None
    )


class Convention:
    """Base convention: every class, every public method, one instance per case.

    ``@cases`` parameter sets and ``@skip`` markers are honoured by default.
    """

    def __init__(self):
        self.config = ConventionConfig()
        self.classes = ClassExpression(self.config)
        self.methods = MethodExpression(self.config)
        self.parameters = ParameterExpression(self.config)
        self.case_execution = CaseExecutionExpression(self.config)
        self.class_execution = ClassExecutionExpression(self.config)

        self.classes.where(_is_concrete_test_type)
        self.methods.where(lambda m: not m.name.startswith("_"))
        self.parameters.add(from_cases_marker)
        self.case_execution.skip(_has_skip_marker, _marker_skip_reason)

    @property
    def name(self) -> str:
        return type(self).__name__

    def lifecycle_for(self, test_class: TypeDescriptor) -> Lifecycle:
        """Lifecycle used for ``test_class``; ``@static`` classes get no instance."""
        if test_class.is_static:
            return NoInstance()
        return self.config.lifecycle


class DefaultConvention(Convention):
    """Classes whose names end with ``Tests``; all their public methods."""

    def __init__(self):
        super().__init__()
        self.classes.name_ends_with("Tests")


def _is_concrete_test_type(test_class: TypeDescriptor) -> bool:
    target = test_class.target
    if inspect.isabstract(target):
        return False
    return not issubclass(target, (Convention, Lifecycle))
