"""Type catalog: the introspection capability conventions are applied to.

Conventions never touch Python classes directly. They see ``TypeDescriptor``
and ``MethodDescriptor`` objects, which expose names, declared parameter
shape, result kind and marker data. ``ModuleCatalog`` builds them from a
loaded module; ``TypeListCatalog`` from an explicit list of classes.
"""

import inspect
from abc import ABC, abstractmethod
from enum import Enum
from types import ModuleType
from typing import Any, Iterable, Optional, Sequence

from conventest.exceptions import (
    CASE_ERRORS,
    ConfigurationError,
    InvocationError,
    ParameterBindingError,
)
from conventest.markers import CASES_ATTR, FIXTURES_ATTR, SKIP_ATTR, STATIC_ATTR, TAGS_ATTR


class ResultKind(str, Enum):
    """Declared result kind of a test method."""

    SYNC_VOID = "sync_void"
    SYNC_VALUE = "sync_value"
    ASYNC = "async"
    ASYNC_VOID = "async_void"


_VOID_ANNOTATIONS = (inspect.Signature.empty, None, type(None), "None")


class MethodDescriptor:
    """Metadata and invocation for one method of a test class."""

    def __init__(self, owner: type, name: str, raw: Any):
        self.owner = owner
        self.name = name
        self.is_static = isinstance(raw, staticmethod)
        self.is_classmethod = isinstance(raw, classmethod)
        self.function = raw.__func__ if (self.is_static or self.is_classmethod) else raw
        self._signature: Optional[inspect.Signature] = None

    def __repr__(self) -> str:
        return f"MethodDescriptor({self.owner.__name__}.{self.name})"

    @property
    def tags(self) -> frozenset:
        return frozenset(getattr(self.function, TAGS_ATTR, frozenset()))

    def inherited_tags(self) -> frozenset:
        """Tags declared on this method or any method it overrides."""
        tags = set()
        for cls in self.owner.__mro__:
            raw = vars(cls).get(self.name)
            if raw is None:
                continue
            function = getattr(raw, "__func__", raw)
            tags.update(getattr(function, TAGS_ATTR, ()))
        return frozenset(tags)

    @property
    def parameter_sets(self) -> tuple:
        return tuple(getattr(self.function, CASES_ATTR, ()))

    @property
    def skip_reason(self) -> Optional[str]:
        return getattr(self.function, SKIP_ATTR, None)

    @property
    def signature(self) -> inspect.Signature:
        """Signature without the implicit ``self``/``cls`` parameter."""
        if self._signature is None:
            signature = inspect.signature(self.function)
            parameters = list(signature.parameters.values())
            if not self.is_static and parameters:
                parameters = parameters[1:]
            self._signature = signature.replace(parameters=parameters)
        return self._signature

    @property
    def parameters(self) -> list[inspect.Parameter]:
        return list(self.signature.parameters.values())

    @property
    def result_kind(self) -> ResultKind:
        if inspect.isasyncgenfunction(self.function):
            return ResultKind.ASYNC_VOID
        if inspect.iscoroutinefunction(self.function):
            return ResultKind.ASYNC
        if self.signature.return_annotation in _VOID_ANNOTATIONS:
            return ResultKind.SYNC_VOID
        return ResultKind.SYNC_VALUE

    @property
    def requires_instance(self) -> bool:
        return not (self.is_static or self.is_classmethod)

    def bind(self, parameters: Sequence[Any]) -> inspect.BoundArguments:
        """Bind positional parameters to the declared signature.

        Raises:
            ParameterBindingError: If the parameters do not fit the signature
        """
        try:
            bound = self.signature.bind(*parameters)
        except TypeError as e:
            raise ParameterBindingError(f"{self.owner.__name__}.{self.name}", str(e)) from e
        bound.apply_defaults()
        return bound

    def invoke(self, instance: Any, parameters: Sequence[Any]) -> Any:
        """Invoke the method, wrapping any exception from user code.

        Raises:
            ParameterBindingError: If the parameters do not fit the signature
            ConfigurationError: If an instance method is invoked without an instance
            InvocationError: Wrapping whatever the method itself raised
        """
        bound = self.bind(parameters)
        target = self._resolve(instance)

        try:
            return target(*bound.args, **bound.kwargs)
        except CASE_ERRORS as e:
            raise InvocationError(e) from e

    def _resolve(self, instance: Any) -> Any:
        if self.is_static:
            return self.function
        if self.is_classmethod:
            return self.function.__get__(self.owner, self.owner)
        if instance is None:
            raise ConfigurationError(
                f"{self.owner.__name__}.{self.name} is an instance method but the "
                "lifecycle supplied no instance"
            )
        return self.function.__get__(instance, type(instance))


class TypeDescriptor:
    """Metadata for one candidate test class."""

    def __init__(self, target: type):
        self.target = target
        self._methods: Optional[list[MethodDescriptor]] = None

    def __repr__(self) -> str:
        return f"TypeDescriptor({self.qualified_name})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TypeDescriptor) and other.target is self.target

    def __hash__(self) -> int:
        return hash(self.target)

    @property
    def name(self) -> str:
        return self.target.__name__

    @property
    def module(self) -> str:
        return self.target.__module__

    @property
    def qualified_name(self) -> str:
        return f"{self.module}.{self.target.__qualname__}"

    @property
    def tags(self) -> frozenset:
        return frozenset(getattr(self.target, TAGS_ATTR, frozenset()))

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    @property
    def skip_reason(self) -> Optional[str]:
        return getattr(self.target, SKIP_ATTR, None)

    @property
    def is_static(self) -> bool:
        return bool(getattr(self.target, STATIC_ATTR, False))

    @property
    def fixtures(self) -> tuple:
        """Declared ``(name, factory)`` fixture pairs, in declaration order."""
        return tuple(getattr(self.target, FIXTURES_ATTR, ()))

    def methods(self) -> list[MethodDescriptor]:
        """Methods declared on the class and its bases, in definition order.

        An override keeps the position of the method it overrides.
        """
        if self._methods is None:
            found: dict[str, Any] = {}
            for cls in reversed(self.target.__mro__):
                if cls is object:
                    continue
                for name, raw in vars(cls).items():
                    if name.startswith("__") and name.endswith("__"):
                        continue
                    if _is_method(raw):
                        found[name] = raw
                    elif name in found:
                        # Shadowed by a non-method attribute.
                        del found[name]
            self._methods = [
                MethodDescriptor(self.target, name, raw) for name, raw in found.items()
            ]
        return list(self._methods)

    def method(self, name: str) -> Optional[MethodDescriptor]:
        for method in self.methods():
            if method.name == name:
                return method
        return None

    def instantiate(self) -> Any:
        return self.target()


def _is_method(raw: Any) -> bool:
    if isinstance(raw, (staticmethod, classmethod)):
        return True
    return inspect.isfunction(raw)


class TypeCatalog(ABC):
    """Source of candidate test types."""

    @abstractmethod
    def types(self) -> list[TypeDescriptor]:
        """Return every type the catalog knows about, in a stable order."""
        pass


class TypeListCatalog(TypeCatalog):
    """Catalog over an explicit list of classes."""

    def __init__(self, classes: Iterable[type]):
        self._types = [TypeDescriptor(cls) for cls in classes]

    def types(self) -> list[TypeDescriptor]:
        return list(self._types)


class ModuleCatalog(TypeCatalog):
    """Catalog over the classes defined in a loaded module.

    Classes imported into the module from elsewhere are ignored. Module
    namespaces preserve insertion order, so types come back in definition
    order.
    """

    def __init__(self, module: ModuleType):
        self.module = module

    def types(self) -> list[TypeDescriptor]:
        return [
            TypeDescriptor(value)
            for value in vars(self.module).values()
            if isinstance(value, type) and value.__module__ == self.module.__name__
        ]
