"""Decorators that attach metadata to test classes and methods.

Markers only record data on the decorated object. Conventions query that data
through the type catalog, so nothing here decides whether something is a test.
"""

from typing import Any, Callable

TAGS_ATTR = "__conventest_tags__"
CASES_ATTR = "__conventest_cases__"
SKIP_ATTR = "__conventest_skip__"
STATIC_ATTR = "__conventest_static__"
FIXTURES_ATTR = "__conventest_fixtures__"


def _marked(target: Any) -> Any:
    """Object that carries marker data for ``target``.

    Static and class methods keep it on the wrapped function.
    """
    if isinstance(target, (staticmethod, classmethod)):
        return target.__func__
    return target


def tag(*names: str) -> Callable:
    """Attach string tags to a class or method."""

    def decorator(target: Any) -> Any:
        marked = _marked(target)
        existing = getattr(marked, TAGS_ATTR, frozenset())
        # Classes inherit the attribute from their bases, methods do not.
        if isinstance(target, type) and TAGS_ATTR not in vars(target):
            existing = frozenset()
        setattr(marked, TAGS_ATTR, frozenset(existing) | frozenset(names))
        return target

    return decorator


def cases(*parameter_sets: Any) -> Callable:
    """Declare the parameter sets a test method runs with.

    Each set is either a tuple of positional arguments or a single value:

        @cases((1, 2, 3), (2, 3, 5))
        def test_add(self, a, b, expected): ...

        @cases("a", "b")
        def test_letter(self, letter): ...
    """
    normalized = tuple(
        params if isinstance(params, tuple) else (params,) for params in parameter_sets
    )

    def decorator(method: Callable) -> Callable:
        marked = _marked(method)
        existing = getattr(marked, CASES_ATTR, ())
        setattr(marked, CASES_ATTR, normalized + tuple(existing))
        return method

    return decorator


def skip(reason: str = "") -> Callable:
    """Mark a class or method as skipped."""

    def decorator(target: Any) -> Any:
        setattr(_marked(target), SKIP_ATTR, reason)
        return target

    return decorator


def static(cls: type) -> type:
    """Mark a class whose tests run without an instance."""
    setattr(cls, STATIC_ATTR, True)
    return cls


def use_fixture(name: str, factory: Callable[[], Any]) -> Callable:
    """Declare a fixture built once per class and injected into each instance.

    The fixture value is handed to ``set_<name>(value)`` when the class
    defines it, otherwise assigned to the attribute ``name``.
    """

    def decorator(cls: type) -> type:
        # Decorators apply bottom-up; prepend to keep source order.
        existing = tuple(vars(cls).get(FIXTURES_ATTR, ()))
        setattr(cls, FIXTURES_ATTR, ((name, factory),) + existing)
        return cls

    return decorator
