"""Execution of a single case.

The executor runs exactly one case against an instance (or no instance for
static tests) and records the outcome on the case. Exceptions raised by user
code never escape: they are unwrapped to the original error and stored on the
case. The executor publishes nothing; the runner reports results per class.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable

from conventest.core.catalog import ResultKind
from conventest.core.model import Case
from conventest.exceptions import CASE_ERRORS, InvocationError, UnsupportedAsyncError

log = logging.getLogger(__name__)


class CaseExecutor:
    """Executes cases and records their results."""

    def execute(self, case: Case, instance: Any) -> None:
        """Execute ``case`` against ``instance`` and record the outcome.

        The case is always marked executed on return, whether it passed or
        failed.
        """
        start_time = time.perf_counter()

        try:
            case.return_value = self._run(case, instance)
        except InvocationError as e:
            inner = e.inner
            case.fail(first_leaf(inner) if isinstance(inner, BaseExceptionGroup) else inner)
        except BaseExceptionGroup as group:
            case.fail(first_leaf(group))
        except CASE_ERRORS as e:
            case.fail(e)
        finally:
            case.duration = time.perf_counter() - start_time
            case.executed = True

        if case.exceptions:
            log.debug("Case %s failed: %r", case.name, case.exception)
        else:
            case.pass_()

    def _run(self, case: Case, instance: Any) -> Any:
        method = case.method
        result_kind = method.result_kind

        if result_kind == ResultKind.ASYNC_VOID:
            raise UnsupportedAsyncError(f"{method.owner.__name__}.{method.name}")

        return_value = method.invoke(instance, case.parameters)

        # Plain functions may still hand back an awaitable (e.g. when wrapped
        # by a decorator); await those too rather than dropping them.
        if result_kind == ResultKind.ASYNC or inspect.isawaitable(return_value):
            return self._wait(return_value)

        if result_kind == ResultKind.SYNC_VOID:
            return None

        return return_value

    @staticmethod
    def _wait(awaitable: Awaitable) -> Any:
        """Block the current worker until ``awaitable`` completes."""
        return asyncio.run(_await(awaitable))


async def _await(awaitable: Awaitable) -> Any:
    return await awaitable


def first_leaf(group: BaseExceptionGroup) -> BaseException:
    """Return the first non-group exception nested inside ``group``."""
    current: BaseException = group
    while isinstance(current, BaseExceptionGroup) and current.exceptions:
        current = current.exceptions[0]
    return current


_default_executor = CaseExecutor()


def execute_case(case: Case, instance: Any) -> None:
    """Execute a case with the default executor."""
    _default_executor.execute(case, instance)
