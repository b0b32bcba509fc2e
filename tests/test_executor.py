"""Tests for case execution."""

import asyncio

import pytest

from conventest.core.catalog import TypeDescriptor
from conventest.core.executor import CaseExecutor, first_leaf
from conventest.core.model import Case, CaseStatus, Test
from conventest.exceptions import ParameterBindingError, UnsupportedAsyncError


class Failure(Exception):
    pass


def returns_coroutine(function):
    def wrapper(self):
        return function(self)

    return wrapper


class SampleTests:
    calls = []

    def passes(self):
        SampleTests.calls.append("passes")

    def computes(self) -> int:
        return 7

    def fails(self):
        raise Failure("boom")

    def fails_with_cause(self):
        try:
            raise KeyError("inner")
        except KeyError as e:
            raise Failure("outer") from e

    async def async_passes(self):
        await asyncio.sleep(0)
        return "done"

    async def async_fails(self):
        await asyncio.sleep(0)
        raise Failure("async boom")

    async def async_generator(self):
        yield 1

    def group_fails(self):
        raise ExceptionGroup("many", [ExceptionGroup("nested", [Failure("first")]), KeyError("second")])

    def takes_one(self, value):
        SampleTests.calls.append(value)

    @returns_coroutine
    async def wrapped_async(self):
        raise Failure("from wrapped")

    async def awaits_cancelled_task(self):
        task = asyncio.create_task(asyncio.sleep(10))
        task.cancel()
        await task

    def exits(self):
        raise SystemExit(3)

    def interrupts(self):
        raise KeyboardInterrupt()


def make_case(method_name, parameters=()):
    descriptor = TypeDescriptor(SampleTests)
    method = descriptor.method(method_name)
    return Case(
        test=Test(descriptor.qualified_name, method_name, parameters),
        method=method,
        parameters=parameters,
    )


@pytest.fixture
def executor():
    """Executor under test."""
    return CaseExecutor()


@pytest.fixture(autouse=True)
def reset_calls():
    """Clear recorded calls between tests."""
    SampleTests.calls = []


class TestCaseExecutor:
    """Tests for CaseExecutor."""

    def test_passing_case(self, executor):
        """Test a passing void method."""
        case = make_case("passes")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.PASSED
        assert case.executed
        assert case.exceptions == []
        assert SampleTests.calls == ["passes"]

    def test_return_value_recorded(self, executor):
        """Test that value-returning methods keep their result."""
        case = make_case("computes")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.PASSED
        assert case.return_value == 7

    def test_failure_records_original_exception(self, executor):
        """Test that the recorded error is the one user code raised."""
        case = make_case("fails")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.FAILED
        assert isinstance(case.exception, Failure)
        assert str(case.exception) == "boom"
        assert case.executed
        assert case.duration >= 0

    def test_failure_keeps_cause_chain(self, executor):
        """Test that causes survive unwrapping."""
        case = make_case("fails_with_cause")

        executor.execute(case, SampleTests())

        assert isinstance(case.exception.__cause__, KeyError)
        assert case.failure.causes == ["KeyError: 'inner'"]

    def test_async_pass(self, executor):
        """Test that coroutines are awaited to completion."""
        case = make_case("async_passes")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.PASSED
        assert case.return_value == "done"

    def test_async_fault(self, executor):
        """Test that faults inside coroutines are recorded."""
        case = make_case("async_fails")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.FAILED
        assert str(case.exception) == "async boom"

    def test_awaitable_from_plain_function(self, executor):
        """Test that awaitables returned by plain functions are awaited."""
        case = make_case("wrapped_async")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.FAILED
        assert str(case.exception) == "from wrapped"

    def test_async_generator_rejected(self, executor):
        """Test that async generators fail with a configuration error."""
        case = make_case("async_generator")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.FAILED
        assert isinstance(case.exception, UnsupportedAsyncError)
        assert "async_generator" in str(case.exception)

    def test_exception_group_unwrapped(self, executor):
        """Test that the first leaf of an exception group is recorded."""
        case = make_case("group_fails")

        executor.execute(case, SampleTests())

        assert isinstance(case.exception, Failure)
        assert str(case.exception) == "first"

    def test_cancelled_await_recorded(self, executor):
        """Test that awaiting a cancelled task fails the case."""
        case = make_case("awaits_cancelled_task")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.FAILED
        assert isinstance(case.exception, asyncio.CancelledError)
        assert case.executed

    def test_system_exit_recorded(self, executor):
        """Test that SystemExit raised by a test fails the case."""
        case = make_case("exits")

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.FAILED
        assert isinstance(case.exception, SystemExit)
        assert case.exception.code == 3

    def test_keyboard_interrupt_propagates(self, executor):
        """Test that KeyboardInterrupt stops execution."""
        case = make_case("interrupts")

        with pytest.raises(KeyboardInterrupt):
            executor.execute(case, SampleTests())

        assert case.executed
        assert case.status == CaseStatus.NOT_EXECUTED

    def test_parameters_passed(self, executor):
        """Test that case parameters reach the method."""
        case = make_case("takes_one", ("value",))

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.PASSED
        assert SampleTests.calls == ["value"]

    def test_binding_failure_never_invokes(self, executor):
        """Test that unbindable parameters fail before the method runs."""
        case = make_case("takes_one", ())

        executor.execute(case, SampleTests())

        assert case.status == CaseStatus.FAILED
        assert isinstance(case.exception, ParameterBindingError)
        assert SampleTests.calls == []

    def test_case_execute_uses_default_executor(self):
        """Test Case.execute convenience."""
        case = make_case("passes")

        case.execute(SampleTests())

        assert case.status == CaseStatus.PASSED


class TestFirstLeaf:
    """Tests for first_leaf."""

    def test_nested_groups(self):
        """Test descending into nested groups."""
        leaf = ValueError("leaf")
        group = ExceptionGroup("outer", [ExceptionGroup("inner", [leaf])])

        assert first_leaf(group) is leaf
