"""Data models for discovered tests, cases and run summaries."""

import traceback
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Optional

from conventest.core.catalog import MethodDescriptor


@dataclass(frozen=True)
class Test:
    """Identity of a discovered test: class, method and bound parameters."""

    __test__ = False

    class_name: str
    method_name: str
    parameters: tuple = ()

    @property
    def name(self) -> str:
        return f"{self.class_name}.{self.method_name}"

    @property
    def display_name(self) -> str:
        if not self.parameters:
            return self.name
        arguments = ", ".join(repr(p) for p in self.parameters)
        return f"{self.name}({arguments})"

    def matches(self, other: "Test") -> bool:
        """Compare by class and method only, ignoring parameters."""
        return self.class_name == other.class_name and self.method_name == other.method_name

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "class_name": self.class_name,
            "method_name": self.method_name,
            "parameters": [repr(p) for p in self.parameters],
        }


class CaseStatus(str, Enum):
    """Result state of a case."""

    NOT_EXECUTED = "not_executed"
    SKIPPED = "skipped"
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class Case:
    """A test bound to one execution attempt."""

    test: Test
    method: MethodDescriptor
    parameters: tuple = ()
    status: CaseStatus = CaseStatus.NOT_EXECUTED
    exceptions: list[BaseException] = field(default_factory=list)
    skip_reason: Optional[str] = None
    return_value: Any = None
    executed: bool = False
    duration: float = 0.0

    @property
    def name(self) -> str:
        return self.test.display_name

    @property
    def exception(self) -> Optional[BaseException]:
        """The first recorded exception, if any."""
        return self.exceptions[0] if self.exceptions else None

    def fail(self, exception: BaseException) -> None:
        self.exceptions.append(exception)
        self.status = CaseStatus.FAILED

    def skip(self, reason: Optional[str] = None) -> None:
        self.skip_reason = reason
        self.status = CaseStatus.SKIPPED

    def pass_(self) -> None:
        if self.status != CaseStatus.FAILED:
            self.status = CaseStatus.PASSED

    def execute(self, instance: Any) -> None:
        """Execute this case against ``instance`` (``None`` for static tests)."""
        from conventest.core.executor import execute_case

        execute_case(self, instance)

    @property
    def failure(self) -> Optional["FailureDetail"]:
        if not self.exceptions:
            return None
        return FailureDetail.from_exceptions(self.exceptions)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        failure = self.failure
        return {
            "name": self.name,
            "class_name": self.test.class_name,
            "method_name": self.test.method_name,
            "status": self.status.value,
            "duration_ms": int(self.duration * 1000),
            "skip_reason": self.skip_reason,
            "failure": failure.to_dict() if failure else None,
        }


@dataclass
class FailureDetail:
    """Error description plus the chain of causes behind it."""

    type_name: str
    message: str
    causes: list[str] = field(default_factory=list)
    stack_trace: str = ""

    @classmethod
    def from_exceptions(cls, exceptions: list[BaseException]) -> "FailureDetail":
        primary = exceptions[0]
        causes = [describe_exception(e) for e in exception_chain(primary)[1:]]
        # Failures recorded after the first one (e.g. teardown) follow the chain.
        causes.extend(describe_exception(e) for e in exceptions[1:])
        stack_trace = "".join(
            "".join(traceback.format_exception(type(e), e, e.__traceback__))
            for e in exceptions
        )
        return cls(
            type_name=type(primary).__name__,
            message=str(primary),
            causes=causes,
            stack_trace=stack_trace,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "type": self.type_name,
            "message": self.message,
            "causes": self.causes,
            "stack_trace": self.stack_trace,
        }


def exception_chain(exception: BaseException) -> list[BaseException]:
    """Return the exception followed by its causes, outermost first."""
    chain = []
    seen = set()
    current: Optional[BaseException] = exception
    while current is not None and id(current) not in seen:
        chain.append(current)
        seen.add(id(current))
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    return chain


def describe_exception(exception: BaseException) -> str:
    return f"{type(exception).__name__}: {exception}"


@dataclass
class ExecutionSummary:
    """Aggregate counters for a run or a single class."""

    passed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped

    def add(self, other: "ExecutionSummary") -> None:
        self.passed += other.passed
        self.failed += other.failed
        self.skipped += other.skipped

    def add_case(self, case: Case) -> None:
        if case.status == CaseStatus.PASSED:
            self.passed += 1
        elif case.status == CaseStatus.FAILED:
            self.failed += 1
        elif case.status == CaseStatus.SKIPPED:
            self.skipped += 1

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
        }


class ExitCode(IntEnum):
    """Process exit status for a run."""

    SUCCESS = 0
    FAILURE = 1
    FATAL_ERROR = -1

    @classmethod
    def for_summary(cls, summary: ExecutionSummary) -> "ExitCode":
        """Nothing run is fatal; any failure is a failure."""
        if summary.total == 0:
            return cls.FATAL_ERROR
        if summary.failed > 0:
            return cls.FAILURE
        return cls.SUCCESS
