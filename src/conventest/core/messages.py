"""Events published on the bus during discovery and execution."""

from dataclasses import dataclass
from typing import Optional

from conventest.core.catalog import TypeDescriptor
from conventest.core.model import Case, CaseStatus, ExecutionSummary, Test


class Message:
    """Base class for bus events."""

    pass


@dataclass(frozen=True)
class RunStarted(Message):
    pass


@dataclass(frozen=True)
class RunCompleted(Message):
    summary: ExecutionSummary


@dataclass(frozen=True)
class MethodDiscovered(Message):
    test: Test


@dataclass(frozen=True)
class ClassStarted(Message):
    test_class: TypeDescriptor


@dataclass(frozen=True)
class ClassCompleted(Message):
    test_class: TypeDescriptor
    summary: ExecutionSummary


@dataclass(frozen=True)
class CaseSkipped(Message):
    case: Case
    reason: Optional[str] = None


@dataclass(frozen=True)
class CasePassed(Message):
    case: Case


@dataclass(frozen=True)
class CaseFailed(Message):
    case: Case
    exception: BaseException


CaseResult = CaseSkipped | CasePassed | CaseFailed


def case_result(case: Case) -> CaseResult:
    """Build the result message matching a completed case."""
    if case.status == CaseStatus.FAILED:
        return CaseFailed(case, case.exception)
    if case.status == CaseStatus.SKIPPED:
        return CaseSkipped(case, case.skip_reason)
    return CasePassed(case)
