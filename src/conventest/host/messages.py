"""Messages exchanged with a host process over the channel.

On the wire every message is two frames: the discriminator (the message
class name) followed by the JSON body.
"""

from typing import Optional

from pydantic import BaseModel, Field

from conventest.core.model import Case, FailureDetail, Test, describe_exception, exception_chain


class HostMessage(BaseModel):
    """Base class for channel messages."""

    @classmethod
    def discriminator(cls) -> str:
        return cls.__name__


class TestIdentity(BaseModel):
    """Class and method of a test, as the host refers to it."""

    class_name: str
    method_name: str

    @classmethod
    def from_test(cls, test: Test) -> "TestIdentity":
        return cls(class_name=test.class_name, method_name=test.method_name)

    def to_test(self) -> Test:
        return Test(self.class_name, self.method_name)


class DiscoverTests(HostMessage):
    """Command: discover tests and stream them back without running any."""

    pass


class ExecuteTests(HostMessage):
    """Command: run the tests in ``filter``, or every test when it is empty."""

    filter: list[TestIdentity] = Field(default_factory=list)


class Completed(HostMessage):
    """Always the last message of a session."""

    pass


class Error(HostMessage):
    """A failure to handle the command, with its cause chain."""

    description: str
    causes: list[str] = Field(default_factory=list)
    stack_trace: str = ""

    @classmethod
    def from_exception(cls, exception: BaseException) -> "Error":
        detail = FailureDetail.from_exceptions([exception])
        return cls(
            description=describe_exception(exception),
            causes=[describe_exception(e) for e in exception_chain(exception)[1:]],
            stack_trace=detail.stack_trace,
        )


class TestDiscovered(HostMessage):
    test: TestIdentity


class CaseSkipped(HostMessage):
    test: TestIdentity
    name: str
    reason: Optional[str] = None


class CasePassed(HostMessage):
    test: TestIdentity
    name: str
    duration_ms: int = 0


class CaseFailed(HostMessage):
    test: TestIdentity
    name: str
    duration_ms: int = 0
    error: Error

    @classmethod
    def from_case(cls, case: Case) -> "CaseFailed":
        failure = case.failure
        return cls(
            test=TestIdentity.from_test(case.test),
            name=case.name,
            duration_ms=int(case.duration * 1000),
            error=Error(
                description=f"{failure.type_name}: {failure.message}",
                causes=failure.causes,
                stack_trace=failure.stack_trace,
            ),
        )


MESSAGE_TYPES: dict[str, type[HostMessage]] = {
    message_type.discriminator(): message_type
    for message_type in (
        DiscoverTests,
        ExecuteTests,
        Completed,
        Error,
        TestDiscovered,
        CaseSkipped,
        CasePassed,
        CaseFailed,
    )
}
