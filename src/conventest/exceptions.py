"""Exception hierarchy for conventest."""

import asyncio
from typing import Optional

# Failures of user code that are recorded on a case. KeyboardInterrupt is not
# among them and always stops the run.
CASE_ERRORS = (Exception, asyncio.CancelledError, SystemExit)


class ConventestError(Exception):
    """Base class for all conventest errors."""

    pass


class ConfigurationError(ConventestError):
    """A test method is declared in a way the engine cannot execute.

    Recorded as a failure of the affected case only.
    """

    pass


class UnsupportedAsyncError(ConfigurationError):
    """Raised for asynchronous methods whose completion cannot be awaited."""

    def __init__(self, method_name: str):
        super().__init__(
            f"Async generator methods are not supported ({method_name}). Declare "
            "async test methods with 'async def' returning a value or None so "
            "their completion can be awaited."
        )
        self.method_name = method_name


class ParameterBindingError(ConfigurationError):
    """Raised when a case's parameters cannot be bound to its method."""

    def __init__(self, method_name: str, reason: str):
        super().__init__(
            f"Could not resolve parameters for test case {method_name}: {reason}"
        )
        self.method_name = method_name
        self.reason = reason


class InvocationError(ConventestError):
    """Wraps an exception raised by user code while invoking a test method.

    Never reported to listeners: the executor unwraps it to ``inner``.
    """

    def __init__(self, inner: BaseException):
        super().__init__(str(inner))
        self.inner = inner


class DiscoveryError(ConventestError):
    """A convention rule raised while enumerating types; fatal to the run."""

    def __init__(self, message: str, subject: Optional[str] = None):
        super().__init__(message)
        self.subject = subject


class RunError(ConventestError):
    """The run could not be completed (nothing to execute, bad filter)."""

    pass


class ProtocolError(ConventestError):
    """An unexpected or malformed message arrived on the host channel."""

    pass


class HostDisconnected(ConventestError):
    """The host closed the channel before the command finished."""

    pass


class CommandLineError(ConventestError):
    """Invalid command line arguments."""

    pass
