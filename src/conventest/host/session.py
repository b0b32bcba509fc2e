"""One-command session with a host process.

A session connects to the host, receives exactly one command, streams the
resulting events back and always finishes with ``Completed``. Failures while
handling the command are sent as ``Error`` first; a host that goes away
mid-command simply ends the session.
"""

import logging
from enum import Enum
from typing import Any, Callable, Optional

from conventest.core.model import ExitCode
from conventest.exceptions import HostDisconnected, ProtocolError, RunError
from conventest.host import messages
from conventest.host.listener import PipeListener
from conventest.host.pipe import Pipe

log = logging.getLogger(__name__)


class ChannelState(str, Enum):
    """States of a host session."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AWAITING_COMMAND = "awaiting_command"
    PROCESSING = "processing"
    COMPLETED = "completed"


class HostSession:
    """Services a single DiscoverTests or ExecuteTests command."""

    def __init__(self, runner_factory: Callable[[], Any]):
        """Initialize the session.

        Args:
            runner_factory: Builds the module runner; called only once a
                command has arrived, so loading errors reach the host
        """
        self.runner_factory = runner_factory
        self.pipe: Optional[Pipe] = None
        self.state = ChannelState.DISCONNECTED

    def connect(self, name: str) -> None:
        """Open the channel named by the host."""
        self.attach(Pipe.connect(name))

    def attach(self, pipe: Pipe) -> None:
        """Use an already open channel."""
        self.pipe = pipe
        self.state = ChannelState.CONNECTED

    def serve(self) -> ExitCode:
        """Handle one command and return the exit code for the process.

        ``Completed`` is sent even when the command ends in an exception that
        is not reported to the host, unless the host has already gone away.
        """
        if self.pipe is None:
            raise RuntimeError("Host session is not connected")

        self.state = ChannelState.AWAITING_COMMAND
        exit_code = ExitCode.FATAL_ERROR
        connected = True

        try:
            command = self.pipe.receive_any()
            self.state = ChannelState.PROCESSING
            exit_code = self._handle(command)
        except HostDisconnected as e:
            log.warning("Host disconnected: %s", e)
            connected = False
        except Exception as e:
            log.debug("Command failed", exc_info=True)
            connected = self._send(lambda: self.pipe.send_exception(e))
        finally:
            if connected:
                self._send(lambda: self.pipe.send(messages.Completed()))
            self.state = ChannelState.COMPLETED

        return exit_code

    def _handle(self, command: messages.HostMessage) -> ExitCode:
        if isinstance(command, messages.DiscoverTests):
            runner = self.runner_factory()
            runner.discover([PipeListener(self.pipe)])
            return ExitCode.SUCCESS

        if isinstance(command, messages.ExecuteTests):
            runner = self.runner_factory()
            tests = [identity.to_test() for identity in command.filter]
            summary = runner.run([PipeListener(self.pipe)], tests or None)
            if summary.total == 0:
                raise RunError("No tests were discovered")
            return ExitCode.for_summary(summary)

        raise ProtocolError(
            f"Test module received unexpected message of type {command.discriminator()}: "
            f"{command.model_dump_json()}"
        )

    def _send(self, send: Callable[[], None]) -> bool:
        try:
            send()
            return True
        except HostDisconnected as e:
            log.warning("Host disconnected: %s", e)
            self.state = ChannelState.COMPLETED
            return False
