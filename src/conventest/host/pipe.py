"""Message-oriented channel to a host process.

Built on ``multiprocessing.connection``, which frames every ``send_bytes``
call as one message: a named pipe on Windows, a Unix domain socket or TCP
socket elsewhere.
"""

import logging
import re
import sys
from multiprocessing.connection import Client, Connection
from typing import Any, Optional, TypeVar

from pydantic import ValidationError

from conventest.exceptions import HostDisconnected, ProtocolError
from conventest.host.messages import MESSAGE_TYPES, Error, HostMessage

log = logging.getLogger(__name__)

M = TypeVar("M", bound=HostMessage)

_TCP_ADDRESS = re.compile(r"^(?P<host>[\w.-]+):(?P<port>\d+)$")


def parse_address(name: str) -> Any:
    """Translate the identifier handed to us by the host into an address.

    ``host:port`` selects TCP. On Windows a bare name becomes a named pipe;
    anything else is used as a Unix socket path.
    """
    match = _TCP_ADDRESS.match(name)
    if match:
        return (match.group("host"), int(match.group("port")))
    if sys.platform == "win32" and not name.startswith("\\\\"):
        return f"\\\\.\\pipe\\{name}"
    return name


class Pipe:
    """Sends and receives framed host messages."""

    def __init__(self, connection: Connection):
        self.connection = connection

    @classmethod
    def connect(cls, name: str, authkey: Optional[bytes] = None) -> "Pipe":
        """Open the channel named by ``name``.

        Raises:
            HostDisconnected: If the host is not listening
        """
        address = parse_address(name)
        log.debug("Connecting to host at %r", address)
        try:
            return cls(Client(address, authkey=authkey))
        except OSError as e:
            raise HostDisconnected(f"Could not connect to host at {name}: {e}") from e

    def __enter__(self) -> "Pipe":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.connection.close()

    def send_message(self, text: str) -> None:
        try:
            self.connection.send_bytes(text.encode("utf-8"))
        except (OSError, EOFError) as e:
            raise HostDisconnected(f"Host channel closed while sending: {e}") from e

    def receive_message(self) -> str:
        try:
            return self.connection.recv_bytes().decode("utf-8")
        except (OSError, EOFError) as e:
            raise HostDisconnected(f"Host channel closed while receiving: {e}") from e

    def send(self, message: HostMessage) -> None:
        self.send_message(message.discriminator())
        self.send_message(message.model_dump_json())

    def send_exception(self, exception: BaseException) -> None:
        self.send(Error.from_exception(exception))

    def receive(self, message_type: type[M]) -> M:
        """Receive the body of a message whose discriminator was already read."""
        body = self.receive_message()
        try:
            return message_type.model_validate_json(body)
        except ValidationError as e:
            raise ProtocolError(
                f"Malformed {message_type.discriminator()} message: {body}"
            ) from e

    def receive_any(self) -> HostMessage:
        """Receive a complete message of any known type.

        Raises:
            ProtocolError: If the discriminator names no known message type
        """
        discriminator = self.receive_message()
        message_type = MESSAGE_TYPES.get(discriminator)
        if message_type is None:
            body = self.receive_message()
            raise ProtocolError(
                f"Test module received unexpected message of type {discriminator}: {body}"
            )
        return self.receive(message_type)
