"""Host channel: lets an external process drive discovery and execution."""

from conventest.host.pipe import Pipe
from conventest.host.session import ChannelState, HostSession

__all__ = ["ChannelState", "HostSession", "Pipe"]
