"""In-process event bus fanning messages out to listeners."""

import threading
from typing import Iterable

from conventest.core.listener import Listener
from conventest.core.messages import (
    CaseFailed,
    CasePassed,
    CaseSkipped,
    ClassCompleted,
    ClassStarted,
    Message,
    MethodDiscovered,
    RunCompleted,
    RunStarted,
)


class Bus:
    """Delivers each message to every listener, in registration order.

    Delivery is synchronous and serialized through a single lock, so
    listeners never run concurrently even when classes do. An exception raised
    by a listener propagates to the publisher.
    """

    def __init__(self, listeners: Iterable[Listener] = ()):
        self.listeners: list[Listener] = list(listeners)
        self._lock = threading.RLock()

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self.listeners.append(listener)

    def publish(self, message: Message) -> None:
        with self._lock:
            for listener in self.listeners:
                _dispatch(listener, message)


def _dispatch(listener: Listener, message: Message) -> None:
    if isinstance(message, (CasePassed, CaseFailed, CaseSkipped)):
        listener.on_case_result(message.case, message)
    elif isinstance(message, ClassStarted):
        listener.on_class_started(message.test_class)
    elif isinstance(message, ClassCompleted):
        listener.on_class_completed(message.test_class, message.summary)
    elif isinstance(message, MethodDiscovered):
        listener.on_method_discovered(message.test)
    elif isinstance(message, RunStarted):
        listener.on_run_started()
    elif isinstance(message, RunCompleted):
        listener.on_run_completed(message.summary)
    else:
        raise TypeError(f"Unknown message type: {type(message).__name__}")
