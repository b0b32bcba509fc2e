"""Listener streaming discovery and results to the host."""

from conventest.core.listener import Listener
from conventest.core.messages import CaseFailed, CaseResult, CaseSkipped
from conventest.core.model import Case, Test
from conventest.host import messages
from conventest.host.pipe import Pipe


class PipeListener(Listener):
    """Forwards bus events over the host channel."""

    def __init__(self, pipe: Pipe):
        self.pipe = pipe

    def on_method_discovered(self, test: Test) -> None:
        self.pipe.send(messages.TestDiscovered(test=messages.TestIdentity.from_test(test)))

    def on_case_result(self, case: Case, outcome: CaseResult) -> None:
        identity = messages.TestIdentity.from_test(case.test)

        if isinstance(outcome, CaseFailed):
            self.pipe.send(messages.CaseFailed.from_case(case))
        elif isinstance(outcome, CaseSkipped):
            self.pipe.send(messages.CaseSkipped(test=identity, name=case.name, reason=outcome.reason))
        else:
            self.pipe.send(
                messages.CasePassed(test=identity, name=case.name, duration_ms=int(case.duration * 1000))
            )
