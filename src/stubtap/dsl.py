"""
StubTap Registration DSL

Fluent helpers for registering stubs on a StubServer.

Example:
    when_http(server).match(get('/users'), with_header('Accept')).then(
        status(200),
        json_content([{'id': 1}])
    )

    when_http(server).match(post('/jobs')).must_happen(2).then_sequence(
        status(202),
        status(409)
    )
"""

from typing import Optional, Union

from .semantics import Action, ActionSequence, Condition, Stub
from .semantics.action import ResponseTransform
from .semantics.condition import Predicate
from .server import StubServer


class StubHttp:
    """Pending stub registration for one set of conditions."""

    def __init__(self, server: StubServer, condition: Condition):
        self.server = server
        self.condition = condition
        self.expected_times: Optional[int] = None

    def must_happen(self, times: int = 1) -> 'StubHttp':
        """Expect the stub to be applied this many times (checked by verify_stubs_usage)."""
        if times < 0:
            raise ValueError(f"Expected times must not be negative: {times}")
        self.expected_times = times
        return self

    def then(self, *actions: Union[Action, ResponseTransform]) -> Stub:
        """Register a stub running all actions, in order, on every match."""
        return self._register(Stub(self.condition, Action.composite(*actions)))

    def then_sequence(self, *actions: Union[Action, ResponseTransform]) -> Stub:
        """Register a stub serving one action per match, then stopping to match."""
        return self._register(Stub(self.condition, action_sequence=ActionSequence(*actions)))

    def _register(self, stub: Stub) -> Stub:
        if self.expected_times is not None:
            stub.set_expected_times(self.expected_times)
        return self.server.add_stub(stub)


class StubWhen:
    def __init__(self, server: StubServer):
        self.server = server

    def match(self, *conditions: Union[Condition, Predicate]) -> StubHttp:
        return StubHttp(self.server, Condition.composite(*conditions))


def when_http(server: StubServer) -> StubWhen:
    return StubWhen(server)
