"""
StubTap Verification

Assertions over the calls a StubServer has recorded and over stub usage.

Count checks return a verifier over the calls made after the last call
they matched, so chained checks also assert ordering:

    verify_http(server).once(post('/login')).times(2, get('/profile'))

passes only if one login happened and two profile reads followed it.
"""

from typing import Sequence, Union

from .semantics import Call, Condition
from .semantics.condition import Predicate
from .server import StubServer


class VerificationError(AssertionError):
    """Raised when recorded calls or stub usage do not meet expectations."""


class VerifySequenced:
    """Verifier over an ordered slice of recorded calls."""

    def __init__(self, calls: Sequence[Call]):
        self.calls = list(calls)

    def never(self, *conditions: Union[Condition, Predicate]) -> 'VerifySequenced':
        return self.times(0, *conditions)

    def once(self, *conditions: Union[Condition, Predicate]) -> 'VerifySequenced':
        return self.times(1, *conditions)

    def times(self, expected: int, *conditions: Union[Condition, Predicate]) -> 'VerifySequenced':
        """Exactly expected calls match all conditions."""
        condition = Condition.composite(*conditions)
        matched = self._matching_indexes(condition)
        if len(matched) != expected:
            raise VerificationError(self._failure_message(
                f"Expected {expected} call(s) matching {condition.description}, got {len(matched)}"
            ))
        return self._after(matched)

    def at_least(self, expected: int, *conditions: Union[Condition, Predicate]) -> 'VerifySequenced':
        """At least expected calls match all conditions."""
        condition = Condition.composite(*conditions)
        matched = self._matching_indexes(condition)
        if len(matched) < expected:
            raise VerificationError(self._failure_message(
                f"Expected at least {expected} call(s) matching {condition.description}, got {len(matched)}"
            ))
        return self._after(matched)

    def _matching_indexes(self, condition: Condition):
        return [index for index, call in enumerate(self.calls) if condition.matches(call)]

    def _after(self, matched) -> 'VerifySequenced':
        if not matched:
            return VerifySequenced(self.calls)
        return VerifySequenced(self.calls[matched[-1] + 1:])

    def _failure_message(self, headline: str) -> str:
        if not self.calls:
            return f"{headline}. No calls recorded."
        lines = '\n'.join(f"  - {call}" for call in self.calls)
        return f"{headline}. Recorded calls:\n{lines}"


def verify_http(server: StubServer) -> VerifySequenced:
    return VerifySequenced(server.calls)


def verify_stubs_usage(server: StubServer):
    """
    Check that every stub was applied at least as often as expected.

    Raises:
        VerificationError: Listing the stubs that fell short
    """
    unsatisfied = [stub for stub in server.stubs if not stub.is_satisfied()]
    if unsatisfied:
        lines = '\n'.join(
            f"  - {stub.condition.description}: expected {stub.expected_times}, applied {stub.applied_times}"
            for stub in unsatisfied
        )
        raise VerificationError(f"{len(unsatisfied)} stub(s) not used as expected:\n{lines}")
