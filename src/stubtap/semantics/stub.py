"""
StubTap Stub

Binds one Condition to an Action (or to an ActionSequence) and keeps
track of how many times it has been applied.

The stub does not decide whether to run: the server asks is_applicable()
for each registered stub, in registration order, and calls apply() on the
first one that answers True.

Example:
    stub = Stub(get('/users'), status(200)).with_extra_action(json_content([]))
    stub.set_expected_times(1)

    if stub.is_applicable(call):
        response = stub.apply(StubResponse())
"""

import logging
import threading
from typing import Iterable, Optional, Tuple, Union

from .action import Action, ActionSequence, ResponseTransform, as_action
from .call import Call
from .condition import Condition, Predicate, as_condition
from .response import StubResponse


logger = logging.getLogger("stubtap.stub")


class Stub:
    """
    Condition → action binding with call-count bookkeeping.

    With an action sequence configured, the stub serves one sequence entry
    per matching call (applied after the base action) and stops being
    applicable once every entry has been used.
    """

    def __init__(
        self,
        condition: Optional[Union[Condition, Predicate]] = None,
        action: Optional[Union[Action, ResponseTransform]] = None,
        action_sequence: Optional[Union[ActionSequence, Iterable[Action]]] = None
    ):
        """
        Initialize stub.

        Args:
            condition: When the stub applies (default: every call)
            action: Base action run on every application (default: noop)
            action_sequence: Per-call actions consumed one per application
        """
        self._lock = threading.Lock()
        self.condition = as_condition(condition) if condition is not None else Condition.always_true()
        self.action = as_action(action) if action is not None else Action.noop()
        self._action_sequence: Tuple[Action, ...] = _snapshot(action_sequence)
        self._applied_times = 0
        self._expected_times = 0

    # Builder-style configuration

    def also_when(self, extra_condition: Union[Condition, Predicate]) -> 'Stub':
        """Require extra_condition in addition to the current condition."""
        self.condition = Condition.composite(self.condition, extra_condition)
        return self

    def with_extra_action(self, extra_action: Union[Action, ResponseTransform]) -> 'Stub':
        """Run extra_action after the current action."""
        self.action = Action.composite(self.action, extra_action)
        return self

    def with_action(self, action: Union[Action, ResponseTransform]) -> 'Stub':
        self.action = as_action(action)
        return self

    def with_sequence_item(self, next_action: Union[Action, ResponseTransform]) -> 'Stub':
        """Append one action to the sequence. The applied counter is kept."""
        item = as_action(next_action)
        with self._lock:
            self._action_sequence = self._action_sequence + (item,)
        return self

    def with_action_sequence(
        self,
        actions: Union[ActionSequence, Iterable[Union[Action, ResponseTransform]]]
    ) -> 'Stub':
        """Replace the sequence with a copy of actions."""
        snapshot = _snapshot(actions)
        with self._lock:
            self._action_sequence = snapshot
        return self

    @property
    def action_sequence(self) -> Tuple[Action, ...]:
        return self._action_sequence

    # Matching

    def is_applicable(self, call: Call) -> bool:
        """
        Check whether the call satisfies the condition and the stub still
        has an unused sequence slot (stubs without a sequence never run out).
        """
        if not self.condition.matches(call):
            return False
        sequence = self._action_sequence
        return len(sequence) == 0 or len(sequence) > self._applied_times

    def apply(self, response: StubResponse) -> StubResponse:
        """
        Run the condition's pre-actions and the resolved action against the
        response, then count the application.

        Args:
            response: Response to transform

        Returns:
            Transformed response
        """
        for applicable in self.condition.applicables:
            response = applicable.apply(response)

        with self._lock:
            chosen = self._resolve_action()
            response = chosen.apply(response)
            self._applied_times += 1
            logger.debug(f"Applied stub {self.condition.description} (times: {self._applied_times})")

        return response

    def _resolve_action(self) -> Action:
        sequence = self._action_sequence
        if not sequence:
            return self.action
        if self._applied_times < len(sequence):
            return Action.composite(self.action, sequence[self._applied_times])

        logger.warning(
            f"Stub {self.condition.description} applied after its sequence of "
            f"{len(sequence)} was used up; serving the base action only"
        )
        return self.action

    # Bookkeeping

    @property
    def applied_times(self) -> int:
        return self._applied_times

    @property
    def expected_times(self) -> int:
        return self._expected_times

    @expected_times.setter
    def expected_times(self, times: int):
        if times < 0:
            raise ValueError(f"Expected times must not be negative: {times}")
        self._expected_times = times

    def get_applied_times(self) -> int:
        """How many times the stub has been applied."""
        return self._applied_times

    def set_expected_times(self, times: int) -> 'Stub':
        """Set how many times the stub is expected to be applied."""
        self.expected_times = times
        return self

    def must_happen(self, times: int = 1) -> 'Stub':
        return self.set_expected_times(times)

    def get_expected_times(self) -> int:
        return self._expected_times

    def is_satisfied(self) -> bool:
        return self._applied_times >= self._expected_times

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'condition': self.condition.description,
            'action': self.action.name,
            'sequence_length': len(self._action_sequence),
            'applied_times': self._applied_times,
            'expected_times': self._expected_times
        }

    def __repr__(self) -> str:
        return f"Stub({self.condition.description} -> {self.action.name}, applied={self._applied_times})"


def _snapshot(actions) -> Tuple[Action, ...]:
    if actions is None:
        return ()
    if isinstance(actions, ActionSequence):
        return actions.actions
    return tuple(as_action(a) for a in actions)
