"""
StubTap Actions

Composable response transforms applied by stubs.

An Action wraps a function that receives the in-progress StubResponse and
returns the updated response (or None after mutating it in place).
Actions compose into ordered pipelines; an ActionSequence collects actions
that a stub consumes one per matching call.

Features:
- Identity, custom and composite actions
- Status, header, content and delay helpers
- JSON-aware body helpers
- CORS headers
"""

import json
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple, Union

from .response import StubResponse


ResponseTransform = Callable[[StubResponse], Optional[StubResponse]]


class Action:
    """
    Response transform.

    Example:
        action = Action.composite(status(201), json_content({'id': 1}))
        response = action.apply(StubResponse())
    """

    def __init__(self, transform: ResponseTransform, name: str = "custom"):
        self._transform = transform
        self.name = name

    def apply(self, response: StubResponse) -> StubResponse:
        result = self._transform(response)
        return response if result is None else result

    def __call__(self, response: StubResponse) -> StubResponse:
        return self.apply(response)

    def then(self, other: Union['Action', ResponseTransform]) -> 'Action':
        """Compose this action with another one applied afterwards."""
        return Action.composite(self, other)

    def __repr__(self) -> str:
        return f"Action({self.name})"

    @classmethod
    def noop(cls) -> 'Action':
        """Identity transform."""
        return cls(lambda response: response, name="noop")

    @classmethod
    def custom(cls, transform: ResponseTransform, name: str = "custom") -> 'Action':
        return cls(transform, name=name)

    @classmethod
    def composite(cls, *actions: Union['Action', ResponseTransform]) -> 'Action':
        """
        Chain actions into an ordered pipeline.

        composite(a, b) applies a, feeds its result into b and returns b's
        result. Nested composites are flattened, so composition is
        associative.

        Args:
            *actions: Actions (or plain transforms) in application order

        Returns:
            Composite action (noop when no actions are given)
        """
        steps: List[Action] = []
        for action in actions:
            action = as_action(action)
            if isinstance(action, _CompositeAction):
                steps.extend(action.steps)
            else:
                steps.append(action)

        if not steps:
            return cls.noop()
        if len(steps) == 1:
            return steps[0]
        return _CompositeAction(tuple(steps))


class _CompositeAction(Action):
    """Ordered pipeline of actions."""

    def __init__(self, steps: Tuple[Action, ...]):
        self.steps = steps
        super().__init__(self._run, name=" -> ".join(step.name for step in steps))

    def _run(self, response: StubResponse) -> StubResponse:
        for step in self.steps:
            response = step.apply(response)
        return response


def as_action(action: Union[Action, ResponseTransform]) -> Action:
    """Wrap a plain callable as an Action; Actions pass through unchanged."""
    if isinstance(action, Action):
        return action
    if callable(action):
        return Action.custom(action, name=getattr(action, '__name__', 'custom'))
    raise TypeError(f"Expected an Action or callable, got {type(action).__name__}")


class ActionSequence:
    """
    Ordered list of actions consumed one per matching call.

    Example:
        sequence = ActionSequence(string_content('first')).add(string_content('second'))
        stub = Stub(uri('/poll'), action_sequence=sequence)
    """

    def __init__(self, *actions: Union[Action, ResponseTransform]):
        self._actions: List[Action] = [as_action(a) for a in actions]

    def add(self, action: Union[Action, ResponseTransform]) -> 'ActionSequence':
        self._actions.append(as_action(action))
        return self

    @property
    def actions(self) -> Tuple[Action, ...]:
        """Read-only view of the collected actions."""
        return tuple(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __repr__(self) -> str:
        return f"ActionSequence({', '.join(a.name for a in self._actions)})"


# Response action helpers

def status(code: int) -> Action:
    """Set the response status code."""
    if not 100 <= int(code) <= 599:
        raise ValueError(f"Invalid HTTP status code: {code}")

    def set_status(response: StubResponse) -> StubResponse:
        response.status = int(code)
        return response

    return Action(set_status, name=f"status({code})")


def ok() -> Action:
    return status(200)


def no_content() -> Action:
    return status(204)


def not_found() -> Action:
    return status(404)


def server_error() -> Action:
    return status(500)


def unauthorized(realm: Optional[str] = None) -> Action:
    """401 with a Basic WWW-Authenticate challenge."""
    challenge = f'Basic realm="{realm}"' if realm else 'Basic'
    return Action.composite(status(401), header('WWW-Authenticate', challenge))


def header(name: str, value: str) -> Action:
    """Set a response header (replaces any header with the same name)."""
    def set_header(response: StubResponse) -> StubResponse:
        return response.set_header(name, value)

    return Action(set_header, name=f"header({name})")


def content_type(value: str) -> Action:
    return header('Content-Type', value)


def bytes_content(data: bytes) -> Action:
    """Set the raw response body."""
    def set_body(response: StubResponse) -> StubResponse:
        response.body = data
        return response

    return Action(set_body, name=f"bytes_content({len(data)} bytes)")


def string_content(text: str, encoding: str = 'utf-8') -> Action:
    """Set the response body from text."""
    action = bytes_content(text.encode(encoding))
    action.name = "string_content"
    return action


def json_content(data) -> Action:
    """Serialize data as the JSON body and set Content-Type."""
    return Action.composite(
        bytes_content(json.dumps(data).encode('utf-8')),
        content_type('application/json')
    )


def file_content(path: str) -> Action:
    """
    Serve the content of a file as the response body.

    The file is read on every application so edits show up between calls.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Content file not found: {file_path}")

    def set_file_body(response: StubResponse) -> StubResponse:
        response.body = file_path.read_bytes()
        return response

    return Action(set_file_body, name=f"file_content({file_path.name})")


def delay(ms: int) -> Action:
    """Delay the response by ms milliseconds (added to any existing delay)."""
    if ms < 0:
        raise ValueError(f"Delay must not be negative: {ms}")

    def add_delay(response: StubResponse) -> StubResponse:
        response.delay_ms += ms
        return response

    return Action(add_delay, name=f"delay({ms}ms)")


def cors_headers() -> Action:
    """Add permissive CORS headers to the response."""
    def add_cors(response: StubResponse) -> StubResponse:
        response.set_header('Access-Control-Allow-Origin', '*')
        response.set_header('Access-Control-Allow-Methods', 'GET, POST, PUT, DELETE, OPTIONS')
        response.set_header('Access-Control-Allow-Headers', 'Content-Type, Authorization')
        return response

    return Action(add_cors, name="cors_headers")


def pretty_json() -> Action:
    """Pretty-print a JSON body; non-JSON bodies are left untouched."""
    def reformat(response: StubResponse) -> StubResponse:
        try:
            data = json.loads(response.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return response
        response.body = json.dumps(data, indent=2).encode('utf-8')
        return response

    return Action(reformat, name="pretty_json")
