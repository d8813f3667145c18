"""
StubTap Conditions

Composable request predicates deciding whether a stub applies to a call.

A Condition wraps one predicate over a Call plus an ordered list of
pre-actions (applicables). The stub runs the pre-actions against the
response before its own action whenever the condition is responsible for
a match. Plain conditions carry no pre-actions.

Features:
- Conjunction, disjunction and negation
- Method and URI matching (exact, prefix, suffix, regex, wildcard pattern)
- Query parameter and header matching
- Body matching (substring and JSON-aware)
"""

import re
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from .action import Action, ResponseTransform, as_action
from .call import Call
from ..common import URLMatcher


Predicate = Callable[[Call], bool]


class Condition:
    """
    Predicate over a Call with optional pre-actions.

    Evaluating a condition never has side effects; only the pre-actions,
    run by the stub after a match is confirmed, may change the response.

    Example:
        condition = Condition.composite(get('/users'), with_header('Accept'))
        if condition.matches(call):
            ...
    """

    def __init__(
        self,
        predicate: Predicate,
        applicables: Iterable[Action] = (),
        description: str = "custom"
    ):
        self.predicate = predicate
        self.applicables: Tuple[Action, ...] = tuple(applicables)
        self.description = description

    def matches(self, call: Call) -> bool:
        return bool(self.predicate(call))

    def __call__(self, call: Call) -> bool:
        return self.matches(call)

    def not_(self) -> 'Condition':
        """Negation of this condition. Pre-actions are not carried over."""
        predicate = self.predicate
        return Condition(lambda call: not predicate(call), description=f"not({self.description})")

    def __repr__(self) -> str:
        if self.applicables:
            return f"Condition({self.description}, applicables={len(self.applicables)})"
        return f"Condition({self.description})"

    @classmethod
    def custom(cls, predicate: Predicate, description: str = "custom") -> 'Condition':
        """Wrap an arbitrary predicate."""
        return cls(predicate, description=description)

    @classmethod
    def always_true(cls) -> 'Condition':
        return cls(lambda call: True, description="always")

    @classmethod
    def always_false(cls) -> 'Condition':
        return cls(lambda call: False, description="never")

    @classmethod
    def composite(cls, *conditions: Union['Condition', Predicate]) -> 'Condition':
        """
        Logical AND of several conditions.

        Pre-actions of all operands are kept, in operand order, so extending
        a condition never drops the pre-actions it already carried.

        Args:
            *conditions: Conditions (or plain predicates)

        Returns:
            Combined condition (always true when none are given)
        """
        parts = tuple(as_condition(c) for c in conditions)
        if not parts:
            return cls.always_true()
        if len(parts) == 1:
            return parts[0]

        predicates = tuple(part.predicate for part in parts)
        applicables = tuple(action for part in parts for action in part.applicables)
        return cls(
            lambda call: all(predicate(call) for predicate in predicates),
            applicables=applicables,
            description=" and ".join(part.description for part in parts)
        )

    @classmethod
    def any_of(cls, *conditions: Union['Condition', Predicate]) -> 'Condition':
        """Logical OR of several conditions (pre-actions are not carried over)."""
        parts = tuple(as_condition(c) for c in conditions)
        predicates = tuple(part.predicate for part in parts)
        return cls(
            lambda call: any(predicate(call) for predicate in predicates),
            description=f"any_of({', '.join(part.description for part in parts)})"
        )

    @classmethod
    def not_of(cls, condition: Union['Condition', Predicate]) -> 'Condition':
        return as_condition(condition).not_()

    @classmethod
    def with_applicables(
        cls,
        condition: Union['Condition', Predicate],
        *actions: Union[Action, ResponseTransform]
    ) -> 'Condition':
        """
        Attach pre-actions to a condition.

        The returned condition matches exactly like the given one and carries
        its existing pre-actions followed by the new ones.
        """
        base = as_condition(condition)
        return cls(
            base.predicate,
            applicables=base.applicables + tuple(as_action(a) for a in actions),
            description=base.description
        )


def as_condition(condition: Union[Condition, Predicate]) -> Condition:
    """Wrap a plain predicate as a Condition; Conditions pass through unchanged."""
    if isinstance(condition, Condition):
        return condition
    if callable(condition):
        return Condition.custom(condition, description=getattr(condition, '__name__', 'custom'))
    raise TypeError(f"Expected a Condition or callable, got {type(condition).__name__}")


# Method conditions

def method(name: str) -> Condition:
    wanted = name.upper()
    return Condition(lambda call: call.method == wanted, description=f"method={wanted}")


def _method_and_uri(name: str, path: Optional[str]) -> Condition:
    if path is None:
        return method(name)
    return Condition.composite(method(name), uri(path))


def get(path: Optional[str] = None) -> Condition:
    return _method_and_uri('GET', path)


def post(path: Optional[str] = None) -> Condition:
    return _method_and_uri('POST', path)


def put(path: Optional[str] = None) -> Condition:
    return _method_and_uri('PUT', path)


def delete(path: Optional[str] = None) -> Condition:
    return _method_and_uri('DELETE', path)


def patch(path: Optional[str] = None) -> Condition:
    return _method_and_uri('PATCH', path)


def head(path: Optional[str] = None) -> Condition:
    return _method_and_uri('HEAD', path)


def options(path: Optional[str] = None) -> Condition:
    return _method_and_uri('OPTIONS', path)


# URI conditions

def uri(path: str) -> Condition:
    """Exact path match (query string is ignored)."""
    return Condition(lambda call: call.uri == path, description=f"uri={path}")


def starts_with_uri(prefix: str) -> Condition:
    return Condition(lambda call: call.uri.startswith(prefix), description=f"uri^={prefix}")


def ends_with_uri(suffix: str) -> Condition:
    return Condition(lambda call: call.uri.endswith(suffix), description=f"uri$={suffix}")


def matches_uri(regex: str) -> Condition:
    """Full-path regex match."""
    compiled = re.compile(regex)
    return Condition(
        lambda call: compiled.fullmatch(call.uri) is not None,
        description=f"uri~={regex}"
    )


def uri_pattern(pattern: str) -> Condition:
    """
    Wildcard path match.

    Supports:
    - /users/* (any single segment)
    - /users/** (any number of segments)
    - /users/{id} (named parameter, one segment)
    """
    return Condition(
        lambda call: URLMatcher.path_matches_pattern(call.uri, pattern),
        description=f"uri_pattern={pattern}"
    )


# Query parameter conditions

def parameter(name: str, *values: str) -> Condition:
    """
    Query parameter match.

    With no values, the parameter only has to be present. Otherwise its
    values must equal the given ones, in order.
    """
    if not values:
        return Condition(lambda call: name in call.parameters, description=f"param[{name}]")

    expected = list(values)
    return Condition(
        lambda call: call.parameters.get(name) == expected,
        description=f"param[{name}]={','.join(expected)}"
    )


# Header conditions

def with_header(name: str, value: Optional[str] = None) -> Condition:
    """Header presence (value None) or exact value match. Names are case-insensitive."""
    if value is None:
        return Condition(
            lambda call: call.get_header(name) is not None,
            description=f"header[{name}]"
        )
    return Condition(
        lambda call: call.get_header(name) == value,
        description=f"header[{name}]={value}"
    )


def with_header_matching(name: str, regex: str) -> Condition:
    compiled = re.compile(regex)

    def header_matches(call: Call) -> bool:
        actual = call.get_header(name)
        return actual is not None and compiled.search(actual) is not None

    return Condition(header_matches, description=f"header[{name}]~={regex}")


# Body conditions

def with_post_body() -> Condition:
    """Call carries a non-empty body."""
    return Condition(lambda call: len(call.body) > 0, description="has_body")


def with_post_body_containing(text: str) -> Condition:
    return Condition(lambda call: text in call.body_text, description=f"body~={text!r}")


def with_post_body_containing_json(fields: Dict[str, Any]) -> Condition:
    """Every key of fields is present in the top-level JSON body with an equal value."""
    def json_contains(call: Call) -> bool:
        data = call.json_body()
        if not isinstance(data, dict):
            return False
        return all(key in data and data[key] == value for key, value in fields.items())

    return Condition(json_contains, description=f"json_body>={sorted(fields)}")


def matches_json_body(predicate: Callable[[Any], bool]) -> Condition:
    """Apply predicate to the parsed JSON body; non-JSON bodies never match."""
    def json_matches(call: Call) -> bool:
        data = call.json_body()
        return data is not None and bool(predicate(data))

    return Condition(json_matches, description="json_body(custom)")
