"""
StubTap Semantics

Matching and response-resolution core of the stub server:
- Call: immutable inbound request descriptor
- StubResponse: mutable outbound response carrier
- Condition: composable request predicates with optional pre-actions
- Action / ActionSequence: composable response transforms
- Stub: condition → action binding with call counting
"""

from .call import Call
from .response import StubResponse
from .action import Action, ActionSequence
from .condition import Condition
from .stub import Stub

__all__ = [
    'Call',
    'StubResponse',
    'Action',
    'ActionSequence',
    'Condition',
    'Stub',
]
