"""
StubTap

HTTP server test double: register stubs (condition → response behavior),
serve them from a FastAPI app, and verify the calls afterwards.
"""

from .semantics import Action, ActionSequence, Call, Condition, Stub, StubResponse
from .server import StubServer, StubServerConfig, StubMetrics
from .loader import StubLoader, StubDefinitions
from .dsl import when_http, StubHttp
from .verify import verify_http, verify_stubs_usage, VerifySequenced, VerificationError

__all__ = [
    # Semantics
    'Action',
    'ActionSequence',
    'Call',
    'Condition',
    'Stub',
    'StubResponse',

    # Server
    'StubServer',
    'StubServerConfig',
    'StubMetrics',

    # Loader
    'StubLoader',
    'StubDefinitions',

    # DSL and verification
    'when_http',
    'StubHttp',
    'verify_http',
    'verify_stubs_usage',
    'VerifySequenced',
    'VerificationError',
]

__version__ = '1.0.0'
