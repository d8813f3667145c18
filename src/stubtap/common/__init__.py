"""
StubTap Common Utilities

Shared utilities and helpers used across StubTap modules.
"""

from .utils import safe_json_parse, find_header, decode_body
from .url_utils import URLMatcher

__all__ = [
    'safe_json_parse',
    'find_header',
    'decode_body',
    'URLMatcher'
]
