"""
StubTap Response

Mutable response carrier that stub actions transform before the server
turns it into a real HTTP response.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from ..common import find_header, decode_body


@dataclass
class StubResponse:
    """In-progress outbound response."""

    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b''
    delay_ms: int = 0

    def set_header(self, name: str, value: str) -> 'StubResponse':
        """Set a header, replacing any existing header with the same name (any case)."""
        for key in [k for k in self.headers if k.lower() == name.lower()]:
            del self.headers[key]
        self.headers[name] = value
        return self

    def get_header(self, name: str) -> Optional[str]:
        return find_header(self.headers, name)

    @property
    def content_type(self) -> Optional[str]:
        return self.get_header('Content-Type')

    @property
    def text(self) -> str:
        return decode_body(self.body)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'status': self.status,
            'headers': dict(self.headers),
            'body': self.text,
            'delay_ms': self.delay_ms
        }
