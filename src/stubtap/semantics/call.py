"""
StubTap Call

Immutable descriptor of one inbound HTTP request, as handed to stub
conditions by the server.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Any, Optional

from ..common import URLMatcher, safe_json_parse, find_header, decode_body


@dataclass(frozen=True)
class Call:
    """One recorded inbound request."""

    method: str
    url: str
    uri: str = '/'
    headers: Dict[str, str] = field(default_factory=dict)
    parameters: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b''
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def from_request(
        cls,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[bytes] = None
    ) -> 'Call':
        """
        Build a Call from raw request parts.

        Args:
            method: HTTP method
            url: Request URL (absolute or path with query string)
            headers: Request headers
            body: Request body

        Returns:
            Call descriptor
        """
        path, parameters = URLMatcher.split_url(url)
        if isinstance(body, str):
            body = body.encode('utf-8')
        return cls(
            method=method.upper(),
            url=url,
            uri=path,
            headers=dict(headers or {}),
            parameters=parameters,
            body=body or b''
        )

    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        return find_header(self.headers, name)

    def get_parameter(self, name: str) -> Optional[str]:
        """First value of a query parameter, or None."""
        values = self.parameters.get(name)
        return values[0] if values else None

    @property
    def body_text(self) -> str:
        return decode_body(self.body)

    def json_body(self) -> Any:
        """Parsed JSON body, or None when the body is empty or not JSON."""
        return safe_json_parse(self.body)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'method': self.method,
            'url': self.url,
            'uri': self.uri,
            'headers': dict(self.headers),
            'parameters': {k: list(v) for k, v in self.parameters.items()},
            'body': self.body_text,
            'timestamp': self.timestamp
        }

    def __str__(self) -> str:
        return f"{self.method} {self.url}"
