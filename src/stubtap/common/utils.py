"""
StubTap Common Utilities

Small helpers shared by the request and response models.
"""

import json
from typing import Dict, Any, Optional, Union


def safe_json_parse(json_string: Union[str, bytes, None], default: Any = None) -> Any:
    """
    Safely parse JSON string with error handling.

    Args:
        json_string: JSON string (or UTF-8 bytes) to parse
        default: Default value to return if parsing fails

    Returns:
        Parsed JSON object, or default if parsing fails

    Example:
        body = safe_json_parse(call.body, default={})
    """
    if not json_string:
        return default

    try:
        return json.loads(json_string)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError, ValueError):
        return default


def find_header(headers: Dict[str, str], name: str) -> Optional[str]:
    """
    Look up a header value ignoring the case of its name.

    Args:
        headers: Dictionary of headers
        name: Header name to look for

    Returns:
        Header value, or None if the header is absent
    """
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def decode_body(body: Union[str, bytes, None], encoding: str = 'utf-8') -> str:
    """Decode a request/response body to text, replacing undecodable bytes."""
    if body is None:
        return ''
    if isinstance(body, str):
        return body
    return body.decode(encoding, errors='replace')
