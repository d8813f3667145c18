"""
StubTap URL Utilities

Shared URL parsing, normalization, and path pattern matching utilities.
"""

import re
from urllib.parse import urlparse, parse_qs
from typing import Dict, List, Tuple


class URLMatcher:
    """Handles URL splitting and path pattern logic."""

    @staticmethod
    def split_url(url: str) -> Tuple[str, Dict[str, List[str]]]:
        """
        Split a URL (absolute or path-only) into its path and query parameters.

        Args:
            url: URL to split

        Returns:
            Tuple of (path, query parameters as parsed by parse_qs)
        """
        parsed = urlparse(url)
        path = parsed.path or '/'
        return path, parse_qs(parsed.query, keep_blank_values=True)

    @staticmethod
    def pattern_to_regex(pattern: str) -> str:
        """
        Convert a path pattern with wildcards to an anchored regex.

        Supports patterns like:
        - /users/* (any single segment)
        - /users/** (any number of segments)
        - /users/{id} (named parameter, one segment)

        Args:
            pattern: Path pattern

        Returns:
            Regex string anchored at both ends
        """
        parts = re.split(r'(\{[^}]+\}|\*\*|\*)', pattern)
        regex_parts = []
        for part in parts:
            if not part:
                continue
            if part == '**':
                regex_parts.append('.*')
            elif part == '*' or (part.startswith('{') and part.endswith('}')):
                regex_parts.append('[^/]+')
            else:
                regex_parts.append(re.escape(part))
        return f"^{''.join(regex_parts)}$"

    @staticmethod
    def path_matches_pattern(path: str, pattern: str) -> bool:
        """Check if path matches pattern with wildcards."""
        return re.match(URLMatcher.pattern_to_regex(pattern), path) is not None
