"""
Utility functions for tpsim capture.

Provides helper functions for:
- Query parameter filtering
- Response header selection
- Response body classification (JSON vs opaque)
"""

import json
from typing import Dict, Iterable, Mapping, Optional, Sequence
from urllib.parse import parse_qs, unquote, urlsplit

from ..common.models import Body, JsonBody, OpaqueBody

# Transport plumbing, not part of what a fixture should pin
EXCLUDED_QUERY_PARAMS = frozenset({'access_token', 'format'})

# Response headers kept in fixtures
KEPT_RESPONSE_HEADERS = ('Content-Type',)


def split_url(url: str):
    """
    Split a URL into its decoded path and raw query string.

    Args:
        url: Absolute or relative URL

    Returns:
        Tuple of (path, query string)
    """
    parts = urlsplit(url)
    return unquote(parts.path) or '/', parts.query


def parse_query(query_string: str) -> Dict[str, Sequence[str]]:
    """Parse a query string into name -> list of values, keeping blank values."""
    return parse_qs(query_string, keep_blank_values=True)


def filter_query(
    query: Mapping[str, Sequence[str]],
    excluded: Iterable[str] = EXCLUDED_QUERY_PARAMS
) -> Dict[str, str]:
    """
    Reduce a parsed query to the parameters a fixture should constrain.

    Only the first value of a repeated parameter is kept.

    Args:
        query: Parsed query (name -> values)
        excluded: Parameter names to drop

    Returns:
        Dictionary of name -> first value
    """
    excluded = set(excluded)
    return {
        key: values[0]
        for key, values in query.items()
        if key not in excluded and values
    }


def select_headers(
    headers: Mapping[str, str],
    kept: Sequence[str] = KEPT_RESPONSE_HEADERS
) -> Dict[str, str]:
    """
    Keep only the listed response headers (case-insensitive match).

    The fixture uses the canonical spelling from `kept` as the key and the
    header value verbatim.
    """
    wanted = {name.lower(): name for name in kept}
    return {
        wanted[key.lower()]: value
        for key, value in headers.items()
        if key.lower() in wanted
    }


def looks_like_json(data: bytes) -> bool:
    """True if the stripped payload starts like a JSON object or array."""
    trimmed = data.strip()
    return trimmed[:1] in (b'{', b'[')


def classify_body(content: bytes, content_type: Optional[str]) -> Body:
    """
    Build the fixture body for a captured payload.

    JSON payloads (by Content-Type or by shape) are parsed into a JsonBody.
    Everything else, including a payload that claims to be JSON but does not
    parse, becomes an OpaqueBody holding the decoded text.

    Args:
        content: Raw response bytes
        content_type: Response Content-Type header, if any

    Returns:
        JsonBody or OpaqueBody
    """
    text = content.decode('utf-8', errors='replace')

    if 'json' in (content_type or '') or looks_like_json(content):
        try:
            return JsonBody(json.loads(text))
        except ValueError:
            pass

    return OpaqueBody(text)
