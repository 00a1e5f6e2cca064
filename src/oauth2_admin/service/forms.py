"""
Free-text form shaping.

The admin console submits ``redirect_uris`` as a textarea (one URI per line) and ``scopes`` as a single line
(space-delimited). API callers may also send JSON arrays. Both shapes go through the same rules here:

* ``redirect_uris``: split every item on newlines.
* ``scopes``: split every item on any whitespace.
* Every resulting token is trimmed and empty tokens are discarded.
* Set-valued fields keep the first occurrence of each token, in input order.

Whether an empty result is acceptable is decided by the request model that calls these helpers.
"""

import re
from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import urlsplit

FreeText = Union[str, Sequence[str], None]

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def _items(value: FreeText) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [item for item in value if item is not None]


def dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def split_lines(value: FreeText) -> List[str]:
    """Split on newlines, trim, and drop blank entries. Order and duplicates are preserved."""
    lines: List[str] = []
    for item in _items(value):
        lines.extend(line.strip() for line in item.splitlines())
    return [line for line in lines if line]


def split_words(value: FreeText) -> List[str]:
    """Split on whitespace and drop empty tokens."""
    words: List[str] = []
    for item in _items(value):
        words.extend(item.split())
    return words


def parse_redirect_uris(value: FreeText) -> List[str]:
    return split_lines(value)


def parse_scopes(value: FreeText) -> List[str]:
    return dedupe(split_words(value))


def parse_tokens(value: FreeText) -> List[str]:
    """Enumerated token lists (grant and response types) accept the same whitespace-delimited shapes as scopes."""
    return dedupe(split_words(value))


def is_absolute_uri(value: str) -> bool:
    """
    True for syntactically valid absolute URIs.

    An absolute URI has a scheme and either an authority (``https://host/cb``) or a path (``com.example.app:/cb``).
    Fragments are not allowed in redirect targets and neither is embedded whitespace.
    """
    if not value or any(c.isspace() for c in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME.match(parts.scheme):
        return False
    if parts.fragment:
        return False
    if parts.netloc:
        try:
            # Raises on malformed ports such as "host:abc".
            _ = parts.port
        except ValueError:
            return False
        return parts.hostname is not None
    return bool(parts.path)


def invalid_uris(values: Iterable[str]) -> List[str]:
    return [value for value in values if not is_absolute_uri(value)]


def unknown_tokens(values: Iterable[str], allowed: Sequence[str]) -> List[str]:
    return [value for value in values if value not in allowed]


def optional_url(value: Optional[str]) -> Optional[str]:
    """Blank optional URLs collapse to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
