"""Value tree normalization and token context construction.

Extracted value trees contain scalars, lists and dicts. Before rendering,
every list becomes a Sequence: it still iterates and indexes like a list,
but renders as its space-joined elements when used as plain text.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from markupsafe import Markup

DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}


class Sequence(list):
    """Ordered sequence value whose text form joins elements with a space.

    Examples:
        >>> str(Sequence(["a", "b", "c"]))
        'a b c'
        >>> Sequence(["a", "b"])[1]
        'b'
    """

    def __str__(self) -> str:
        return " ".join(str(item) for item in self)

    def __html__(self) -> Markup:
        # Escapes plain items and keeps Markup items (``html: true`` fields)
        return Markup(" ").join(self)

    def __repr__(self) -> str:
        return f"Sequence({list.__repr__(self)})"


def normalize(value: Any) -> Any:
    """Return a copy of ``value`` with every list turned into a Sequence.

    Recurses into nested sequences and mappings.
    """
    if isinstance(value, (list, tuple)):
        return Sequence(normalize(item) for item in value)
    if isinstance(value, Mapping):
        return {key: normalize(item) for key, item in value.items()}
    return value


def url_origin(url: str) -> str:
    """Origin (scheme, host and non-default port) of an absolute URL.

    Examples:
        >>> url_origin("https://Example.com:443/a/b?x=1")
        'https://example.com'
        >>> url_origin("http://localhost:8080/x")
        'http://localhost:8080'
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def build_token_context(tree: Mapping[str, Any], url: str) -> dict[str, Any]:
    """Normalize an extracted tree and add the URL-derived tokens.

    Args:
        tree: Field name to extracted value.
        url: The resolved URL the tree was extracted from.

    Returns:
        The template token context.
    """
    tokens: dict[str, Any] = {name: normalize(value) for name, value in tree.items()}
    tokens["BASE_URL"] = Sequence([url_origin(url)])
    tokens["FULL_URL"] = Sequence([url])
    return tokens
