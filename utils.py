"""Utility helpers shared across mock dispatch modules."""

from typing import Any
from urllib.parse import quote, unquote

# Characters allowed unescaped in a URI fragment (RFC 3986).
_FRAGMENT_SAFE = "!$&'()*+,;=:@/?"

MISSING = object()


def encode_fragment(value: str) -> str:
    return quote(value, safe=_FRAGMENT_SAFE)


def decode_path(value: str) -> str:
    """Percent-decode a path; ``+`` stays a literal plus."""
    return unquote(value, encoding="utf-8", errors="replace")


def resolve_json_pointer(document: Any, pointer: str) -> Any:
    """Return the node at an RFC 6901 pointer, or ``MISSING``."""
    if pointer == "":
        return document
    if not pointer.startswith("/"):
        pointer = "/" + pointer

    node = document
    for raw_token in pointer[1:].split("/"):
        token = raw_token.replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict):
            if token not in node:
                return MISSING
            node = node[token]
        elif isinstance(node, list):
            if not token.isdigit() or int(token) >= len(node):
                return MISSING
            node = node[int(token)]
        else:
            return MISSING
    return node


def node_as_text(node: Any) -> str:
    """Scalar text of a JSON node; containers and absent nodes render empty."""
    if node is MISSING or node is None:
        return ""
    if isinstance(node, bool):
        return "true" if node else "false"
    if isinstance(node, (dict, list)):
        return ""
    return str(node)
