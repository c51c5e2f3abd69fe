"""Render ``{{ ... }}`` expressions in stored response content.

Supported expressions:

* ``request.body`` and ``request.body/<json pointer>``
* ``request.path`` and ``request.path[<segment index>]``
* ``request.params[<name>]`` and ``request.headers[<name>]``
* ``now()``, ``now(<strftime format>)``, ``uuid()``, ``randomInt(<min>,<max>)``

Unknown expressions render as an empty string.
"""

from __future__ import annotations

import json
import logging
import random
import re
import time
import uuid
from collections.abc import Callable

from mock_model import Response
from request import HTTPRequest
from utils import MISSING, resolve_json_pointer

logger = logging.getLogger(__name__)

_EXPRESSION = re.compile(r"\{\{\s*(.+?)\s*\}\}")
_INDEXED = re.compile(r"^request\.(path|params|headers)\[\s*['\"]?([^\]'\"]+)['\"]?\s*\]$")
_FUNCTION = re.compile(r"^(\w+)\((.*)\)$")

ContentRenderer = Callable[[str | None, str, HTTPRequest, Response], str]


def render_response_content(
    body: str | None,
    resource_path: str,
    request: HTTPRequest,
    response: Response,
) -> str:
    content = response.content or ""
    if "{{" not in content or "}}" not in content:
        return content

    context = _RenderContext(body=body, resource_path=resource_path, request=request)
    return _EXPRESSION.sub(lambda match: context.resolve(match.group(1)), content)


class _RenderContext:
    def __init__(self, *, body: str | None, resource_path: str, request: HTTPRequest) -> None:
        self._body = body or ""
        self._resource_path = resource_path
        self._request = request
        self._document: object = MISSING

    def resolve(self, expression: str) -> str:
        if expression == "request.body":
            return self._body
        if expression.startswith("request.body/"):
            return self._body_pointer(expression[len("request.body") :])
        if expression == "request.path":
            return self._resource_path

        indexed = _INDEXED.match(expression)
        if indexed is not None:
            return self._indexed(indexed.group(1), indexed.group(2))

        function = _FUNCTION.match(expression)
        if function is not None:
            return _call_function(function.group(1), function.group(2))

        logger.debug("Unknown template expression: %s", expression)
        return ""

    def _body_pointer(self, pointer: str) -> str:
        if self._document is MISSING:
            try:
                self._document = json.loads(self._body)
            except (json.JSONDecodeError, RecursionError):
                self._document = None
        node = resolve_json_pointer(self._document, pointer)
        if node is MISSING or node is None:
            return ""
        if isinstance(node, (dict, list)):
            return json.dumps(node)
        if isinstance(node, bool):
            return "true" if node else "false"
        return str(node)

    def _indexed(self, kind: str, key: str) -> str:
        if kind == "path":
            segments = [segment for segment in self._resource_path.split("/") if segment]
            if key.isdigit() and int(key) < len(segments):
                return segments[int(key)]
            return ""
        if kind == "params":
            return self._request.query_param(key) or ""
        return self._request.header(key) or ""


def _call_function(name: str, raw_args: str) -> str:
    args = [arg.strip().strip("'\"") for arg in raw_args.split(",")] if raw_args.strip() else []
    if name == "now":
        if args:
            return time.strftime(args[0], time.gmtime())
        return str(int(time.time() * 1000))
    if name == "uuid":
        return str(uuid.uuid4())
    if name == "randomInt":
        try:
            low, high = (int(args[0]), int(args[1])) if len(args) >= 2 else (0, 2**31 - 1)
        except ValueError:
            return ""
        return str(random.randint(min(low, high), max(low, high)))
    logger.debug("Unknown template function: %s", name)
    return ""
