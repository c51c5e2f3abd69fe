"""Reduce a live request to the dispatch criteria key of stored responses.

Criteria formats are shared with response registration:

* path variables: ``/name=value`` pairs sorted by variable name,
* query parameters: ``?name=value`` pairs in the order the rules list them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote_plus

from json_evaluation import JsonEvaluationSpecification, JsonMappingError, evaluate
from mock_model import DispatchStyle, Operation
from request import HTTPRequest
from script_evaluator import PythonScriptEvaluator, ScriptEvaluator

logger = logging.getLogger(__name__)

_CURLY_VARIABLE = re.compile(r"\{([^{}/]+)\}")
_COLON_VARIABLE = re.compile(r":([^:/]+)")
_RULE_SEPARATOR = re.compile(r"\s*(?:&&|,)\s*")


def extract_uri_pattern_params(pattern: str, resource_path: str) -> dict[str, str]:
    """Map path variable names of ``pattern`` to their values in ``resource_path``.

    Variables are ``{name}`` segments, or ``:name`` segments when the
    pattern has no curly variable.
    """
    variable = _CURLY_VARIABLE if "/{" in pattern else _COLON_VARIABLE
    names = variable.findall(pattern)
    if not names:
        return {}

    literals = variable.split(pattern)[::2]
    regex = "(.+)".join(re.escape(literal) for literal in literals)
    match = re.fullmatch(regex, resource_path)
    if match is None:
        return {}
    return dict(zip(names, match.groups()))


def extract_from_uri_pattern(pattern: str, resource_path: str) -> str:
    params = extract_uri_pattern_params(pattern, resource_path)
    return "".join(f"/{name}={params[name]}" for name in sorted(params))


def parse_dispatcher_rules(rules: str | None) -> list[str]:
    if not rules:
        return []
    return [name for name in _RULE_SEPARATOR.split(rules.strip()) if name]


def extract_from_uri_params(rules: str | None, uri: str) -> str:
    if "?" not in uri or "=" not in uri:
        return ""

    query = uri[uri.index("?") + 1 :]
    params: dict[str, str] = {}
    for pair in query.split("&"):
        if "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        params[unquote_plus(key)] = unquote_plus(value)

    return "".join(
        f"?{name}={params[name]}" for name in parse_dispatcher_rules(rules) if name in params
    )


def full_request_uri(request: HTTPRequest) -> str:
    url = request.request_url()
    if request.query_string:
        return f"{url}?{request.query_string}"
    return url


@dataclass(frozen=True, slots=True)
class DispatchContext:
    operation: Operation
    uri_pattern: str
    # Percent-decoded resource path.
    resource_path: str
    request: HTTPRequest
    body: str | None


CriteriaHandler = Callable[[DispatchContext], "str | None"]


class DispatchCriteriaComputer:
    """One handler per dispatcher style; a failing handler yields ``None``."""

    def __init__(self, script_evaluator: ScriptEvaluator | None = None) -> None:
        self._script_evaluator = script_evaluator or PythonScriptEvaluator()
        self._handlers: dict[DispatchStyle, CriteriaHandler] = {
            DispatchStyle.NONE: self._no_criteria,
            DispatchStyle.SEQUENCE: self._from_uri_pattern,
            DispatchStyle.URI_PARTS: self._from_uri_pattern,
            DispatchStyle.URI_PARAMS: self._from_uri_params,
            DispatchStyle.URI_ELEMENTS: self._from_uri_elements,
            DispatchStyle.JSON_BODY: self._from_json_body,
            DispatchStyle.SCRIPT: self._from_script,
        }
        missing = set(DispatchStyle) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no criteria handler for {sorted(style.value for style in missing)}")

    def compute(
        self,
        operation: Operation,
        uri_pattern: str,
        resource_path: str,
        request: HTTPRequest,
        body: str | None,
    ) -> str | None:
        context = DispatchContext(
            operation=operation,
            uri_pattern=uri_pattern,
            resource_path=resource_path,
            request=request,
            body=body,
        )
        return self._handlers[operation.dispatcher](context)

    def _no_criteria(self, context: DispatchContext) -> str | None:
        return None

    def _from_uri_pattern(self, context: DispatchContext) -> str | None:
        return extract_from_uri_pattern(context.uri_pattern, context.resource_path)

    def _from_uri_params(self, context: DispatchContext) -> str | None:
        return extract_from_uri_params(
            context.operation.dispatcher_rules, full_request_uri(context.request)
        )

    def _from_uri_elements(self, context: DispatchContext) -> str | None:
        return extract_from_uri_pattern(
            context.uri_pattern, context.resource_path
        ) + extract_from_uri_params(
            context.operation.dispatcher_rules, full_request_uri(context.request)
        )

    def _from_json_body(self, context: DispatchContext) -> str | None:
        try:
            specification = JsonEvaluationSpecification.from_json(context.operation.dispatcher_rules)
            return evaluate(context.body, specification)
        except JsonMappingError:
            logger.exception(
                "Dispatching rules of operation %s cannot be evaluated against request body",
                context.operation.name,
            )
            return None

    def _from_script(self, context: DispatchContext) -> str | None:
        try:
            return self._script_evaluator.evaluate(
                context.operation.dispatcher_rules or "", script_bindings(context)
            )
        except Exception:
            logger.exception("Error during script evaluation for operation %s", context.operation.name)
            return None


def script_bindings(context: DispatchContext) -> dict[str, Any]:
    request = context.request
    return {
        "method": request.method,
        "headers": dict(request.headers),
        "query": {name: values[0] for name, values in request.query_params.items() if values},
        "query_params": {name: list(values) for name, values in request.query_params.items()},
        "body": context.body,
        "path": context.resource_path,
        "path_params": extract_uri_pattern_params(context.uri_pattern, context.resource_path),
        "request": request,
    }
