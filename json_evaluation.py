"""Evaluate a JSON request body against a dispatch specification.

A specification looks like::

    {
        "exp": "/country",
        "operator": "equals",
        "cases": {"Belgium": "Belgian response", "default": "Other response"}
    }

``exp`` is a JSON Pointer into the body. The evaluation result is the
value of the first matching case, or of ``default``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from utils import MISSING, node_as_text, resolve_json_pointer

DEFAULT_CASE = "default"
FOUND_CASE = "found"
_RANGE_PATTERN = re.compile(r"^([\[\]])\s*(-?\d+(?:\.\d+)?)\s*;\s*(-?\d+(?:\.\d+)?)\s*([\[\]])$")


class JsonMappingError(ValueError):
    """Raised for malformed specifications or bodies that are not JSON."""


class EvaluationOperator(str, Enum):
    EQUALS = "equals"
    RANGE = "range"
    SIZE = "size"
    REGEXP = "regexp"
    PRESENCE = "presence"


@dataclass(frozen=True, slots=True)
class JsonEvaluationSpecification:
    exp: str
    operator: EvaluationOperator
    cases: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, text: str | None) -> "JsonEvaluationSpecification":
        if not text:
            raise JsonMappingError("dispatcher rules are empty")
        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as exc:
            raise JsonMappingError(f"dispatcher rules are not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise JsonMappingError("dispatcher rules must be a JSON object")

        exp = payload.get("exp")
        if not isinstance(exp, str):
            raise JsonMappingError("specification needs a string 'exp'")
        try:
            operator = EvaluationOperator(str(payload.get("operator", "")).lower())
        except ValueError as exc:
            raise JsonMappingError(f"unknown operator: {payload.get('operator')}") from exc

        cases = payload.get("cases", {})
        if not isinstance(cases, dict):
            raise JsonMappingError("'cases' must be an object")
        if operator == EvaluationOperator.REGEXP:
            for case in cases:
                if str(case) == DEFAULT_CASE:
                    continue
                try:
                    re.compile(str(case))
                except re.error as exc:
                    raise JsonMappingError(f"invalid regexp case {case!r}: {exc}") from exc
        return cls(exp=exp, operator=operator, cases={str(k): str(v) for k, v in cases.items()})

    @property
    def default(self) -> str | None:
        return self.cases.get(DEFAULT_CASE)


def evaluate(body: str | None, specification: JsonEvaluationSpecification) -> str | None:
    try:
        document = json.loads(body or "")
    except (json.JSONDecodeError, RecursionError) as exc:
        raise JsonMappingError(f"request body is not valid JSON: {exc}") from exc

    node = resolve_json_pointer(document, specification.exp)
    operator = specification.operator

    if operator == EvaluationOperator.PRESENCE:
        if node is MISSING:
            return specification.default
        return specification.cases.get(FOUND_CASE, specification.default)

    if operator == EvaluationOperator.EQUALS:
        text = node_as_text(node)
        for case, result in specification.cases.items():
            if case != DEFAULT_CASE and case == text:
                return result
        return specification.default

    if operator == EvaluationOperator.REGEXP:
        text = node_as_text(node)
        for case, result in specification.cases.items():
            if case != DEFAULT_CASE and re.fullmatch(case, text):
                return result
        return specification.default

    if operator == EvaluationOperator.SIZE:
        measured: float | None = float(len(node)) if isinstance(node, list) else None
    else:
        measured = _as_number(node)
    if measured is None:
        return specification.default
    for case, result in specification.cases.items():
        if case != DEFAULT_CASE and _in_range(case, measured):
            return result
    return specification.default


def _as_number(node: Any) -> float | None:
    if isinstance(node, bool):
        return None
    if isinstance(node, (int, float)):
        return float(node)
    if isinstance(node, str):
        try:
            return float(node)
        except ValueError:
            return None
    return None


def _in_range(case: str, value: float) -> bool:
    """``[a;b]`` is inclusive; a reversed bracket excludes that bound."""
    match = _RANGE_PATTERN.match(case.strip())
    if match is None:
        return False
    opening, lower, upper, closing = match.groups()
    low, high = float(lower), float(upper)
    above = value >= low if opening == "[" else value > low
    below = value <= high if closing == "]" else value < high
    return above and below
