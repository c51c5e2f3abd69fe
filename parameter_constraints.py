"""Validation and header recopy rules declared on mock operations."""

from __future__ import annotations

import re

from mock_model import Operation, ParameterConstraint, ParameterLocation
from request import HTTPRequest

VIOLATION_SUFFIX = ". Check parameter constraints."


def validate_constraint(request: HTTPRequest, constraint: ParameterConstraint) -> str | None:
    """Return a violation message for one constraint, or ``None``.

    Path parameters are not checked: once the operation matched, every
    path variable has a value.
    """
    if constraint.in_ == ParameterLocation.HEADER:
        value = request.header(constraint.name)
    elif constraint.in_ == ParameterLocation.QUERY:
        value = request.query_param(constraint.name)
    else:
        return None

    if value is None:
        if constraint.required:
            return f"Parameter {constraint.name} is required"
        return None

    if constraint.must_match_regexp is not None:
        if re.fullmatch(constraint.must_match_regexp, value) is None:
            return f"Parameter {constraint.name} should match {constraint.must_match_regexp}"
    return None


def validate_parameter_constraints(operation: Operation, request: HTTPRequest) -> str | None:
    for constraint in operation.parameter_constraints:
        violation = validate_constraint(request, constraint)
        if violation is not None:
            return violation
    return None


def recopied_headers(operation: Operation, request: HTTPRequest) -> dict[str, str]:
    """Request headers to echo back, keyed by the constraint's declared name."""
    headers: dict[str, str] = {}
    for constraint in operation.parameter_constraints:
        if constraint.in_ != ParameterLocation.HEADER or not constraint.recopy:
            continue
        value = request.header(constraint.name)
        if value is not None:
            headers[constraint.name] = value
    return headers
