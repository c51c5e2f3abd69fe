"""Mock definitions: services, operations, constraints and stored responses."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

OPERATION_VERB_PREFIXES = ("GET ", "POST ", "PUT ", "DELETE ", "PATCH ", "OPTIONS ")
DEFAULT_STATUS = "200"


class DispatchStyle(str, Enum):
    NONE = "NONE"
    SEQUENCE = "SEQUENCE"
    SCRIPT = "SCRIPT"
    URI_PARAMS = "URI_PARAMS"
    URI_PARTS = "URI_PARTS"
    URI_ELEMENTS = "URI_ELEMENTS"
    JSON_BODY = "JSON_BODY"

    @classmethod
    def parse(cls, value: object) -> "DispatchStyle":
        if value is None or value == "":
            return cls.NONE
        if isinstance(value, DispatchStyle):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise ValueError(f"unknown dispatcher: {value}") from exc


class ParameterLocation(str, Enum):
    HEADER = "header"
    QUERY = "query"
    PATH = "path"


@dataclass(frozen=True, slots=True)
class Header:
    name: str
    values: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.values:
            raise ValueError(f"header {self.name} needs at least one value")


@dataclass(frozen=True, slots=True)
class ParameterConstraint:
    name: str
    in_: ParameterLocation = ParameterLocation.QUERY
    required: bool = False
    recopy: bool = False
    must_match_regexp: str | None = None


@dataclass(frozen=True, slots=True)
class Operation:
    name: str
    method: str
    resource_paths: frozenset[str] = frozenset()
    dispatcher: DispatchStyle = DispatchStyle.NONE
    dispatcher_rules: str | None = None
    default_delay: int | None = None
    parameter_constraints: tuple[ParameterConstraint, ...] = ()

    @property
    def uri_pattern(self) -> str:
        """Operation name without a leading ``VERB `` prefix."""
        if self.name.startswith(OPERATION_VERB_PREFIXES):
            return self.name[self.name.index(" ") + 1 :]
        return self.name


@dataclass(frozen=True, slots=True)
class Service:
    name: str
    version: str
    operations: tuple[Operation, ...] = ()


@dataclass(frozen=True, slots=True)
class Response:
    operation_id: str
    name: str
    content: str = ""
    media_type: str | None = None
    status: str | None = DEFAULT_STATUS
    headers: tuple[Header, ...] = ()
    dispatch_criteria: str | None = None


def build_operation_id(service: Service, operation: Operation) -> str:
    return f"{service.name}-{service.version}-{operation.name}"


def service_from_dict(payload: dict[str, Any]) -> tuple[Service, list[Response]]:
    """Build a service and its responses from a JSON-style mapping."""
    name = str(payload.get("name", "")).strip()
    version = str(payload.get("version", "")).strip()
    if not name or not version:
        raise ValueError("service name and version are required")

    operations: list[Operation] = []
    responses_raw: list[tuple[Operation, list[Any]]] = []
    for operation_raw in payload.get("operations", []) or []:
        if not isinstance(operation_raw, dict):
            raise ValueError("operations must be objects")
        operation = _operation_from_dict(operation_raw)
        operations.append(operation)
        responses_raw.append((operation, list(operation_raw.get("responses", []) or [])))

    service = Service(name=name, version=version, operations=tuple(operations))
    responses = [
        _response_from_dict(item, operation_id=build_operation_id(service, operation))
        for operation, items in responses_raw
        for item in items
    ]
    return service, responses


def _operation_from_dict(payload: dict[str, Any]) -> Operation:
    name = str(payload.get("name", "")).strip()
    if not name:
        raise ValueError("operation name is required")
    method = str(payload.get("method", "")).strip().upper()
    if not method:
        method = name.split(" ", 1)[0].upper() if name.startswith(OPERATION_VERB_PREFIXES) else ""
    if not method:
        raise ValueError(f"operation {name} has no method")

    default_delay = payload.get("default_delay")
    rules = payload.get("dispatcher_rules")
    return Operation(
        name=name,
        method=method,
        resource_paths=frozenset(str(path) for path in payload.get("resource_paths", []) or []),
        dispatcher=DispatchStyle.parse(payload.get("dispatcher")),
        dispatcher_rules=None if rules is None else str(rules),
        default_delay=None if default_delay is None else int(default_delay),
        parameter_constraints=tuple(
            _constraint_from_dict(item) for item in payload.get("parameter_constraints", []) or []
        ),
    )


def _constraint_from_dict(payload: dict[str, Any]) -> ParameterConstraint:
    name = str(payload.get("name", "")).strip()
    if not name:
        raise ValueError("parameter constraint name is required")
    regexp = payload.get("must_match_regexp")
    if regexp not in (None, ""):
        try:
            re.compile(str(regexp))
        except re.error as exc:
            raise ValueError(f"invalid must_match_regexp for {name}: {exc}") from exc
    return ParameterConstraint(
        name=name,
        in_=ParameterLocation(str(payload.get("in", "query")).lower()),
        required=bool(payload.get("required", False)),
        recopy=bool(payload.get("recopy", False)),
        must_match_regexp=None if regexp in (None, "") else str(regexp),
    )


def _response_from_dict(payload: dict[str, Any], *, operation_id: str) -> Response:
    name = str(payload.get("name", "")).strip()
    if not name:
        raise ValueError("response name is required")

    headers: list[Header] = []
    for header_raw in payload.get("headers", []) or []:
        values = header_raw.get("values")
        if values is None:
            values = [header_raw.get("value", "")]
        elif isinstance(values, str):
            values = [values]
        headers.append(Header(name=str(header_raw["name"]), values=tuple(str(v) for v in values)))

    status = payload.get("status", DEFAULT_STATUS)
    media_type = payload.get("media_type")
    criteria = payload.get("dispatch_criteria")
    return Response(
        operation_id=operation_id,
        name=name,
        content=str(payload.get("content", "") or ""),
        media_type=None if media_type in (None, "") else str(media_type),
        status=None if status is None else str(status),
        headers=tuple(headers),
        dispatch_criteria=None if criteria is None else str(criteria),
    )
