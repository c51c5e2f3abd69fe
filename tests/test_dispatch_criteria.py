"""Unit tests for dispatch criteria computation per dispatcher style."""

import json

from dispatch_criteria import (
    DispatchCriteriaComputer,
    extract_from_uri_params,
    extract_from_uri_pattern,
    extract_uri_pattern_params,
    parse_dispatcher_rules,
)
from mock_model import DispatchStyle, Operation
from request import HTTPRequest


def _request(target: str, body: bytes = b"") -> HTTPRequest:
    head = f"POST {target} HTTP/1.1\r\nHost: localhost:8080\r\nContent-Length: {len(body)}\r\n\r\n"
    return HTTPRequest.from_bytes(head.encode("iso-8859-1") + body)


def _operation(dispatcher: DispatchStyle, rules: str | None = None) -> Operation:
    return Operation(
        name="POST /zones/{zone}/areas/{area}",
        method="POST",
        dispatcher=dispatcher,
        dispatcher_rules=rules,
    )


def test_uri_pattern_pairs_are_sorted_by_variable_name() -> None:
    criteria = extract_from_uri_pattern("/zones/{zone}/areas/{area}", "/zones/eu/areas/north")

    assert criteria == "/area=north/zone=eu"


def test_colon_variables_are_used_without_curly_ones() -> None:
    assert extract_uri_pattern_params("/orders/:id/lines/:line", "/orders/7/lines/2") == {
        "id": "7",
        "line": "2",
    }


def test_pattern_mismatch_gives_empty_criteria() -> None:
    assert extract_from_uri_pattern("/orders/{id}", "/customers/7") == ""
    assert extract_from_uri_pattern("/orders", "/orders") == ""


def test_rules_split_on_double_ampersand_or_comma() -> None:
    assert parse_dispatcher_rules("page && size") == ["page", "size"]
    assert parse_dispatcher_rules("page,size") == ["page", "size"]
    assert parse_dispatcher_rules(None) == []


def test_uri_params_follow_rule_order_and_decode_values() -> None:
    uri = "http://localhost/rest/x/1/y?size=2&q=hello+world&page=1"

    assert extract_from_uri_params("page && size", uri) == "?page=1?size=2"
    assert extract_from_uri_params("q", uri) == "?q=hello world"
    assert extract_from_uri_params("missing", uri) == ""
    assert extract_from_uri_params("page", "http://localhost/rest/x/1/y") == ""


def test_none_dispatcher_has_no_criteria() -> None:
    computer = DispatchCriteriaComputer()
    operation = _operation(DispatchStyle.NONE)

    criteria = computer.compute(
        operation, operation.uri_pattern, "/zones/eu/areas/n", _request("/"), None
    )

    assert criteria is None


def test_uri_parts_and_sequence_use_path_variables() -> None:
    computer = DispatchCriteriaComputer()
    request = _request("/rest/geo/1/zones/eu/areas/north")

    for style in (DispatchStyle.URI_PARTS, DispatchStyle.SEQUENCE):
        operation = _operation(style, "zone && area")
        criteria = computer.compute(
            operation, operation.uri_pattern, "/zones/eu/areas/north", request, None
        )
        assert criteria == "/area=north/zone=eu"


def test_uri_elements_concatenates_parts_and_params() -> None:
    computer = DispatchCriteriaComputer()
    operation = _operation(DispatchStyle.URI_ELEMENTS, "verbose")
    request = _request("/rest/geo/1/zones/eu/areas/north?verbose=true&other=1")

    criteria = computer.compute(
        operation, operation.uri_pattern, "/zones/eu/areas/north", request, None
    )

    assert criteria == "/area=north/zone=eu?verbose=true"


def test_json_body_dispatch_and_failure() -> None:
    computer = DispatchCriteriaComputer()
    rules = json.dumps(
        {
            "exp": "/kind",
            "operator": "equals",
            "cases": {"gear": "gear-created", "default": "other"},
        }
    )
    operation = _operation(DispatchStyle.JSON_BODY, rules)
    request = _request("/rest/geo/1/zones/eu/areas/north")

    gear = computer.compute(operation, operation.uri_pattern, "", request, '{"kind": "gear"}')
    broken = computer.compute(operation, operation.uri_pattern, "", request, "not json")

    assert gear == "gear-created"
    assert broken is None


def test_script_dispatch_sees_request_bindings() -> None:
    computer = DispatchCriteriaComputer()
    script = 'return path_params["zone"] + ":" + query["tier"] + ":" + method'
    operation = _operation(DispatchStyle.SCRIPT, script)
    request = _request("/rest/geo/1/zones/eu/areas/north?tier=gold")

    criteria = computer.compute(
        operation, operation.uri_pattern, "/zones/eu/areas/north", request, None
    )

    assert criteria == "eu:gold:POST"


def test_script_failure_gives_no_criteria() -> None:
    class _Exploding:
        def evaluate(self, script: str, bindings: dict) -> str | None:
            raise LookupError(script)

    computer = DispatchCriteriaComputer(script_evaluator=_Exploding())
    operation = _operation(DispatchStyle.SCRIPT, "anything")

    assert computer.compute(operation, operation.uri_pattern, "", _request("/"), None) is None


def test_uri_elements_is_parts_then_params_without_separator() -> None:
    computer = DispatchCriteriaComputer()
    request = _request("/rest/geo/1/zones/eu/areas/north?verbose=true")
    path = "/zones/eu/areas/north"
    pattern = "/zones/{zone}/areas/{area}"

    def criteria(style: DispatchStyle) -> str | None:
        return computer.compute(_operation(style, "verbose"), pattern, path, request, None)

    parts = criteria(DispatchStyle.SEQUENCE)
    params = criteria(DispatchStyle.URI_PARAMS)

    assert criteria(DispatchStyle.URI_ELEMENTS) == f"{parts}{params}"
    assert criteria(DispatchStyle.SEQUENCE) == parts


def test_json_body_with_invalid_regexp_case_gives_no_criteria() -> None:
    computer = DispatchCriteriaComputer()
    rules = json.dumps({"exp": "/kind", "operator": "regexp", "cases": {"[": "bad"}})
    operation = _operation(DispatchStyle.JSON_BODY, rules)

    criteria = computer.compute(
        operation, operation.uri_pattern, "", _request("/"), '{"kind": "gear"}'
    )

    assert criteria is None


def test_json_body_nested_too_deep_gives_no_criteria() -> None:
    computer = DispatchCriteriaComputer()
    rules = json.dumps({"exp": "/kind", "operator": "equals", "cases": {"default": "other"}})
    operation = _operation(DispatchStyle.JSON_BODY, rules)
    body = "[" * 100_000 + "]" * 100_000

    assert computer.compute(operation, operation.uri_pattern, "", _request("/"), body) is None
