"""Unit tests for template expressions in stored response content."""

import re

from mock_model import Response
from request import HTTPRequest
from response_renderer import render_response_content


def _request() -> HTTPRequest:
    raw = (
        b"POST /rest/widgets/1.0/widgets/42?page=3 HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"X-Trace: trace-1\r\n"
        b"\r\n"
    )
    return HTTPRequest.from_bytes(raw)


def _render(content: str, body: str | None = None, path: str = "/widgets/42") -> str:
    response = Response(operation_id="widgets-1.0-POST /widgets", name="r", content=content)
    return render_response_content(body, path, _request(), response)


def test_content_without_expressions_is_returned_unchanged() -> None:
    assert _render('{"id": 42}') == '{"id": 42}'
    assert _render("only {{ opening") == "only {{ opening"


def test_request_body_expressions() -> None:
    body = '{"kind": "gear", "tags": ["a"], "size": {"w": 1}, "ok": true}'

    assert _render("{{ request.body }}", body) == body
    assert _render("{{ request.body/kind }}", body) == "gear"
    assert _render("{{ request.body/tags/0 }}", body) == "a"
    assert _render("{{ request.body/size }}", body) == '{"w": 1}'
    assert _render("{{ request.body/ok }}", body) == "true"
    assert _render("[{{ request.body/missing }}]", body) == "[]"
    assert _render("[{{ request.body/kind }}]", "not json") == "[]"


def test_request_path_params_and_headers() -> None:
    assert _render("{{ request.path }}") == "/widgets/42"
    assert _render("{{ request.path[1] }}") == "42"
    assert _render("[{{ request.path[5] }}]") == "[]"
    assert _render("{{ request.params[page] }}") == "3"
    assert _render("{{ request.headers['x-trace'] }}") == "trace-1"


def test_functions() -> None:
    assert re.fullmatch(r"\d{13}", _render("{{ now() }}"))
    assert re.fullmatch(r"\d{4}", _render("{{ now('%Y') }}"))
    assert re.fullmatch(r"[0-9a-f-]{36}", _render("{{ uuid() }}"))
    assert _render("{{ randomInt(5, 5) }}") == "5"
    assert _render("[{{ randomInt(a, b) }}]") == "[]"


def test_unknown_expressions_render_empty() -> None:
    assert _render("a{{ nonsense }}b{{ shout() }}c") == "abc"
