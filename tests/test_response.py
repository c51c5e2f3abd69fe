"""Unit tests for HTTP response serialization."""

from response import HTTPResponse


def test_response_serialization_sets_length_and_default_content_type() -> None:
    response = HTTPResponse(status_code=200, body="hello")

    raw = response.to_bytes()

    assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Content-Type: text/plain; charset=utf-8\r\n" in raw
    assert b"Content-Length: 5\r\n" in raw
    assert raw.endswith(b"\r\n\r\nhello")


def test_list_header_values_become_repeated_lines() -> None:
    response = HTTPResponse(status_code=200, body="ok")
    response.set_header("Set-Cookie", ["a=1", "b=2"])

    raw = response.to_bytes()

    assert b"Set-Cookie: a=1\r\n" in raw
    assert b"Set-Cookie: b=2\r\n" in raw


def test_set_header_replaces_other_casing() -> None:
    response = HTTPResponse(status_code=200, headers={"content-type": "text/html"})

    response.set_header("Content-Type", "application/json;charset=UTF-8")

    assert response.headers == {"Content-Type": "application/json;charset=UTF-8"}
    assert response.get_header("CONTENT-TYPE") == "application/json;charset=UTF-8"


def test_add_header_accumulates_values() -> None:
    response = HTTPResponse(status_code=200)

    response.add_header("Vary", "Origin")
    response.add_header("vary", "Accept")

    assert response.get_header("Vary") == ["Origin", "Accept"]


def test_no_content_response_has_no_body_or_length() -> None:
    response = HTTPResponse(status_code=204, body="ignored")

    raw = response.to_bytes()

    assert raw.startswith(b"HTTP/1.1 204 No Content\r\n")
    assert b"Content-Length" not in raw
    assert b"Content-Type" not in raw
    assert raw.endswith(b"\r\n\r\n")
