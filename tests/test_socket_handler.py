"""Unit tests for request framing on raw socket buffers."""

import pytest

from config import MAX_HEADER_BYTES
from socket_handler import (
    HeaderTooLargeError,
    MalformedRequestError,
    extract_http_request_message,
)


def test_incomplete_headers_wait_for_more_bytes() -> None:
    assert extract_http_request_message(b"GET / HTTP/1.1\r\nHost: x\r\n") is None


def test_content_length_framing_keeps_pipelined_leftover() -> None:
    first = b"POST /a HTTP/1.1\r\nHost: x\r\nContent-Length: 3\r\n\r\nabc"
    second = b"GET /b HTTP/1.1\r\nHost: x\r\n\r\n"

    extracted = extract_http_request_message(first + second)

    assert extracted == (first, second)


def test_partial_body_waits_for_more_bytes() -> None:
    raw = b"POST /a HTTP/1.1\r\nHost: x\r\nContent-Length: 10\r\n\r\nabc"

    assert extract_http_request_message(raw) is None


def test_chunked_framing_finds_terminating_chunk() -> None:
    raw = b"POST /a HTTP/1.1\r\nHost: x\r\nTransfer-Encoding: chunked\r\n\r\n3\r\nabc\r\n0\r\n\r\n"

    assert extract_http_request_message(raw) == (raw, b"")
    assert extract_http_request_message(raw[:-4]) is None


def test_invalid_framing_headers_raise() -> None:
    with pytest.raises(MalformedRequestError):
        extract_http_request_message(b"POST /a HTTP/1.1\r\nContent-Length: x\r\n\r\n")
    with pytest.raises(HeaderTooLargeError) as exc_info:
        extract_http_request_message(b"GET / HTTP/1.1\r\nX: " + b"a" * (MAX_HEADER_BYTES + 1))

    assert exc_info.value.status_code == 431
