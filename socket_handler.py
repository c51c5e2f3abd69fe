"""Low-level socket read/write utilities."""

from __future__ import annotations

import socket

from config import (
    BUFFER_SIZE,
    MAX_BODY_BYTES,
    MAX_HEADER_BYTES,
    MAX_REQUEST_BYTES,
    READ_CHUNK_SIZE,
)
from response import HTTPResponse, prepare_response


class HTTPReadError(Exception):
    """Raised when a client request cannot be safely read from the socket."""

    status_code = 400
    reason = "Bad Request"


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request."""


class HeaderTooLargeError(HTTPReadError):
    """Raised when HTTP headers exceed configured maximum size."""

    status_code = 431
    reason = "Request Header Fields Too Large"


class PayloadTooLargeError(HTTPReadError):
    """Raised when request body exceeds configured maximum size."""

    status_code = 413
    reason = "Payload Too Large"


class SocketTimeoutError(HTTPReadError):
    """Raised when a client times out while sending request bytes."""

    status_code = 408
    reason = "Request Timeout"


def _header_value(header_bytes: bytes, wanted: str) -> str | None:
    for line in header_bytes.decode("iso-8859-1").split("\r\n")[1:]:
        if not line:
            continue
        if ":" not in line:
            raise MalformedRequestError("Malformed header while reading request")
        name, value = line.split(":", 1)
        if name.strip().lower() == wanted:
            return value.strip()
    return None


def _chunked_body_complete_length(encoded_body: bytes) -> int | None:
    position = 0
    decoded_size = 0
    while True:
        line_end = encoded_body.find(b"\r\n", position)
        if line_end == -1:
            return None
        size_token = encoded_body[position:line_end].split(b";", 1)[0].strip()
        try:
            chunk_size = int(size_token, 16)
        except ValueError as exc:
            raise MalformedRequestError("Malformed chunk size") from exc
        position = line_end + 2

        if chunk_size == 0:
            while True:
                trailer_end = encoded_body.find(b"\r\n", position)
                if trailer_end == -1:
                    return None
                if trailer_end == position:
                    return trailer_end + 2
                position = trailer_end + 2

        if len(encoded_body) < position + chunk_size + 2:
            return None
        decoded_size += chunk_size
        if decoded_size > MAX_BODY_BYTES:
            raise PayloadTooLargeError("Decoded chunked body exceeded MAX_BODY_BYTES")
        position += chunk_size + 2


def extract_http_request_message(buffer: bytes) -> tuple[bytes, bytes] | None:
    """Extract one complete HTTP request from a bytes buffer, if present."""
    if len(buffer) > MAX_REQUEST_BYTES:
        raise PayloadTooLargeError("Request exceeded MAX_REQUEST_BYTES")

    header_end_index = buffer.find(b"\r\n\r\n")
    if header_end_index == -1:
        if len(buffer) > MAX_HEADER_BYTES:
            raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")
        return None
    if header_end_index + 4 > MAX_HEADER_BYTES:
        raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")

    header_bytes = buffer[:header_end_index]
    body_start = header_end_index + 4
    transfer_encoding = (_header_value(header_bytes, "transfer-encoding") or "").lower()
    if "chunked" in transfer_encoding:
        complete_body_length = _chunked_body_complete_length(buffer[body_start:])
        if complete_body_length is None:
            return None
        request_length = body_start + complete_body_length
    else:
        raw_length = _header_value(header_bytes, "content-length")
        try:
            expected_body_length = int(raw_length) if raw_length is not None else 0
        except ValueError as exc:
            raise MalformedRequestError("Invalid Content-Length header") from exc
        if expected_body_length < 0:
            raise MalformedRequestError("Negative Content-Length header")
        if expected_body_length > MAX_BODY_BYTES:
            raise PayloadTooLargeError("Body exceeded MAX_BODY_BYTES")
        request_length = body_start + expected_body_length
        if len(buffer) < request_length:
            return None

    return buffer[:request_length], buffer[request_length:]


def read_http_request_message(
    client_socket: socket.socket,
    initial_buffer: bytes = b"",
) -> tuple[bytes, bytes]:
    """Read one HTTP/1.1 request and return (request_bytes, leftover_bytes)."""
    buffer = bytearray(initial_buffer)

    while True:
        extracted = extract_http_request_message(bytes(buffer))
        if extracted is not None:
            return extracted

        try:
            chunk = client_socket.recv(max(BUFFER_SIZE, READ_CHUNK_SIZE))
        except socket.timeout as exc:
            raise SocketTimeoutError("Timed out waiting for request bytes") from exc

        if not chunk:
            if not buffer:
                return b"", b""
            raise MalformedRequestError("Connection closed before request completed")

        buffer.extend(chunk)


def write_http_response_message(client_socket: socket.socket, response: HTTPResponse) -> int:
    """Write a complete response and return the number of bytes sent."""
    head, body = prepare_response(response)
    client_socket.sendall(head + body)
    return len(head) + len(body)
