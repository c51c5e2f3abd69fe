"""HTTP response model and serializer."""

from dataclasses import dataclass, field
from email.utils import formatdate

from config import SERVER_NAME

REASON_PHRASES: dict[int, str] = {
    100: "Continue",
    200: "OK",
    201: "Created",
    202: "Accepted",
    204: "No Content",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    409: "Conflict",
    413: "Payload Too Large",
    414: "URI Too Long",
    415: "Unsupported Media Type",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
}
BODYLESS_STATUSES = {204, 304}

HeaderValue = str | list[str]


@dataclass(slots=True)
class HTTPResponse:
    """Response under construction.

    A header value may be a list, in which case each value is written as
    its own header line.
    """

    status_code: int
    reason_phrase: str | None = None
    headers: dict[str, HeaderValue] = field(default_factory=dict)
    body: bytes | str = b""
    should_close: bool = False
    content_length_override: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")

    def get_header(self, name: str) -> HeaderValue | None:
        key = self._find_key(name)
        return None if key is None else self.headers[key]

    def set_header(self, name: str, value: HeaderValue) -> None:
        """Set a header, replacing any value stored under another casing."""
        key = self._find_key(name)
        if key is not None:
            del self.headers[key]
        self.headers[name] = list(value) if isinstance(value, list) else value

    def add_header(self, name: str, value: str) -> None:
        key = self._find_key(name)
        if key is None:
            self.headers[name] = value
            return
        existing = self.headers[key]
        if isinstance(existing, list):
            existing.append(value)
        else:
            self.headers[key] = [existing, value]

    def _find_key(self, name: str) -> str | None:
        lowered = name.lower()
        for key in self.headers:
            if key.lower() == lowered:
                return key
        return None

    def to_bytes(self) -> bytes:
        """Serialize the response into HTTP/1.1 wire format bytes."""
        head, body = prepare_response(self)
        return head + body


def prepare_response(response: HTTPResponse) -> tuple[bytes, bytes]:
    reason = response.reason_phrase or REASON_PHRASES.get(response.status_code, "Unknown")
    normalized_headers = dict(response.headers)
    normalized_headers.setdefault(
        "Date",
        formatdate(timeval=None, localtime=False, usegmt=True),
    )
    normalized_headers.setdefault("Server", SERVER_NAME)

    body = response.body if isinstance(response.body, bytes) else response.body.encode("utf-8")
    if response.status_code in BODYLESS_STATUSES:
        body = b""
        normalized_headers.pop("Content-Length", None)
    else:
        if not any(key.lower() == "content-type" for key in normalized_headers):
            normalized_headers["Content-Type"] = "text/plain; charset=utf-8"
        content_length = response.content_length_override
        if content_length is None:
            content_length = len(body)
        normalized_headers["Content-Length"] = str(content_length)

    header_lines = [f"HTTP/1.1 {response.status_code} {reason}"]
    for key, value in normalized_headers.items():
        if isinstance(value, list):
            header_lines.extend(f"{key}: {item}" for item in value)
        else:
            header_lines.append(f"{key}: {value}")
    head = "\r\n".join(header_lines).encode("iso-8859-1", errors="replace") + b"\r\n\r\n"
    return head, body
