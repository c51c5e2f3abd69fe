"""Preflight answer for OPTIONS requests that match no mocked operation."""

from __future__ import annotations

from request import HTTPRequest
from response import HTTPResponse

ALLOWED_METHODS = "POST, PUT, GET, OPTIONS, DELETE, PATCH"
MAX_AGE_SECS = 3600


def is_cors_preflight(request: HTTPRequest, *, enable_cors_policy: bool) -> bool:
    return enable_cors_policy and request.method.upper() == "OPTIONS"


def cors_preflight_response(request: HTTPRequest) -> HTTPResponse:
    requested_headers = request.header("access-control-request-headers") or ""
    response = HTTPResponse(status_code=204)
    response.set_header("Access-Control-Allow-Origin", "*")
    response.set_header("Access-Control-Allow-Methods", ALLOWED_METHODS)
    response.set_header("Access-Control-Allow-Headers", requested_headers)
    response.set_header("Access-Control-Expose-Headers", requested_headers)
    response.set_header("Access-Allow-Credentials", "true")
    response.set_header("Access-Control-Max-Age", str(MAX_AGE_SECS))
    response.set_header("Vary", "Accept-Encoding, Origin")
    return response
