"""Unit tests for exact and mounted route resolution."""

from request import HTTPRequest
from response import HTTPResponse
from router import Router


def _handler_ok(_request: HTTPRequest) -> HTTPResponse:
    return HTTPResponse(status_code=200, body="ok")


def _handler_mock(_request: HTTPRequest) -> HTTPResponse:
    return HTTPResponse(status_code=200, body="mock")


def test_router_resolves_exact_method_and_path() -> None:
    router = Router()
    router.add_route("get", "/_metrics", _handler_ok)

    resolved = router.resolve("GET", "/_metrics")

    assert resolved is _handler_ok


def test_router_returns_none_for_unknown_path() -> None:
    router = Router()
    router.add_route("GET", "/_metrics", _handler_ok)

    assert router.resolve("GET", "/missing") is None


def test_mount_matches_every_method_below_prefix() -> None:
    router = Router()
    router.mount("/rest/", _handler_mock)

    assert router.resolve("PATCH", "/rest/widgets/1.0/widgets/42") is _handler_mock
    assert router.resolve("OPTIONS", "/rest/anything") is _handler_mock
    assert router.resolve("GET", "/rest") is None
    assert router.resolve("GET", "/restful/x") is None


def test_exact_route_wins_over_mount() -> None:
    router = Router()
    router.mount("/rest", _handler_mock)
    router.add_route("GET", "/rest/_health", _handler_ok)

    assert router.resolve("GET", "/rest/_health") is _handler_ok


def test_router_rejects_invalid_path() -> None:
    router = Router()

    try:
        router.add_route("GET", "missing-slash", _handler_ok)
    except ValueError as exc:
        assert "path must start" in str(exc)
    else:
        raise AssertionError("Expected ValueError for invalid route path")
