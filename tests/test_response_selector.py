"""Unit tests for tiered response lookup and Accept-based choice."""

from mock_model import Response
from request import HTTPRequest
from response_selector import ResponseSelector, select_by_media_type

OP_ID = "widgets-1.0-GET /widgets/{id}"


class _SpyRepository:
    def __init__(self, responses: list[Response]) -> None:
        self.responses = responses
        self.calls: list[str] = []

    def find_service(self, name: str, version: str) -> None:
        return None

    def find_responses_by_criteria(
        self, operation_id: str, dispatch_criteria: str | None
    ) -> list[Response]:
        self.calls.append("criteria")
        return [r for r in self.responses if r.dispatch_criteria == dispatch_criteria]

    def find_responses_by_name(self, operation_id: str, name: str | None) -> list[Response]:
        self.calls.append("name")
        return [r for r in self.responses if name is not None and r.name == name]

    def find_responses(self, operation_id: str) -> list[Response]:
        self.calls.append("all")
        return list(self.responses)


def _request(accept: str | None = None) -> HTTPRequest:
    accept_line = f"Accept: {accept}\r\n" if accept else ""
    raw = f"GET /rest/widgets/1.0/widgets/42 HTTP/1.1\r\nHost: localhost\r\n{accept_line}\r\n"
    return HTTPRequest.from_bytes(raw.encode("iso-8859-1"))


def _responses() -> list[Response]:
    return [
        Response(OP_ID, "json-42", media_type="application/json", dispatch_criteria="/id=42"),
        Response(OP_ID, "xml-42", media_type="application/xml", dispatch_criteria="/id=42"),
        Response(OP_ID, "gear-created", media_type="application/json"),
    ]


def test_criteria_tier_wins_and_stops_lookup() -> None:
    repository = _SpyRepository(_responses())

    response = ResponseSelector(repository).select(OP_ID, "/id=42", _request())

    assert response is not None
    assert response.name == "json-42"
    assert repository.calls == ["criteria"]


def test_accept_header_picks_matching_media_type() -> None:
    repository = _SpyRepository(_responses())

    response = ResponseSelector(repository).select(OP_ID, "/id=42", _request("application/xml"))

    assert response is not None
    assert response.name == "xml-42"


def test_unmatched_accept_falls_back_to_first_candidate() -> None:
    repository = _SpyRepository(_responses())

    response = ResponseSelector(repository).select(OP_ID, "/id=42", _request("text/csv"))

    assert response is not None
    assert response.name == "json-42"


def test_name_tier_used_when_criteria_is_a_response_name() -> None:
    repository = _SpyRepository(_responses())

    response = ResponseSelector(repository).select(OP_ID, "gear-created", _request())

    assert response is not None
    assert response.name == "gear-created"
    assert repository.calls == ["criteria", "name"]


def test_all_responses_tier_when_nothing_matches() -> None:
    repository = _SpyRepository(_responses())

    candidates = ResponseSelector(repository).candidates(OP_ID, "/id=999")

    assert [r.name for r in candidates] == ["json-42", "xml-42", "gear-created"]
    assert repository.calls == ["criteria", "name", "all"]


def test_no_responses_at_all_selects_none() -> None:
    repository = _SpyRepository([])

    assert ResponseSelector(repository).select(OP_ID, None, _request()) is None


def test_select_by_media_type_requires_exact_equality() -> None:
    responses = _responses()

    assert select_by_media_type(responses, "application/xml").name == "xml-42"
    assert select_by_media_type(responses, "application/xml;q=0.9").name == "json-42"
    assert select_by_media_type(responses, None).name == "json-42"
