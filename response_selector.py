"""Pick the stored response answering a request."""

from __future__ import annotations

import logging

from mock_model import Response
from mock_repository import MockRepository
from request import HTTPRequest

logger = logging.getLogger(__name__)


class ResponseSelector:
    """Three lookup tiers; the first non-empty one is final.

    1. responses stored under the computed dispatch criteria,
    2. responses named like the criteria (JSON_BODY and SCRIPT may
       return a response name),
    3. every response of the operation.
    """

    def __init__(self, repository: MockRepository) -> None:
        self._repository = repository

    def select(
        self,
        operation_id: str,
        dispatch_criteria: str | None,
        request: HTTPRequest,
    ) -> Response | None:
        candidates = self.candidates(operation_id, dispatch_criteria)
        if not candidates:
            return None
        return select_by_media_type(candidates, request.header("accept"))

    def candidates(self, operation_id: str, dispatch_criteria: str | None) -> list[Response]:
        responses = self._repository.find_responses_by_criteria(operation_id, dispatch_criteria)
        if responses:
            return responses

        responses = self._repository.find_responses_by_name(operation_id, dispatch_criteria)
        if responses:
            return responses

        logger.debug("No responses found so far, trying bare operation %s", operation_id)
        return self._repository.find_responses(operation_id)


def select_by_media_type(responses: list[Response], accept: str | None) -> Response:
    if accept:
        for response in responses:
            if response.media_type == accept:
                return response
    return responses[0]
