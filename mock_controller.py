"""Serve mocked responses for ``/{mount}/{service}/{version}/...`` requests."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from config import CONTEXT_PATH, ENABLE_CORS_POLICY, MAX_DELAY_MS, MOCK_MOUNT_PREFIX
from cors import cors_preflight_response, is_cors_preflight
from dispatch_criteria import DispatchCriteriaComputer
from mock_model import build_operation_id
from mock_repository import MockRepository
from operation_resolver import OperationResolver, split_mock_path
from parameter_constraints import VIOLATION_SUFFIX, validate_parameter_constraints
from request import HTTPRequest
from response import HTTPResponse
from response_materializer import InvocationPublisher, ResponseMaterializer
from response_renderer import ContentRenderer, render_response_content
from response_selector import ResponseSelector
from script_evaluator import ScriptEvaluator

logger = logging.getLogger(__name__)

MOCK_METHODS = {"HEAD", "OPTIONS", "GET", "POST", "PUT", "PATCH", "DELETE"}


@dataclass(frozen=True, slots=True)
class MockSettings:
    mount_prefix: str = MOCK_MOUNT_PREFIX
    context_path: str = CONTEXT_PATH
    enable_cors_policy: bool = ENABLE_CORS_POLICY

    @property
    def mock_prefix(self) -> str:
        """Path prefix under which mocks are served, context path included."""
        return self.context_path.rstrip("/") + self.mount_prefix


class MockController:
    def __init__(
        self,
        *,
        repository: MockRepository,
        settings: MockSettings | None = None,
        script_evaluator: ScriptEvaluator | None = None,
        renderer: ContentRenderer = render_response_content,
        publisher: InvocationPublisher | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or MockSettings()
        self._clock = clock
        self._resolver = OperationResolver(repository)
        self._criteria = DispatchCriteriaComputer(script_evaluator)
        self._selector = ResponseSelector(repository)
        self._materializer = ResponseMaterializer(
            mount_prefix=self.settings.mount_prefix,
            context_path=self.settings.context_path,
            renderer=renderer,
            publisher=publisher,
            clock=clock,
            sleep=sleep,
        )

    def execute(self, request: HTTPRequest) -> HTTPResponse:
        started_at = self._clock()
        if request.method not in MOCK_METHODS:
            return HTTPResponse(
                status_code=405,
                headers={"Allow": ", ".join(sorted(MOCK_METHODS))},
                body="Method Not Allowed",
            )

        target = split_mock_path(request.path, self.settings.mock_prefix)
        if target is None:
            return self._not_found(request)

        logger.info(
            "Servicing mock response for service [%s, %s] on uri %s with verb %s",
            target.service_name,
            target.version,
            request.path,
            request.method,
        )

        raw_delay = request.query_param("delay")
        delay_ms: int | None = None
        if raw_delay is not None:
            try:
                delay_ms = int(raw_delay)
            except ValueError:
                return HTTPResponse(status_code=400, body="Invalid delay parameter")
            if delay_ms > MAX_DELAY_MS:
                return HTTPResponse(status_code=400, body="Invalid delay parameter")

        resolved = self._resolver.resolve(target, request.method)
        if resolved is None:
            return self._not_found(request)

        operation = resolved.operation
        logger.debug(
            "Found a valid operation %s with rules: %s", operation.name, operation.dispatcher_rules
        )
        violation = validate_parameter_constraints(operation, request)
        if violation is not None:
            return HTTPResponse(status_code=400, body=violation + VIOLATION_SUFFIX)

        body = request.body_text() if request.body else None
        dispatch_criteria = self._criteria.compute(
            operation,
            operation.uri_pattern,
            resolved.decoded_resource_path,
            request,
            body,
        )
        logger.debug("Dispatch criteria for finding response is %s", dispatch_criteria)

        response = self._selector.select(
            build_operation_id(resolved.service, operation), dispatch_criteria, request
        )
        if response is None:
            logger.debug("No response found for operation %s", operation.name)
            return HTTPResponse(status_code=404, body="Not Found")

        return self._materializer.materialize(
            resolved=resolved,
            response=response,
            request=request,
            body=body,
            delay_ms=delay_ms,
            started_at=started_at,
        )

    def _not_found(self, request: HTTPRequest) -> HTTPResponse:
        if is_cors_preflight(request, enable_cors_policy=self.settings.enable_cors_policy):
            logger.debug("No valid operation found, applying CORS policy")
            return cors_preflight_response(request)
        logger.debug("No valid operation found for %s %s", request.method, request.path)
        return HTTPResponse(status_code=404, body="Not Found")
