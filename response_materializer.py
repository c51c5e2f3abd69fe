"""Turn a selected stored response into the HTTP response sent back."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from config import MAX_DELAY_MS
from mock_model import Header, Response, Service
from operation_resolver import ResolvedOperation
from parameter_constraints import recopied_headers
from request import HTTPRequest
from response import HTTPResponse
from response_renderer import ContentRenderer, render_response_content

logger = logging.getLogger(__name__)

InvocationPublisher = Callable[[Service, Response, float], object]


@dataclass(frozen=True, slots=True)
class HeaderContext:
    # Absolute URL of the service root, without trailing slash.
    service_base_url: str


HeaderRule = Callable[[Header, HeaderContext], tuple[str, ...]]


def _drop_header(header: Header, context: HeaderContext) -> tuple[str, ...]:
    return ()


def _absolute_location(header: Header, context: HeaderContext) -> tuple[str, ...]:
    return (context.service_base_url + header.values[0],)


def _copy_values(header: Header, context: HeaderContext) -> tuple[str, ...]:
    return header.values


# Keyed by lower-cased header name; anything else is copied as stored.
HEADER_RULES: dict[str, HeaderRule] = {
    "transfer-encoding": _drop_header,
    "location": _absolute_location,
}


def apply_stored_headers(
    http_response: HTTPResponse,
    headers: tuple[Header, ...],
    context: HeaderContext,
) -> None:
    for header in headers:
        rule = HEADER_RULES.get(header.name.lower(), _copy_values)
        values = rule(header, context)
        if not values:
            continue
        http_response.set_header(header.name, values[0] if len(values) == 1 else list(values))


def service_base_url(
    request: HTTPRequest,
    *,
    context_path: str,
    mount_prefix: str,
    service_and_version: str,
) -> str:
    return (
        f"{request.scheme}://{request.server_name}:{request.server_port}"
        f"{context_path.rstrip('/')}{mount_prefix.rstrip('/')}{service_and_version}"
    )


def wait_for_delay(
    started_at: float,
    delay_ms: int | None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    max_delay_ms: int = MAX_DELAY_MS,
) -> None:
    """Block the calling worker until ``delay_ms`` after ``started_at``.

    Delays are capped at ``max_delay_ms``.
    """
    if delay_ms is None or delay_ms <= 0:
        return
    remaining = started_at + min(delay_ms, max_delay_ms) / 1000 - clock()
    if remaining > 0:
        sleep(remaining)


class ResponseMaterializer:
    def __init__(
        self,
        *,
        mount_prefix: str,
        context_path: str = "",
        renderer: ContentRenderer = render_response_content,
        publisher: InvocationPublisher | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._mount_prefix = mount_prefix
        self._context_path = context_path
        self._renderer = renderer
        self._publisher = publisher
        self._clock = clock
        self._sleep = sleep

    def materialize(
        self,
        *,
        resolved: ResolvedOperation,
        response: Response,
        request: HTTPRequest,
        body: str | None,
        delay_ms: int | None,
        started_at: float,
    ) -> HTTPResponse:
        status_code = int(response.status) if response.status else 200
        http_response = HTTPResponse(status_code=status_code)

        if response.media_type is not None:
            http_response.set_header("Content-Type", f"{response.media_type};charset=UTF-8")

        header_context = HeaderContext(
            service_base_url=service_base_url(
                request,
                context_path=self._context_path,
                mount_prefix=self._mount_prefix,
                service_and_version=resolved.service_and_version,
            )
        )
        apply_stored_headers(http_response, response.headers, header_context)
        for name, value in recopied_headers(resolved.operation, request).items():
            http_response.set_header(name, value)

        http_response.body = self._renderer(
            body, resolved.decoded_resource_path, request, response
        ).encode("utf-8")

        if delay_ms is None:
            delay_ms = resolved.operation.default_delay
        wait_for_delay(started_at, delay_ms, clock=self._clock, sleep=self._sleep)

        self._publish(resolved.service, response, (self._clock() - started_at) * 1000)
        return http_response

    def _publish(self, service: Service, response: Response, elapsed_ms: float) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher(service, response, elapsed_ms)
        except Exception:
            logger.warning(
                "Failed to publish invocation of %s for service [%s, %s]",
                response.name,
                service.name,
                service.version,
                exc_info=True,
            )
