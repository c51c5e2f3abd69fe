"""Mock server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import socket
import time
from pathlib import Path

from config import (
    CONTEXT_PATH,
    ENABLE_CORS_POLICY,
    EVENT_BUFFER_SIZE,
    HOST,
    KEEPALIVE_TIMEOUT_SECS,
    LOG_FORMAT,
    MAX_KEEPALIVE_REQUESTS,
    MOCK_MOUNT_PREFIX,
    MOCKS_DATA_FILE,
    PORT,
    REQUEST_QUEUE_SIZE,
    SOCKET_TIMEOUT_SECS,
    WORKER_COUNT,
)
from event_hub import EventHub
from metrics import MetricsRegistry
from mock_controller import MockController, MockSettings
from mock_repository import InMemoryMockRepository, MockRepository
from request import HTTPRequest, HTTPRequestParseError
from response import REASON_PHRASES, HTTPResponse
from router import Router
from script_evaluator import ScriptEvaluator
from socket_handler import HTTPReadError, read_http_request_message, write_http_response_message
from thread_pool import ThreadPool

logger = logging.getLogger(__name__)


class MockServer:
    def __init__(
        self,
        host: str = HOST,
        port: int = PORT,
        repository: MockRepository | None = None,
        settings: MockSettings | None = None,
        worker_count: int = WORKER_COUNT,
        request_queue_size: int = REQUEST_QUEUE_SIZE,
        *,
        keepalive_timeout_secs: int = KEEPALIVE_TIMEOUT_SECS,
        log_format: str = LOG_FORMAT,
        event_buffer_size: int = EVENT_BUFFER_SIZE,
        script_evaluator: ScriptEvaluator | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.worker_count = worker_count
        self.request_queue_size = request_queue_size
        self.keepalive_timeout_secs = keepalive_timeout_secs
        self.log_format = log_format
        self.settings = settings or MockSettings()
        self.repository = repository if repository is not None else InMemoryMockRepository()

        self.metrics = MetricsRegistry()
        self.events = EventHub(buffer_size=event_buffer_size)
        self.events.subscribe(self.metrics.record_invocation_event)
        self.controller = MockController(
            repository=self.repository,
            settings=self.settings,
            script_evaluator=script_evaluator,
            publisher=self.events.publish_mock_invocation,
        )
        self.router = self._build_router()

        self._server_socket: socket.socket | None = None
        self._pool: ThreadPool | None = None
        self._running = False

    def _build_router(self) -> Router:
        router = Router()
        router.add_route("GET", "/_metrics", self._metrics_endpoint)
        router.add_route("GET", "/_events", self._events_endpoint)
        router.mount(self.settings.mock_prefix, self.controller.execute)
        return router

    def start(self) -> None:
        """Start listening and hand accepted connections to the worker pool."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server_socket:
            self._server_socket = server_socket
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(128)
            server_socket.settimeout(0.2)
            self.port = server_socket.getsockname()[1]
            self._pool = ThreadPool(
                worker_count=self.worker_count,
                queue_size=self.request_queue_size,
                handler=self._handle_client,
            )
            self._pool.start()
            logger.info(
                "Serving mocks on http://%s:%s%s", self.host, self.port, self.settings.mock_prefix
            )

            self._running = True
            try:
                while self._running:
                    try:
                        client_socket, address = server_socket.accept()
                    except socket.timeout:
                        continue
                    except OSError:
                        break

                    if self._pool is None or not self._pool.submit(client_socket, address):
                        self._send_queue_full_response(client_socket)
            finally:
                if self._pool is not None:
                    self._pool.shutdown()
                    self._pool = None

    def stop(self) -> None:
        self._running = False
        if self._server_socket is not None:
            self._server_socket.close()
            self._server_socket = None

    def _send_queue_full_response(self, client_socket: socket.socket) -> None:
        with client_socket:
            started_at = time.perf_counter()
            response = HTTPResponse(
                status_code=503,
                headers={"Connection": "close"},
                body="Service Unavailable",
            )
            try:
                bytes_sent = write_http_response_message(client_socket, response)
            except OSError:
                return
            self._record_and_log(("-", 0), "-", "-", response, bytes_sent, started_at)

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            self.metrics.connection_opened()
            client_socket.settimeout(min(SOCKET_TIMEOUT_SECS, self.keepalive_timeout_secs))
            request_count = 0
            carry = b""
            try:
                while request_count < MAX_KEEPALIVE_REQUESTS:
                    started_at = time.perf_counter()
                    try:
                        raw_request, carry = read_http_request_message(client_socket, carry)
                    except HTTPReadError as exc:
                        self.metrics.record_read_error(exc.__class__.__name__)
                        self._reply_and_close(
                            client_socket, address, exc.status_code, exc.reason, started_at
                        )
                        return
                    except OSError:
                        return

                    if not raw_request:
                        return

                    try:
                        request = HTTPRequest.from_bytes(raw_request)
                    except HTTPRequestParseError as exc:
                        reason = REASON_PHRASES.get(exc.status_code, "Bad Request")
                        self._reply_and_close(
                            client_socket, address, exc.status_code, reason, started_at
                        )
                        return

                    request_count += 1
                    self.metrics.request_started()
                    try:
                        response = self._dispatch(request)
                    finally:
                        self.metrics.request_finished()

                    should_close = (
                        (not request.keep_alive) or request_count >= MAX_KEEPALIVE_REQUESTS
                    )
                    if should_close:
                        response.headers.setdefault("Connection", "close")
                    else:
                        response.headers.setdefault("Connection", "keep-alive")

                    try:
                        bytes_sent = write_http_response_message(client_socket, response)
                    except OSError as exc:
                        # Client went away, possibly during an injected delay.
                        self.metrics.record_write_error(exc.__class__.__name__)
                        return

                    self._record_and_log(
                        address, request.method, request.path, response, bytes_sent, started_at
                    )
                    if should_close:
                        return
            finally:
                self.metrics.connection_closed()

    def _reply_and_close(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        status_code: int,
        body: str,
        started_at: float,
    ) -> None:
        response = HTTPResponse(status_code=status_code, headers={"Connection": "close"}, body=body)
        try:
            bytes_sent = write_http_response_message(client_socket, response)
        except OSError:
            return
        self._record_and_log(address, "-", "-", response, bytes_sent, started_at)

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        handler = self.router.resolve(request.method, request.path)
        if handler is None and request.method == "HEAD":
            handler = self.router.resolve("GET", request.path)
        if handler is None:
            response = HTTPResponse(status_code=404, body="Not Found")
        else:
            try:
                response = handler(request)
            except Exception:
                logger.exception("Unhandled error in route handler")
                response = HTTPResponse(status_code=500, body="Internal Server Error")

        if request.method == "HEAD":
            return self._as_head_response(response)
        return response

    def _metrics_endpoint(self, request: HTTPRequest) -> HTTPResponse:
        _ = request
        return HTTPResponse(
            status_code=200,
            headers={"Content-Type": "application/json"},
            body=json.dumps(self.metrics.snapshot(), sort_keys=True),
        )

    def _events_endpoint(self, request: HTTPRequest) -> HTTPResponse:
        try:
            since_id = int(request.query_param("since") or 0)
            limit = int(request.query_param("limit") or 100)
        except ValueError:
            return HTTPResponse(status_code=400, body="since and limit must be integers")
        return HTTPResponse(
            status_code=200,
            headers={"Content-Type": "application/json"},
            body=json.dumps(self.events.snapshot(since_id=since_id, limit=limit), sort_keys=True),
        )

    def _record_and_log(
        self,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        payload_size: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        self.metrics.record_request(
            status_code=response.status_code,
            duration_ms=duration_ms,
            bytes_sent=payload_size,
        )
        if self.log_format == "json":
            event = {
                "client": address[0],
                "method": method,
                "path": path,
                "status": response.status_code,
                "bytes_out": payload_size,
                "latency_ms": round(duration_ms, 3),
            }
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s bytes_out=%s duration_ms=%.2f",
            address[0],
            method,
            path,
            response.status_code,
            payload_size,
            duration_ms,
        )

    def _as_head_response(self, get_response: HTTPResponse) -> HTTPResponse:
        body_bytes = get_response.body
        if isinstance(body_bytes, str):
            body_bytes = body_bytes.encode("utf-8")
        return HTTPResponse(
            status_code=get_response.status_code,
            reason_phrase=get_response.reason_phrase,
            headers=dict(get_response.headers),
            body=b"",
            content_length_override=len(body_bytes),
        )


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the mock dispatch server")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--data-file", default=MOCKS_DATA_FILE)
    parser.add_argument("--mount-prefix", default=MOCK_MOUNT_PREFIX)
    parser.add_argument("--context-path", default=CONTEXT_PATH)
    parser.add_argument(
        "--cors",
        action=argparse.BooleanOptionalAction,
        default=ENABLE_CORS_POLICY,
        help="answer unmatched OPTIONS requests with a CORS preflight response",
    )
    parser.add_argument("--workers", type=int, default=WORKER_COUNT)
    parser.add_argument("--keepalive-timeout", type=int, default=KEEPALIVE_TIMEOUT_SECS)
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    logging.basicConfig(level=logging.INFO)
    mocks_repository = InMemoryMockRepository()
    if Path(args.data_file).exists():
        mocks_repository.load_file(args.data_file)
    else:
        logger.warning("Mocks file %s not found, serving no mocks", args.data_file)
    server = MockServer(
        host=args.host,
        port=args.port,
        repository=mocks_repository,
        settings=MockSettings(
            mount_prefix=args.mount_prefix,
            context_path=args.context_path,
            enable_cors_policy=args.cors,
        ),
        worker_count=args.workers,
        keepalive_timeout_secs=args.keepalive_timeout,
        log_format=args.log_format,
    )
    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
