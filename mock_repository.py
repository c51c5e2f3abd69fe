"""Read store for mock services and their recorded responses."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol

from mock_model import Response, Service, build_operation_id, service_from_dict

logger = logging.getLogger(__name__)


class MockRegistrationError(ValueError):
    """Raised when a definition would break service or operation uniqueness."""


class MockRepository(Protocol):
    def find_service(self, name: str, version: str) -> Service | None: ...

    def find_responses_by_criteria(
        self, operation_id: str, dispatch_criteria: str | None
    ) -> list[Response]: ...

    def find_responses_by_name(self, operation_id: str, name: str | None) -> list[Response]: ...

    def find_responses(self, operation_id: str) -> list[Response]: ...


class InMemoryMockRepository:
    """Thread-safe in-memory store; responses keep registration order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._services: dict[tuple[str, str], Service] = {}
        self._responses: dict[str, list[Response]] = {}

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryMockRepository":
        repository = cls()
        repository.load_file(path)
        return repository

    def load_file(self, path: str | Path) -> int:
        """Register every service found in a JSON definitions file."""
        definitions_file = Path(path)
        try:
            data = json.loads(definitions_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise MockRegistrationError(f"invalid mocks file {definitions_file}: {exc}") from exc

        services_raw = data.get("services", []) if isinstance(data, dict) else data
        if not isinstance(services_raw, list):
            raise MockRegistrationError("services must be a list")

        for service_raw in services_raw:
            self.register_dict(service_raw)
        logger.info("Loaded %d mock services from %s", len(services_raw), definitions_file)
        return len(services_raw)

    def register_dict(self, payload: dict[str, Any]) -> Service:
        if not isinstance(payload, dict):
            raise MockRegistrationError("service definition must be an object")
        try:
            service, responses = service_from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise MockRegistrationError(str(exc)) from exc
        return self.register(service, responses)

    def register(self, service: Service, responses: list[Response] | None = None) -> Service:
        with self._lock:
            key = (service.name, service.version)
            if key in self._services:
                raise MockRegistrationError("duplicate_service")
            self._ensure_unique_paths(service)

            known_ids = {build_operation_id(service, operation) for operation in service.operations}
            for response in responses or []:
                if response.operation_id not in known_ids:
                    raise MockRegistrationError(f"unknown_operation: {response.operation_id}")

            self._services[key] = service
            for response in responses or []:
                self._responses.setdefault(response.operation_id, []).append(response)
            return service

    def find_service(self, name: str, version: str) -> Service | None:
        with self._lock:
            return self._services.get((name, version))

    def find_responses_by_criteria(
        self, operation_id: str, dispatch_criteria: str | None
    ) -> list[Response]:
        return [
            response
            for response in self.find_responses(operation_id)
            if response.dispatch_criteria == dispatch_criteria
        ]

    def find_responses_by_name(self, operation_id: str, name: str | None) -> list[Response]:
        if name is None:
            return []
        return [response for response in self.find_responses(operation_id) if response.name == name]

    def find_responses(self, operation_id: str) -> list[Response]:
        with self._lock:
            return list(self._responses.get(operation_id, []))

    def list_services(self) -> list[Service]:
        with self._lock:
            return list(self._services.values())

    def _ensure_unique_paths(self, service: Service) -> None:
        seen: set[tuple[str, str]] = set()
        names: set[str] = set()
        for operation in service.operations:
            if operation.name in names:
                raise MockRegistrationError("duplicate_operation_name")
            names.add(operation.name)
            for resource_path in operation.resource_paths:
                key = (operation.method, resource_path)
                if key in seen:
                    raise MockRegistrationError("duplicate_operation_path")
                seen.add(key)
