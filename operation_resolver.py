"""Resolve the mocked operation targeted by a request path and method."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mock_model import Operation, Service
from mock_repository import MockRepository
from utils import decode_path, encode_fragment

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedOperation:
    service: Service
    operation: Operation
    service_and_version: str
    # Still percent-encoded, with '+' rewritten to '%20'.
    resource_path: str

    @property
    def decoded_resource_path(self) -> str:
        return decode_path(self.resource_path)


@dataclass(frozen=True, slots=True)
class MockTarget:
    service_name: str
    version: str
    service_and_version: str
    resource_path: str


def split_mock_path(path: str, mount_prefix: str) -> MockTarget | None:
    """Split ``/{mount}/{service}/{version}/...`` into its parts.

    Returns ``None`` when the path is not below the mount or lacks the
    service and version segments.
    """
    mount = mount_prefix.rstrip("/")
    if not path.startswith(mount + "/"):
        return None
    remainder = path[len(mount) :]
    segments = remainder.split("/", 3)
    if len(segments) < 3 or not segments[1] or not segments[2]:
        return None

    service_name = decode_path(segments[1])
    version = decode_path(segments[2])

    service_and_version = "/" + encode_fragment(service_name) + "/" + version
    index = path.find(service_and_version)
    if index != -1:
        resource_path = path[index + len(service_and_version) :]
    else:
        resource_path = "/" + segments[3] if len(segments) == 4 else ""

    # Some clients encode spaces as '+' instead of '%20'.
    if "+" in service_name:
        service_name = service_name.replace("+", " ")
    if "+" in resource_path:
        resource_path = resource_path.replace("+", "%20")

    return MockTarget(
        service_name=service_name,
        version=version,
        service_and_version=service_and_version,
        resource_path=resource_path,
    )


class OperationResolver:
    def __init__(self, repository: MockRepository) -> None:
        self._repository = repository

    def resolve(self, target: MockTarget, method: str) -> ResolvedOperation | None:
        service = self._repository.find_service(target.service_name, target.version)
        if service is None:
            logger.debug("No service found for [%s, %s]", target.service_name, target.version)
            return None

        operation = find_operation(service, method, target.resource_path)
        if operation is None:
            return None
        return ResolvedOperation(
            service=service,
            operation=operation,
            service_and_version=target.service_and_version,
            resource_path=target.resource_path,
        )


def find_operation(service: Service, method: str, resource_path: str) -> Operation | None:
    normalized_method = method.upper()
    for operation in service.operations:
        if operation.method.upper() != normalized_method:
            continue
        if resource_path in operation.resource_paths:
            return operation
    return None
