"""Unit tests for splitting mock paths and matching operations."""

from mock_model import Operation, Service
from mock_repository import InMemoryMockRepository
from operation_resolver import MockTarget, OperationResolver, find_operation, split_mock_path


def _repository() -> InMemoryMockRepository:
    repository = InMemoryMockRepository()
    repository.register(
        Service(
            name="Pet Store",
            version="1.0",
            operations=(
                Operation(
                    name="GET /pets/{id}",
                    method="GET",
                    resource_paths=frozenset({"/pets/1", "/pets/a%20b"}),
                ),
                Operation(name="POST /pets", method="POST", resource_paths=frozenset({"/pets"})),
            ),
        )
    )
    return repository


def test_split_decodes_service_and_keeps_resource_path_encoded() -> None:
    target = split_mock_path("/rest/Pet%20Store/1.0/pets/a%20b", "/rest")

    assert target == MockTarget(
        service_name="Pet Store",
        version="1.0",
        service_and_version="/Pet%20Store/1.0",
        resource_path="/pets/a%20b",
    )


def test_split_rewrites_plus_signs() -> None:
    target = split_mock_path("/rest/Pet+Store/1.0/pets/a+b", "/rest/")

    assert target is not None
    assert target.service_name == "Pet Store"
    assert target.resource_path == "/pets/a%20b"


def test_split_rejects_paths_outside_mount_or_without_version() -> None:
    assert split_mock_path("/other/Pet%20Store/1.0/pets", "/rest") is None
    assert split_mock_path("/rest/Pet%20Store", "/rest") is None
    assert split_mock_path("/rest//1.0/pets", "/rest") is None


def test_split_with_empty_resource_path() -> None:
    target = split_mock_path("/rest/widgets/1.0", "/rest")

    assert target is not None
    assert target.resource_path == ""


def test_resolver_finds_operation_by_method_and_path() -> None:
    resolver = OperationResolver(_repository())
    target = split_mock_path("/rest/Pet+Store/1.0/pets/a+b", "/rest")
    assert target is not None

    resolved = resolver.resolve(target, "get")

    assert resolved is not None
    assert resolved.operation.name == "GET /pets/{id}"
    assert resolved.resource_path == "/pets/a%20b"
    assert resolved.decoded_resource_path == "/pets/a b"
    assert resolved.service_and_version == "/Pet+Store/1.0"


def test_resolver_returns_none_for_unknown_service_or_operation() -> None:
    resolver = OperationResolver(_repository())

    unknown_version = split_mock_path("/rest/Pet%20Store/2.0/pets/1", "/rest")
    wrong_method = split_mock_path("/rest/Pet%20Store/1.0/pets/1", "/rest")
    assert unknown_version is not None
    assert wrong_method is not None

    assert resolver.resolve(unknown_version, "GET") is None
    assert resolver.resolve(wrong_method, "DELETE") is None


def test_find_operation_requires_exact_resource_path() -> None:
    service = _repository().find_service("Pet Store", "1.0")
    assert service is not None

    assert find_operation(service, "GET", "/pets/2") is None
    operation = find_operation(service, "POST", "/pets")
    assert operation is not None
    assert operation.name == "POST /pets"
