import pytest

from ensemble.exceptions import (
    InvalidArgumentError,
    MissingArgumentError,
    ServiceAlreadyRegisteredError,
    ServiceNotRegisteredError,
)
from ensemble.types import Service

SERVICE = {"name": "Bull-Post", "category": "Social Service", "description": "This is a KOL service."}


def test_register_service(sdk, chain):
    service = sdk.register_service(SERVICE)
    assert service == Service(**SERVICE)
    assert chain.service_registry.services["Bull-Post"] == tuple(SERVICE.values())


def test_register_service_model(sdk):
    """A Service instance is accepted as well as a dict"""
    service = Service(**SERVICE)
    assert sdk.register_service(service) is service


def test_register_service_twice(sdk):
    sdk.register_service(SERVICE)
    with pytest.raises(ServiceAlreadyRegisteredError):
        sdk.register_service(SERVICE)


def test_register_service_invalid(sdk, chain):
    with pytest.raises(InvalidArgumentError):
        sdk.register_service({"name": "", "category": "x", "description": "y"})
    with pytest.raises(InvalidArgumentError):
        sdk.register_service({"name": "no category"})
    with pytest.raises(MissingArgumentError):
        sdk.register_service(None)
    assert chain.block_number == 0


def test_get_service(sdk):
    sdk.register_service(SERVICE)
    assert sdk.get_service("Bull-Post") == Service(**SERVICE)
    assert sdk.is_service_registered("Bull-Post")


def test_get_service_missing(sdk):
    with pytest.raises(ServiceNotRegisteredError):
        sdk.get_service("Nope")
    assert not sdk.is_service_registered("Nope")
    with pytest.raises(MissingArgumentError):
        sdk.get_service("  ")
