from typing import Any

from web3.contract import Contract

from ensemble.contracts import ContractService
from ensemble.exceptions import ServiceNotRegisteredError
from ensemble.services.base import RegistryService, coerce, require
from ensemble.types import Service


class ServiceRegistryService(RegistryService):
    def __init__(self, contracts: ContractService, service_registry: Contract):
        super().__init__(contracts, service_registry, "service_registry")

    def register_service(self, service: Service | dict[str, Any]) -> Service:
        """
        Raises:
            :class:`.ServiceAlreadyRegisteredError`
        """
        service = coerce(Service, service)
        self.logger.info("Registering service: %s", service.name)
        with self.errors(f"registering service {service.name}"):
            receipt = self.contracts.transact(
                self.registry.functions.registerService(
                    service.name, service.category, service.description
                )
            )
        self.logger.info(
            "Service %s registered in block %s", service.name, receipt.get("blockNumber")
        )
        return service

    def get_service(self, name: str) -> Service:
        """
        Raises:
            :class:`.ServiceNotRegisteredError`
        """
        require(name=name)
        with self.errors(f"getting service {name}"):
            raw = self.contracts.call(self.registry.functions.getService(name))
            if not raw[0]:
                raise ServiceNotRegisteredError(f"Service {name} is not registered")
        return Service.from_tuple(raw)

    def is_service_registered(self, name: str) -> bool:
        require(name=name)
        with self.errors(f"checking service {name}"):
            return bool(self.contracts.call(self.registry.functions.isServiceRegistered(name)))
