from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from web3 import Web3
from web3.contract import Contract

from ensemble.contracts import ContractService
from ensemble.exceptions import EnsembleError, InvalidArgumentError, MissingArgumentError
from ensemble.logging import init_logger

T = TypeVar("T", bound=BaseModel)


def require(**kwargs: Any) -> None:
    """
    Raise :class:`.MissingArgumentError` if any of the passed values are ``None`` or blank strings
    """
    missing = [
        key
        for key, value in kwargs.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise MissingArgumentError(f"Missing required argument(s): {', '.join(missing)}")


def checksum(address: str, name: str = "address") -> str:
    require(**{name: address})
    try:
        return Web3.to_checksum_address(address)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"{name} is not a valid address: {address}") from e


def coerce(model: type[T], value: T | dict[str, Any]) -> T:
    """Validate a dict into ``model`` , passing instances through"""
    if isinstance(value, model):
        return value
    if value is None:
        raise MissingArgumentError(f"Missing required {model.__name__}")
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid {model.__name__}: {e}") from e


class RegistryService:
    """
    Parent class for services that wrap a single registry contract.
    """

    def __init__(self, contracts: ContractService, registry: Contract, name: str):
        self.contracts = contracts
        self.registry = registry
        self.logger = init_logger(f"services.{name}")

    @contextmanager
    def errors(self, action: str) -> Generator[None, None, None]:
        """
        Log any SDK error raised in the block with some context before it propagates
        """
        try:
            yield
        except EnsembleError as e:
            self.logger.error("Error %s: %s", action, e)
            raise


def as_int(value: int | str, name: str, maximum: int | None = None) -> int:
    """
    Coerce a number that may come in as a string (ids, wei amounts, ratings)
    to a non-negative int, at most ``maximum`` if given
    """
    require(**{name: value})
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}") from e
    if parsed != value and not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a whole number, got {value!r}")
    if parsed < 0:
        raise InvalidArgumentError(f"{name} must be non-negative, got {parsed}")
    if maximum is not None and parsed > maximum:
        raise InvalidArgumentError(f"{name} must be at most {maximum}, got {parsed}")
    return parsed


def as_id(value: int | str, name: str = "id") -> int:
    return as_int(value, name)
