"""
Records mirroring the registry contracts' return tuples.

These are plain data: they're created and destroyed entirely by the contracts,
and only deserialized here for the duration of a call.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import IntEnum
from typing import Annotated, Any, TypeAlias

from annotated_types import Ge, Le
from eth_utils import is_address, to_checksum_address
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _checksum(val: str) -> str:
    assert is_address(val), f"{val} is not an EVM address"
    return to_checksum_address(val)


def _zero_to_none(val: Any) -> Any:
    if val in (None, "", ZERO_ADDRESS):
        return None
    if isinstance(val, str) and int(val, 16) == 0:
        return None
    return val


Address: TypeAlias = Annotated[str, AfterValidator(_checksum)]
"""A checksummed 20-byte address"""
OptionalAddress: TypeAlias = Annotated[Address | None, BeforeValidator(_zero_to_none)]
"""An address where the zero address means "nobody" """
Wei: TypeAlias = Annotated[int, Ge(0)]
"""Native token amount in wei"""
Rating: TypeAlias = Annotated[int, Ge(0), Le(100)]


class TaskStatus(IntEnum):
    CREATED = 0
    ASSIGNED = 1
    COMPLETED = 2
    FAILED = 3


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Proposal(_Record):
    """
    An agent's offer to perform a service at a price.

    Registered proposals (from the agent registry) have an ``id`` and ``service_name``.
    Proposals broadcast over the message queue are bids on a specific ``task_id``.
    """

    id: int | None = None
    issuer: Address
    """The agent offering the service"""
    price: Wei
    service_name: str | None = None
    task_id: int | None = None

    @classmethod
    def from_tuple(cls, raw: Sequence[Any]) -> Proposal:
        issuer, service_name, price, proposal_id = raw
        return cls(id=proposal_id, issuer=issuer, service_name=service_name, price=price)

    def to_tuple(self) -> tuple[str, str, int, int]:
        """
        Shape expected by the task registry's ``approveProposal``

        Raises:
            ValueError if the proposal has no registered ``id``
        """
        if self.id is None:
            raise ValueError("Only proposals with a registered id can be sent to the registry")
        return (self.issuer, self.service_name or "", self.price, self.id)


class TaskData(_Record):
    id: int
    prompt: str
    issuer: Address
    status: TaskStatus
    assignee: OptionalAddress = None
    proposal_id: int
    result: str | None = None
    rating: int | None = None

    @classmethod
    def from_tuple(cls, raw: Sequence[Any]) -> TaskData:
        task_id, prompt, issuer, status, assignee, proposal_id, result, rating = raw
        return cls(
            id=task_id,
            prompt=prompt,
            issuer=issuer,
            status=status,
            assignee=assignee,
            proposal_id=proposal_id,
            result=result or None,
            # only completed tasks can be rated
            rating=rating if status == TaskStatus.COMPLETED else None,
        )

    @classmethod
    def from_created_event(cls, args: Mapping[str, Any]) -> TaskData:
        """From the args of a ``TaskCreated`` event"""
        return cls(
            id=args["taskId"],
            prompt=args["prompt"],
            issuer=args["issuer"],
            status=TaskStatus.CREATED,
            assignee=args["assignee"],
            proposal_id=args["proposalId"],
        )


class AgentData(_Record):
    name: str
    uri: str
    owner: Address
    address: Address
    reputation: int = 0
    total_ratings: int = 0
    proposals: list[Proposal] = Field(default_factory=list)

    @classmethod
    def from_tuple(cls, raw: Sequence[Any], proposals: Sequence[Proposal] = ()) -> AgentData:
        name, uri, owner, address, reputation, total_ratings = raw
        return cls(
            name=name,
            uri=uri,
            owner=owner,
            address=address,
            reputation=reputation,
            total_ratings=total_ratings,
            proposals=list(proposals),
        )


class Service(_Record):
    name: str = Field(..., min_length=1)
    category: str
    description: str

    @classmethod
    def from_tuple(cls, raw: Sequence[Any]) -> Service:
        name, category, description = raw
        return cls(name=name, category=category, description=description)


class TaskCreationParams(_Record):
    prompt: str = Field(..., min_length=1)
    proposal_id: Annotated[int, Ge(0)]


def is_empty_address(val: str | None) -> bool:
    return _zero_to_none(val) is None
