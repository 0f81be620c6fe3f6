from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated as A
from typing import Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter, ValidationError

from ensemble.exceptions import MessageDecodeError
from ensemble.types import Address, Proposal


class MessageType(StrEnum):
    proposal = "proposal"


class Message(BaseModel):
    type_: MessageType = Field(..., alias="type")
    sender: Address
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    value: dict | str | None = None

    model_config = ConfigDict(use_enum_values=True, validate_by_alias=True, serialize_by_alias=True)

    @classmethod
    def from_bytes(cls, msg: list[bytes]) -> "Message":
        """
        Parse the last frame of a multipart message (the first is the topic)

        Raises:
            :class:`.MessageDecodeError`
        """
        if not msg:
            raise MessageDecodeError("Empty message")
        try:
            return MessageAdapter.validate_json(msg[-1].decode("utf-8"))
        except (UnicodeDecodeError, ValidationError) as e:
            raise MessageDecodeError(f"Could not decode message: {e}") from e

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")


class ProposalMsg(Message):
    """An agent bids on a task"""

    type_: Literal[MessageType.proposal] = Field(MessageType.proposal, alias="type")
    value: Proposal


def _type_discriminator(v: dict | Message) -> str:
    typ = v.get("type", "any") if isinstance(v, dict) else v.type_

    if typ in MessageType.__members__:
        return typ
    else:
        return "any"


MessageUnion = A[
    A[ProposalMsg, Tag("proposal")] | A[Message, Tag("any")],
    Discriminator(_type_discriminator),
]
MessageAdapter = TypeAdapter(MessageUnion)
