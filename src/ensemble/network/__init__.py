from ensemble.network.broker import ProposalBroker
from ensemble.network.message import Message, MessageType, ProposalMsg
from ensemble.network.pubsub import ProposalChannel

__all__ = ["Message", "MessageType", "ProposalBroker", "ProposalChannel", "ProposalMsg"]
