import threading
from collections import OrderedDict
from collections.abc import Callable

import zmq
from web3.contract import Contract

from ensemble.contracts import ContractService
from ensemble.exceptions import (
    ChannelNotConfiguredError,
    InvalidArgumentError,
    MessageDecodeError,
    PublishFailedError,
)
from ensemble.network.message import Message, ProposalMsg
from ensemble.network.pubsub import ProposalChannel
from ensemble.services.base import RegistryService, as_id, as_int, checksum, require
from ensemble.types import Proposal

NewProposalListener = Callable[[Proposal], None]

MAX_TRACKED_TASKS = 1024
"""Tasks whose received proposals are kept before the oldest are forgotten"""


class ProposalService(RegistryService):
    """
    Bids on tasks, broadcast over the message queue, and their approval on the task registry.

    Proposals received on the subscription are kept per task,
    in arrival order, so an issuer can pick one with :meth:`.get_proposals` .
    A task's proposals are dropped once one is approved or :meth:`.clear_proposals` is called,
    and only the ``max_tasks`` most recently bid-on tasks are kept.
    """

    def __init__(
        self,
        contracts: ContractService,
        task_registry: Contract,
        channel: ProposalChannel | None = None,
        max_tasks: int = MAX_TRACKED_TASKS,
    ):
        super().__init__(contracts, task_registry, "proposal")
        self.channel = channel
        self.agent_address: str | None = None
        self.max_tasks = max_tasks

        self._on_new_proposal: NewProposalListener | None = None
        self._received: OrderedDict[int, list[Proposal]] = OrderedDict()
        self._received_lock = threading.Lock()

    def send_proposal(
        self,
        task_id: int | str,
        agent_address: str,
        price: int | str,
        proposal_id: int | str | None = None,
    ) -> Proposal:
        """
        Publish a bid from ``agent_address`` to perform ``task_id`` at ``price`` wei

        Args:
            proposal_id: The agent's registered proposal this bid refers to.
                Needed for the issuer to approve it.
        """
        task_id = as_id(task_id, "task_id")
        agent_address = checksum(agent_address, "agent_address")
        price = as_int(price, "price")
        if proposal_id is not None:
            proposal_id = as_id(proposal_id, "proposal_id")
        channel = self._require_channel()

        proposal = Proposal(id=proposal_id, issuer=agent_address, price=price, task_id=task_id)
        self.logger.info("Sending proposal for task %s at %s wei", task_id, price)
        try:
            channel.publish(ProposalMsg(sender=agent_address, value=proposal))
        except zmq.ZMQError as e:
            err = PublishFailedError(f"Could not publish proposal for task {task_id}: {e}")
            self.logger.error("Error sending proposal: %s", err)
            raise err from e
        return proposal

    def setup_subscription(self, agent_address: str | None = None) -> None:
        """
        Start receiving proposals from the queue topic
        """
        channel = self._require_channel()
        self.agent_address = checksum(agent_address, "agent_address") if agent_address else None
        channel.subscribe(self.on_message)
        self.logger.debug("Listening for proposals on %s", channel.topic)

    def on_message(self, frames: list[bytes]) -> Proposal | None:
        """
        Handle one multipart message from the queue.

        Malformed payloads and unknown message types are logged and dropped.
        """
        try:
            msg = Message.from_bytes(frames)
        except MessageDecodeError as e:
            self.logger.warning("Dropping malformed proposal message: %s", e)
            return None
        if not isinstance(msg, ProposalMsg):
            self.logger.debug("Ignoring %s message from %s", msg.type_, msg.sender)
            return None

        proposal = msg.value
        if proposal.task_id is not None:
            self._record(proposal)

        listener = self._on_new_proposal
        if listener is None:
            self.logger.debug("No proposal listener set, proposal for %s kept", proposal.task_id)
            return proposal
        try:
            listener(proposal)
        except Exception:
            # listener is user code, keep receiving
            self.logger.exception("Proposal listener raised on proposal for %s", proposal.task_id)
        return proposal

    def _record(self, proposal: Proposal) -> None:
        with self._received_lock:
            self._received.setdefault(proposal.task_id, []).append(proposal)
            self._received.move_to_end(proposal.task_id)
            while len(self._received) > self.max_tasks:
                dropped, _ = self._received.popitem(last=False)
                self.logger.debug("Forgetting proposals for task %s", dropped)

    def get_proposals(self, task_id: int | str) -> list[Proposal]:
        """Proposals received for ``task_id`` since subscribing"""
        task_id = as_id(task_id, "task_id")
        with self._received_lock:
            return list(self._received.get(task_id, []))

    def clear_proposals(self, task_id: int | str) -> None:
        """Forget the proposals received for ``task_id``"""
        task_id = as_id(task_id, "task_id")
        with self._received_lock:
            self._received.pop(task_id, None)

    def approve_proposal(self, task_id: int | str, proposal: Proposal) -> None:
        """
        Accept a proposal for a task, paying its price to the task registry.
        The task's other received proposals are then forgotten.

        Raises:
            :class:`.InvalidArgumentError` if the proposal doesn't name
            the agent's registered proposal id
        """
        task_id = as_id(task_id, "task_id")
        require(proposal=proposal)
        if proposal.id is None:
            raise InvalidArgumentError(
                f"Proposal from {proposal.issuer} has no registered proposal id to approve"
            )
        with self.errors(f"approving proposal from {proposal.issuer} for task {task_id}"):
            self.contracts.transact(
                self.registry.functions.approveProposal(task_id, proposal.to_tuple()),
                value=proposal.price,
            )
        self.logger.info("Approved proposal from %s for task %s", proposal.issuer, task_id)
        self.clear_proposals(task_id)

    def set_on_new_proposal_listener(self, listener: NewProposalListener | None) -> None:
        """Set the single new proposal listener, replacing any previous one"""
        self._on_new_proposal = listener

    def close(self) -> None:
        if self.channel is not None:
            self.channel.close()

    def _require_channel(self) -> ProposalChannel:
        if self.channel is None:
            raise ChannelNotConfiguredError("No message queue channel configured for proposals")
        return self.channel
