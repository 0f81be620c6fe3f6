from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Any

from ensemble.abi import load_abi
from ensemble.config import ContractAddresses
from ensemble.contracts import ContractService
from ensemble.exceptions import MissingContractAddressError, SignerRequiredError
from ensemble.logging import init_logger
from ensemble.network.pubsub import ProposalChannel
from ensemble.services import (
    AgentService,
    NewProposalListener,
    NewTaskListener,
    ProposalService,
    ServiceRegistryService,
    TaskService,
)
from ensemble.types import AgentData, Proposal, Service, TaskCreationParams, TaskData

if TYPE_CHECKING:
    from ensemble.config import Config


class Ensemble:
    """
    Facade over the task, agent, proposal and service registries.

    Each method forwards to one of the services,
    which validate arguments, call the contract or message queue,
    and return typed records.

    Example:

        >>> sdk = Ensemble.from_config()
        >>> sdk.register_service({"name": "Bull-Post", "category": "Social", "description": "KOL"})
        >>> sdk.register_agent(agent_address, "Agent1", "https://example.com", "Bull-Post", 100)
        >>> sdk.set_on_new_task_listener(lambda task: print(task.prompt))
        >>> with sdk:
        ...     task = sdk.create_task({"prompt": "Write a post", "proposal_id": 0})

    """

    def __init__(
        self,
        contracts: ContractService,
        addresses: ContractAddresses,
        channel: ProposalChannel | None = None,
        poll_interval: float = 2.0,
    ):
        self.logger = init_logger("sdk")
        _check_addresses(addresses)
        self.logger.debug(
            "Contract addresses: task_registry=%s, agent_registry=%s, service_registry=%s",
            addresses.task_registry,
            addresses.agent_registry,
            addresses.service_registry,
        )

        self.contracts = contracts
        self.addresses = addresses
        task_registry = contracts.create_contract(
            addresses.task_registry, load_abi("TaskRegistry")
        )
        agent_registry = contracts.create_contract(
            addresses.agent_registry, load_abi("AgentsRegistry")
        )
        service_registry = contracts.create_contract(
            addresses.service_registry, load_abi("ServiceRegistry")
        )

        self.agent_service = AgentService(contracts, agent_registry)
        self.task_service = TaskService(
            contracts, task_registry, self.agent_service, poll_interval=poll_interval
        )
        self.proposal_service = ProposalService(contracts, task_registry, channel)
        self.service_registry_service = ServiceRegistryService(contracts, service_registry)
        self._started = False

    @classmethod
    def from_config(cls, config: Config | None = None) -> Ensemble:
        """
        Connect to the network, registries and message queue in :class:`.Config`
        """
        if config is None:
            from ensemble.config import config

        _check_addresses(config.contracts)
        logger = init_logger("sdk")
        logger.info(
            "Connecting to %s (chain %s) at %s",
            config.network.name or "network",
            config.network.chain_id,
            config.network.rpc_url,
        )
        return cls(
            contracts=ContractService.from_config(config),
            addresses=config.contracts,
            channel=ProposalChannel.from_config(config.queue),
            poll_interval=config.poll_interval,
        )

    # --------------------------------------------------
    # Lifecycle
    # --------------------------------------------------

    def start(self) -> None:
        """
        Start listening for tasks assigned to our wallet and for proposals on the queue
        """
        if self._started:
            return
        try:
            address = self.agent_service.get_address()
        except SignerRequiredError:
            self.logger.warning("No wallet address available, listening for all new tasks")
            address = None

        self.task_service.subscribe(assignee=address)
        if self.proposal_service.channel is not None:
            self.proposal_service.setup_subscription(address)
            # open the publisher now so the first proposal isn't dropped
            self.proposal_service.channel.connect()
        self._started = True

    def stop(self) -> None:
        self.task_service.unsubscribe()
        self.proposal_service.close()
        self._started = False

    def __enter__(self) -> Ensemble:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()

    # --------------------------------------------------
    # Tasks
    # --------------------------------------------------

    def create_task(self, params: TaskCreationParams | dict[str, Any]) -> TaskData:
        """
        Create a task for a registered proposal.

        Args:
            params: prompt and proposal id

        Returns:
            The new task
        """
        return self.task_service.create_task(params)

    def get_task_data(self, task_id: int | str) -> TaskData:
        return self.task_service.get_task_data(task_id)

    def get_tasks_by_owner(self, owner: str) -> list[TaskData]:
        """All tasks issued by ``owner``"""
        return self.task_service.get_tasks_by_issuer(owner)

    def complete_task(self, task_id: int | str, result: str) -> None:
        return self.task_service.complete_task(task_id, result)

    def rate_task(self, task_id: int | str, rating: int) -> None:
        return self.task_service.rate_task(task_id, rating)

    def set_on_new_task_listener(self, listener: NewTaskListener | None) -> None:
        return self.task_service.set_on_new_task_listener(listener)

    # --------------------------------------------------
    # Agents
    # --------------------------------------------------

    def register_agent(
        self, address: str, name: str, uri: str, service_name: str, service_price: int
    ) -> bool:
        """
        Register an agent offering ``service_name`` at ``service_price`` wei.

        Returns:
            ``True`` when registered

        Raises:
            :class:`.AgentAlreadyRegisteredError`
            :class:`.ServiceNotRegisteredError`
        """
        return self.agent_service.register_agent(address, name, uri, service_name, service_price)

    def get_wallet_address(self) -> str:
        return self.agent_service.get_address()

    def get_agent_data(self, address: str) -> AgentData:
        return self.agent_service.get_agent_data(address)

    get_agent = get_agent_data

    def get_agents_by_service_id(self, service_name: str) -> list[AgentData]:
        return self.agent_service.get_agents_by_service(service_name)

    def is_agent_registered(self, address: str) -> bool:
        return self.agent_service.is_agent_registered(address)

    def add_proposal(self, address: str, service_name: str, price: int) -> Proposal:
        return self.agent_service.add_proposal(address, service_name, price)

    # --------------------------------------------------
    # Proposals
    # --------------------------------------------------

    def send_proposal(
        self, task_id: int | str, price: int | str, proposal_id: int | str | None = None
    ) -> Proposal:
        """Bid on a task from our wallet address, optionally citing our registered proposal"""
        return self.proposal_service.send_proposal(
            task_id, self.get_wallet_address(), price, proposal_id=proposal_id
        )

    def get_proposals(self, task_id: int | str) -> list[Proposal]:
        return self.proposal_service.get_proposals(task_id)

    def clear_proposals(self, task_id: int | str) -> None:
        return self.proposal_service.clear_proposals(task_id)

    def approve_proposal(self, task_id: int | str, proposal: Proposal) -> None:
        return self.proposal_service.approve_proposal(task_id, proposal)

    def set_on_new_proposal_listener(self, listener: NewProposalListener | None) -> None:
        return self.proposal_service.set_on_new_proposal_listener(listener)

    # --------------------------------------------------
    # Services
    # --------------------------------------------------

    def register_service(self, service: Service | dict[str, Any]) -> Service:
        return self.service_registry_service.register_service(service)

    def get_service(self, name: str) -> Service:
        return self.service_registry_service.get_service(name)

    def is_service_registered(self, name: str) -> bool:
        return self.service_registry_service.is_service_registered(name)


def _check_addresses(addresses: ContractAddresses) -> None:
    missing = [name for name, value in addresses.model_dump().items() if not value]
    if missing:
        raise MissingContractAddressError(
            f"Contract addresses must be configured for: {', '.join(missing)}"
        )
