from web3.contract import Contract

from ensemble.contracts import ContractService
from ensemble.exceptions import AgentNotRegisteredError, ProposalNotFoundError
from ensemble.services.base import RegistryService, as_id, as_int, checksum, require
from ensemble.types import AgentData, Proposal, is_empty_address


class AgentService(RegistryService):
    """
    Agent registry: registering agents, their service proposals, and reading them back.
    """

    def __init__(self, contracts: ContractService, agent_registry: Contract):
        super().__init__(contracts, agent_registry, "agent")

    def get_address(self) -> str:
        """Address of the wallet this SDK sends transactions from"""
        return self.contracts.address

    def register_agent(
        self,
        address: str,
        name: str,
        uri: str,
        service_name: str,
        service_price: int,
    ) -> bool:
        """
        Register an agent, offering one service at a price.

        Returns:
            ``True`` once the registration transaction is confirmed

        Raises:
            :class:`.AgentAlreadyRegisteredError`
            :class:`.ServiceNotRegisteredError`
        """
        require(address=address, name=name, uri=uri, service_name=service_name)
        service_price = as_int(service_price, "service_price")
        address = checksum(address)

        self.logger.info("Registering agent %s (%s)", name, address)
        with self.errors(f"registering agent {address}"):
            receipt = self.contracts.transact(
                self.registry.functions.registerAgent(
                    address, name, uri, service_name, service_price
                )
            )
        self.logger.info("Agent %s registered", address)
        return receipt["status"] == 1

    def get_agent_data(self, address: str) -> AgentData:
        """
        Raises:
            :class:`.AgentNotRegisteredError`
        """
        address = checksum(address)
        with self.errors(f"getting agent {address}"):
            raw = self.contracts.call(self.registry.functions.getAgentData(address))
            if is_empty_address(raw[3]):
                raise AgentNotRegisteredError(f"Agent {address} is not registered")
            proposals = self.contracts.call(self.registry.functions.getAgentProposals(address))
        return AgentData.from_tuple(raw, [Proposal.from_tuple(p) for p in proposals])

    get_agent = get_agent_data

    def is_agent_registered(self, address: str) -> bool:
        address = checksum(address)
        with self.errors(f"checking agent {address}"):
            return bool(self.contracts.call(self.registry.functions.isRegistered(address)))

    def get_agents_by_service(self, service_name: str) -> list[AgentData]:
        require(service_name=service_name)
        with self.errors(f"listing agents for service {service_name}"):
            addresses = self.contracts.call(
                self.registry.functions.getAgentsByService(service_name)
            )
        return [self.get_agent_data(address) for address in addresses]

    get_agents_by_service_id = get_agents_by_service

    def add_proposal(self, address: str, service_name: str, price: int) -> Proposal:
        """
        Offer another service from an already-registered agent

        Returns:
            The new proposal, with the id assigned by the registry
        """
        require(address=address, service_name=service_name)
        price = as_int(price, "price")
        address = checksum(address)

        with self.errors(f"adding proposal for {address}"):
            receipt = self.contracts.transact(
                self.registry.functions.addProposal(address, service_name, price)
            )
            event = self.contracts.find_event(self.registry, "ProposalAdded", receipt)
        args = event["args"]
        return Proposal(
            id=args["proposalId"],
            issuer=args["agent"],
            service_name=args["name"],
            price=args["price"],
        )

    def get_proposal(self, proposal_id: int) -> Proposal:
        """
        Raises:
            :class:`.ProposalNotFoundError`
        """
        proposal_id = as_id(proposal_id, "proposal_id")
        with self.errors(f"getting proposal {proposal_id}"):
            raw = self.contracts.call(self.registry.functions.getProposal(proposal_id))
            if is_empty_address(raw[0]):
                raise ProposalNotFoundError(f"No proposal with id {proposal_id}")
        return Proposal.from_tuple(raw)
