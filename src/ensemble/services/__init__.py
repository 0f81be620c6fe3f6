from ensemble.services.agent import AgentService
from ensemble.services.proposal import NewProposalListener, ProposalService
from ensemble.services.service_registry import ServiceRegistryService
from ensemble.services.task import NewTaskListener, TaskService

__all__ = [
    "AgentService",
    "NewProposalListener",
    "NewTaskListener",
    "ProposalService",
    "ServiceRegistryService",
    "TaskService",
]
