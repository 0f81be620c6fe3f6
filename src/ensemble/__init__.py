from ensemble.config import config as cfg
from ensemble.contracts import ContractService
from ensemble.ensemble import Ensemble
from ensemble.logging import init_logger
from ensemble.types import (
    AgentData,
    Proposal,
    Service,
    TaskCreationParams,
    TaskData,
    TaskStatus,
)

__all__ = [
    "AgentData",
    "ContractService",
    "Ensemble",
    "Proposal",
    "Service",
    "TaskCreationParams",
    "TaskData",
    "TaskStatus",
    "cfg",
    "init_logger",
]
