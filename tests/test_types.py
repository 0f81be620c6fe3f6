import pytest
from pydantic import ValidationError

from ensemble.types import (
    ZERO_ADDRESS,
    AgentData,
    Proposal,
    Service,
    TaskCreationParams,
    TaskData,
    TaskStatus,
    is_empty_address,
)

from .fixtures import AGENT, ISSUER


def test_proposal_from_tuple():
    """Proposals come back from the registry as (issuer, serviceName, price, proposalId)"""
    proposal = Proposal.from_tuple((AGENT.lower(), "Bull-Post", 100, 3))
    assert proposal.issuer == AGENT
    assert proposal.service_name == "Bull-Post"
    assert proposal.price == 100
    assert proposal.id == 3
    assert proposal.task_id is None
    assert proposal.to_tuple() == (AGENT, "Bull-Post", 100, 3)


def test_proposal_validation():
    with pytest.raises(ValidationError):
        Proposal(issuer="not an address", price=1)
    with pytest.raises(ValidationError):
        Proposal(issuer=AGENT, price=-1)


def test_records_frozen():
    proposal = Proposal(issuer=AGENT, price=1)
    with pytest.raises(ValidationError):
        proposal.price = 2


def test_task_from_tuple():
    """Empty strings and zero values from the registry become None"""
    task = TaskData.from_tuple((1, "Do it", ISSUER, 0, ZERO_ADDRESS, 0, "", 0))
    assert task.id == 1
    assert task.status is TaskStatus.CREATED
    assert task.assignee is None
    assert task.result is None
    assert task.rating is None

    done = TaskData.from_tuple((1, "Do it", ISSUER, 2, AGENT, 0, "Done", 80))
    assert done.status is TaskStatus.COMPLETED
    assert done.assignee == AGENT
    assert done.result == "Done"
    assert done.rating == 80

    rated_zero = TaskData.from_tuple((1, "Do it", ISSUER, 2, AGENT, 0, "Done", 0))
    assert rated_zero.rating == 0


def test_proposal_without_id_to_tuple():
    """Bids from the queue that don't cite a registered proposal can't go to the registry"""
    with pytest.raises(ValueError):
        Proposal(issuer=AGENT, price=1, task_id=2).to_tuple()
    assert Proposal(id=0, issuer=AGENT, price=1).to_tuple() == (AGENT, "", 1, 0)


def test_task_from_created_event():
    task = TaskData.from_created_event(
        {"issuer": ISSUER, "assignee": AGENT, "taskId": 4, "proposalId": 2, "prompt": "hello"}
    )
    assert task == TaskData(
        id=4, prompt="hello", issuer=ISSUER, status=TaskStatus.CREATED, assignee=AGENT, proposal_id=2
    )


def test_agent_from_tuple():
    proposals = [Proposal.from_tuple((AGENT, "Bull-Post", 100, 0))]
    agent = AgentData.from_tuple(("Agent1", "https://example.com", ISSUER, AGENT, 50, 2), proposals)
    assert agent.name == "Agent1"
    assert agent.owner == ISSUER
    assert agent.address == AGENT
    assert agent.reputation == 50
    assert agent.total_ratings == 2
    assert agent.proposals == proposals


def test_service_from_tuple():
    service = Service.from_tuple(("Bull-Post", "Social Service", "This is a KOL service."))
    assert service.name == "Bull-Post"
    assert service.category == "Social Service"
    with pytest.raises(ValidationError):
        Service(name="", category="x", description="y")


@pytest.mark.parametrize(
    "params",
    [
        {"prompt": "", "proposal_id": 0},
        {"prompt": "hi", "proposal_id": -1},
        {"prompt": "hi"},
    ],
)
def test_task_creation_params_invalid(params):
    with pytest.raises(ValidationError):
        TaskCreationParams(**params)


@pytest.mark.parametrize(
    "value,empty",
    [(None, True), ("", True), (ZERO_ADDRESS, True), ("0x0", True), (AGENT, False)],
)
def test_is_empty_address(value, empty):
    assert is_empty_address(value) is empty
