import pytest

from ensemble.exceptions import (
    AgentAlreadyRegisteredError,
    AgentNotRegisteredError,
    ContractError,
    EnsembleError,
    NotAuthorizedError,
    ProposalNotFoundError,
    RegistryError,
    ServiceAlreadyRegisteredError,
    ServiceNotRegisteredError,
    TaskNotFoundError,
    error_for_revert,
)


@pytest.mark.parametrize(
    "reason,expected",
    [
        ("Agent already registered", AgentAlreadyRegisteredError),
        ("AgentsRegistry: agent not registered", AgentNotRegisteredError),
        ("Service not registered", ServiceNotRegisteredError),
        ("Service already registered", ServiceAlreadyRegisteredError),
        ("Proposal not found", ProposalNotFoundError),
        ("Invalid proposal", ProposalNotFoundError),
        ("Task not found", TaskNotFoundError),
        ("Not the assignee", NotAuthorizedError),
        ("Not authorized", NotAuthorizedError),
        ("Insufficient payment", ContractError),
        ("", ContractError),
        (None, ContractError),
    ],
)
def test_error_for_revert(reason, expected):
    """Revert reasons map to specific errors, case-insensitively, with a generic fallback"""
    assert error_for_revert(reason) is expected


def test_error_hierarchy():
    """Specific errors can be caught as their category, the package base, or a builtin"""
    err = AgentAlreadyRegisteredError("nope")
    assert isinstance(err, RegistryError)
    assert isinstance(err, ContractError)
    assert isinstance(err, EnsembleError)
    assert isinstance(err, ValueError)
    assert isinstance(TaskNotFoundError(), LookupError)
    assert isinstance(NotAuthorizedError(), PermissionError)
