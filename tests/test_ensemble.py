from unittest.mock import MagicMock

import pytest

from ensemble.config import Config, ContractAddresses
from ensemble.ensemble import Ensemble
from ensemble.exceptions import ConnectionFailedError, MissingContractAddressError
from ensemble.network.pubsub import ProposalChannel

from .fixtures import AGENT


@pytest.mark.parametrize("missing", ["task_registry", "agent_registry", "service_registry"])
def test_missing_contract_address(chain, contracts, missing):
    """Every registry address must be configured"""
    addresses = chain.addresses.model_copy(update={missing: None})
    with pytest.raises(MissingContractAddressError, match=missing):
        Ensemble(contracts, addresses)


def test_from_config_missing_addresses(monkeypatch, tmp_path):
    """Addresses are checked before anything connects"""
    connect = MagicMock(return_value=MagicMock())
    monkeypatch.setattr("ensemble.contracts.ContractService.from_config", connect)
    config = Config(user_dir=tmp_path, contracts=ContractAddresses())
    with pytest.raises(MissingContractAddressError):
        Ensemble.from_config(config)
    connect.assert_not_called()


def test_from_config_unreachable(tmp_path):
    config = Config(
        user_dir=tmp_path,
        network={"rpc_url": "http://127.0.0.1:1"},
        contracts={"task_registry": AGENT, "agent_registry": AGENT, "service_registry": AGENT},
    )
    with pytest.raises(ConnectionFailedError):
        Ensemble.from_config(config)


def test_from_config(chain, monkeypatch, tmp_path):
    """The facade is built from the network, addresses and queue in the config"""
    from ensemble.contracts import ContractService

    monkeypatch.setattr(
        ContractService, "from_config", classmethod(lambda cls, config: cls(chain.web3))
    )
    config = Config(
        user_dir=tmp_path,
        contracts=chain.addresses.model_dump(),
        queue={"topic": "my-topic"},
        poll_interval=0.5,
    )
    sdk = Ensemble.from_config(config)
    assert isinstance(sdk.proposal_service.channel, ProposalChannel)
    assert sdk.proposal_service.channel.topic == "my-topic"
    assert sdk.task_service.poll_interval == 0.5
    assert sdk.get_wallet_address() == chain.accounts[0]


def test_end_to_end(sdk, chain, bull_post):
    """Register, create, complete and rate a task through the facade"""
    assert sdk.register_agent(AGENT, "Agent1", "https://example.com", bull_post, 100)
    task = sdk.create_task({"prompt": "Write a post", "proposal_id": 0})
    chain.use_account(AGENT)
    sdk.complete_task(task.id, "Posted")
    chain.use_account(chain.accounts[0])
    sdk.rate_task(task.id, 100)
    assert sdk.get_agent_data(AGENT).reputation == 100


def test_context_manager(sdk, chain):
    with sdk as entered:
        assert entered is sdk
        assert sdk.task_service.loop_running
    assert not sdk.task_service.loop_running


def test_start_without_wallet(sdk, chain):
    """With no wallet, listen for every task instead of failing"""
    chain.accounts = []
    sdk.start()
    assert sdk.task_service._assignee is None
    sdk.stop()


def test_start_connects_publisher(chain, contracts):
    """Starting opens the proposal publisher before anything is sent"""
    channel = MagicMock(spec=ProposalChannel)
    channel.topic = "ensemble-tasks"
    sdk = Ensemble(contracts, chain.addresses, channel=channel, poll_interval=0.05)
    sdk.start()
    try:
        channel.subscribe.assert_called_once_with(sdk.proposal_service.on_message)
        channel.connect.assert_called_once_with()
        channel.publish.assert_not_called()
    finally:
        sdk.stop()
    channel.close.assert_called_once_with()
