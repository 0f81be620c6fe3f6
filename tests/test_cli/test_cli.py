import json

import pytest
from click.testing import CliRunner

from ensemble.cli.main import main

from ..fixtures import AGENT, ISSUER


@pytest.fixture()
def invoke(sdk):
    """Invoke the cli with the fake-chain sdk in place of one built from config"""
    runner = CliRunner()

    def _invoke(*args: str, **kwargs):
        return runner.invoke(main, list(args), obj={"sdk": sdk}, **kwargs)

    return _invoke


def test_service_register_get(invoke):
    result = invoke("service", "register", "Bull-Post", "-c", "Social", "-d", "KOL")
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["name"] == "Bull-Post"

    result = invoke("service", "get", "Bull-Post")
    assert json.loads(result.stdout) == {
        "name": "Bull-Post",
        "category": "Social",
        "description": "KOL",
    }


def test_service_get_missing(invoke):
    """SDK errors are reported without a traceback"""
    result = invoke("service", "get", "Nope")
    assert result.exit_code == 1
    assert "ServiceNotRegisteredError" in result.output


def test_agent_register_get(invoke, bull_post):
    result = invoke(
        "agent", "register", AGENT, "-n", "Agent1", "-u", "https://example.com", "-s", bull_post,
        "-p", "100",
    )
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "true"

    agent = json.loads(invoke("agent", "get", AGENT).stdout)
    assert agent["address"] == AGENT
    assert agent["proposals"][0]["price"] == 100


def test_task_lifecycle(invoke, chain, registered_agent):
    result = invoke("task", "create", "Write a post", "-p", "0")
    assert result.exit_code == 0, result.output
    task = json.loads(result.stdout)
    assert task["id"] == 0
    assert task["assignee"] == AGENT

    tasks = json.loads(invoke("task", "list", ISSUER).stdout)
    assert [t["prompt"] for t in tasks] == ["Write a post"]

    chain.use_account(AGENT)
    assert invoke("task", "complete", "0", "Done").exit_code == 0
    assert json.loads(invoke("task", "get", "0").stdout)["result"] == "Done"


def test_listen(invoke, sdk, registered_agent):
    """Listening for a short time starts and stops the pollers cleanly"""
    result = invoke("listen", "--timeout", "0.2")
    assert result.exit_code == 0, result.output
    assert not sdk.task_service.loop_running
