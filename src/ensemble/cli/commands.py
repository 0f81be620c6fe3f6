import json
import sys
import threading
from collections.abc import Callable, Generator
from contextlib import contextmanager

import click
from pydantic import BaseModel
from rich.console import Console

from ensemble.ensemble import Ensemble
from ensemble.exceptions import EnsembleError
from ensemble.network.broker import ProposalBroker
from ensemble.types import Proposal, TaskData


def _get_sdk(ctx: click.Context) -> Ensemble:
    """
    Get the :class:`.Ensemble` stashed in the context object,
    building it from config the first time
    """
    obj = ctx.ensure_object(dict)
    if obj.get("sdk") is None:
        obj["sdk"] = Ensemble.from_config()
    return obj["sdk"]


@contextmanager
def _sdk_errors() -> Generator[None, None, None]:
    try:
        yield
    except EnsembleError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


def _echo(value: BaseModel | list[BaseModel] | bool | None) -> None:
    if isinstance(value, BaseModel):
        click.echo(value.model_dump_json())
    elif isinstance(value, list):
        click.echo(json.dumps([v.model_dump(mode="json") for v in value]))
    else:
        click.echo(json.dumps(value))


# --------------------------------------------------
# services
# --------------------------------------------------


@click.group("service")
def service() -> None:
    """Service registry"""


@service.command("register")
@click.argument("name")
@click.option("--category", "-c", required=True)
@click.option("--description", "-d", default="")
@click.pass_context
def service_register(ctx: click.Context, name: str, category: str, description: str) -> None:
    with _sdk_errors():
        _echo(
            _get_sdk(ctx).register_service(
                {"name": name, "category": category, "description": description}
            )
        )


@service.command("get")
@click.argument("name")
@click.pass_context
def service_get(ctx: click.Context, name: str) -> None:
    with _sdk_errors():
        _echo(_get_sdk(ctx).get_service(name))


# --------------------------------------------------
# agents
# --------------------------------------------------


@click.group("agent")
def agent() -> None:
    """Agent registry"""


@agent.command("register")
@click.argument("address")
@click.option("--name", "-n", required=True)
@click.option("--uri", "-u", required=True)
@click.option("--service", "-s", "service_name", required=True)
@click.option("--price", "-p", type=click.INT, required=True, help="Service price in wei")
@click.pass_context
def agent_register(
    ctx: click.Context, address: str, name: str, uri: str, service_name: str, price: int
) -> None:
    with _sdk_errors():
        _echo(_get_sdk(ctx).register_agent(address, name, uri, service_name, price))


@agent.command("get")
@click.argument("address")
@click.pass_context
def agent_get(ctx: click.Context, address: str) -> None:
    with _sdk_errors():
        _echo(_get_sdk(ctx).get_agent_data(address))


# --------------------------------------------------
# tasks
# --------------------------------------------------


@click.group("task")
def task() -> None:
    """Task registry"""


@task.command("create")
@click.argument("prompt")
@click.option("--proposal-id", "-p", type=click.INT, required=True)
@click.pass_context
def task_create(ctx: click.Context, prompt: str, proposal_id: int) -> None:
    with _sdk_errors():
        _echo(_get_sdk(ctx).create_task({"prompt": prompt, "proposal_id": proposal_id}))


@task.command("get")
@click.argument("task_id", type=click.INT)
@click.pass_context
def task_get(ctx: click.Context, task_id: int) -> None:
    with _sdk_errors():
        _echo(_get_sdk(ctx).get_task_data(task_id))


@task.command("list")
@click.argument("issuer")
@click.pass_context
def task_list(ctx: click.Context, issuer: str) -> None:
    with _sdk_errors():
        _echo(_get_sdk(ctx).get_tasks_by_owner(issuer))


@task.command("complete")
@click.argument("task_id", type=click.INT)
@click.argument("result")
@click.pass_context
def task_complete(ctx: click.Context, task_id: int, result: str) -> None:
    with _sdk_errors():
        _get_sdk(ctx).complete_task(task_id, result)
        _echo(True)


# --------------------------------------------------
# long-running
# --------------------------------------------------


@click.command("listen")
@click.option(
    "--timeout", "-t", type=click.FLOAT, default=None, help="Stop after this many seconds"
)
@click.pass_context
def listen(ctx: click.Context, timeout: float | None = None) -> None:
    """
    Print new tasks assigned to our wallet and proposals from the queue as json lines
    """
    sdk = _get_sdk(ctx)
    console = Console(file=sys.stderr)
    lock = threading.Lock()

    def _printer(kind: str) -> Callable[[TaskData | Proposal], None]:
        def _print(record: TaskData | Proposal) -> None:
            with lock:
                click.echo(json.dumps({"type": kind, "value": record.model_dump(mode="json")}))

        return _print

    sdk.set_on_new_task_listener(_printer("task"))
    sdk.set_on_new_proposal_listener(_printer("proposal"))

    stopped = threading.Event()
    with _sdk_errors(), sdk, console.status("[bold green]Listening for tasks and proposals"):
        try:
            stopped.wait(timeout)
        except KeyboardInterrupt:
            pass


@click.command("broker")
def broker() -> None:
    """
    Forward proposals between publishers and subscribers (XSUB/XPUB proxy)
    """
    proposal_broker = ProposalBroker.from_config()
    try:
        proposal_broker.run()
    except KeyboardInterrupt:
        proposal_broker.stop()
