from collections.abc import Callable
from typing import Any

from tornado.ioloop import PeriodicCallback
from web3.contract import Contract

from ensemble.contracts import ContractService
from ensemble.exceptions import EnsembleError, TaskNotFoundError
from ensemble.network.loop import EventloopMixin
from ensemble.services.agent import AgentService
from ensemble.services.base import RegistryService, as_id, as_int, checksum, coerce, require
from ensemble.types import TaskCreationParams, TaskData, is_empty_address

NewTaskListener = Callable[[TaskData], None]


class TaskService(RegistryService, EventloopMixin):
    """
    Task registry: creating, reading, completing and rating tasks,
    and listening for tasks assigned to us.

    New tasks are found by polling ``TaskCreated`` logs from a block cursor,
    every ``poll_interval`` seconds on a background eventloop thread
    once :meth:`.subscribe` is called.
    """

    def __init__(
        self,
        contracts: ContractService,
        task_registry: Contract,
        agents: AgentService,
        poll_interval: float = 2.0,
    ):
        RegistryService.__init__(self, contracts, task_registry, "task")
        EventloopMixin.__init__(self)
        self.agents = agents
        self.poll_interval = poll_interval

        self._on_new_task: NewTaskListener | None = None
        self._assignee: str | None = None
        self._next_block: int | None = None
        self._poller: PeriodicCallback | None = None

    def create_task(self, params: TaskCreationParams | dict[str, Any]) -> TaskData:
        """
        Create a task fulfilled by an agent's registered proposal,
        paying the proposal's price.

        Raises:
            :class:`.ProposalNotFoundError` if the proposal doesn't exist
        """
        params = coerce(TaskCreationParams, params)
        proposal = self.agents.get_proposal(params.proposal_id)

        with self.errors(f"creating task for proposal {params.proposal_id}"):
            receipt = self.contracts.transact(
                self.registry.functions.createTask(params.prompt, params.proposal_id),
                value=proposal.price,
            )
            event = self.contracts.find_event(self.registry, "TaskCreated", receipt)
        task = TaskData.from_created_event(event["args"])
        self.logger.info("Created task %s for proposal %s", task.id, task.proposal_id)
        return task

    def get_task_data(self, task_id: int | str) -> TaskData:
        """
        Raises:
            :class:`.TaskNotFoundError`
        """
        task_id = as_id(task_id, "task_id")
        with self.errors(f"getting task {task_id}"):
            raw = self.contracts.call(self.registry.functions.getTask(task_id))
            if is_empty_address(raw[2]):
                raise TaskNotFoundError(f"No task with id {task_id}")
        return TaskData.from_tuple(raw)

    def get_tasks_by_issuer(self, issuer: str) -> list[TaskData]:
        issuer = checksum(issuer, "issuer")
        with self.errors(f"listing tasks for {issuer}"):
            task_ids = self.contracts.call(self.registry.functions.getTasksByIssuer(issuer))
        return [self.get_task_data(task_id) for task_id in task_ids]

    get_tasks_by_owner = get_tasks_by_issuer

    def complete_task(self, task_id: int | str, result: str) -> None:
        task_id = as_id(task_id, "task_id")
        require(result=result)
        with self.errors(f"completing task {task_id}"):
            self.contracts.transact(self.registry.functions.completeTask(task_id, result))
        self.logger.info("Completed task %s", task_id)

    def rate_task(self, task_id: int | str, rating: int) -> None:
        """
        Rate a completed task from 0 to 100.
        The registry folds the rating into the assignee's reputation.
        """
        task_id = as_id(task_id, "task_id")
        rating = as_int(rating, "rating", maximum=100)
        with self.errors(f"rating task {task_id}"):
            self.contracts.transact(self.registry.functions.rateTask(task_id, rating))

    # --------------------------------------------------
    # New task events
    # --------------------------------------------------

    def set_on_new_task_listener(self, listener: NewTaskListener | None) -> None:
        """Set the single new task listener, replacing any previous one"""
        self._on_new_task = listener

    def subscribe(self, assignee: str | None = None) -> None:
        """
        Start polling for new tasks.

        Args:
            assignee: Only report tasks assigned to this address.
                If ``None`` , report every new task.
        """
        self._assignee = checksum(assignee, "assignee") if assignee else None
        if self._next_block is None:
            self._next_block = self.contracts.block_number + 1
        if not self.loop_running:
            self.start_loop(name="ensemble-tasks-poll")
            self.call_soon(self._start_poller)
        self.logger.debug(
            "Listening for tasks assigned to %s from block %s",
            self._assignee or "anyone",
            self._next_block,
        )

    def unsubscribe(self) -> None:
        if self.loop is not None:
            self.call_soon(self._stop_poller)
        self.stop_loop()

    def poll(self) -> list[TaskData]:
        """
        Fetch ``TaskCreated`` logs since the last poll and pass each task to the listener

        Returns:
            The new tasks
        """
        latest = self.contracts.block_number
        if self._next_block is None:
            self._next_block = latest
        if latest < self._next_block:
            return []

        filters = {"assignee": self._assignee} if self._assignee else None
        logs = self.contracts.get_logs(
            self.registry, "TaskCreated", self._next_block, latest, argument_filters=filters
        )
        self._next_block = latest + 1

        tasks = [TaskData.from_created_event(log["args"]) for log in logs]
        for task in tasks:
            self._dispatch(task)
        return tasks

    def _dispatch(self, task: TaskData) -> None:
        listener = self._on_new_task
        if listener is None:
            self.logger.debug("No task listener set, dropping task %s", task.id)
            return
        try:
            listener(task)
        except Exception:
            # listener is user code, keep polling
            self.logger.exception("Task listener raised on task %s", task.id)

    def _poll_safely(self) -> None:
        try:
            self.poll()
        except EnsembleError as e:
            self.logger.warning("Polling for new tasks failed: %s", e)

    def _start_poller(self) -> None:
        if self._poller is None:
            self._poller = PeriodicCallback(self._poll_safely, self.poll_interval * 1000)
        self._poller.start()

    def _stop_poller(self) -> None:
        if self._poller is not None:
            self._poller.stop()
            self._poller = None
