"""Task Executor - runs agent tasks, paying for them when they cost money.

The TaskExecutor is the calling context around the policy validator. For a
paid task it:
- Validates the payment against the agent's policy
- Records the outcome (approved or blocked) in the transaction ledger
- Invalidates the agent's cached daily spend after an approved write
- Notifies the observer
- Settles the payment through the settlement rail
- Runs the task itself

Blocked payments are not errors: the task fails with the validator's reason
and nothing is settled. Storage failures are errors and propagate.
"""

import logging
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

from autonomy.agent_registry import AgentRegistry
from autonomy.errors import SettlementError
from autonomy.models import (
    Agent,
    AgentLogEntry,
    AgentTask,
    LogLevel,
    TaskResult,
    TaskType,
    Transaction,
    TransactionRequest,
    ValidationResult,
)
from autonomy.money import format_usd
from autonomy.observer import AgentObserver, LoggingObserver
from autonomy.policy_validator import PolicyValidator
from autonomy.rails import SettlementRail
from autonomy.spend_accumulator import SpendAccumulator
from autonomy.transaction_ledger import TransactionLedger


logger = logging.getLogger(__name__)


class TaskExecutor:
    """Executes tasks with policy enforcement.

    Concurrency:
        By default two concurrent paid tasks for the same agent can both read
        the same daily spend and both be approved. With
        ``serialize_per_agent=True`` the read-decide-record-invalidate
        sequence holds a per-agent lock, so the daily limit is exact. Tasks
        for different agents never wait on each other.

    Usage Example:
        ```python
        executor = TaskExecutor(registry, ledger, accumulator, validator,
                                SimulatedRail())

        result = executor.execute_task("research-bot", AgentTask(
            type=TaskType.RESEARCH,
            service="api.openai.com",
            amount=5,
            data={"topic": "AI agents"},
        ))

        if result.success:
            print(f"Paid, tx hash {result.tx_hash}")
        else:
            print(f"Blocked: {result.error}")
        ```
    """

    def __init__(
        self,
        agent_registry: AgentRegistry,
        ledger: TransactionLedger,
        spend_accumulator: SpendAccumulator,
        validator: PolicyValidator,
        rail: SettlementRail,
        observer: Optional[AgentObserver] = None,
        serialize_per_agent: bool = False,
    ):
        """Initialize the task executor.

        Args:
            agent_registry (AgentRegistry): Source of agents and wallets
            ledger (TransactionLedger): Where outcomes are recorded
            spend_accumulator (SpendAccumulator): Cache invalidated on approval
            validator (PolicyValidator): Policy decision maker
            rail (SettlementRail): Settles approved payments
            observer (Optional[AgentObserver]): Activity receiver.
                Default: LoggingObserver
            serialize_per_agent (bool): Hold a per-agent lock around
                validate-and-record. Default: False
        """
        self.agent_registry = agent_registry
        self.ledger = ledger
        self.spend_accumulator = spend_accumulator
        self.validator = validator
        self.rail = rail
        self.observer = observer or LoggingObserver()
        self.serialize_per_agent = serialize_per_agent
        self._agent_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def execute_task(self, agent_id: str, task: AgentTask) -> TaskResult:
        """Execute a task for an agent.

        Workflow:
        1. Log the start of the task
        2. If the task costs money, authorize it (validate, record,
           invalidate, notify) and settle it
        3. Run the task and return its output

        Args:
            agent_id (str): Agent executing the task
            task (AgentTask): The task to run

        Returns:
            TaskResult: success=False with the validator's reason when the
                payment was blocked, or with the rail's message when
                settlement failed

        Raises:
            NotFoundError: If the agent does not exist
            StorageError: If reading the agent or spend fails
        """
        agent = self.agent_registry.require_agent(agent_id)
        self._log(agent_id, f"Starting task: {task.type.value}", task_id=task.task_id)

        if not task.requires_payment:
            return self._run(agent, task)

        request = TransactionRequest(
            agent_id=agent_id,
            service=task.service,
            amount=task.amount,
            type=task.type.value,
        )
        validation, transaction = self.authorize(request, user_id=agent.user_id,
                                                 metadata={"task_id": task.task_id})

        if not validation.approved:
            logger.warning("Transaction blocked for agent %s: %s", agent_id, validation.reason)
            self._log(agent_id, f"Transaction blocked: {validation.reason}", LogLevel.WARN,
                      task_id=task.task_id, transaction_id=transaction.tx_id)
            return TaskResult(
                task_id=task.task_id,
                success=False,
                error=validation.reason,
                validation=validation,
                transaction_id=transaction.tx_id,
            )

        try:
            receipt = self.rail.send_payment(
                agent.wallet_address, task.service, task.amount,
                metadata={"transaction_id": transaction.tx_id},
            )
        except SettlementError as e:
            logger.error("Settlement failed for transaction %s: %s", transaction.tx_id, e)
            self.observer.on_error(agent_id, e)
            return TaskResult(
                task_id=task.task_id,
                success=False,
                error=str(e),
                validation=validation,
                transaction_id=transaction.tx_id,
            )

        transaction = self.ledger.attach_settlement(transaction.tx_id, receipt.tx_hash)
        self._log(agent_id, f"Payment approved: {format_usd(task.amount)} to {task.service}",
                  task_id=task.task_id, tx_hash=receipt.tx_hash)

        result = self._run(agent, task)
        return result.model_copy(update={
            "validation": validation,
            "transaction_id": transaction.tx_id,
            "tx_hash": receipt.tx_hash,
        })

    def authorize(
        self,
        request: TransactionRequest,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Tuple[ValidationResult, Transaction]:
        """Validate a request and record the outcome.

        Approved outcomes invalidate the agent's cached spend right after the
        write, so the next validation sees the new total. Blocked outcomes
        leave the cache alone.

        Returns:
            tuple: (ValidationResult, recorded Transaction)
        """
        with self._agent_guard(request.agent_id):
            validation = self.validator.validate_transaction(request)
            transaction = self.ledger.record_validation(request, validation,
                                                        user_id=user_id, metadata=metadata)
            if validation.approved:
                self.spend_accumulator.invalidate(request.agent_id)

        self.observer.on_transaction(request.agent_id, transaction)
        return validation, transaction

    @contextmanager
    def _agent_guard(self, agent_id: str) -> Iterator[None]:
        if not self.serialize_per_agent:
            yield
            return
        with self._locks_guard:
            lock = self._agent_locks[agent_id]
        with lock:
            yield

    def _run(self, agent: Agent, task: AgentTask) -> TaskResult:
        started = time.monotonic()
        output = _simulate_output(agent, task)
        output["duration_ms"] = int((time.monotonic() - started) * 1000)
        self._log(agent.agent_id, f"Task completed: {task.type.value}", task_id=task.task_id)
        return TaskResult(task_id=task.task_id, success=True, output=output)

    def _log(self, agent_id: str, message: str, level: LogLevel = LogLevel.INFO, **metadata) -> None:
        self.observer.on_log(AgentLogEntry(
            agent_id=agent_id, level=level, message=message, metadata=metadata,
        ))


def _simulate_output(agent: Agent, task: AgentTask) -> Dict[str, Any]:
    # Placeholder work; real integrations replace this per task type
    if task.type == TaskType.RESEARCH:
        topic = task.data.get("topic", "general")
        return {
            "topic": topic,
            "summary": f"Research on {topic} by {agent.display_name}",
            "sources": [task.service],
        }
    if task.type == TaskType.TRADE:
        return {
            "symbol": task.data.get("symbol", "ETH"),
            "action": task.data.get("action", "hold"),
            "service": task.service,
        }
    return {
        "service": task.service,
        "amount": str(task.amount) if task.amount is not None else None,
        "paid": task.requires_payment,
    }
