"""Autonomy SDK - High-level API for agent spending control.

This module provides the main SDK interface that wires all internal components
into a simple, easy-to-use API for managing agents, their policies and the
payments they make.
"""

import logging
from decimal import Decimal
from typing import Optional, List, Dict, Any, Union

from pydantic import ValidationError

from autonomy.agent_registry import AgentRegistry
from autonomy.config import Settings
from autonomy.errors import InvalidInputError
from autonomy.models import (
    Agent,
    AgentLogEntry,
    AgentStatus,
    AgentTask,
    Policy,
    TaskResult,
    Transaction,
    TransactionRequest,
    TransactionStats,
    TransactionStatus,
    ValidationResult,
)
from autonomy.money import AmountLike
from autonomy.observer import ActivityLog, AgentObserver, CompositeObserver, LoggingObserver
from autonomy.orchestrator import AgentOrchestrator
from autonomy.policy_validator import PolicyValidator
from autonomy.rails import SettlementRail, SimulatedRail
from autonomy.spend_accumulator import SpendAccumulator
from autonomy.task_executor import TaskExecutor
from autonomy.transaction_ledger import TransactionLedger


logger = logging.getLogger(__name__)


def _invalid_input(error: ValidationError) -> InvalidInputError:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}"
        for err in error.errors()
    )
    return InvalidInputError(details)


class AutonomySDK:
    """High-level SDK for autonomous agent spending.

    The AutonomySDK composes the registry, transaction ledger, spend cache,
    policy validator, settlement rail, task executor and orchestrator behind
    one interface.

    Key Features:
    - **Agent Management**: Create, update, pause, freeze and delete agents
    - **Policies**: Daily and per-transaction limits, service whitelists
    - **Validation**: Dry-run a payment against an agent's policy
    - **Execution**: Run paid tasks with recording and settlement
    - **Reporting**: Transaction history, stats and activity logs

    Usage Example:
        ```python
        sdk = AutonomySDK()

        agent = sdk.create_agent(
            name="Research Bot",
            user_id="user-1",
            policy=Policy(daily_limit=50, per_tx_limit=10,
                          whitelist={"api.openai.com"}),
        )

        result = sdk.simulate_transaction(agent.agent_id, "api.openai.com", 5)
        result.approved  # True

        task_result = sdk.execute_task(agent.agent_id, AgentTask(
            service="api.openai.com", amount=5,
        ))
        sdk.get_daily_spend(agent.agent_id)  # Decimal("5.000000")

        sdk.kill_switch(agent.agent_id)
        sdk.simulate_transaction(agent.agent_id, "api.openai.com", 1).reason
        # "Agent is frozen"
        ```

    Attributes:
        settings (Settings): Configuration the SDK was built from
        registry (AgentRegistry): Agents and policies
        ledger (TransactionLedger): Recorded transactions
        spend_accumulator (SpendAccumulator): Cached daily spend
        validator (PolicyValidator): Policy checks
        rail (SettlementRail): Settlement of approved payments
        activity (ActivityLog): In-memory agent activity
        executor (TaskExecutor): Task execution with payment
        orchestrator (AgentOrchestrator): Running agents
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rail: Optional[SettlementRail] = None,
        observer: Optional[AgentObserver] = None,
    ):
        """Initialize the Autonomy SDK.

        Args:
            settings: Configuration. Defaults to ``Settings()``; use
                ``Settings.from_env()`` to read the environment.
            rail: Settlement rail. Defaults to ``SimulatedRail()``.
            observer: Extra activity receiver, called after the built-in
                logging observer and activity log.
        """
        self.settings = settings or Settings()
        self.registry = AgentRegistry()
        self.ledger = TransactionLedger()
        self.spend_accumulator = SpendAccumulator(
            self.ledger, ttl_seconds=self.settings.spend_cache_ttl_seconds
        )
        self.validator = PolicyValidator(self.registry, self.spend_accumulator)
        self.rail = rail or SimulatedRail()
        self.activity = ActivityLog()

        observers: List[AgentObserver] = [LoggingObserver(), self.activity]
        if observer is not None:
            observers.append(observer)
        self.observer = CompositeObserver(observers)

        self.executor = TaskExecutor(
            self.registry,
            self.ledger,
            self.spend_accumulator,
            self.validator,
            self.rail,
            observer=self.observer,
            serialize_per_agent=self.settings.serialize_agent_spend,
        )
        self.orchestrator = AgentOrchestrator(self.registry, self.executor, self.observer)

    # ========== Agent Management ==========

    def create_agent(
        self,
        name: str,
        policy: Policy,
        user_id: Optional[str] = None,
        agent_id: Optional[str] = None,
        status: AgentStatus = AgentStatus.ACTIVE,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Agent:
        """Create an agent with its policy and a fresh wallet.

        Active agents are started in the orchestrator right away.

        Args:
            name (str): Human-readable name
            policy (Policy): Spending policy
            user_id (Optional[str]): Owning user
            agent_id (Optional[str]): Explicit id, UUID when omitted
            status (AgentStatus): Initial status. Default: active
            metadata (Optional[Dict]): Additional agent metadata

        Returns:
            Agent: The created agent

        Raises:
            ValueError: If agent_id already exists
        """
        fields: Dict[str, Any] = {
            "name": name,
            "user_id": user_id,
            "wallet_address": self.rail.create_wallet(),
            "status": AgentStatus(status),
            "policy": policy,
            "metadata": metadata or {},
        }
        if agent_id is not None:
            fields["agent_id"] = agent_id
        agent = self.registry.register_agent(Agent(**fields))
        logger.info("Created agent %s (%s)", agent.display_name, agent.agent_id)

        if agent.is_active:
            self.orchestrator.start_agent(agent.agent_id)
        return agent

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        """Get an agent by ID.

        Returns:
            Optional[Agent]: The agent if found, None otherwise
        """
        return self.registry.get_agent(agent_id)

    def require_agent(self, agent_id: str) -> Agent:
        return self.registry.require_agent(agent_id)

    def list_agents(self, user_id: Optional[str] = None) -> List[Agent]:
        """List agents, newest first, optionally only one user's."""
        return self.registry.list_agents(user_id)

    def update_agent(
        self,
        agent_id: str,
        name: Optional[str] = None,
        status: Optional[Union[AgentStatus, str]] = None,
    ) -> Agent:
        """Rename an agent and/or change its status.

        Status changes go through the orchestrator: ``paused`` stops the
        agent, ``frozen`` is the kill switch, ``active`` resumes it.

        Raises:
            NotFoundError: If the agent does not exist
        """
        agent = self.registry.require_agent(agent_id)
        if name is not None:
            agent = self.registry.rename_agent(agent_id, name)

        if status is not None:
            status = AgentStatus(status)
            if status == AgentStatus.PAUSED:
                agent = self.orchestrator.pause_agent(agent_id)
            elif status == AgentStatus.FROZEN:
                agent = self.orchestrator.kill_switch(agent_id)
            else:
                agent = self.orchestrator.resume_agent(agent_id)
        return agent

    def delete_agent(self, agent_id: str) -> bool:
        """Delete an agent. Its recorded transactions are kept.

        Returns:
            bool: True if the agent existed
        """
        self.orchestrator.forget(agent_id)
        self.spend_accumulator.invalidate(agent_id)
        deleted = self.registry.delete_agent(agent_id)
        if deleted:
            logger.info("Deleted agent %s", agent_id)
        return deleted

    def kill_switch(self, agent_id: str) -> Agent:
        """Freeze an agent; every later payment is blocked."""
        return self.orchestrator.kill_switch(agent_id)

    # ========== Policies ==========

    def get_policy(self, agent_id: str) -> Policy:
        return self.registry.get_policy(agent_id)

    def update_policy(
        self,
        agent_id: str,
        daily_limit: Optional[AmountLike] = None,
        per_tx_limit: Optional[AmountLike] = None,
        whitelist: Optional[List[str]] = None,
        kill_switch: Optional[bool] = None,
    ) -> Policy:
        """Partially update an agent's policy.

        Raises:
            NotFoundError: If the agent or its policy does not exist
            InvalidInputError: If a limit is not a positive amount
        """
        try:
            return self.registry.update_policy(
                agent_id,
                daily_limit=daily_limit,
                per_tx_limit=per_tx_limit,
                whitelist=whitelist,
                kill_switch=kill_switch,
            )
        except ValidationError as e:
            raise _invalid_input(e) from e

    def add_to_whitelist(self, agent_id: str, service: str) -> Policy:
        if not service or not service.strip():
            raise InvalidInputError("Service is required")
        return self.registry.add_to_whitelist(agent_id, service.strip())

    def remove_from_whitelist(self, agent_id: str, service: str) -> Policy:
        return self.registry.remove_from_whitelist(agent_id, service)

    # ========== Validation & Execution ==========

    def get_daily_spend(self, agent_id: str) -> Decimal:
        """Approved spend since local midnight (may be up to the cache TTL stale)."""
        return self.spend_accumulator.get_daily_spend(agent_id)

    def simulate_transaction(
        self,
        agent_id: str,
        service: str,
        amount: AmountLike,
        type: str = "payment",
    ) -> ValidationResult:
        """Check a payment against the agent's policy without recording it.

        Args:
            agent_id (str): Requesting agent
            service (str): Service to pay
            amount (AmountLike): Amount, must be positive and finite
            type (str): Informational type

        Returns:
            ValidationResult: The decision the validator would make now

        Raises:
            InvalidInputError: If the request is malformed
            StorageError: If the agent or spend could not be read

        Example:
            ```python
            result = sdk.simulate_transaction("research-bot", "malicious.xyz", 5)
            result.approved  # False
            result.reason    # 'Service "malicious.xyz" is not whitelisted'
            ```
        """
        return self.validator.validate_transaction(
            self.build_request(agent_id, service, amount, type)
        )

    def build_request(self, agent_id: str, service: str, amount: AmountLike,
                      type: str = "payment") -> TransactionRequest:
        try:
            return TransactionRequest(agent_id=agent_id, service=service, amount=amount, type=type)
        except ValidationError as e:
            raise _invalid_input(e) from e

    def execute_task(self, agent_id: str, task: Union[AgentTask, Dict[str, Any]]) -> TaskResult:
        """Run a task on a running agent, paying for it if it has an amount.

        Raises:
            InvalidInputError: If the task is malformed
            AgentNotRunningError: If the agent is not running
            StorageError: If the agent or spend could not be read
        """
        if not isinstance(task, AgentTask):
            try:
                task = AgentTask(**task)
            except ValidationError as e:
                raise _invalid_input(e) from e
        return self.orchestrator.execute_task(agent_id, task)

    # ========== Reporting ==========

    def list_transactions(
        self,
        agent_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[Union[TransactionStatus, str]] = None,
        limit: int = 50,
    ) -> List[Transaction]:
        return self.ledger.list_transactions(
            agent_id=agent_id,
            user_id=user_id,
            status=TransactionStatus(status) if status is not None else None,
            limit=limit,
        )

    def get_stats(self, user_id: Optional[str] = None) -> TransactionStats:
        return self.ledger.get_stats(user_id)

    def get_activity(self, agent_id: str, limit: Optional[int] = None) -> List[AgentLogEntry]:
        """Activity log entries for an agent, newest first."""
        return self.activity.get_logs(agent_id, limit)

    # ========== Lifecycle ==========

    def clear_all(self) -> None:
        """Reset all in-memory state (useful for testing)."""
        self.orchestrator.shutdown()
        self.registry.clear()
        self.ledger.clear()
        self.spend_accumulator.invalidate_all()
        self.activity.clear()

    def shutdown(self) -> None:
        self.orchestrator.shutdown()
