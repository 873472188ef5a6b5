"""Tests for the agent orchestrator."""

import pytest

from autonomy.agent_registry import AgentRegistry
from autonomy.errors import AgentNotRunningError, AgentStateError, NotFoundError
from autonomy.models import Agent, AgentStatus, AgentTask, Policy
from autonomy.observer import ActivityLog
from autonomy.orchestrator import AgentOrchestrator
from autonomy.policy_validator import PolicyValidator
from autonomy.rails import SimulatedRail
from autonomy.spend_accumulator import SpendAccumulator
from autonomy.task_executor import TaskExecutor
from autonomy.transaction_ledger import TransactionLedger


@pytest.fixture
def registry():
    registry = AgentRegistry()
    for agent_id, status in [("bot-a", AgentStatus.ACTIVE),
                             ("bot-b", AgentStatus.ACTIVE),
                             ("bot-c", AgentStatus.PAUSED)]:
        registry.register_agent(Agent(
            agent_id=agent_id,
            status=status,
            wallet_address="0x" + "cd" * 20,
            policy=Policy(daily_limit=50, per_tx_limit=10),
        ))
    return registry


@pytest.fixture
def activity():
    return ActivityLog()


@pytest.fixture
def orchestrator(registry, activity):
    ledger = TransactionLedger()
    accumulator = SpendAccumulator(ledger)
    executor = TaskExecutor(registry, ledger, accumulator,
                            PolicyValidator(registry, accumulator),
                            SimulatedRail(), observer=activity)
    return AgentOrchestrator(registry, executor, activity)


class TestLifecycle:
    """Tests for starting and stopping agents."""

    def test_initialize_starts_active_agents(self, orchestrator):
        assert orchestrator.initialize() == 2
        assert orchestrator.running_agents() == ["bot-a", "bot-b"]

    def test_initialize_is_idempotent(self, orchestrator):
        orchestrator.initialize()
        assert orchestrator.initialize() == 0

    def test_start_twice_fails(self, orchestrator):
        orchestrator.start_agent("bot-a")
        with pytest.raises(AgentStateError, match="already running"):
            orchestrator.start_agent("bot-a")

    def test_start_inactive_fails(self, orchestrator):
        with pytest.raises(AgentStateError, match="paused"):
            orchestrator.start_agent("bot-c")

    def test_start_unknown_fails(self, orchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.start_agent("ghost")

    def test_stop(self, orchestrator, activity):
        orchestrator.start_agent("bot-a")
        orchestrator.stop_agent("bot-a")

        assert orchestrator.is_running("bot-a") is False
        assert activity.get_logs("bot-a")[0].message == "Agent stopped"

    def test_stop_not_running(self, orchestrator):
        with pytest.raises(AgentNotRunningError):
            orchestrator.stop_agent("bot-a")

    def test_shutdown(self, orchestrator):
        orchestrator.initialize()
        orchestrator.shutdown()
        assert orchestrator.running_agents() == []


class TestStatusChanges:
    """Tests for pause, resume and the kill switch."""

    def test_pause(self, orchestrator, registry):
        orchestrator.start_agent("bot-a")
        agent = orchestrator.pause_agent("bot-a")

        assert agent.status == AgentStatus.PAUSED
        assert registry.get_agent("bot-a").status == AgentStatus.PAUSED
        assert orchestrator.is_running("bot-a") is False

    def test_resume(self, orchestrator, registry):
        agent = orchestrator.resume_agent("bot-c")

        assert agent.status == AgentStatus.ACTIVE
        assert orchestrator.is_running("bot-c") is True

    def test_kill_switch(self, orchestrator, registry, activity):
        orchestrator.start_agent("bot-a")
        agent = orchestrator.kill_switch("bot-a")

        assert agent.status == AgentStatus.FROZEN
        assert orchestrator.is_running("bot-a") is False
        assert "EMERGENCY STOP" in activity.get_logs("bot-a")[0].message

    def test_kill_switch_unknown(self, orchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.kill_switch("ghost")


class TestExecution:
    """Tests for running tasks through the orchestrator."""

    def test_execute_requires_running_agent(self, orchestrator):
        with pytest.raises(AgentNotRunningError, match="Agent not running"):
            orchestrator.execute_task("bot-a", AgentTask(service="api.openai.com", amount=1))

    def test_execute_running_agent(self, orchestrator):
        orchestrator.start_agent("bot-a")
        result = orchestrator.execute_task("bot-a", AgentTask(service="api.openai.com", amount=1))
        assert result.success is True

    def test_frozen_agent_cannot_execute(self, orchestrator):
        orchestrator.start_agent("bot-a")
        orchestrator.kill_switch("bot-a")
        with pytest.raises(AgentNotRunningError):
            orchestrator.execute_task("bot-a", AgentTask(service="api.openai.com", amount=1))
