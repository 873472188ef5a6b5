"""Agent Orchestrator - lifecycle of running agents.

The orchestrator tracks which agents are running in this process and keeps
their stored status in step with lifecycle operations. Pausing or freezing
an agent changes its status, which the policy validator checks before
anything else, so a stopped agent cannot spend even if a caller bypasses
the orchestrator.
"""

import logging
import threading
from typing import List, Set

from autonomy.agent_registry import AgentRegistry
from autonomy.errors import AgentNotRunningError, AgentStateError
from autonomy.models import Agent, AgentLogEntry, AgentStatus, AgentTask, LogLevel, TaskResult
from autonomy.observer import AgentObserver
from autonomy.task_executor import TaskExecutor


logger = logging.getLogger(__name__)


class AgentOrchestrator:
    """Starts, stops and drives agents.

    Usage Example:
        ```python
        orchestrator = AgentOrchestrator(registry, executor, observer)
        orchestrator.initialize()                  # start every active agent

        orchestrator.execute_task("research-bot", task)
        orchestrator.kill_switch("research-bot")   # frozen, stopped
        orchestrator.shutdown()
        ```
    """

    def __init__(self, agent_registry: AgentRegistry, executor: TaskExecutor,
                 observer: AgentObserver):
        self.agent_registry = agent_registry
        self.executor = executor
        self.observer = observer
        self._running: Set[str] = set()
        self._lock = threading.Lock()

    def initialize(self) -> int:
        """Start every active agent that is not already running.

        Returns:
            int: Number of agents started
        """
        started = 0
        for agent in self.agent_registry.list_active_agents():
            if not self.is_running(agent.agent_id):
                self.start_agent(agent.agent_id)
                started += 1
        logger.info("Orchestrator initialized with %d running agents", len(self.running_agents()))
        return started

    def start_agent(self, agent_id: str) -> Agent:
        """Start an agent.

        Raises:
            NotFoundError: If the agent does not exist
            AgentStateError: If the agent is already running or is not active
        """
        agent = self.agent_registry.require_agent(agent_id)
        with self._lock:
            if agent_id in self._running:
                raise AgentStateError(f"Agent {agent_id} is already running")
            if not agent.is_active:
                raise AgentStateError(f"Agent {agent_id} is {agent.status.value}")
            self._running.add(agent_id)

        logger.info("Started agent %s (%s)", agent.display_name, agent_id)
        self._log(agent_id, "Agent started")
        return agent

    def stop_agent(self, agent_id: str) -> None:
        """Stop a running agent without changing its status.

        Raises:
            AgentNotRunningError: If the agent is not running
        """
        with self._lock:
            if agent_id not in self._running:
                raise AgentNotRunningError(f"Agent {agent_id} is not running")
            self._running.discard(agent_id)

        logger.info("Stopped agent %s", agent_id)
        self._log(agent_id, "Agent stopped")

    def pause_agent(self, agent_id: str) -> Agent:
        """Set the agent's status to paused and stop it if running."""
        agent = self.agent_registry.set_status(agent_id, AgentStatus.PAUSED)
        self._discard(agent_id)
        logger.info("Paused agent %s", agent_id)
        self._log(agent_id, "Agent paused")
        return agent

    def resume_agent(self, agent_id: str) -> Agent:
        """Set the agent's status to active and start it if not running."""
        agent = self.agent_registry.set_status(agent_id, AgentStatus.ACTIVE)
        if not self.is_running(agent_id):
            self.start_agent(agent_id)
        logger.info("Resumed agent %s", agent_id)
        return agent

    def kill_switch(self, agent_id: str) -> Agent:
        """Emergency stop: freeze the agent so every payment is blocked.

        Raises:
            NotFoundError: If the agent does not exist
        """
        agent = self.agent_registry.set_status(agent_id, AgentStatus.FROZEN)
        self._discard(agent_id)
        logger.warning("EMERGENCY STOP: agent %s frozen", agent_id)
        self._log(agent_id, "EMERGENCY STOP - Kill switch activated", LogLevel.WARN)
        return agent

    def execute_task(self, agent_id: str, task: AgentTask) -> TaskResult:
        """Run a task on a running agent.

        Raises:
            AgentNotRunningError: If the agent is not running
            StorageError: If policy validation could not read storage
        """
        if not self.is_running(agent_id):
            raise AgentNotRunningError("Agent not running")
        try:
            return self.executor.execute_task(agent_id, task)
        except Exception as e:
            self.observer.on_error(agent_id, e)
            raise

    def is_running(self, agent_id: str) -> bool:
        with self._lock:
            return agent_id in self._running

    def running_agents(self) -> List[str]:
        with self._lock:
            return sorted(self._running)

    def forget(self, agent_id: str) -> None:
        """Drop an agent from the running set, e.g. after deletion."""
        self._discard(agent_id)

    def shutdown(self) -> None:
        """Stop all running agents."""
        for agent_id in self.running_agents():
            self.stop_agent(agent_id)
        logger.info("Orchestrator shut down")

    def _discard(self, agent_id: str) -> None:
        with self._lock:
            self._running.discard(agent_id)

    def _log(self, agent_id: str, message: str, level: LogLevel = LogLevel.INFO) -> None:
        self.observer.on_log(AgentLogEntry(agent_id=agent_id, level=level, message=message))
