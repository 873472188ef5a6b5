"""Agent Registry - storage for agents, their status and their policy.

The AgentRegistry is responsible for:
- Storing and retrieving agents
- Ensuring agent uniqueness (no duplicate IDs)
- Status transitions (active / paused / frozen)
- Policy updates and whitelist edits

This implementation keeps agents in memory. Reads hand out deep copies, so a
policy read by the validator is a snapshot that cannot change under it and
callers cannot mutate stored state without going through the registry.
"""

import threading
from decimal import Decimal
from typing import Dict, List, Optional

from autonomy.errors import NotFoundError
from autonomy.models import Agent, AgentStatus, Policy


class AgentRegistry:
    """Registry for storing and managing agents.

    Thread Safety:
        All operations take an internal lock, so the registry can be shared
        between request handlers.

    Usage Example:
        ```python
        registry = AgentRegistry()
        registry.register_agent(Agent(
            agent_id="research-bot",
            policy=Policy(daily_limit=50, per_tx_limit=10),
        ))

        registry.set_status("research-bot", AgentStatus.FROZEN)
        registry.get_agent("research-bot").status  # AgentStatus.FROZEN
        ```
    """

    def __init__(self):
        self._agents: Dict[str, Agent] = {}
        self._lock = threading.Lock()

    def register_agent(self, agent: Agent) -> Agent:
        """Register a new agent.

        Args:
            agent (Agent): The agent to register

        Returns:
            Agent: A copy of the stored agent

        Raises:
            ValueError: If an agent with this ID is already registered
        """
        with self._lock:
            if agent.agent_id in self._agents:
                raise ValueError(f"Agent with ID {agent.agent_id} already exists")
            self._agents[agent.agent_id] = agent.model_copy(deep=True)
            return agent.model_copy(deep=True)

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        """Retrieve an agent by ID.

        Returns:
            Optional[Agent]: A snapshot of the agent, or None if not found
        """
        with self._lock:
            agent = self._agents.get(agent_id)
            return agent.model_copy(deep=True) if agent is not None else None

    def require_agent(self, agent_id: str) -> Agent:
        """Like get_agent, but raise NotFoundError when missing."""
        agent = self.get_agent(agent_id)
        if agent is None:
            raise NotFoundError(f"Agent {agent_id} not found")
        return agent

    def rename_agent(self, agent_id: str, name: str) -> Agent:
        return self._modify(agent_id, name=name)

    def set_status(self, agent_id: str, status: AgentStatus) -> Agent:
        """Change an agent's lifecycle status.

        Raises:
            NotFoundError: If the agent does not exist
        """
        return self._modify(agent_id, status=AgentStatus(status))

    def get_policy(self, agent_id: str) -> Policy:
        """Return the agent's policy.

        Raises:
            NotFoundError: If the agent or its policy does not exist
        """
        agent = self.get_agent(agent_id)
        if agent is None or agent.policy is None:
            raise NotFoundError("Policy not found")
        return agent.policy

    def update_policy(
        self,
        agent_id: str,
        daily_limit: Optional[Decimal] = None,
        per_tx_limit: Optional[Decimal] = None,
        whitelist: Optional[List[str]] = None,
        kill_switch: Optional[bool] = None,
    ) -> Policy:
        """Partially update an agent's policy.

        Fields left as None keep their current value. The merged policy is
        re-validated, so a non-positive limit raises ``ValidationError``.

        Raises:
            NotFoundError: If the agent or its policy does not exist
        """
        changes = {}
        if daily_limit is not None:
            changes["daily_limit"] = daily_limit
        if per_tx_limit is not None:
            changes["per_tx_limit"] = per_tx_limit
        if whitelist is not None:
            changes["whitelist"] = whitelist
        if kill_switch is not None:
            changes["kill_switch"] = kill_switch

        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None or agent.policy is None:
                raise NotFoundError("Policy not found")
            merged = Policy(**{**agent.policy.model_dump(), **changes})
            agent.policy = merged
            return merged.model_copy(deep=True)

    def add_to_whitelist(self, agent_id: str, service: str) -> Policy:
        """Add a service to the agent's whitelist (no-op if already present)."""
        current = self.get_policy(agent_id)
        return self.update_policy(agent_id, whitelist=sorted(current.whitelist | {service}))

    def remove_from_whitelist(self, agent_id: str, service: str) -> Policy:
        """Remove a service from the agent's whitelist (exact match)."""
        current = self.get_policy(agent_id)
        return self.update_policy(agent_id, whitelist=sorted(current.whitelist - {service}))

    def delete_agent(self, agent_id: str) -> bool:
        """Delete an agent.

        Returns:
            bool: True if the agent was deleted, False if it didn't exist
        """
        with self._lock:
            return self._agents.pop(agent_id, None) is not None

    def list_agents(self, user_id: Optional[str] = None) -> List[Agent]:
        """List agents, newest first, optionally filtered by owner."""
        with self._lock:
            agents = [
                a.model_copy(deep=True) for a in self._agents.values()
                if user_id is None or a.user_id == user_id
            ]
        return sorted(agents, key=lambda a: a.created_at, reverse=True)

    def list_active_agents(self) -> List[Agent]:
        return [a for a in self.list_agents() if a.is_active]

    def clear(self) -> None:
        """Remove all agents. Intended for tests."""
        with self._lock:
            self._agents.clear()

    def _modify(self, agent_id: str, **changes) -> Agent:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                raise NotFoundError(f"Agent {agent_id} not found")
            updated = agent.model_copy(update=changes, deep=True)
            self._agents[agent_id] = updated
            return updated.model_copy(deep=True)
