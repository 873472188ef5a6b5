"""Agent model - an autonomous actor with a wallet, a policy and a status.

The agent's status is the emergency control: ``paused`` and ``frozen`` agents
are blocked before any other policy check runs. Freezing an agent is what the
dashboard calls the kill switch.
"""

from enum import Enum
from typing import Optional, Dict, Any
from uuid import uuid4
from datetime import datetime, UTC
from pydantic import BaseModel, Field

from autonomy.models.policy import Policy


class AgentStatus(str, Enum):
    """Lifecycle status of an agent.

    Attributes:
        ACTIVE (str): Agent may spend, subject to its policy.
        PAUSED (str): Temporarily halted; can be resumed.
        FROZEN (str): Kill switch engaged; all approvals blocked.
    """
    ACTIVE = "active"
    PAUSED = "paused"
    FROZEN = "frozen"


class Agent(BaseModel):
    """Autonomous actor that requests payments on behalf of a user.

    An agent owns one Policy. The policy is optional at the model level only
    so that a misconfigured record can be represented; the validator treats a
    missing policy as its own rejection ("No policy configured for agent"),
    never as "no restrictions".

    Usage Example:
        ```python
        agent = Agent(
            agent_id="research-bot",
            name="Research Bot",
            user_id="user-1",
            policy=Policy(daily_limit=50, per_tx_limit=10),
        )
        agent.is_active  # True
        ```

    Attributes:
        agent_id (str): Unique identifier, UUID v4 when not provided.
        name (str): Human-readable name.
        user_id (Optional[str]): Owner of the agent.
        wallet_address (Optional[str]): Settlement address assigned at creation.
        status (AgentStatus): Lifecycle status. Default: active
        policy (Optional[Policy]): Spending policy.
        metadata (Dict[str, Any]): Application-specific data.
        created_at (datetime): Creation timestamp (UTC).
    """

    agent_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique agent identifier"
    )
    name: str = Field(
        default="",
        description="Human-readable agent name"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owning user"
    )
    wallet_address: Optional[str] = Field(
        default=None,
        description="Settlement wallet address"
    )
    status: AgentStatus = Field(
        default=AgentStatus.ACTIVE,
        description="Lifecycle status"
    )
    policy: Optional[Policy] = Field(
        default=None,
        description="Spending policy"
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Optional metadata"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the agent was created"
    )

    @property
    def display_name(self) -> str:
        """Name if set, otherwise the agent id."""
        return self.name or self.agent_id

    @property
    def is_active(self) -> bool:
        return self.status == AgentStatus.ACTIVE
