"""Activity log entries emitted by agents while they work."""

from enum import Enum
from typing import Dict, Any
from datetime import datetime, UTC
from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class AgentLogEntry(BaseModel):
    """A single line of an agent's activity log."""

    agent_id: str
    level: LogLevel = LogLevel.INFO
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC)
    )
