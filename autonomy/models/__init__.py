"""Core data models for Autonomy."""

from autonomy.models.policy import Policy, service_matches
from autonomy.models.agent import Agent, AgentStatus
from autonomy.models.transaction import (
    Transaction,
    TransactionRequest,
    TransactionStats,
    TransactionStatus,
)
from autonomy.models.validation import PolicyChecks, ValidationResult
from autonomy.models.task import AgentTask, TaskResult, TaskType
from autonomy.models.activity import AgentLogEntry, LogLevel

__all__ = [
    "Policy",
    "service_matches",
    "Agent",
    "AgentStatus",
    "Transaction",
    "TransactionRequest",
    "TransactionStats",
    "TransactionStatus",
    "PolicyChecks",
    "ValidationResult",
    "AgentTask",
    "TaskResult",
    "TaskType",
    "AgentLogEntry",
    "LogLevel",
]
