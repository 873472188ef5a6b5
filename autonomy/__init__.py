"""Autonomy - Spending policy enforcement for AI agents."""

__version__ = "0.1.0"

# Main SDK interface
from autonomy.sdk import AutonomySDK
from autonomy.config import Settings, configure_logging

# Core models (for advanced usage)
from autonomy.models import (
    Agent,
    AgentStatus,
    Policy,
    PolicyChecks,
    Transaction,
    TransactionRequest,
    TransactionStatus,
    ValidationResult,
    AgentTask,
    TaskResult,
    TaskType,
)

# Components (for advanced usage)
from autonomy.agent_registry import AgentRegistry
from autonomy.transaction_ledger import TransactionLedger
from autonomy.spend_accumulator import SpendAccumulator
from autonomy.policy_validator import PolicyValidator
from autonomy.task_executor import TaskExecutor
from autonomy.orchestrator import AgentOrchestrator
from autonomy.errors import (
    AutonomyError,
    NotFoundError,
    StorageError,
    InvalidInputError,
    AgentStateError,
    AgentNotRunningError,
    SettlementError,
)

__all__ = [
    # Main SDK
    "AutonomySDK",
    "Settings",
    "configure_logging",
    # Models
    "Agent",
    "AgentStatus",
    "Policy",
    "PolicyChecks",
    "Transaction",
    "TransactionRequest",
    "TransactionStatus",
    "ValidationResult",
    "AgentTask",
    "TaskResult",
    "TaskType",
    # Components
    "AgentRegistry",
    "TransactionLedger",
    "SpendAccumulator",
    "PolicyValidator",
    "TaskExecutor",
    "AgentOrchestrator",
    # Errors
    "AutonomyError",
    "NotFoundError",
    "StorageError",
    "InvalidInputError",
    "AgentStateError",
    "AgentNotRunningError",
    "SettlementError",
]
