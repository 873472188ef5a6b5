"""Pydantic models for the Autonomy HTTP API.

Wire names are camelCase; amounts are sent as JSON numbers.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from autonomy.models import (
    Agent,
    AgentLogEntry,
    AgentStatus,
    LogLevel,
    Policy,
    TaskResult,
    TaskType,
    Transaction,
    TransactionStats,
    TransactionStatus,
    ValidationResult,
)


Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -------- Common --------

class ErrorResponse(ApiModel):
    error: str
    message: Optional[str] = None
    details: Optional[List[Dict[str, Any]]] = None


class SuccessResponse(ApiModel):
    success: bool = True


# -------- Policies --------

class PolicyInput(ApiModel):
    daily_limit: Decimal = Field(gt=0)
    per_tx_limit: Decimal = Field(gt=0)
    whitelist: List[str] = Field(default_factory=list)
    kill_switch: bool = False


class UpdatePolicyRequest(ApiModel):
    daily_limit: Optional[Decimal] = Field(default=None, gt=0)
    per_tx_limit: Optional[Decimal] = Field(default=None, gt=0)
    whitelist: Optional[List[str]] = None
    kill_switch: Optional[bool] = None


class WhitelistRequest(ApiModel):
    service: str = Field(min_length=1)


class PolicyResponse(ApiModel):
    daily_limit: Money
    per_tx_limit: Money
    whitelist: List[str]
    kill_switch: bool

    @classmethod
    def from_policy(cls, policy: Policy) -> "PolicyResponse":
        return cls(
            daily_limit=policy.daily_limit,
            per_tx_limit=policy.per_tx_limit,
            whitelist=sorted(policy.whitelist),
            kill_switch=policy.kill_switch,
        )


class PolicyEnvelope(ApiModel):
    policy: PolicyResponse


# -------- Transactions --------

class TransactionResponse(ApiModel):
    tx_id: str
    agent_id: str
    user_id: Optional[str] = None
    service: str
    amount: Money
    status: TransactionStatus
    reason: str
    tx_hash: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionResponse":
        return cls(**tx.model_dump())


class TransactionListResponse(ApiModel):
    transactions: List[TransactionResponse]


class StatsResponse(ApiModel):
    total_approved: int
    total_blocked: int
    spent_today: Money
    total_spent: Money

    @classmethod
    def from_stats(cls, stats: TransactionStats) -> "StatsResponse":
        return cls(**stats.model_dump())


class StatsEnvelope(ApiModel):
    stats: StatsResponse


class SimulateRequest(ApiModel):
    agent_id: str
    service: str
    amount: Decimal
    type: str = "payment"


class PolicyChecksResponse(ApiModel):
    whitelist_check: bool
    per_tx_limit_check: bool
    daily_limit_check: bool
    agent_status_check: bool


class ValidationResponse(ApiModel):
    approved: bool
    reason: str
    policy_checks: PolicyChecksResponse

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResponse":
        return cls(
            approved=result.approved,
            reason=result.reason,
            policy_checks=PolicyChecksResponse(**result.policy_checks.model_dump()),
        )


class SimulateResponse(ApiModel):
    validation: ValidationResponse


# -------- Agents --------

class CreateAgentRequest(ApiModel):
    name: str = Field(min_length=1, max_length=100)
    user_id: Optional[str] = None
    agent_id: Optional[str] = None
    status: AgentStatus = AgentStatus.ACTIVE
    policy: PolicyInput
    metadata: Dict[str, Any] = Field(default_factory=dict)


class UpdateAgentRequest(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    status: Optional[AgentStatus] = None


class AgentResponse(ApiModel):
    agent_id: str
    name: str
    user_id: Optional[str] = None
    wallet_address: Optional[str] = None
    status: AgentStatus
    policy: Optional[PolicyResponse] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    spent_today: Optional[Money] = None
    transactions: Optional[List[TransactionResponse]] = None

    @classmethod
    def from_agent(
        cls,
        agent: Agent,
        spent_today: Optional[Decimal] = None,
        transactions: Optional[List[Transaction]] = None,
    ) -> "AgentResponse":
        return cls(
            agent_id=agent.agent_id,
            name=agent.name,
            user_id=agent.user_id,
            wallet_address=agent.wallet_address,
            status=agent.status,
            policy=PolicyResponse.from_policy(agent.policy) if agent.policy else None,
            metadata=agent.metadata,
            created_at=agent.created_at,
            spent_today=spent_today,
            transactions=(
                [TransactionResponse.from_transaction(tx) for tx in transactions]
                if transactions is not None else None
            ),
        )


class AgentEnvelope(ApiModel):
    agent: AgentResponse


class AgentListResponse(ApiModel):
    agents: List[AgentResponse]


class KillSwitchResponse(ApiModel):
    agent: AgentResponse
    message: str = "Kill switch activated"


# -------- Tasks & activity --------

class ExecuteTaskRequest(ApiModel):
    type: TaskType = TaskType.PAYMENT
    service: str
    amount: Optional[Decimal] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class TaskResultResponse(ApiModel):
    task_id: str
    success: bool
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    validation: Optional[ValidationResponse] = None
    transaction_id: Optional[str] = None
    tx_hash: Optional[str] = None
    completed_at: datetime

    @classmethod
    def from_result(cls, result: TaskResult) -> "TaskResultResponse":
        return cls(
            task_id=result.task_id,
            success=result.success,
            output=result.output,
            error=result.error,
            validation=(
                ValidationResponse.from_result(result.validation)
                if result.validation is not None else None
            ),
            transaction_id=result.transaction_id,
            tx_hash=result.tx_hash,
            completed_at=result.completed_at,
        )


class LogEntryResponse(ApiModel):
    agent_id: str
    level: LogLevel
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


class LogsResponse(ApiModel):
    logs: List[LogEntryResponse]

    @classmethod
    def from_entries(cls, entries: List[AgentLogEntry]) -> "LogsResponse":
        return cls(logs=[LogEntryResponse(**entry.model_dump()) for entry in entries])
