"""Task models - units of work an agent executes, possibly paying for them."""

from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any
from uuid import uuid4
from datetime import datetime, UTC
from pydantic import BaseModel, Field, field_validator

from autonomy.models.validation import ValidationResult
from autonomy.money import to_amount


class TaskType(str, Enum):
    """Kinds of work an agent can be asked to do."""
    RESEARCH = "research"
    TRADE = "trade"
    PAYMENT = "payment"


class AgentTask(BaseModel):
    """A task to run on an agent.

    Tasks with a positive ``amount`` must pass policy validation and be
    settled before the work itself runs. Tasks without an amount skip the
    payment step entirely.

    Attributes:
        task_id (str): Unique task identifier
        type (TaskType): Kind of task
        service (str): Service the task talks to (and pays, if any)
        amount (Optional[Decimal]): Amount to pay, None for free tasks
        data (Dict[str, Any]): Task input, e.g. {"topic": "..."}
    """

    task_id: str = Field(
        default_factory=lambda: f"task-{uuid4()}",
        description="Unique task identifier"
    )
    type: TaskType = Field(
        default=TaskType.PAYMENT,
        description="Kind of task"
    )
    service: str = Field(
        min_length=1,
        description="Service the task targets"
    )
    amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Amount to pay, if the task costs anything"
    )
    data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Task input data"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value):
        if value is None:
            return None
        return to_amount(value)

    @property
    def requires_payment(self) -> bool:
        return self.amount is not None and self.amount > 0


class TaskResult(BaseModel):
    """Outcome of executing a task.

    Attributes:
        task_id (str): Task this result belongs to
        success (bool): True if payment (when required) and work both succeeded
        output (Optional[Dict[str, Any]]): Task output on success
        error (Optional[str]): Why the task failed; the validator's reason
            when the payment was blocked
        validation (Optional[ValidationResult]): Policy decision, if a payment
            was attempted
        transaction_id (Optional[str]): Recorded transaction id, if any
        tx_hash (Optional[str]): Settlement hash for approved payments
        completed_at (datetime): When execution finished
    """

    task_id: str
    success: bool
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    validation: Optional[ValidationResult] = None
    transaction_id: Optional[str] = None
    tx_hash: Optional[str] = None
    completed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC)
    )
