"""Transaction models - requests to spend and the records of their outcome.

A TransactionRequest is the ephemeral input to the policy validator. A
Transaction is the persisted record the caller writes after validation, for
approved and blocked outcomes alike.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any
from uuid import uuid4
from datetime import datetime, UTC
from pydantic import BaseModel, Field, field_validator

from autonomy.money import to_amount


class TransactionStatus(str, Enum):
    """Outcome recorded for a transaction."""
    APPROVED = "approved"
    BLOCKED = "blocked"


class TransactionRequest(BaseModel):
    """A proposed outgoing payment from an agent.

    Construction validates the request shape, so the policy validator can
    assume well-formed input. Blank identifiers and non-positive or
    non-finite amounts raise ``pydantic.ValidationError``.

    Attributes:
        agent_id (str): Agent asking to pay
        service (str): Service being paid, usually a hostname
        amount (Decimal): Amount, strictly positive
        type (str): Informational task type, e.g. "payment" or "research"
    """

    agent_id: str = Field(min_length=1, description="Requesting agent")
    service: str = Field(min_length=1, description="Service to pay")
    amount: Decimal = Field(gt=0, description="Amount to spend")
    type: str = Field(default="payment", description="Informational type")

    @field_validator("agent_id", "service", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value):
        return to_amount(value)


class Transaction(BaseModel):
    """A recorded validation outcome.

    Only approved transactions count towards an agent's daily spend.

    Attributes:
        tx_id (str): Unique record id
        agent_id (str): Agent that requested the payment
        user_id (Optional[str]): Owner of the agent at the time
        service (str): Service that was (or would have been) paid
        amount (Decimal): Requested amount
        status (TransactionStatus): approved or blocked
        reason (str): The validator's one-sentence reason
        created_at (datetime): When the outcome was recorded
        tx_hash (Optional[str]): Settlement hash, attached after settlement
        metadata (Dict[str, Any]): Extra context such as the task type
    """

    tx_id: str = Field(
        default_factory=lambda: f"tx-{uuid4()}",
        description="Unique transaction id"
    )
    agent_id: str
    user_id: Optional[str] = None
    service: str
    amount: Decimal = Field(gt=0)
    status: TransactionStatus
    reason: str
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC)
    )
    tx_hash: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_approved(self) -> bool:
        return self.status == TransactionStatus.APPROVED


class TransactionStats(BaseModel):
    """Aggregate counters over recorded transactions."""

    total_approved: int = 0
    total_blocked: int = 0
    spent_today: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
