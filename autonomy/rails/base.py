"""Base Settlement Rail Interface.

Defines the interface for settling approved payments. A rail moves funds
from an agent's wallet to a service and returns a receipt carrying the
settlement hash that gets attached to the recorded transaction.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Dict, Any
from datetime import datetime, UTC
from pydantic import BaseModel, Field
from uuid import uuid4


class SettlementReceipt(BaseModel):
    """Proof that a payment was settled on a rail.

    Attributes:
        receipt_id (str): Unique receipt ID
        rail_name (str): Name of the rail (e.g., "simulated")
        from_address (str): Paying wallet address
        to_service (str): Service or address that was paid
        amount (Decimal): Amount settled
        currency (str): Currency code (default: "USDC")
        tx_hash (str): Settlement hash on the rail
        created_at (datetime): When settlement completed
        metadata (Dict[str, Any]): Additional rail metadata
    """

    receipt_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique receipt ID"
    )
    rail_name: str = Field(description="Name of the settlement rail")
    from_address: str = Field(description="Paying wallet address")
    to_service: str = Field(description="Recipient service")
    amount: Decimal = Field(gt=0, description="Amount settled")
    currency: str = Field(default="USDC", description="Currency code")
    tx_hash: str = Field(description="Settlement hash")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Settlement timestamp"
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata"
    )


class SettlementRail(ABC):
    """Abstract base class for settlement rails.

    Rails are only asked to settle payments the policy validator already
    approved; they do no policy checking of their own.

    Usage Example:
        ```python
        class MyRail(SettlementRail):
            def get_name(self) -> str:
                return "my_rail"

            def create_wallet(self) -> str:
                return "0x..."

            def send_payment(self, from_address, to_service, amount, metadata=None):
                # ... submit the transfer ...
                return SettlementReceipt(
                    rail_name=self.get_name(),
                    from_address=from_address,
                    to_service=to_service,
                    amount=amount,
                    tx_hash=submitted_hash,
                )
        ```
    """

    @abstractmethod
    def get_name(self) -> str:
        """Get the name of this rail."""
        pass

    @abstractmethod
    def create_wallet(self) -> str:
        """Provision a wallet for a new agent.

        Returns:
            str: The wallet address
        """
        pass

    @abstractmethod
    def send_payment(
        self,
        from_address: str,
        to_service: str,
        amount: Decimal,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SettlementReceipt:
        """Settle an approved payment.

        Args:
            from_address (str): Agent wallet address
            to_service (str): Service being paid
            amount (Decimal): Amount to settle
            metadata (Optional[Dict]): Additional metadata

        Returns:
            SettlementReceipt: Receipt with the settlement hash

        Raises:
            SettlementError: If the payment could not be settled
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(rail={self.get_name()})>"
