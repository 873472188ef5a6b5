"""Simulated Settlement Rail.

Stands in for on-chain settlement in development and tests: wallet
addresses and transaction hashes are random hex strings and no funds move.
"""

import logging
import secrets
import threading
from decimal import Decimal
from typing import Optional, Dict, Any, List

from autonomy.errors import SettlementError
from autonomy.money import format_usd
from autonomy.rails.base import SettlementRail, SettlementReceipt


logger = logging.getLogger(__name__)


class SimulatedRail(SettlementRail):
    """Rail that pretends to settle payments.

    The most recent ``max_receipts`` settled payments are kept in memory so
    tests can inspect what would have been sent.

    Usage Example:
        ```python
        rail = SimulatedRail()
        address = rail.create_wallet()          # "0x" + 40 hex chars
        receipt = rail.send_payment(address, "api.openai.com", Decimal("5"))
        receipt.tx_hash                         # "0x" + 64 hex chars
        ```
    """

    def __init__(self, max_receipts: int = 1000):
        self.max_receipts = max_receipts
        self._receipts: List[SettlementReceipt] = []
        self._lock = threading.Lock()

    def get_name(self) -> str:
        return "simulated"

    def create_wallet(self) -> str:
        return f"0x{secrets.token_hex(20)}"

    def send_payment(
        self,
        from_address: str,
        to_service: str,
        amount: Decimal,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SettlementReceipt:
        if not from_address:
            raise SettlementError("Agent has no wallet address")
        if amount <= 0:
            raise SettlementError("Settlement amount must be positive")

        receipt = SettlementReceipt(
            rail_name=self.get_name(),
            from_address=from_address,
            to_service=to_service,
            amount=amount,
            tx_hash=f"0x{secrets.token_hex(32)}",
            metadata=metadata or {},
        )
        with self._lock:
            self._receipts.append(receipt)
            if len(self._receipts) > self.max_receipts:
                del self._receipts[:len(self._receipts) - self.max_receipts]
        logger.info("Simulated payment of %s from %s to %s", format_usd(amount), from_address, to_service)
        return receipt

    def get_receipts(self) -> List[SettlementReceipt]:
        with self._lock:
            return list(self._receipts)

    def clear(self) -> None:
        with self._lock:
            self._receipts.clear()
