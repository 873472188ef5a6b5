"""Transaction Ledger - record of every validation outcome.

The TransactionLedger is responsible for:
- Recording approved and blocked transactions with their reason
- Attaching settlement hashes to approved transactions
- Answering the spend aggregation query the spend accumulator relies on
- Listing transactions and computing dashboard statistics

It is the source of truth for "how much has this agent spent today". The
policy validator never writes here; the caller records the outcome after
validation.
"""

import threading
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from autonomy.clock import Clock, local_now, start_of_day, utc_now
from autonomy.errors import NotFoundError
from autonomy.models import (
    Transaction,
    TransactionRequest,
    TransactionStats,
    TransactionStatus,
    ValidationResult,
)


class TransactionLedger:
    """In-memory store of recorded transactions.

    Entries are append-only apart from the settlement hash, which is attached
    after the fact. All operations are guarded by a lock.

    Usage Example:
        ```python
        ledger = TransactionLedger()

        tx = ledger.record_transaction(
            agent_id="research-bot",
            service="api.openai.com",
            amount=Decimal("5"),
            status=TransactionStatus.APPROVED,
            reason="All policy checks passed",
        )
        ledger.attach_settlement(tx.tx_id, "0xabc...")

        ledger.sum_approved_since("research-bot", start_of_day(local_now()))
        # Decimal('5.000000')
        ```

    Attributes:
        clock (Clock): Source of ``created_at`` timestamps
    """

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock
        self._transactions: List[Transaction] = []
        self._by_id: Dict[str, Transaction] = {}
        self._lock = threading.Lock()

    def record_transaction(
        self,
        agent_id: str,
        service: str,
        amount: Decimal,
        status: TransactionStatus,
        reason: str,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> Transaction:
        """Record a validation outcome.

        Args:
            agent_id (str): Agent that requested the payment
            service (str): Service paid (or refused)
            amount (Decimal): Requested amount, must be > 0
            status (TransactionStatus): approved or blocked
            reason (str): Validator reason
            user_id (Optional[str]): Owner of the agent
            metadata (Optional[Dict]): Extra context
            created_at (Optional[datetime]): Override the timestamp (imports, tests)

        Returns:
            Transaction: The stored record
        """
        tx = Transaction(
            agent_id=agent_id,
            user_id=user_id,
            service=service,
            amount=amount,
            status=TransactionStatus(status),
            reason=reason,
            metadata=metadata or {},
            created_at=created_at or self.clock(),
        )
        with self._lock:
            self._transactions.append(tx)
            self._by_id[tx.tx_id] = tx
        return tx.model_copy()

    def record_validation(
        self,
        request: TransactionRequest,
        result: ValidationResult,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """Record the outcome of validating ``request``."""
        return self.record_transaction(
            agent_id=request.agent_id,
            service=request.service,
            amount=request.amount,
            status=TransactionStatus.APPROVED if result.approved else TransactionStatus.BLOCKED,
            reason=result.reason,
            user_id=user_id,
            metadata=metadata,
        )

    def attach_settlement(self, tx_id: str, tx_hash: str) -> Transaction:
        """Store the settlement hash on a recorded transaction.

        Raises:
            NotFoundError: If no transaction has this id
        """
        with self._lock:
            tx = self._by_id.get(tx_id)
            if tx is None:
                raise NotFoundError(f"Transaction {tx_id} not found")
            tx.tx_hash = tx_hash
            return tx.model_copy()

    def get_transaction(self, tx_id: str) -> Optional[Transaction]:
        with self._lock:
            tx = self._by_id.get(tx_id)
            return tx.model_copy() if tx is not None else None

    def sum_approved_since(self, agent_id: str, since: datetime) -> Decimal:
        """Sum approved amounts for an agent recorded at or after ``since``.

        Blocked transactions never count towards spend.

        Args:
            agent_id (str): Agent to aggregate
            since (datetime): Inclusive lower bound (timezone-aware)

        Returns:
            Decimal: Total approved amount, ``Decimal("0")`` if none
        """
        with self._lock:
            return sum(
                (
                    tx.amount for tx in self._transactions
                    if tx.agent_id == agent_id
                    and tx.status == TransactionStatus.APPROVED
                    and tx.created_at >= since
                ),
                Decimal("0"),
            )

    def list_transactions(
        self,
        agent_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
        limit: int = 50,
    ) -> List[Transaction]:
        """List transactions, newest first.

        Args:
            agent_id (Optional[str]): Only this agent's transactions
            user_id (Optional[str]): Only this user's transactions
            status (Optional[TransactionStatus]): Only approved or only blocked
            limit (int): Maximum number of rows to return

        Returns:
            List[Transaction]: Matching transactions, most recent first
        """
        with self._lock:
            matches = [
                tx.model_copy() for tx in self._transactions
                if (agent_id is None or tx.agent_id == agent_id)
                and (user_id is None or tx.user_id == user_id)
                and (status is None or tx.status == status)
            ]
        matches.sort(key=lambda tx: tx.created_at, reverse=True)
        return matches[:max(limit, 0)]

    def get_stats(self, user_id: Optional[str] = None,
                  now: Optional[datetime] = None) -> TransactionStats:
        """Counters for the dashboard, optionally scoped to one user.

        ``spent_today`` uses the same local-midnight boundary as the spend
        accumulator.
        """
        today = start_of_day(now or local_now())
        stats = TransactionStats()
        with self._lock:
            for tx in self._transactions:
                if user_id is not None and tx.user_id != user_id:
                    continue
                if tx.status == TransactionStatus.APPROVED:
                    stats.total_approved += 1
                    stats.total_spent += tx.amount
                    if tx.created_at >= today:
                        stats.spent_today += tx.amount
                else:
                    stats.total_blocked += 1
        return stats

    def count(self) -> int:
        with self._lock:
            return len(self._transactions)

    def clear(self) -> None:
        """Drop all transactions. Intended for tests."""
        with self._lock:
            self._transactions.clear()
            self._by_id.clear()
