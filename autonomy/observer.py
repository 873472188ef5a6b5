"""Agent observers - explicit callbacks for agent activity.

Executors and the orchestrator report what agents do through an injected
observer rather than a broadcast event bus. Every observer implements the
same three callbacks, so a missing handler is visible at the call site.
"""

import logging
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Protocol

from autonomy.models import AgentLogEntry, LogLevel, Transaction


logger = logging.getLogger(__name__)


class AgentObserver(Protocol):
    """Receiver for agent activity."""

    def on_transaction(self, agent_id: str, transaction: Transaction) -> None:
        ...

    def on_log(self, entry: AgentLogEntry) -> None:
        ...

    def on_error(self, agent_id: str, error: Exception) -> None:
        ...


_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LoggingObserver:
    """Forwards agent activity to the standard logging system."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def on_transaction(self, agent_id: str, transaction: Transaction) -> None:
        self.log.info(
            "Agent %s transaction %s: %s %s to %s (%s)",
            agent_id, transaction.tx_id, transaction.status.value,
            transaction.amount, transaction.service, transaction.reason,
        )

    def on_log(self, entry: AgentLogEntry) -> None:
        self.log.log(_LEVELS[entry.level], "Agent %s: %s", entry.agent_id, entry.message)

    def on_error(self, agent_id: str, error: Exception) -> None:
        self.log.error("Agent %s error: %s", agent_id, error)


class ActivityLog:
    """Keeps agent log entries and transaction events in memory.

    Both are capped at ``max_entries_per_agent`` per agent; the oldest are
    dropped first.

    Errors are stored as log entries with level ``error`` so the activity
    feed shows them inline.
    """

    def __init__(self, max_entries_per_agent: int = 500):
        self.max_entries_per_agent = max_entries_per_agent
        self._logs: Dict[str, List[AgentLogEntry]] = defaultdict(list)
        self._transactions: Dict[str, List[Transaction]] = defaultdict(list)
        self._lock = threading.Lock()

    def on_transaction(self, agent_id: str, transaction: Transaction) -> None:
        with self._lock:
            self._append(self._transactions[agent_id], transaction)

    def on_log(self, entry: AgentLogEntry) -> None:
        with self._lock:
            self._append(self._logs[entry.agent_id], entry)

    def _append(self, items: list, item) -> None:
        # caller holds the lock
        items.append(item)
        if len(items) > self.max_entries_per_agent:
            del items[:len(items) - self.max_entries_per_agent]

    def on_error(self, agent_id: str, error: Exception) -> None:
        self.on_log(AgentLogEntry(
            agent_id=agent_id,
            level=LogLevel.ERROR,
            message=str(error),
            metadata={"error_type": type(error).__name__},
        ))

    def get_logs(self, agent_id: str, limit: Optional[int] = None) -> List[AgentLogEntry]:
        """Log entries for an agent, newest first."""
        with self._lock:
            entries = list(reversed(self._logs.get(agent_id, [])))
        return entries[:limit] if limit is not None else entries

    def get_transactions(self, agent_id: str) -> List[Transaction]:
        with self._lock:
            return list(self._transactions.get(agent_id, []))

    def clear(self) -> None:
        with self._lock:
            self._logs.clear()
            self._transactions.clear()


class CompositeObserver:
    """Fans every callback out to several observers, in order."""

    def __init__(self, observers: Iterable[AgentObserver]):
        self.observers = list(observers)

    def on_transaction(self, agent_id: str, transaction: Transaction) -> None:
        for observer in self.observers:
            observer.on_transaction(agent_id, transaction)

    def on_log(self, entry: AgentLogEntry) -> None:
        for observer in self.observers:
            observer.on_log(entry)

    def on_error(self, agent_id: str, error: Exception) -> None:
        for observer in self.observers:
            observer.on_error(agent_id, error)
