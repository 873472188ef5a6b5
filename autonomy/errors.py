"""Autonomy error types.

Policy rejections are not errors: they come back as a normal
ValidationResult with approved=False. The exceptions below cover
infrastructure faults, malformed input and lifecycle misuse, so callers
can tell a legitimate block apart from a system failure.
"""


class AutonomyError(Exception):
    """Base error for all Autonomy operations."""
    pass


class NotFoundError(AutonomyError):
    """Agent or policy does not exist."""
    pass


class StorageError(AutonomyError):
    """Reading or writing the backing store failed.

    Raised from agent lookups and spend aggregation. Never coerced into a
    blocked validation result, otherwise infrastructure failures would show
    up as policy blocks in the audit trail.
    """
    pass


class InvalidInputError(AutonomyError, ValueError):
    """Malformed request (missing agent id or service, bad amount)."""
    pass


# Lifecycle errors
class AgentStateError(AutonomyError):
    """Operation not allowed in the agent's current lifecycle state."""
    pass


class AgentNotRunningError(AgentStateError):
    """Agent is not running in the orchestrator."""
    pass


class SettlementError(AutonomyError):
    """Settlement rail failed to move funds for an approved transaction."""
    pass


# Client errors
class AutonomyAPIError(AutonomyError):
    """The Autonomy HTTP API returned an error response."""
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"Autonomy API error ({status_code}): {message}")


class PaymentRejectedError(AutonomyError):
    """A payment needed to complete a request was blocked by policy."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Payment rejected: {reason}")
