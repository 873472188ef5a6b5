"""Policy Validator - decides whether an agent may make a payment.

The validator runs a fixed sequence of checks against the agent's status and
policy and stops at the first failure:

1. Agent exists
2. Agent has a policy
3. Agent status is active
4. Service is whitelisted
5. Amount is within the per-transaction limit
6. Today's spend plus the amount is within the daily limit

Status goes first so a frozen agent never reveals whether its whitelist would
have passed. The daily check is the only one that reads the transaction store,
so it runs last and is skipped whenever a cheaper check already failed.

The validator has no side effects: it does not record transactions and only
touches the spend cache through reads.
"""

import logging
from typing import Optional, Protocol

from autonomy.errors import StorageError
from autonomy.models import (
    Agent,
    PolicyChecks,
    TransactionRequest,
    ValidationResult,
)
from autonomy.money import format_usd
from autonomy.spend_accumulator import SpendAccumulator


logger = logging.getLogger(__name__)

REASON_AGENT_NOT_FOUND = "Agent not found"
REASON_NO_POLICY = "No policy configured for agent"
REASON_APPROVED = "All policy checks passed"


class AgentSource(Protocol):
    """Read access to agents and their policies."""

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        ...


class PolicyValidator:
    """Validates transaction requests against agent policies.

    Usage Example:
        ```python
        registry = AgentRegistry()
        ledger = TransactionLedger()
        validator = PolicyValidator(registry, SpendAccumulator(ledger))

        registry.register_agent(Agent(
            agent_id="research-bot",
            policy=Policy(daily_limit=50, per_tx_limit=10,
                          whitelist={"api.openai.com"}),
        ))

        result = validator.validate_transaction(TransactionRequest(
            agent_id="research-bot", service="api.openai.com", amount=5,
        ))
        result.approved  # True
        result.reason    # "All policy checks passed"
        ```

    Attributes:
        agent_source (AgentSource): Where agents and policies are read from
        spend_accumulator (SpendAccumulator): Cached daily spend
    """

    def __init__(self, agent_source: AgentSource, spend_accumulator: SpendAccumulator):
        self.agent_source = agent_source
        self.spend_accumulator = spend_accumulator

    def validate_transaction(self, request: TransactionRequest) -> ValidationResult:
        """Run the ordered policy checks for ``request``.

        For a fixed agent, policy, spend so far and request, the result is
        always the same.

        Args:
            request (TransactionRequest): Well-formed request; shape checks
                happen when the request is constructed

        Returns:
            ValidationResult: Decision, reason and per-check flags. Checks
                after the first failure are reported as False.

        Raises:
            StorageError: If reading the agent or the daily spend fails.
                Infrastructure failures are never turned into a rejection.
        """
        agent = self._load_agent(request.agent_id)
        if agent is None:
            return self._blocked(request, REASON_AGENT_NOT_FOUND)

        policy = agent.policy
        if policy is None:
            return self._blocked(request, REASON_NO_POLICY)

        checks = PolicyChecks()

        if not agent.is_active:
            return self._blocked(request, f"Agent is {agent.status.value}", checks)
        checks.agent_status_check = True

        if not policy.is_service_allowed(request.service):
            return self._blocked(
                request, f'Service "{request.service}" is not whitelisted', checks
            )
        checks.whitelist_check = True

        if not policy.is_amount_allowed(request.amount):
            return self._blocked(
                request,
                f"Amount {format_usd(request.amount)} exceeds per-transaction limit "
                f"of {format_usd(policy.per_tx_limit)}",
                checks,
            )
        checks.per_tx_limit_check = True

        spent_today = self.spend_accumulator.get_daily_spend(request.agent_id)
        if not policy.fits_daily_limit(spent_today, request.amount):
            return self._blocked(
                request,
                f"Transaction would exceed daily limit of {format_usd(policy.daily_limit)}",
                checks,
            )
        checks.daily_limit_check = True

        logger.debug(
            "Approved %s for agent %s to %s (spent today %s)",
            format_usd(request.amount), request.agent_id, request.service, format_usd(spent_today),
        )
        return ValidationResult(approved=True, reason=REASON_APPROVED, policy_checks=checks)

    def _load_agent(self, agent_id: str) -> Optional[Agent]:
        try:
            return self.agent_source.get_agent(agent_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load agent {agent_id}: {e}") from e

    def _blocked(self, request: TransactionRequest, reason: str,
                 checks: Optional[PolicyChecks] = None) -> ValidationResult:
        logger.debug("Blocked request from agent %s: %s", request.agent_id, reason)
        return ValidationResult.blocked(reason, checks)
