"""Validation result models returned by the policy validator."""

from typing import Optional
from pydantic import BaseModel, Field


class PolicyChecks(BaseModel):
    """Pass/fail flag for each of the four ordered policy checks.

    Flags start out False and are set to True only as each check passes, so
    every check after the first failure reads False even though it was never
    evaluated (fail-closed reporting).
    """

    agent_status_check: bool = False
    whitelist_check: bool = False
    per_tx_limit_check: bool = False
    daily_limit_check: bool = False

    @classmethod
    def all_passed(cls) -> "PolicyChecks":
        return cls(
            agent_status_check=True,
            whitelist_check=True,
            per_tx_limit_check=True,
            daily_limit_check=True,
        )


class ValidationResult(BaseModel):
    """Decision for a single transaction request.

    Attributes:
        approved (bool): True only if all four checks passed
        reason (str): One sentence naming the deciding factor, or
            "All policy checks passed"
        policy_checks (PolicyChecks): Per-check flags
    """

    approved: bool
    reason: str
    policy_checks: PolicyChecks = Field(default_factory=PolicyChecks)

    @classmethod
    def blocked(cls, reason: str,
                policy_checks: Optional[PolicyChecks] = None) -> "ValidationResult":
        if policy_checks is None:
            policy_checks = PolicyChecks()
        return cls(approved=False, reason=reason, policy_checks=policy_checks)
