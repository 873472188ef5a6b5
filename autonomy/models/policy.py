"""Policy model - defines spending rules and limits for agents.

This module provides the Policy class holding an agent's per-transaction cap,
rolling daily cap and service whitelist, together with the predicates the
policy validator evaluates against a transaction request.
"""

from decimal import Decimal
from typing import Iterable, Set
from pydantic import BaseModel, Field, field_validator

from autonomy.money import to_amount, to_limit


def service_matches(service: str, whitelist: Iterable[str]) -> bool:
    """Check a service identifier against whitelist entries.

    Matching is case-insensitive and deliberately permissive: an entry matches
    when it equals the service, is contained in it, or contains it. That lets
    ``"openai.com"`` cover ``"api.openai.com"``.

    An empty whitelist matches everything.
    """
    entries = [entry.lower() for entry in whitelist]
    if not entries:
        return True
    candidate = service.lower()
    return any(
        candidate == entry or entry in candidate or candidate in entry
        for entry in entries
    )


class Policy(BaseModel):
    """Per-agent spending rules.

    A Policy is owned by exactly one agent and evaluated, as a snapshot, on
    every validation call. It combines three independent controls:

    - **Service whitelist**: which services the agent may pay (empty = any)
    - **Per-transaction limit**: cap on a single payment
    - **Daily limit**: cap on cumulative approved spend since local midnight

    All amounts are ``Decimal`` values at micro-unit scale. Limits are rounded
    down and spend amounts rounded up when converted, so conversion can only
    make a policy stricter, never looser.

    Usage Example:
        ```python
        policy = Policy(
            daily_limit=50,
            per_tx_limit=10,
            whitelist={"api.openai.com"},
        )

        policy.is_service_allowed("API.OpenAI.com")        # True
        policy.is_amount_allowed(Decimal("10"))            # True - inclusive
        policy.fits_daily_limit(Decimal("48"), Decimal("5"))  # False
        ```

    Attributes:
        daily_limit (Decimal): Maximum cumulative approved spend per local
            calendar day. Must be > 0.
        per_tx_limit (Decimal): Maximum amount for a single transaction.
            Must be > 0.
        whitelist (Set[str]): Allowed service identifiers. Empty set means
            every service is allowed.
        kill_switch (bool): Informational flag mirrored from the dashboard.
            It does not gate validation; the agent's status does.
    """

    daily_limit: Decimal = Field(
        gt=0,
        description="Max cumulative approved spend per calendar day"
    )
    per_tx_limit: Decimal = Field(
        gt=0,
        description="Max amount for a single transaction"
    )
    whitelist: Set[str] = Field(
        default_factory=set,
        description="Allowed service identifiers (empty = all allowed)"
    )
    kill_switch: bool = Field(
        default=False,
        description="Informational emergency flag"
    )

    @field_validator("daily_limit", "per_tx_limit", mode="before")
    @classmethod
    def _coerce_limit(cls, value):
        return to_limit(value)

    @field_validator("whitelist", mode="before")
    @classmethod
    def _clean_whitelist(cls, value):
        if value is None:
            return set()
        if isinstance(value, str):
            value = [value]
        return {str(entry).strip() for entry in value if str(entry).strip()}

    def is_service_allowed(self, service: str) -> bool:
        """Check whether this policy permits paying ``service``.

        Args:
            service (str): Service identifier, usually a hostname

        Returns:
            bool: True if the whitelist is empty or any entry matches

        Example:
            ```python
            policy = Policy(daily_limit=50, per_tx_limit=10,
                            whitelist={"api.openai.com"})
            policy.is_service_allowed("API.OpenAI.com")  # True
            policy.is_service_allowed("malicious.xyz")   # False
            ```
        """
        return service_matches(service, self.whitelist)

    def is_amount_allowed(self, amount: Decimal) -> bool:
        """Check an amount against the per-transaction limit (inclusive)."""
        return to_amount(amount) <= self.per_tx_limit

    def fits_daily_limit(self, spent_today: Decimal, amount: Decimal) -> bool:
        """Check whether ``amount`` on top of today's spend stays within the cap.

        The comparison is exact and inclusive: landing precisely on the daily
        limit is allowed.

        Args:
            spent_today (Decimal): Approved spend since local midnight
            amount (Decimal): Amount of the proposed transaction

        Returns:
            bool: True if ``spent_today + amount <= daily_limit``
        """
        return spent_today + to_amount(amount) <= self.daily_limit
