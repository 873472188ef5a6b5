"""Settlement Rails."""

from autonomy.rails.base import (
    SettlementRail,
    SettlementReceipt,
)
from autonomy.rails.simulated import SimulatedRail

__all__ = [
    "SettlementRail",
    "SettlementReceipt",
    "SimulatedRail",
]
