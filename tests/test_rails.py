"""Tests for settlement rails."""

import re
import pytest
from decimal import Decimal

from autonomy.errors import SettlementError
from autonomy.rails import SettlementRail, SimulatedRail


@pytest.fixture
def rail():
    """Create a simulated rail."""
    return SimulatedRail()


class TestSimulatedRail:
    """Tests for SimulatedRail."""

    def test_get_name(self, rail):
        assert rail.get_name() == "simulated"
        assert isinstance(rail, SettlementRail)

    def test_create_wallet(self, rail):
        address = rail.create_wallet()
        assert re.fullmatch(r"0x[0-9a-f]{40}", address)
        assert rail.create_wallet() != address

    def test_send_payment(self, rail):
        receipt = rail.send_payment("0x" + "11" * 20, "api.openai.com", Decimal("5"),
                                    metadata={"transaction_id": "tx-1"})

        assert re.fullmatch(r"0x[0-9a-f]{64}", receipt.tx_hash)
        assert receipt.rail_name == "simulated"
        assert receipt.amount == Decimal("5")
        assert receipt.metadata == {"transaction_id": "tx-1"}
        assert rail.get_receipts() == [receipt]

    def test_missing_wallet_rejected(self, rail):
        with pytest.raises(SettlementError, match="no wallet"):
            rail.send_payment(None, "api.openai.com", Decimal("5"))

    def test_non_positive_amount_rejected(self, rail):
        with pytest.raises(SettlementError):
            rail.send_payment("0xabc", "api.openai.com", Decimal("0"))

    def test_clear(self, rail):
        rail.send_payment("0xabc", "api.openai.com", Decimal("1"))
        rail.clear()
        assert rail.get_receipts() == []

    def test_receipts_bounded(self):
        rail = SimulatedRail(max_receipts=2)
        for amount in ("1", "2", "3"):
            rail.send_payment("0xabc", "api.openai.com", Decimal(amount))
        assert [r.amount for r in rail.get_receipts()] == [Decimal("2"), Decimal("3")]
