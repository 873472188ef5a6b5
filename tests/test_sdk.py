"""Tests for the high-level AutonomySDK."""

import pytest
from decimal import Decimal
from pydantic import ValidationError

from autonomy import AutonomySDK, Policy, AgentStatus, AgentTask, Settings
from autonomy.errors import AgentNotRunningError, InvalidInputError, NotFoundError
from autonomy.models import TransactionStatus


@pytest.fixture
def sdk():
    """Create a fresh SDK instance."""
    return AutonomySDK()


@pytest.fixture
def agent(sdk):
    """Create the research bot used in most tests."""
    return sdk.create_agent(
        name="Research Bot",
        user_id="user-1",
        agent_id="research-bot",
        policy=Policy(daily_limit=50, per_tx_limit=10, whitelist={"api.openai.com"}),
    )


class TestAgentManagement:
    """Tests for agent management operations."""

    def test_create_agent(self, sdk, agent):
        assert agent.agent_id == "research-bot"
        assert agent.wallet_address.startswith("0x")
        assert agent.policy.daily_limit == Decimal("50")
        assert sdk.orchestrator.is_running("research-bot") is True

    def test_create_paused_agent_not_started(self, sdk):
        agent = sdk.create_agent("Idle", Policy(daily_limit=1, per_tx_limit=1),
                                 status=AgentStatus.PAUSED)
        assert sdk.orchestrator.is_running(agent.agent_id) is False

    def test_duplicate_creation_fails(self, sdk, agent):
        with pytest.raises(ValueError, match="already exists"):
            sdk.create_agent("Again", Policy(daily_limit=1, per_tx_limit=1),
                             agent_id="research-bot")

    def test_list_agents_by_user(self, sdk, agent):
        sdk.create_agent("Other", Policy(daily_limit=1, per_tx_limit=1), user_id="user-2")
        assert [a.agent_id for a in sdk.list_agents("user-1")] == ["research-bot"]
        assert len(sdk.list_agents()) == 2

    def test_rename(self, sdk, agent):
        assert sdk.update_agent("research-bot", name="Renamed").name == "Renamed"

    def test_pause_and_resume_through_update(self, sdk, agent):
        sdk.update_agent("research-bot", status="paused")
        assert sdk.orchestrator.is_running("research-bot") is False
        assert sdk.simulate_transaction("research-bot", "api.openai.com", 1).reason == "Agent is paused"

        sdk.update_agent("research-bot", status=AgentStatus.ACTIVE)
        assert sdk.orchestrator.is_running("research-bot") is True

    def test_update_unknown_agent(self, sdk):
        with pytest.raises(NotFoundError):
            sdk.update_agent("ghost", name="x")

    def test_delete_agent(self, sdk, agent):
        assert sdk.delete_agent("research-bot") is True
        assert sdk.get_agent("research-bot") is None
        assert sdk.orchestrator.is_running("research-bot") is False
        assert sdk.delete_agent("research-bot") is False


class TestPolicies:
    """Tests for policy management."""

    def test_partial_update(self, sdk, agent):
        policy = sdk.update_policy("research-bot", per_tx_limit=20)
        assert policy.per_tx_limit == Decimal("20")
        assert policy.daily_limit == Decimal("50")
        assert policy.whitelist == {"api.openai.com"}

    def test_invalid_update(self, sdk, agent):
        with pytest.raises(InvalidInputError):
            sdk.update_policy("research-bot", daily_limit=0)

    def test_update_missing_policy(self, sdk):
        with pytest.raises(NotFoundError, match="Policy not found"):
            sdk.update_policy("ghost", daily_limit=5)

    def test_whitelist_add_is_idempotent(self, sdk, agent):
        sdk.add_to_whitelist("research-bot", "api.anthropic.com")
        policy = sdk.add_to_whitelist("research-bot", "api.anthropic.com")
        assert policy.whitelist == {"api.openai.com", "api.anthropic.com"}

    def test_whitelist_remove(self, sdk, agent):
        policy = sdk.remove_from_whitelist("research-bot", "api.openai.com")
        assert policy.whitelist == set()

    def test_blank_whitelist_entry_rejected(self, sdk, agent):
        with pytest.raises(InvalidInputError):
            sdk.add_to_whitelist("research-bot", "  ")


class TestValidation:
    """Tests for dry-run validation."""

    def test_simulate_does_not_record(self, sdk, agent):
        result = sdk.simulate_transaction("research-bot", "api.openai.com", 5)
        assert result.approved is True
        assert sdk.list_transactions() == []

    def test_simulate_invalid_input(self, sdk, agent):
        with pytest.raises(InvalidInputError):
            sdk.simulate_transaction("research-bot", "api.openai.com", -5)

    def test_simulate_huge_amount(self, sdk, agent):
        result = sdk.simulate_transaction("research-bot", "api.openai.com", "1e23")
        assert result.approved is False
        assert result.reason == "Amount $100000000000000000000000 exceeds per-transaction limit of $10"

    def test_simulate_blank_service(self, sdk, agent):
        with pytest.raises(InvalidInputError):
            sdk.simulate_transaction("research-bot", "", 5)

    def test_kill_switch(self, sdk, agent):
        sdk.kill_switch("research-bot")
        result = sdk.simulate_transaction("research-bot", "api.openai.com", 1)
        assert result.reason == "Agent is frozen"


class TestExecution:
    """Tests for task execution through the SDK."""

    def test_execute_paid_task(self, sdk, agent):
        result = sdk.execute_task("research-bot", {"service": "api.openai.com", "amount": 5})

        assert result.success is True
        assert sdk.get_daily_spend("research-bot") == Decimal("5")
        assert sdk.get_stats("user-1").total_approved == 1

    def test_execute_blocked_task(self, sdk, agent):
        result = sdk.execute_task("research-bot", AgentTask(service="malicious.xyz", amount=5))

        assert result.success is False
        transactions = sdk.list_transactions(agent_id="research-bot", status="blocked")
        assert transactions[0].reason == 'Service "malicious.xyz" is not whitelisted'

    def test_execute_on_stopped_agent(self, sdk, agent):
        sdk.orchestrator.stop_agent("research-bot")
        with pytest.raises(AgentNotRunningError):
            sdk.execute_task("research-bot", {"service": "api.openai.com", "amount": 5})

    def test_execute_invalid_task(self, sdk, agent):
        with pytest.raises(InvalidInputError):
            sdk.execute_task("research-bot", {"service": "", "amount": 5})

    def test_activity_recorded(self, sdk, agent):
        sdk.execute_task("research-bot", {"service": "api.openai.com", "amount": 5})
        messages = [entry.message for entry in sdk.get_activity("research-bot")]
        assert "Payment approved: $5 to api.openai.com" in messages


class TestSettings:
    """Tests for SDK configuration."""

    def test_serialization_flag_reaches_executor(self):
        sdk = AutonomySDK(Settings(serialize_agent_spend=True))
        assert sdk.executor.serialize_per_agent is True

    def test_cache_ttl_from_settings(self):
        sdk = AutonomySDK(Settings(spend_cache_ttl_seconds=0))
        assert sdk.spend_accumulator.ttl_seconds == 0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTONOMY_SPEND_CACHE_TTL", "2.5")
        monkeypatch.setenv("AUTONOMY_SERIALIZE_AGENT_SPEND", "true")
        monkeypatch.setenv("AUTONOMY_ENV", "production")

        settings = Settings.from_env(env_file="does-not-exist.env")

        assert settings.spend_cache_ttl_seconds == 2.5
        assert settings.serialize_agent_spend is True
        assert settings.is_development is False

    def test_from_env_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.delenv("AUTONOMY_LOG_LEVEL", raising=False)
        monkeypatch.setenv("AUTONOMY_REQUEST_TIMEOUT", "")
        env_file = tmp_path / "autonomy.env"
        env_file.write_text("PORT=8080\nAUTONOMY_LOG_LEVEL=DEBUG\nUNRELATED=1\n")

        settings = Settings.from_env(env_file=str(env_file))

        assert settings.port == 8080
        assert settings.log_level == "DEBUG"
        assert settings.request_timeout == 30.0

    def test_invalid_env_value_fails_fast(self, monkeypatch):
        monkeypatch.setenv("AUTONOMY_SPEND_CACHE_TTL", "-1")
        with pytest.raises(ValidationError):
            Settings.from_env(env_file="does-not-exist.env")

    def test_clear_all(self, sdk, agent):
        sdk.execute_task("research-bot", {"service": "api.openai.com", "amount": 5})
        sdk.clear_all()

        assert sdk.list_agents() == []
        assert sdk.list_transactions() == []
        assert sdk.orchestrator.running_agents() == []
