"""API tests for the Autonomy FastAPI layer."""

import pytest
from fastapi.testclient import TestClient

from autonomy.api import create_app
from autonomy.config import Settings
from autonomy.errors import StorageError
from autonomy.models import Policy
from autonomy.sdk import AutonomySDK


@pytest.fixture
def sdk():
    return AutonomySDK(Settings())


@pytest.fixture
def client(sdk):
    return TestClient(create_app(sdk))


def create_agent(client, agent_id="research-bot", whitelist=("api.openai.com",), **policy):
    body = {
        "name": "Research Bot",
        "userId": "user-1",
        "agentId": agent_id,
        "policy": {
            "dailyLimit": policy.get("daily_limit", 50),
            "perTxLimit": policy.get("per_tx_limit", 10),
            "whitelist": list(whitelist),
            "killSwitch": False,
        },
    }
    r = client.post("/api/agents", json=body)
    assert r.status_code == 201, r.text
    return r.json()["agent"]


class TestHealth:
    def test_health(self, client: TestClient):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestAgents:
    def test_create_and_get_agent(self, client: TestClient):
        agent = create_agent(client)
        assert agent["agentId"] == "research-bot"
        assert agent["walletAddress"].startswith("0x")
        assert agent["policy"] == {
            "dailyLimit": 50.0,
            "perTxLimit": 10.0,
            "whitelist": ["api.openai.com"],
            "killSwitch": False,
        }

        r = client.get("/api/agents/research-bot")
        assert r.status_code == 200
        body = r.json()["agent"]
        assert body["spentToday"] == 0.0
        assert body["transactions"] == []

    def test_get_missing_agent(self, client: TestClient):
        r = client.get("/api/agents/ghost")
        assert r.status_code == 404
        assert r.json() == {"error": "Agent not found"}

    def test_create_validation_error(self, client: TestClient):
        r = client.post("/api/agents", json={"name": "", "policy": {"dailyLimit": -1}})
        assert r.status_code == 400
        body = r.json()
        assert body["error"] == "Validation error"
        assert body["details"]

    def test_list_agents_with_spending(self, client: TestClient):
        create_agent(client)
        client.post("/api/agents/research-bot/execute",
                    json={"service": "api.openai.com", "amount": 5})

        r = client.get("/api/agents", params={"userId": "user-1"})
        agents = r.json()["agents"]
        assert len(agents) == 1
        assert agents[0]["spentToday"] == 5.0

    def test_update_status(self, client: TestClient):
        create_agent(client)
        r = client.patch("/api/agents/research-bot", json={"status": "paused"})
        assert r.status_code == 200
        assert r.json()["agent"]["status"] == "paused"

    def test_delete(self, client: TestClient):
        create_agent(client)
        r = client.delete("/api/agents/research-bot")
        assert r.json() == {"success": True}
        assert client.get("/api/agents/research-bot").status_code == 404

    def test_kill_switch(self, client: TestClient):
        create_agent(client)
        r = client.post("/api/agents/research-bot/kill-switch")
        assert r.status_code == 200
        body = r.json()
        assert body["message"] == "Kill switch activated"
        assert body["agent"]["status"] == "frozen"

    def test_logs(self, client: TestClient):
        create_agent(client)
        r = client.get("/api/agents/research-bot/logs")
        assert r.status_code == 200
        assert r.json()["logs"][0]["message"] == "Agent started"


class TestExecute:
    def test_execute_approved(self, client: TestClient):
        create_agent(client)
        r = client.post("/api/agents/research-bot/execute",
                        json={"type": "research", "service": "api.openai.com", "amount": 5,
                              "data": {"topic": "AI"}})
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["txHash"].startswith("0x")
        assert body["validation"]["policyChecks"]["dailyLimitCheck"] is True

    def test_execute_blocked(self, client: TestClient):
        create_agent(client)
        r = client.post("/api/agents/research-bot/execute",
                        json={"service": "api.openai.com", "amount": 25})
        body = r.json()
        assert body["success"] is False
        assert body["error"] == "Amount $25 exceeds per-transaction limit of $10"

    def test_execute_not_running(self, client: TestClient):
        create_agent(client)
        client.patch("/api/agents/research-bot", json={"status": "frozen"})
        r = client.post("/api/agents/research-bot/execute",
                        json={"service": "api.openai.com", "amount": 5})
        assert r.status_code == 404
        assert r.json() == {"error": "Agent not running"}


class TestPolicies:
    def test_get_policy(self, client: TestClient):
        create_agent(client)
        r = client.get("/api/policies/research-bot")
        assert r.json()["policy"]["perTxLimit"] == 10.0

    def test_get_missing_policy(self, client: TestClient):
        r = client.get("/api/policies/ghost")
        assert r.status_code == 404
        assert r.json() == {"error": "Policy not found"}

    def test_patch_policy(self, client: TestClient):
        create_agent(client)
        r = client.patch("/api/policies/research-bot", json={"dailyLimit": 100})
        policy = r.json()["policy"]
        assert policy["dailyLimit"] == 100.0
        assert policy["perTxLimit"] == 10.0

    def test_patch_policy_rejects_non_positive(self, client: TestClient):
        create_agent(client)
        r = client.patch("/api/policies/research-bot", json={"perTxLimit": 0})
        assert r.status_code == 400

    def test_whitelist_add_and_remove(self, client: TestClient):
        create_agent(client)
        r = client.post("/api/policies/research-bot/whitelist", json={"service": "api.anthropic.com"})
        assert r.json()["policy"]["whitelist"] == ["api.anthropic.com", "api.openai.com"]

        r = client.delete("/api/policies/research-bot/whitelist/api.openai.com")
        assert r.json()["policy"]["whitelist"] == ["api.anthropic.com"]


class TestTransactions:
    def simulate(self, client, **body):
        payload = {"agentId": "research-bot", "service": "api.openai.com", "amount": 5}
        payload.update(body)
        return client.post("/api/transactions/simulate", json=payload)

    def test_simulate_approved(self, client: TestClient):
        create_agent(client)
        r = self.simulate(client)
        assert r.status_code == 200
        assert r.json() == {
            "validation": {
                "approved": True,
                "reason": "All policy checks passed",
                "policyChecks": {
                    "whitelistCheck": True,
                    "perTxLimitCheck": True,
                    "dailyLimitCheck": True,
                    "agentStatusCheck": True,
                },
            }
        }

    def test_simulate_whitelist_block(self, client: TestClient):
        create_agent(client)
        validation = self.simulate(client, service="malicious.xyz").json()["validation"]
        assert validation["approved"] is False
        assert validation["reason"] == 'Service "malicious.xyz" is not whitelisted'
        assert validation["policyChecks"] == {
            "whitelistCheck": False,
            "perTxLimitCheck": False,
            "dailyLimitCheck": False,
            "agentStatusCheck": True,
        }

    def test_simulate_unknown_agent(self, client: TestClient):
        validation = self.simulate(client).json()["validation"]
        assert validation["reason"] == "Agent not found"

    def test_simulate_bad_amount(self, client: TestClient):
        create_agent(client)
        r = self.simulate(client, amount=-5)
        assert r.status_code == 400

    def test_simulate_huge_amount_is_per_tx_rejection(self, client: TestClient):
        create_agent(client)
        r = self.simulate(client, amount=1e23)
        assert r.status_code == 200
        validation = r.json()["validation"]
        assert validation["approved"] is False
        assert validation["reason"].endswith("exceeds per-transaction limit of $10")
        assert validation["policyChecks"]["perTxLimitCheck"] is False

    def test_simulate_out_of_range_amount(self, client: TestClient):
        create_agent(client)
        r = self.simulate(client, amount=1e60)
        assert r.status_code == 400

    def test_simulate_missing_field(self, client: TestClient):
        r = client.post("/api/transactions/simulate", json={"agentId": "research-bot"})
        assert r.status_code == 400
        assert r.json()["error"] == "Validation error"

    def test_list_and_stats(self, client: TestClient):
        create_agent(client)
        client.post("/api/agents/research-bot/execute", json={"service": "api.openai.com", "amount": 5})
        client.post("/api/agents/research-bot/execute", json={"service": "malicious.xyz", "amount": 5})

        r = client.get("/api/transactions", params={"agentId": "research-bot", "status": "blocked"})
        transactions = r.json()["transactions"]
        assert len(transactions) == 1
        assert transactions[0]["amount"] == 5.0

        stats = client.get("/api/transactions/stats", params={"userId": "user-1"}).json()["stats"]
        assert stats == {"totalApproved": 1, "totalBlocked": 1, "spentToday": 5.0, "totalSpent": 5.0}


class TestErrors:
    def test_error_schema_documented(self, client: TestClient):
        schema = client.get("/openapi.json").json()
        responses = schema["paths"]["/api/agents/{agent_id}"]["get"]["responses"]
        assert responses["404"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/ErrorResponse"
        }
        assert "503" in responses

    def test_storage_error_is_503(self, sdk):
        class BrokenLedger:
            def sum_approved_since(self, agent_id, since):
                raise StorageError("db down")

        sdk.create_agent("Bot", Policy(daily_limit=50, per_tx_limit=10), agent_id="research-bot")
        sdk.spend_accumulator.source = BrokenLedger()

        client = TestClient(create_app(sdk))
        r = client.post("/api/transactions/simulate",
                        json={"agentId": "research-bot", "service": "x", "amount": 1})
        assert r.status_code == 503

    def test_unhandled_error_hides_message_outside_development(self):
        sdk = AutonomySDK(Settings(environment="production"))

        def explode(*args, **kwargs):
            raise RuntimeError("secret detail")

        sdk.get_stats = explode
        client = TestClient(create_app(sdk), raise_server_exceptions=False)

        r = client.get("/api/transactions/stats")
        assert r.status_code == 500
        assert r.json() == {"error": "Internal server error", "message": "Something went wrong"}
