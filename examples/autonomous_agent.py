"""
Autonomous Agent Example
Runs a research agent against an in-process Autonomy SDK and shows which of
its payments the policy lets through.

    python examples/autonomous_agent.py

To drive a running API instead (``python -m autonomy.api``), swap the SDK for
``AutonomyClient.from_settings("research-bot")``.
"""
import os
import sys
from decimal import Decimal

# Add parent directory to path to import autonomy
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv

from autonomy import AutonomySDK, AgentTask, Policy, Settings, TaskType, configure_logging
from autonomy.errors import AgentNotRunningError
from autonomy.models import TransactionStatus
from autonomy.money import format_usd


class ResearchAgent:
    """
    A research agent that pays for API calls through Autonomy.

    This agent:
    1. Picks a service and a price for each research step
    2. Executes the step as a paid task
    3. Reports whether the payment was approved or blocked, and why
    """

    def __init__(self, sdk: AutonomySDK, agent_id: str = "research-bot"):
        self.sdk = sdk
        self.agent_id = agent_id

    def research(self, topic: str, service: str, cost) -> bool:
        task = AgentTask(
            type=TaskType.RESEARCH,
            service=service,
            amount=cost,
            data={"topic": topic},
        )
        try:
            result = self.sdk.execute_task(self.agent_id, task)
        except AgentNotRunningError:
            print(f"   ✗ {topic}: agent is not running")
            return False

        if result.success:
            print(f"   ✓ {topic}: paid ${cost} to {service} (tx {result.tx_hash[:12]}...)")
        else:
            print(f"   ✗ {topic}: {result.error}")
        return result.success


def main():
    load_dotenv()
    settings = Settings.from_env()
    configure_logging("WARNING")

    sdk = AutonomySDK(settings)
    sdk.create_agent(
        name="Research Bot",
        user_id="demo-user",
        agent_id="research-bot",
        policy=Policy(daily_limit=50, per_tx_limit=10, whitelist={"api.openai.com"}),
    )

    # Earlier spend today
    sdk.ledger.record_transaction("research-bot", "api.openai.com", Decimal("20"),
                                  TransactionStatus.APPROVED, "All policy checks passed",
                                  user_id="demo-user")

    agent = ResearchAgent(sdk)

    print("=" * 60)
    print("Autonomy research agent demo")
    print("=" * 60)
    print("Policy: $10 per transaction, $50 per day, whitelist api.openai.com")
    print(f"Spent so far today: {format_usd(sdk.get_daily_spend('research-bot'))}\n")

    agent.research("market sizing", "api.openai.com", 5)
    agent.research("competitor scrape", "malicious.xyz", 5)
    agent.research("deep report", "api.openai.com", 25)
    for step in range(1, 5):
        agent.research(f"follow-up #{step}", "api.openai.com", 10)

    print("\nEmergency stop")
    sdk.kill_switch("research-bot")
    check = sdk.simulate_transaction("research-bot", "api.openai.com", 1)
    print(f"   simulate after kill switch: {check.reason}")
    agent.research("one more thing", "api.openai.com", 1)

    stats = sdk.get_stats("demo-user")
    print("\nSummary")
    print(f"   approved: {stats.total_approved}  blocked: {stats.total_blocked}")
    print(f"   spent today: {format_usd(stats.spent_today)}")

    sdk.shutdown()


if __name__ == "__main__":
    main()
