"""HTTP routes for the Autonomy API."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request

from autonomy.api.models import (
    AgentEnvelope,
    AgentListResponse,
    AgentResponse,
    CreateAgentRequest,
    ExecuteTaskRequest,
    KillSwitchResponse,
    LogsResponse,
    PolicyEnvelope,
    PolicyResponse,
    SimulateRequest,
    SimulateResponse,
    StatsEnvelope,
    StatsResponse,
    SuccessResponse,
    TaskResultResponse,
    TransactionListResponse,
    TransactionResponse,
    UpdateAgentRequest,
    UpdatePolicyRequest,
    ValidationResponse,
    WhitelistRequest,
)
from autonomy.errors import NotFoundError
from autonomy.models import Policy, TransactionStatus
from autonomy.sdk import AutonomySDK


router = APIRouter()

RECENT_TRANSACTIONS = 10


def get_sdk(req: Request) -> AutonomySDK:
    sdk = getattr(req.app.state, "sdk", None)
    if sdk is None:
        raise RuntimeError("SDK not initialized")
    return sdk


# ------- Agents -------

@router.get("/agents", response_model=AgentListResponse)
def list_agents(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    sdk: AutonomySDK = Depends(get_sdk),
) -> AgentListResponse:
    return AgentListResponse(agents=[
        AgentResponse.from_agent(agent, spent_today=sdk.get_daily_spend(agent.agent_id))
        for agent in sdk.list_agents(user_id)
    ])


@router.get("/agents/{agent_id}", response_model=AgentEnvelope)
def get_agent(agent_id: str, sdk: AutonomySDK = Depends(get_sdk)) -> AgentEnvelope:
    agent = sdk.get_agent(agent_id)
    if agent is None:
        raise NotFoundError("Agent not found")
    return AgentEnvelope(agent=AgentResponse.from_agent(
        agent,
        spent_today=sdk.get_daily_spend(agent_id),
        transactions=sdk.list_transactions(agent_id=agent_id, limit=RECENT_TRANSACTIONS),
    ))


@router.post("/agents", response_model=AgentEnvelope, status_code=201)
def create_agent(payload: CreateAgentRequest, sdk: AutonomySDK = Depends(get_sdk)) -> AgentEnvelope:
    policy = Policy(
        daily_limit=payload.policy.daily_limit,
        per_tx_limit=payload.policy.per_tx_limit,
        whitelist=payload.policy.whitelist,
        kill_switch=payload.policy.kill_switch,
    )
    agent = sdk.create_agent(
        name=payload.name,
        policy=policy,
        user_id=payload.user_id,
        agent_id=payload.agent_id,
        status=payload.status,
        metadata=payload.metadata,
    )
    return AgentEnvelope(agent=AgentResponse.from_agent(agent))


@router.patch("/agents/{agent_id}", response_model=AgentEnvelope)
def update_agent(agent_id: str, payload: UpdateAgentRequest,
                 sdk: AutonomySDK = Depends(get_sdk)) -> AgentEnvelope:
    agent = sdk.update_agent(agent_id, name=payload.name, status=payload.status)
    return AgentEnvelope(agent=AgentResponse.from_agent(agent))


@router.delete("/agents/{agent_id}", response_model=SuccessResponse)
def delete_agent(agent_id: str, sdk: AutonomySDK = Depends(get_sdk)) -> SuccessResponse:
    if not sdk.delete_agent(agent_id):
        raise NotFoundError("Agent not found")
    return SuccessResponse()


@router.post("/agents/{agent_id}/execute", response_model=TaskResultResponse)
def execute_task(agent_id: str, payload: ExecuteTaskRequest,
                 sdk: AutonomySDK = Depends(get_sdk)) -> TaskResultResponse:
    result = sdk.execute_task(agent_id, payload.model_dump())
    return TaskResultResponse.from_result(result)


@router.post("/agents/{agent_id}/kill-switch", response_model=KillSwitchResponse)
def kill_switch(agent_id: str, sdk: AutonomySDK = Depends(get_sdk)) -> KillSwitchResponse:
    agent = sdk.kill_switch(agent_id)
    return KillSwitchResponse(agent=AgentResponse.from_agent(agent))


@router.get("/agents/{agent_id}/logs", response_model=LogsResponse)
def get_logs(
    agent_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    sdk: AutonomySDK = Depends(get_sdk),
) -> LogsResponse:
    sdk.require_agent(agent_id)
    return LogsResponse.from_entries(sdk.get_activity(agent_id, limit))


# ------- Policies -------

@router.get("/policies/{agent_id}", response_model=PolicyEnvelope)
def get_policy(agent_id: str, sdk: AutonomySDK = Depends(get_sdk)) -> PolicyEnvelope:
    return PolicyEnvelope(policy=PolicyResponse.from_policy(sdk.get_policy(agent_id)))


@router.patch("/policies/{agent_id}", response_model=PolicyEnvelope)
def update_policy(agent_id: str, payload: UpdatePolicyRequest,
                  sdk: AutonomySDK = Depends(get_sdk)) -> PolicyEnvelope:
    policy = sdk.update_policy(
        agent_id,
        daily_limit=payload.daily_limit,
        per_tx_limit=payload.per_tx_limit,
        whitelist=payload.whitelist,
        kill_switch=payload.kill_switch,
    )
    return PolicyEnvelope(policy=PolicyResponse.from_policy(policy))


@router.post("/policies/{agent_id}/whitelist", response_model=PolicyEnvelope)
def add_to_whitelist(agent_id: str, payload: WhitelistRequest,
                     sdk: AutonomySDK = Depends(get_sdk)) -> PolicyEnvelope:
    policy = sdk.add_to_whitelist(agent_id, payload.service)
    return PolicyEnvelope(policy=PolicyResponse.from_policy(policy))


@router.delete("/policies/{agent_id}/whitelist/{service}", response_model=PolicyEnvelope)
def remove_from_whitelist(agent_id: str, service: str,
                          sdk: AutonomySDK = Depends(get_sdk)) -> PolicyEnvelope:
    policy = sdk.remove_from_whitelist(agent_id, service)
    return PolicyEnvelope(policy=PolicyResponse.from_policy(policy))


# ------- Transactions -------

@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    agent_id: Optional[str] = Query(default=None, alias="agentId"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    status: Optional[TransactionStatus] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=1000),
    sdk: AutonomySDK = Depends(get_sdk),
) -> TransactionListResponse:
    transactions = sdk.list_transactions(agent_id=agent_id, user_id=user_id,
                                         status=status, limit=limit)
    return TransactionListResponse(
        transactions=[TransactionResponse.from_transaction(tx) for tx in transactions]
    )


@router.get("/transactions/stats", response_model=StatsEnvelope)
def get_stats(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    sdk: AutonomySDK = Depends(get_sdk),
) -> StatsEnvelope:
    return StatsEnvelope(stats=StatsResponse.from_stats(sdk.get_stats(user_id)))


@router.post("/transactions/simulate", response_model=SimulateResponse)
def simulate_transaction(payload: SimulateRequest,
                         sdk: AutonomySDK = Depends(get_sdk)) -> SimulateResponse:
    result = sdk.simulate_transaction(payload.agent_id, payload.service,
                                      payload.amount, payload.type)
    return SimulateResponse(validation=ValidationResponse.from_result(result))
