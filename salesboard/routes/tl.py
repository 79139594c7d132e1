"""Team-leader agent endpoints, including the one-shot counter transport."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request

from salesboard.auth import bearer_token
from salesboard.dependencies import get_gateway
from salesboard.middleware.rate_limit import enforce_counter_rate_limit
from salesboard.schemas import AgentCreate, AgentResponse, CounterDelta, MessageResponse
from salesboard.services.mutation_service import MutationGateway

router = APIRouter(prefix="/api/tl", tags=["team-leader"])


@router.get("/agents", response_model=list[AgentResponse])
async def list_agents(
    request: Request,
    gateway: MutationGateway = Depends(get_gateway),
):
    """Admins see every agent; team leaders see their own team."""
    agents = await gateway.list_agents(bearer_token(request))
    return [AgentResponse.model_validate(a) for a in agents]


@router.patch(
    "/agents/{agent_id}/increment",
    response_model=AgentResponse,
    dependencies=[Depends(enforce_counter_rate_limit)],
)
async def increment_agent(
    agent_id: UUID,
    request: Request,
    delta: CounterDelta = Body(...),
    gateway: MutationGateway = Depends(get_gateway),
):
    """Apply a counter delta. Same effect as the ``tl:updateCounters`` socket message."""
    agent = await gateway.apply_counter_delta(bearer_token(request), agent_id, delta)
    return AgentResponse.model_validate(agent)


@router.post("/agents", response_model=AgentResponse, status_code=201)
async def create_agent(
    body: AgentCreate,
    request: Request,
    gateway: MutationGateway = Depends(get_gateway),
):
    agent = await gateway.create_agent(bearer_token(request), body)
    return AgentResponse.model_validate(agent)


@router.delete("/agents/{agent_id}", response_model=MessageResponse)
async def delete_agent(
    agent_id: UUID,
    request: Request,
    gateway: MutationGateway = Depends(get_gateway),
):
    await gateway.delete_agent(bearer_token(request), agent_id)
    return MessageResponse(message="Agent deleted successfully")
