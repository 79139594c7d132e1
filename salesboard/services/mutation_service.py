"""Mutation gateway: authorize, apply and announce changes to agents.

The HTTP routes and the WebSocket handler are thin adapters over this
class; neither repeats the authorization, clamping or emit logic.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from salesboard.auth import require_role, resolve_caller
from salesboard.errors import Forbidden, NotFound, ValidationError
from salesboard.logging_config import get_logger
from salesboard.models import ROLE_ADMIN, ROLE_TL, Agent, Team, User
from salesboard.realtime.events import publish_leaderboard_update, publish_sale_activation
from salesboard.realtime.hub import BroadcastHub
from salesboard.schemas import AgentCreate, CounterDelta, LeaderboardUpdate
from salesboard.services.aggregation_service import (
    compute_leaderboard_update,
    refresh_team_cache,
)
from salesboard.storage import Storage

logger = get_logger(__name__)


class MutationGateway:
    def __init__(self, storage: Storage, hub: BroadcastHub):
        self.storage = storage
        self.hub = hub

    async def authorize(self, token: str | None) -> User:
        """Resolve the caller and require the admin or tl role."""
        user = await resolve_caller(self.storage, token)
        return require_role(user, ROLE_ADMIN, ROLE_TL)

    async def _owned_team(self, user: User) -> Team:
        team = await self.storage.get_team_by_owner(user.id)
        if team is None:
            raise Forbidden("No team is owned by this team leader")
        return team

    async def _load_agent_for(self, user: User, agent_id: UUID) -> Agent:
        """Load an agent the caller may modify (admins: any; tl: own team only)."""
        team = await self._owned_team(user) if user.role == ROLE_TL else None
        agent = await self.storage.get_agent(agent_id)
        if agent is None:
            raise NotFound("Agent", agent_id)
        if team is not None and agent.team_id != team.id:
            raise Forbidden("Cannot modify agents from other teams")
        return agent

    # ------------------------------------------------------------------
    # Counter deltas
    # ------------------------------------------------------------------

    async def apply_counter_delta(
        self,
        token: str | None,
        agent_id: UUID,
        delta: CounterDelta,
    ) -> Agent:
        """Apply a signed delta to one agent's counters, clamping each at zero.

        Emits ``sale:activation`` when activations were incremented and a
        ``leaderboard:update`` afterwards; nothing is emitted if any gate
        fails or the write does not persist.
        """
        user = await self.authorize(token)
        await self._load_agent_for(user, agent_id)

        changes = delta.as_changes()
        if not changes:
            raise ValidationError("Empty delta")

        updated = await self.storage.apply_agent_deltas(agent_id, changes)
        if updated is None:
            # Deleted between the ownership check and the write.
            raise NotFound("Agent", agent_id)

        logger.info(
            "counter_delta_applied",
            agent_id=str(agent_id),
            user_id=str(user.id),
            delta=changes,
            activations=updated.activations,
            submissions=updated.submissions,
            points=updated.points,
        )

        if changes.get("activations", 0) > 0:
            await publish_sale_activation(self.hub, updated)

        await self.publish_leaderboard()
        return updated

    # ------------------------------------------------------------------
    # Agent lifecycle
    # ------------------------------------------------------------------

    async def create_agent(self, token: str | None, payload: AgentCreate) -> Agent:
        user = await self.authorize(token)

        if user.role == ROLE_TL:
            team = await self._owned_team(user)
            if payload.team_id is not None and payload.team_id != team.id:
                raise Forbidden("Team leaders can only add agents to their own team")
        else:
            if payload.team_id is None:
                raise ValidationError("teamId is required")
            team = await self.storage.get_team(payload.team_id)
            if team is None:
                raise NotFound("Team", payload.team_id)

        data: dict[str, Any] = payload.model_dump(exclude={"team_id"})
        data["photo_url"] = str(payload.photo_url)
        data["team_id"] = team.id
        agent = await self.storage.create_agent(data)

        logger.info("agent_created", agent_id=str(agent.id), team_id=str(team.id), user_id=str(user.id))
        await self.publish_leaderboard()
        return agent

    async def delete_agent(self, token: str | None, agent_id: UUID) -> None:
        user = await self.authorize(token)
        await self._load_agent_for(user, agent_id)

        if not await self.storage.delete_agent(agent_id):
            raise NotFound("Agent", agent_id)

        logger.info("agent_deleted", agent_id=str(agent_id), user_id=str(user.id))
        await self.publish_leaderboard()

    async def list_agents(self, token: str | None) -> list[Agent]:
        user = await self.authorize(token)
        if user.role == ROLE_ADMIN:
            return await self.storage.get_all_agents()
        team = await self.storage.get_team_by_owner(user.id)
        if team is None:
            raise NotFound("Team for user", user.id)
        return await self.storage.get_agents_by_team(team.id)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    async def publish_leaderboard(self) -> LeaderboardUpdate:
        """Recompute the leaderboard, refresh team caches and broadcast it."""
        update = await compute_leaderboard_update(self.storage)
        await refresh_team_cache(self.storage, update)
        await publish_leaderboard_update(self.hub, update)
        return update
