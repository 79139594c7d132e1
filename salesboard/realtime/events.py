"""Dashboard event publishers.

These helpers only build payloads and hand them to the hub; they never
touch connections or storage themselves.
"""

from __future__ import annotations

from datetime import datetime, timezone

from salesboard.models import Agent, Notification
from salesboard.realtime.hub import BroadcastHub
from salesboard.schemas import LeaderboardUpdate, NotificationResponse, SaleActivation

LEADERBOARD_UPDATE = "leaderboard:update"
SALE_ACTIVATION = "sale:activation"
NOTIFICATION_ACTIVE = "notification:active"
NOTIFICATION_CLEAR = "notification:clear"


def build_sale_activation(agent: Agent) -> SaleActivation:
    """Celebration payload; carries the agent's new activation total, not the delta."""
    return SaleActivation(
        agent_id=agent.id,
        agent_name=agent.name,
        photo_url=agent.photo_url,
        team_id=agent.team_id,
        new_activation_count=agent.activations,
        timestamp=datetime.now(timezone.utc),
    )


async def publish_leaderboard_update(hub: BroadcastHub, update: LeaderboardUpdate) -> int:
    return await hub.broadcast_all(LEADERBOARD_UPDATE, update)


async def publish_sale_activation(hub: BroadcastHub, agent: Agent) -> int:
    return await hub.broadcast_all(SALE_ACTIVATION, build_sale_activation(agent))


async def publish_notification_active(hub: BroadcastHub, notification: Notification) -> int:
    return await hub.broadcast_all(
        NOTIFICATION_ACTIVE, NotificationResponse.model_validate(notification)
    )


async def publish_notification_clear(hub: BroadcastHub) -> int:
    return await hub.broadcast_all(NOTIFICATION_CLEAR, {})
