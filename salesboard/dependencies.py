"""FastAPI dependencies exposing the components owned by the running app."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from salesboard.middleware.rate_limit import SlidingWindowRateLimiter
    from salesboard.realtime.hub import BroadcastHub
    from salesboard.services.mutation_service import MutationGateway
    from salesboard.services.notification_service import NotificationManager
    from salesboard.storage import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub


def get_gateway(request: Request) -> MutationGateway:
    return request.app.state.gateway


def get_notification_manager(request: Request) -> NotificationManager:
    return request.app.state.notifications


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.rate_limiter
