"""Takeover notification endpoints for admins, plus the public active view."""

from fastapi import APIRouter, Depends, Response

from salesboard.auth import get_current_admin
from salesboard.dependencies import get_notification_manager
from salesboard.models import User
from salesboard.schemas import MessageResponse, NotificationCreate, NotificationResponse
from salesboard.services.notification_service import NotificationManager

router = APIRouter(tags=["notifications"])


@router.post("/api/admin/notifications", response_model=NotificationResponse)
async def push_notification(
    body: NotificationCreate,
    admin: User = Depends(get_current_admin),
    manager: NotificationManager = Depends(get_notification_manager),
):
    """Show a takeover notification on every dashboard until it expires or is cleared."""
    notification = await manager.push(admin, body)
    return NotificationResponse.model_validate(notification)


@router.patch("/api/admin/notifications/clear", response_model=MessageResponse)
async def clear_notifications(
    admin: User = Depends(get_current_admin),
    manager: NotificationManager = Depends(get_notification_manager),
):
    await manager.clear_active(admin)
    return MessageResponse(message="Notifications cleared")


@router.get(
    "/api/notifications/active",
    response_model=NotificationResponse,
    responses={204: {"description": "No active notification"}},
)
async def active_notification(
    manager: NotificationManager = Depends(get_notification_manager),
):
    """Current takeover, for viewers that connect while one is showing."""
    notification = await manager.get_active()
    if notification is None:
        return Response(status_code=204)
    return NotificationResponse.model_validate(notification)
