"""Takeover notification lifecycle: push, auto-expiry and explicit clear.

State is held as an explicit tag, either ``ActiveNotification`` or None.
The expiry timer only clears when the notification it was scheduled for is
still the active one, so a stale timer can never clear a newer push.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from salesboard.auth import require_role
from salesboard.logging_config import get_logger
from salesboard.models import ROLE_ADMIN, Notification, User
from salesboard.realtime.events import (
    publish_notification_active,
    publish_notification_clear,
)
from salesboard.realtime.hub import BroadcastHub
from salesboard.schemas import NotificationCreate
from salesboard.storage import Storage

logger = get_logger(__name__)

DEFAULT_NOTIFICATION_DURATION_MS = int(os.getenv("DEFAULT_NOTIFICATION_DURATION_MS", "15000"))


@dataclass
class ActiveNotification:
    notification_id: UUID
    expires_at: datetime
    timer: asyncio.Task | None = None


class NotificationManager:
    def __init__(
        self,
        storage: Storage,
        hub: BroadcastHub,
        default_duration_ms: int = DEFAULT_NOTIFICATION_DURATION_MS,
    ):
        self.storage = storage
        self.hub = hub
        self.default_duration_ms = default_duration_ms
        self._state: ActiveNotification | None = None
        self._lock = asyncio.Lock()

    @property
    def active(self) -> ActiveNotification | None:
        return self._state

    async def push(self, caller: User, payload: NotificationCreate) -> Notification:
        """Replace any active notification with a new one and schedule its expiry."""
        require_role(caller, ROLE_ADMIN)
        duration = payload.duration or self.default_duration_ms

        async with self._lock:
            self._cancel_timer()
            self._state = None
            await self.storage.clear_active_notifications()
            notification = await self.storage.create_notification(
                {
                    "type": payload.type,
                    "title": payload.title,
                    "message": payload.message,
                    "media_url": str(payload.media_url) if payload.media_url else None,
                    "duration": duration,
                }
            )
            self._state = ActiveNotification(
                notification_id=notification.id,
                expires_at=datetime.now(timezone.utc) + timedelta(milliseconds=duration),
            )
            self._state.timer = asyncio.create_task(
                self._expire_after(notification.id, duration / 1000)
            )

        logger.info(
            "notification_pushed",
            notification_id=str(notification.id),
            type=notification.type,
            duration_ms=duration,
            user_id=str(caller.id),
        )
        await publish_notification_active(self.hub, notification)
        return notification

    async def clear_active(self, caller: User) -> int:
        """Deactivate everything now and emit ``notification:clear`` unconditionally."""
        require_role(caller, ROLE_ADMIN)
        async with self._lock:
            self._cancel_timer()
            self._state = None
            cleared = await self.storage.clear_active_notifications()

        logger.info("notification_cleared", cleared=cleared, user_id=str(caller.id))
        await publish_notification_clear(self.hub)
        return cleared

    async def recover(self) -> Notification | None:
        """Re-arm the expiry timer for a notification left active by a previous process.

        A notification whose ``created_at + duration`` has already passed is
        deactivated immediately; otherwise the remaining delay is scheduled.
        """
        notification = await self.storage.get_active_notification()
        if notification is None:
            return None

        created_at = notification.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        expires_at = created_at + timedelta(milliseconds=notification.duration)
        remaining = (expires_at - datetime.now(timezone.utc)).total_seconds()

        if remaining <= 0:
            cleared = await self.storage.clear_active_notifications()
            logger.info(
                "notification_recovered_expired",
                notification_id=str(notification.id),
                cleared=cleared,
            )
            return None

        async with self._lock:
            self._cancel_timer()
            self._state = ActiveNotification(notification_id=notification.id, expires_at=expires_at)
            self._state.timer = asyncio.create_task(self._expire_after(notification.id, remaining))

        logger.info(
            "notification_recovered",
            notification_id=str(notification.id),
            remaining_ms=int(remaining * 1000),
        )
        return notification

    async def get_active(self) -> Notification | None:
        return await self.storage.get_active_notification()

    async def shutdown(self) -> None:
        async with self._lock:
            self._cancel_timer()

    def _cancel_timer(self) -> None:
        if self._state is not None and self._state.timer is not None:
            timer = self._state.timer
            if timer is not asyncio.current_task() and not timer.done():
                timer.cancel()
            self._state.timer = None

    async def _expire_after(self, notification_id: UUID, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)
        await self.expire(notification_id)

    async def expire(self, notification_id: UUID) -> bool:
        """Expire ``notification_id`` if it is still the active one; no-op otherwise."""
        async with self._lock:
            if self._state is None or self._state.notification_id != notification_id:
                logger.debug("notification_expiry_stale", notification_id=str(notification_id))
                return False
            self._state.timer = None
            self._state = None
            try:
                await self.storage.clear_active_notifications()
            except Exception:
                # Runs inside the timer task; nothing awaits it.
                logger.exception("notification_expiry_failed", notification_id=str(notification_id))
                return False

        logger.info("notification_expired", notification_id=str(notification_id))
        await publish_notification_clear(self.hub)
        return True
