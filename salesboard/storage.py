"""Storage contract consumed by the dashboard core, plus an in-process store.

Every method returns detached model instances: callers may read them freely
but changes only reach the store through the update methods.
"""

from __future__ import annotations

import abc
import asyncio
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import inspect as sa_inspect

from salesboard.models import COUNTER_FIELDS, Agent, Notification, Team, User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class Storage(abc.ABC):
    """Narrow CRUD interface over users, teams, agents and notifications."""

    # -- agents -----------------------------------------------------------

    @abc.abstractmethod
    async def get_agent(self, agent_id: UUID) -> Agent | None: ...

    @abc.abstractmethod
    async def get_agents_by_team(self, team_id: UUID) -> list[Agent]: ...

    @abc.abstractmethod
    async def get_all_agents(self) -> list[Agent]:
        """All agents in a stable order (creation order)."""

    @abc.abstractmethod
    async def create_agent(self, data: dict[str, Any]) -> Agent: ...

    @abc.abstractmethod
    async def update_agent(self, agent_id: UUID, changes: dict[str, Any]) -> Agent | None: ...

    @abc.abstractmethod
    async def apply_agent_deltas(self, agent_id: UUID, deltas: dict[str, int]) -> Agent | None:
        """Atomically apply ``new = max(0, old + delta)`` to each named counter.

        Concurrent calls against the same agent are serialized; returns None
        when the agent does not exist.
        """

    @abc.abstractmethod
    async def delete_agent(self, agent_id: UUID) -> bool: ...

    @abc.abstractmethod
    async def reset_stale_submissions(self, now: datetime) -> int:
        """Zero ``submissions`` for agents last reset before today; returns the count."""

    # -- teams ------------------------------------------------------------

    @abc.abstractmethod
    async def get_team(self, team_id: UUID) -> Team | None: ...

    @abc.abstractmethod
    async def get_team_by_owner(self, user_id: UUID) -> Team | None: ...

    @abc.abstractmethod
    async def get_all_teams(self) -> list[Team]: ...

    @abc.abstractmethod
    async def create_team(self, data: dict[str, Any]) -> Team: ...

    @abc.abstractmethod
    async def update_team(self, team_id: UUID, changes: dict[str, Any]) -> Team | None: ...

    # -- users ------------------------------------------------------------

    @abc.abstractmethod
    async def get_user(self, user_id: UUID) -> User | None: ...

    @abc.abstractmethod
    async def get_user_by_email(self, email: str) -> User | None: ...

    @abc.abstractmethod
    async def create_user(self, data: dict[str, Any]) -> User: ...

    @abc.abstractmethod
    async def update_user(self, user_id: UUID, changes: dict[str, Any]) -> User | None: ...

    # -- notifications ----------------------------------------------------

    @abc.abstractmethod
    async def get_active_notification(self) -> Notification | None: ...

    @abc.abstractmethod
    async def create_notification(self, data: dict[str, Any]) -> Notification:
        """Deactivate any active notification, then store ``data`` as the active one."""

    @abc.abstractmethod
    async def clear_active_notifications(self) -> int:
        """Deactivate every active notification; returns how many were active."""

    async def close(self) -> None:
        return None


# ---------------------------------------------------------------------------
# In-process implementation
# ---------------------------------------------------------------------------


def _detach(obj):
    """Copy a mapped instance so store-held state is never shared with callers."""
    cls = type(obj)
    values = {attr.key: getattr(obj, attr.key) for attr in sa_inspect(cls).column_attrs}
    return cls(**values)


class MemoryStorage(Storage):
    """Dict-backed store; per-agent locks serialize counter updates."""

    def __init__(self) -> None:
        self._users: dict[UUID, User] = {}
        self._teams: dict[UUID, Team] = {}
        self._agents: dict[UUID, Agent] = {}
        self._notifications: dict[UUID, Notification] = {}
        self._agent_locks: dict[UUID, asyncio.Lock] = {}
        self._lock = asyncio.Lock()

    def _agent_lock(self, agent_id: UUID) -> asyncio.Lock:
        lock = self._agent_locks.get(agent_id)
        if lock is None:
            lock = self._agent_locks[agent_id] = asyncio.Lock()
        return lock

    # -- agents -----------------------------------------------------------

    async def get_agent(self, agent_id: UUID) -> Agent | None:
        agent = self._agents.get(agent_id)
        return _detach(agent) if agent else None

    async def get_agents_by_team(self, team_id: UUID) -> list[Agent]:
        return [_detach(a) for a in self._agents.values() if a.team_id == team_id]

    async def get_all_agents(self) -> list[Agent]:
        return [_detach(a) for a in self._agents.values()]

    async def create_agent(self, data: dict[str, Any]) -> Agent:
        now = utcnow()
        agent = Agent(
            id=data.get("id") or uuid4(),
            name=data["name"],
            photo_url=data["photo_url"],
            team_id=data["team_id"],
            activation_target=data["activation_target"],
            activations=data.get("activations", 0),
            submissions=data.get("submissions", 0),
            points=data.get("points", 0),
            last_submission_reset=data.get("last_submission_reset") or now,
            created_at=now,
        )
        self._agents[agent.id] = agent
        return _detach(agent)

    async def update_agent(self, agent_id: UUID, changes: dict[str, Any]) -> Agent | None:
        async with self._agent_lock(agent_id):
            agent = self._agents.get(agent_id)
            if agent is None:
                return None
            for key, value in changes.items():
                setattr(agent, key, value)
            return _detach(agent)

    async def apply_agent_deltas(self, agent_id: UUID, deltas: dict[str, int]) -> Agent | None:
        async with self._agent_lock(agent_id):
            agent = self._agents.get(agent_id)
            if agent is None:
                return None
            for field, delta in deltas.items():
                if field not in COUNTER_FIELDS:
                    raise KeyError(field)
                setattr(agent, field, max(0, getattr(agent, field) + delta))
            return _detach(agent)

    async def delete_agent(self, agent_id: UUID) -> bool:
        async with self._agent_lock(agent_id):
            removed = self._agents.pop(agent_id, None) is not None
        self._agent_locks.pop(agent_id, None)
        return removed

    async def reset_stale_submissions(self, now: datetime) -> int:
        today = start_of_day(now)
        reset = 0
        for agent_id in list(self._agents):
            async with self._agent_lock(agent_id):
                agent = self._agents.get(agent_id)
                if agent is None or agent.last_submission_reset >= today:
                    continue
                agent.submissions = 0
                agent.last_submission_reset = now
                reset += 1
        return reset

    # -- teams ------------------------------------------------------------

    async def get_team(self, team_id: UUID) -> Team | None:
        team = self._teams.get(team_id)
        return _detach(team) if team else None

    async def get_team_by_owner(self, user_id: UUID) -> Team | None:
        for team in self._teams.values():
            if team.tl_id == user_id:
                return _detach(team)
        return None

    async def get_all_teams(self) -> list[Team]:
        return [_detach(t) for t in self._teams.values()]

    async def create_team(self, data: dict[str, Any]) -> Team:
        team = Team(
            id=data.get("id") or uuid4(),
            name=data["name"],
            tl_id=data["tl_id"],
            avg_activation=0,
            total_activations=0,
            total_submissions=0,
            total_points=0,
            created_at=utcnow(),
        )
        self._teams[team.id] = team
        return _detach(team)

    async def update_team(self, team_id: UUID, changes: dict[str, Any]) -> Team | None:
        team = self._teams.get(team_id)
        if team is None:
            return None
        for key, value in changes.items():
            setattr(team, key, value)
        return _detach(team)

    # -- users ------------------------------------------------------------

    async def get_user(self, user_id: UUID) -> User | None:
        user = self._users.get(user_id)
        return _detach(user) if user else None

    async def get_user_by_email(self, email: str) -> User | None:
        wanted = email.lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return _detach(user)
        return None

    async def create_user(self, data: dict[str, Any]) -> User:
        user = User(
            id=data.get("id") or uuid4(),
            name=data["name"],
            email=data["email"],
            password_hash=data["password_hash"],
            role=data["role"],
            team_id=data.get("team_id"),
            avatar_url=data.get("avatar_url"),
            created_at=utcnow(),
        )
        self._users[user.id] = user
        return _detach(user)

    async def update_user(self, user_id: UUID, changes: dict[str, Any]) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        for key, value in changes.items():
            setattr(user, key, value)
        return _detach(user)

    # -- notifications ----------------------------------------------------

    async def get_active_notification(self) -> Notification | None:
        for notification in self._notifications.values():
            if notification.is_active:
                return _detach(notification)
        return None

    async def create_notification(self, data: dict[str, Any]) -> Notification:
        async with self._lock:
            self._deactivate_all()
            notification = Notification(
                id=uuid4(),
                type=data["type"],
                title=data.get("title"),
                message=data.get("message"),
                media_url=data.get("media_url"),
                is_active=True,
                duration=data["duration"],
                created_at=utcnow(),
            )
            self._notifications[notification.id] = notification
            return _detach(notification)

    async def clear_active_notifications(self) -> int:
        async with self._lock:
            return self._deactivate_all()

    def _deactivate_all(self) -> int:
        cleared = 0
        for notification in self._notifications.values():
            if notification.is_active:
                notification.is_active = False
                cleared += 1
        return cleared
