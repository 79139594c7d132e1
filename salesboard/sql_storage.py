"""PostgreSQL-backed implementation of the storage contract."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update

from salesboard.database import close_db, get_db_session
from salesboard.logging_config import get_logger
from salesboard.models import COUNTER_FIELDS, Agent, Notification, Team, User
from salesboard.storage import Storage, start_of_day

logger = get_logger(__name__)


class SqlStorage(Storage):
    """One short-lived AsyncSession per call; rows come back detached."""

    # -- agents -----------------------------------------------------------

    async def get_agent(self, agent_id: UUID) -> Agent | None:
        async with get_db_session() as session:
            return await session.get(Agent, agent_id)

    async def get_agents_by_team(self, team_id: UUID) -> list[Agent]:
        async with get_db_session() as session:
            result = await session.execute(
                select(Agent)
                .where(Agent.team_id == team_id)
                .order_by(Agent.created_at, Agent.id)
            )
            return list(result.scalars().all())

    async def get_all_agents(self) -> list[Agent]:
        async with get_db_session() as session:
            result = await session.execute(
                select(Agent).order_by(Agent.created_at, Agent.id)
            )
            return list(result.scalars().all())

    async def create_agent(self, data: dict[str, Any]) -> Agent:
        async with get_db_session() as session:
            agent = Agent(**data)
            session.add(agent)
            await session.commit()
            await session.refresh(agent)
            return agent

    async def update_agent(self, agent_id: UUID, changes: dict[str, Any]) -> Agent | None:
        async with get_db_session() as session:
            result = await session.execute(
                update(Agent)
                .where(Agent.id == agent_id)
                .values(**changes)
                .returning(Agent)
            )
            agent = result.scalar_one_or_none()
            await session.commit()
            return agent

    async def apply_agent_deltas(self, agent_id: UUID, deltas: dict[str, int]) -> Agent | None:
        unknown = set(deltas) - set(COUNTER_FIELDS)
        if unknown:
            raise KeyError(", ".join(sorted(unknown)))

        # Single UPDATE: the row lock serializes concurrent writers on one agent.
        values = {
            field: func.greatest(0, getattr(Agent, field) + delta)
            for field, delta in deltas.items()
        }
        async with get_db_session() as session:
            result = await session.execute(
                update(Agent)
                .where(Agent.id == agent_id)
                .values(**values)
                .returning(Agent)
            )
            agent = result.scalar_one_or_none()
            await session.commit()
            return agent

    async def delete_agent(self, agent_id: UUID) -> bool:
        async with get_db_session() as session:
            result = await session.execute(delete(Agent).where(Agent.id == agent_id))
            await session.commit()
            return (result.rowcount or 0) > 0

    async def reset_stale_submissions(self, now: datetime) -> int:
        async with get_db_session() as session:
            result = await session.execute(
                update(Agent)
                .where(Agent.last_submission_reset < start_of_day(now))
                .values(submissions=0, last_submission_reset=now)
            )
            await session.commit()
            return result.rowcount or 0

    # -- teams ------------------------------------------------------------

    async def get_team(self, team_id: UUID) -> Team | None:
        async with get_db_session() as session:
            return await session.get(Team, team_id)

    async def get_team_by_owner(self, user_id: UUID) -> Team | None:
        async with get_db_session() as session:
            result = await session.execute(select(Team).where(Team.tl_id == user_id))
            return result.scalar_one_or_none()

    async def get_all_teams(self) -> list[Team]:
        async with get_db_session() as session:
            result = await session.execute(select(Team).order_by(Team.created_at, Team.id))
            return list(result.scalars().all())

    async def create_team(self, data: dict[str, Any]) -> Team:
        async with get_db_session() as session:
            team = Team(**data)
            session.add(team)
            await session.commit()
            await session.refresh(team)
            return team

    async def update_team(self, team_id: UUID, changes: dict[str, Any]) -> Team | None:
        async with get_db_session() as session:
            result = await session.execute(
                update(Team).where(Team.id == team_id).values(**changes).returning(Team)
            )
            team = result.scalar_one_or_none()
            await session.commit()
            return team

    # -- users ------------------------------------------------------------

    async def get_user(self, user_id: UUID) -> User | None:
        async with get_db_session() as session:
            return await session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        async with get_db_session() as session:
            result = await session.execute(
                select(User).where(func.lower(User.email) == email.lower())
            )
            return result.scalar_one_or_none()

    async def create_user(self, data: dict[str, Any]) -> User:
        async with get_db_session() as session:
            user = User(**data)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    async def update_user(self, user_id: UUID, changes: dict[str, Any]) -> User | None:
        async with get_db_session() as session:
            result = await session.execute(
                update(User).where(User.id == user_id).values(**changes).returning(User)
            )
            user = result.scalar_one_or_none()
            await session.commit()
            return user

    # -- notifications ----------------------------------------------------

    async def get_active_notification(self) -> Notification | None:
        async with get_db_session() as session:
            result = await session.execute(
                select(Notification).where(Notification.is_active.is_(True)).limit(1)
            )
            return result.scalar_one_or_none()

    async def create_notification(self, data: dict[str, Any]) -> Notification:
        async with get_db_session() as session:
            await session.execute(
                update(Notification)
                .where(Notification.is_active.is_(True))
                .values(is_active=False)
            )
            notification = Notification(is_active=True, **data)
            session.add(notification)
            await session.commit()
            await session.refresh(notification)
            return notification

    async def clear_active_notifications(self) -> int:
        async with get_db_session() as session:
            result = await session.execute(
                update(Notification)
                .where(Notification.is_active.is_(True))
                .values(is_active=False)
            )
            await session.commit()
            return result.rowcount or 0

    async def close(self) -> None:
        await close_db()
        logger.info("sql_storage_closed")
