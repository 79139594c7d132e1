"""SQLAlchemy ORM models for users, teams, agents and takeover notifications."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Boolean, DateTime, Integer

ROLE_ADMIN = "admin"
ROLE_TL = "tl"
ROLES = (ROLE_ADMIN, ROLE_TL)

NOTIFICATION_TYPES = ("text", "image", "video", "audio")

COUNTER_FIELDS = ("submissions", "activations", "points")


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Users (admins and team leaders)
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_email", "email"),
        CheckConstraint("role IN ('admin','tl')", name="ck_user_role"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    # Back-reference only; teams.tl_id is the owning side.
    team_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True))
    avatar_url: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    tl_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False
    )
    # Materialized from the leaderboard computation; never written by clients.
    avg_activation: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    total_activations: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    total_submissions: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    total_points: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


class Agent(Base):
    __tablename__ = "agents"
    __table_args__ = (
        Index("idx_agents_team", "team_id"),
        CheckConstraint("activation_target >= 0", name="ck_agent_target"),
        CheckConstraint(
            "activations >= 0 AND submissions >= 0 AND points >= 0",
            name="ck_agent_counters_non_negative",
        ),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    photo_url: Mapped[str] = mapped_column(Text, nullable=False)
    team_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
    )
    activation_target: Mapped[int] = mapped_column(Integer, nullable=False)
    activations: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    submissions: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    points: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    last_submission_reset: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Takeover notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        # At most one active row system-wide.
        Index(
            "uq_notifications_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
        ),
        CheckConstraint(
            "type IN ('text','image','video','audio')", name="ck_notification_type"
        ),
        CheckConstraint("duration > 0", name="ck_notification_duration"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text)
    message: Mapped[str | None] = mapped_column(Text)
    media_url: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
