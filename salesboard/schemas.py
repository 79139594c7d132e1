"""Pydantic v2 request, response and wire-event schemas.

Wire payloads are camelCase (``agentId``, ``avgActivation``...). Inbound
bodies accept either camelCase or the snake_case field names.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1)


class TLRegisterRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6)
    team_name: str = Field(..., min_length=2, max_length=100)


class UserResponse(CamelModel):
    id: UUID
    name: str
    email: str
    role: str
    team_id: UUID | None = None
    avatar_url: str | None = None


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


# ---------------------------------------------------------------------------
# Agents and counter deltas
# ---------------------------------------------------------------------------


# Counters are int4 columns; a single delta stays far inside that range.
MAX_COUNTER_DELTA = 1_000_000


class CounterDelta(CamelModel):
    """Signed adjustments for one agent; omitted fields are left untouched."""

    submissions: int | None = Field(default=None, ge=-MAX_COUNTER_DELTA, le=MAX_COUNTER_DELTA)
    activations: int | None = Field(default=None, ge=-MAX_COUNTER_DELTA, le=MAX_COUNTER_DELTA)
    points: int | None = Field(default=None, ge=-MAX_COUNTER_DELTA, le=MAX_COUNTER_DELTA)

    @model_validator(mode="after")
    def _require_one_counter(self) -> "CounterDelta":
        if self.submissions is None and self.activations is None and self.points is None:
            raise ValueError("delta must name at least one of submissions, activations, points")
        return self

    def as_changes(self) -> dict[str, int]:
        return self.model_dump(exclude_none=True)


class CounterUpdateMessage(CamelModel):
    agent_id: UUID
    delta: CounterDelta


class AgentCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    photo_url: HttpUrl
    team_id: UUID | None = None
    activation_target: int = Field(..., ge=1)
    activations: int = Field(default=0, ge=0)
    submissions: int = Field(default=0, ge=0)
    points: int = Field(default=0, ge=0)


class AgentResponse(CamelModel):
    id: UUID
    name: str
    photo_url: str
    team_id: UUID
    activation_target: int
    activations: int
    submissions: int
    points: int
    last_submission_reset: datetime


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Takeover notifications
# ---------------------------------------------------------------------------


class NotificationCreate(CamelModel):
    type: Literal["text", "image", "video", "audio"]
    title: str | None = Field(default=None, max_length=200)
    message: str | None = Field(default=None, max_length=2000)
    media_url: HttpUrl | None = None
    duration: int | None = Field(default=None, gt=0, le=3_600_000)

    @model_validator(mode="after")
    def _require_content(self) -> "NotificationCreate":
        if self.type == "text" and not (self.title or self.message):
            raise ValueError("text notifications need a title or a message")
        if self.type != "text" and self.media_url is None:
            raise ValueError(f"{self.type} notifications need a mediaUrl")
        return self


class NotificationResponse(CamelModel):
    id: UUID
    type: str
    title: str | None = None
    message: str | None = None
    media_url: str | None = None
    is_active: bool
    duration: int
    created_at: datetime


# ---------------------------------------------------------------------------
# Leaderboard and top stats
# ---------------------------------------------------------------------------


class TeamSummary(CamelModel):
    id: UUID
    name: str
    tl_id: UUID
    avg_activation: int
    total_activations: int
    total_submissions: int
    total_points: int
    agents: list[AgentResponse] = Field(default_factory=list)


class TopActivationAgent(CamelModel):
    id: UUID | None = None
    name: str
    photo_url: str
    activations: int


class TopSubmissionAgent(CamelModel):
    id: UUID | None = None
    name: str
    photo_url: str
    submissions: int


class TopStats(CamelModel):
    top_agent_month: TopActivationAgent
    top_agent_today: TopSubmissionAgent
    total_activations: int
    total_submissions: int
    total_points: int


class Leaderboard(CamelModel):
    teams: list[TeamSummary] = Field(default_factory=list)


class LeaderboardUpdate(CamelModel):
    """Payload of ``leaderboard:update`` and of GET /api/stats/leaderboard."""

    teams: list[TeamSummary] = Field(default_factory=list)
    top_stats: TopStats


class SaleActivation(CamelModel):
    agent_id: UUID
    agent_name: str
    photo_url: str
    team_id: UUID
    new_activation_count: int
    timestamp: datetime


# ---------------------------------------------------------------------------
# Streaming transport frames
# ---------------------------------------------------------------------------


class InboundFrame(BaseModel):
    """Envelope of a client -> server WebSocket message."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., min_length=1, max_length=64)
    room: str | None = Field(default=None, min_length=1, max_length=100)
    token: str | None = None
    data: dict[str, Any] | None = None
