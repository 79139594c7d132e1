"""Global pytest fixtures for the Salesboard service.

Provides:
- An in-memory storage with an admin, two team leaders, their teams and agents
- A hub that records every broadcast it is asked to make
- Access tokens for each seeded user
"""

import asyncio
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-salesboard-tests")

from dataclasses import dataclass
from typing import Any

import pytest
import pytest_asyncio

from salesboard.auth import create_access_token, hash_password
from salesboard.models import ROLE_ADMIN, ROLE_TL, Agent, Team, User
from salesboard.realtime.hub import BroadcastHub
from salesboard.services.mutation_service import MutationGateway
from salesboard.services.notification_service import NotificationManager
from salesboard.storage import MemoryStorage

PASSWORD = "secret-pass"


# ===========================================
# BROADCAST RECORDING
# ===========================================


class RecordingHub(BroadcastHub):
    """BroadcastHub that also keeps every (event, payload) it fans out."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[tuple[str, Any]] = []

    async def broadcast_all(self, event_type: str, data: Any) -> int:
        self.events.append((event_type, data))
        return await super().broadcast_all(event_type, data)

    def of_type(self, event_type: str) -> list[Any]:
        return [data for name, data in self.events if name == event_type]


# ===========================================
# SEEDED WORLD
# ===========================================


@dataclass
class World:
    admin: User
    tl: User
    other_tl: User
    team: Team
    other_team: Team
    agent: Agent
    foreign_agent: Agent

    @property
    def admin_token(self) -> str:
        return create_access_token(str(self.admin.id))

    @property
    def tl_token(self) -> str:
        return create_access_token(str(self.tl.id))

    @property
    def other_tl_token(self) -> str:
        return create_access_token(str(self.other_tl.id))


async def seed_world(storage: MemoryStorage) -> World:
    password_hash = hash_password(PASSWORD)

    admin = await storage.create_user(
        {"name": "Admin", "email": "admin@example.com", "password_hash": password_hash, "role": ROLE_ADMIN}
    )
    tl = await storage.create_user(
        {"name": "Tina Lead", "email": "tl1@example.com", "password_hash": password_hash, "role": ROLE_TL}
    )
    other_tl = await storage.create_user(
        {"name": "Omar Lead", "email": "tl2@example.com", "password_hash": password_hash, "role": ROLE_TL}
    )

    team = await storage.create_team({"name": "Team Alpha", "tl_id": tl.id})
    other_team = await storage.create_team({"name": "Team Bravo", "tl_id": other_tl.id})
    tl = await storage.update_user(tl.id, {"team_id": team.id})
    other_tl = await storage.update_user(other_tl.id, {"team_id": other_team.id})

    agent = await storage.create_agent(
        {
            "name": "Alice",
            "photo_url": "https://example.com/alice.png",
            "team_id": team.id,
            "activation_target": 20,
            "activations": 15,
            "submissions": 3,
            "points": 40,
        }
    )
    foreign_agent = await storage.create_agent(
        {
            "name": "Bob",
            "photo_url": "https://example.com/bob.png",
            "team_id": other_team.id,
            "activation_target": 10,
            "activations": 2,
            "submissions": 1,
            "points": 10,
        }
    )
    return World(admin, tl, other_tl, team, other_team, agent, foreign_agent)


# ===========================================
# FIXTURES
# ===========================================


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def hub() -> RecordingHub:
    return RecordingHub()


@pytest_asyncio.fixture
async def world(storage) -> World:
    return await seed_world(storage)


@pytest.fixture
def gateway(storage, hub) -> MutationGateway:
    return MutationGateway(storage, hub)


@pytest_asyncio.fixture
async def notifications(storage, hub):
    manager = NotificationManager(storage, hub, default_duration_ms=15000)
    yield manager
    await manager.shutdown()


# ===========================================
# APPLICATION CLIENT
# ===========================================


@pytest.fixture
def seeded_world(storage) -> World:
    """Seed synchronously for tests that drive the app through TestClient."""
    return asyncio.run(seed_world(storage))


@pytest.fixture
def client(storage, seeded_world):
    """TestClient over an app wired to the in-memory store, without Redis or the reset loop."""
    from fastapi.testclient import TestClient

    from salesboard.main import create_app

    app = create_app(storage, connect_redis=False, start_scheduler=False)
    with TestClient(app) as test_client:
        yield test_client