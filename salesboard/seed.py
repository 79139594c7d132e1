"""Seed script — creates an admin, team leaders, teams and a few agents.

Skips everything when the admin email already exists.

Usage:
    python -m salesboard.seed
"""

import asyncio
import os

from salesboard.auth import hash_password
from salesboard.database import init_db
from salesboard.logging_config import configure_logging, get_logger
from salesboard.models import ROLE_ADMIN, ROLE_TL
from salesboard.sql_storage import SqlStorage
from salesboard.storage import Storage

logger = get_logger(__name__)

AVATAR = "https://images.unsplash.com/photo-{}?w=64&h=64&fit=crop&crop=face"

# ---------------------------------------------------------------------------
# Team leaders and their teams
# ---------------------------------------------------------------------------

TEAM_LEADERS = [
    {
        "name": "John Smith",
        "email": os.getenv("TL1_EMAIL", "tl1@example.com"),
        "password": os.getenv("TL1_PASSWORD", "tl1-pass"),
        "avatar": "1472099645785-5658abf4ff4e",
        "team": "Team Alpha",
    },
    {
        "name": "Maria Garcia",
        "email": os.getenv("TL2_EMAIL", "tl2@example.com"),
        "password": os.getenv("TL2_PASSWORD", "tl2-pass"),
        "avatar": "1560250097-0b93528c311a",
        "team": "Team Bravo",
    },
    {
        "name": "Wei Chen",
        "email": os.getenv("TL3_EMAIL", "tl3@example.com"),
        "password": os.getenv("TL3_PASSWORD", "tl3-pass"),
        "avatar": "1500648767791-00dcc994a43e",
        "team": "Team Charlie",
    },
]

# team_idx points into TEAM_LEADERS
AGENTS = [
    {"name": "Alice Johnson", "team_idx": 0, "activation_target": 20, "avatar": "1508214751196-bcfd4ca60f91"},
    {"name": "Bob Lee", "team_idx": 0, "activation_target": 15, "avatar": "1511367461989-f85a21fda167"},
    {"name": "Carol Smith", "team_idx": 1, "activation_target": 20, "avatar": "1519340333755-c89213c1e339"},
    {"name": "David Kim", "team_idx": 1, "activation_target": 10, "avatar": "1529626455594-4ff0802cfb7e"},
    {"name": "Erin Walsh", "team_idx": 2, "activation_target": 25, "avatar": "1438761681033-6461ffad8d80"},
]


async def seed(storage: Storage) -> bool:
    """Populate ``storage``. Returns False when the data was already there."""
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    if await storage.get_user_by_email(admin_email) is not None:
        logger.info("seed_skipped", reason="admin already exists", email=admin_email)
        return False

    await storage.create_user(
        {
            "name": "Admin User",
            "email": admin_email,
            "password_hash": hash_password(os.getenv("ADMIN_PASSWORD", "admin123")),
            "role": ROLE_ADMIN,
            "avatar_url": AVATAR.format("1472099645785-5658abf4ff4e"),
        }
    )

    teams = []
    for tl in TEAM_LEADERS:
        user = await storage.create_user(
            {
                "name": tl["name"],
                "email": tl["email"],
                "password_hash": hash_password(tl["password"]),
                "role": ROLE_TL,
                "avatar_url": AVATAR.format(tl["avatar"]),
            }
        )
        team = await storage.create_team({"name": tl["team"], "tl_id": user.id})
        await storage.update_user(user.id, {"team_id": team.id})
        teams.append(team)

    for entry in AGENTS:
        await storage.create_agent(
            {
                "name": entry["name"],
                "photo_url": AVATAR.format(entry["avatar"]),
                "team_id": teams[entry["team_idx"]].id,
                "activation_target": entry["activation_target"],
            }
        )

    logger.info("seed_complete", team_count=len(teams), agent_count=len(AGENTS))

    print("\n" + "=" * 60)
    print("SEED DATA CREATED SUCCESSFULLY")
    print("=" * 60)
    print(f"\nAdmin: {admin_email}")
    print("\nTeams:")
    for tl, team in zip(TEAM_LEADERS, teams):
        print(f"  {team.name} (leader: {tl['email']})")
    print(f"\nAgents: {len(AGENTS)}")
    print("=" * 60)
    return True


async def main() -> None:
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"), json_format=False)
    await init_db()
    storage = SqlStorage()
    try:
        await seed(storage)
    finally:
        await storage.close()


if __name__ == "__main__":
    asyncio.run(main())
