"""Public leaderboard snapshot for dashboards that (re)load without a socket."""

from fastapi import APIRouter, Depends

from salesboard.dependencies import get_storage
from salesboard.schemas import LeaderboardUpdate
from salesboard.services.aggregation_service import compute_leaderboard_update
from salesboard.storage import Storage

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/leaderboard", response_model=LeaderboardUpdate)
async def leaderboard(storage: Storage = Depends(get_storage)):
    """Ranked teams plus top stats, computed fresh from the current snapshot."""
    return await compute_leaderboard_update(storage)
