"""Background daily rollover of agent submission counters.

Runs as an asyncio task during the application lifespan. Agents whose
``last_submission_reset`` is before the current UTC day get their
submissions zeroed; any reset triggers a leaderboard broadcast.
"""

import asyncio
import os
from datetime import datetime, timezone

from salesboard.logging_config import get_logger
from salesboard.services.mutation_service import MutationGateway

logger = get_logger(__name__)

SUBMISSION_RESET_CHECK_SECONDS = int(os.getenv("SUBMISSION_RESET_CHECK_SECONDS", "60"))


async def run_submission_reset(gateway: MutationGateway, now: datetime | None = None) -> int:
    """One rollover pass. Returns the number of agents reset."""
    now = now or datetime.now(timezone.utc)
    reset = await gateway.storage.reset_stale_submissions(now)
    if reset:
        logger.info("daily_submissions_reset", agents=reset)
        await gateway.publish_leaderboard()
    return reset


async def submission_reset_loop(
    gateway: MutationGateway,
    stop_event: asyncio.Event,
    interval_seconds: int = SUBMISSION_RESET_CHECK_SECONDS,
) -> None:
    """Main rollover loop. Runs until stop_event is set."""
    logger.info("submission_reset_started", interval_seconds=interval_seconds)

    while not stop_event.is_set():
        try:
            await run_submission_reset(gateway)
        except Exception:
            logger.exception("submission_reset_cycle_error")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            break
        except asyncio.TimeoutError:
            pass
