"""Leaderboard and top-stats aggregation over the current agent/team snapshot.

``rank_teams`` and ``select_top_stats`` are pure; the async wrappers only
read the snapshot from storage. Team ordering is deterministic for
identical input: avgActivation desc, totalPoints desc, agent-less teams
after populated ones, then team id.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Iterable, Sequence

from salesboard.logging_config import get_logger
from salesboard.models import Agent, Team
from salesboard.schemas import (
    AgentResponse,
    Leaderboard,
    LeaderboardUpdate,
    TeamSummary,
    TopActivationAgent,
    TopStats,
    TopSubmissionAgent,
)
from salesboard.storage import Storage

logger = get_logger(__name__)

NO_AGENT_NAME = "No agents"


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def activation_percent(agent: Agent) -> int:
    """Percentage of the agent's activation target reached; 0 when the target is 0."""
    if agent.activation_target <= 0:
        return 0
    return round_half_up(100 * agent.activations / agent.activation_target)


def summarize_team(team: Team, agents: Sequence[Agent]) -> TeamSummary:
    if agents:
        avg = round_half_up(sum(activation_percent(a) for a in agents) / len(agents))
    else:
        avg = 0
    return TeamSummary(
        id=team.id,
        name=team.name,
        tl_id=team.tl_id,
        avg_activation=avg,
        total_activations=sum(a.activations for a in agents),
        total_submissions=sum(a.submissions for a in agents),
        total_points=sum(a.points for a in agents),
        agents=[AgentResponse.model_validate(a) for a in agents],
    )


def _ranking_key(summary: TeamSummary) -> tuple:
    return (
        -summary.avg_activation,
        -summary.total_points,
        not summary.agents,
        str(summary.id),
    )


def rank_teams(teams: Iterable[Team], agents: Iterable[Agent]) -> Leaderboard:
    """Group agents under their teams and order the summaries."""
    by_team: dict = defaultdict(list)
    for agent in agents:
        by_team[agent.team_id].append(agent)

    summaries = [summarize_team(team, by_team.get(team.id, [])) for team in teams]
    summaries.sort(key=_ranking_key)
    return Leaderboard(teams=summaries)


def _pick_top(agents: Sequence[Agent], field: str) -> Agent | None:
    # Highest value wins; ties go to the lowest agent id.
    best: Agent | None = None
    for agent in agents:
        if best is None:
            best = agent
            continue
        value, best_value = getattr(agent, field), getattr(best, field)
        if value > best_value or (value == best_value and str(agent.id) < str(best.id)):
            best = agent
    return best


def select_top_stats(agents: Sequence[Agent]) -> TopStats:
    top_month = _pick_top(agents, "activations")
    top_today = _pick_top(agents, "submissions")

    if top_month is None:
        month = TopActivationAgent(name=NO_AGENT_NAME, photo_url="", activations=0)
    else:
        month = TopActivationAgent(
            id=top_month.id,
            name=top_month.name,
            photo_url=top_month.photo_url,
            activations=top_month.activations,
        )

    if top_today is None:
        today = TopSubmissionAgent(name=NO_AGENT_NAME, photo_url="", submissions=0)
    else:
        today = TopSubmissionAgent(
            id=top_today.id,
            name=top_today.name,
            photo_url=top_today.photo_url,
            submissions=top_today.submissions,
        )

    return TopStats(
        top_agent_month=month,
        top_agent_today=today,
        total_activations=sum(a.activations for a in agents),
        total_submissions=sum(a.submissions for a in agents),
        total_points=sum(a.points for a in agents),
    )


async def compute_leaderboard(storage: Storage) -> Leaderboard:
    teams = await storage.get_all_teams()
    agents = await storage.get_all_agents()
    return rank_teams(teams, agents)


async def compute_top_stats(storage: Storage) -> TopStats:
    return select_top_stats(await storage.get_all_agents())


async def compute_leaderboard_update(storage: Storage) -> LeaderboardUpdate:
    """Leaderboard and top stats from a single snapshot read."""
    teams = await storage.get_all_teams()
    agents = await storage.get_all_agents()
    leaderboard = rank_teams(teams, agents)
    return LeaderboardUpdate(teams=leaderboard.teams, top_stats=select_top_stats(agents))


async def refresh_team_cache(storage: Storage, leaderboard: Leaderboard | LeaderboardUpdate) -> None:
    """Write every team's aggregate fields back wholesale from a fresh computation."""
    for summary in leaderboard.teams:
        await storage.update_team(
            summary.id,
            {
                "avg_activation": summary.avg_activation,
                "total_activations": summary.total_activations,
                "total_submissions": summary.total_submissions,
                "total_points": summary.total_points,
            },
        )
    logger.debug("team_cache_refreshed", teams=len(leaderboard.teams))
