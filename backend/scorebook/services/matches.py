"""Team, player and match directory used by the ledger core.

This is plumbing: lookups raise the core's not-found/bad-request errors so the
command modules can stay focused on ledger semantics.
"""

from __future__ import annotations

import logging
import uuid
from typing import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import SETS_PER_MATCH
from ..db import unit_of_work
from ..db_errors import is_unique_violation
from ..exceptions import BadRequest, NotFound
from ..models import Match, MatchSet, Player, Team

LOGGER = logging.getLogger(__name__)

PLAYER_ROLES = ("libero", "setter", "middle", "opposite", "outside")


async def get_match(session: AsyncSession, match_id: str) -> Match:
    match = await session.get(Match, match_id)
    if not match:
        raise NotFound("Match not found", code="match_not_found")
    return match


async def get_team(session: AsyncSession, team_id: str) -> Team:
    team = await session.get(Team, team_id)
    if not team:
        raise NotFound("Team not found", code="team_not_found")
    return team


async def get_set(session: AsyncSession, set_id: str, *, for_update: bool = False) -> MatchSet:
    stmt = select(MatchSet).where(MatchSet.id == set_id)
    if for_update:
        # Serializes ledger writers on the same set (no-op on SQLite).
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    match_set = (await session.execute(stmt)).scalar_one_or_none()
    if not match_set:
        raise NotFound("Set not found", code="set_not_found")
    return match_set


async def get_set_for_match(
    session: AsyncSession, match_id: str, set_id: str, *, for_update: bool = False
) -> MatchSet:
    match_set = await get_set(session, set_id, for_update=for_update)
    if match_set.match_id != match_id:
        raise NotFound("Set not found for match", code="set_not_found")
    return match_set


def ensure_team_in_match(match: Match, team_id: str) -> None:
    if not match.has_team(team_id):
        raise BadRequest("Team is not part of this match", code="team_not_in_match")


async def list_team_player_ids(session: AsyncSession, team_id: str) -> list[str]:
    return list(
        (await session.execute(select(Player.id).where(Player.team_id == team_id))).scalars().all()
    )


def ensure_owner(team: Team, owner_id: str) -> None:
    """Authorization collaborator: a team is owned by exactly one caller."""

    if team.owner_id != owner_id:
        raise NotFound("Team not found or not owned by user", code="team_not_owned")


async def ensure_match_owner(session: AsyncSession, match: Match, owner_id: str) -> None:
    owned = (
        await session.execute(
            select(func.count())
            .select_from(Team)
            .where(
                Team.id.in_([match.team_a_id, match.team_b_id]),
                Team.owner_id == owner_id,
            )
        )
    ).scalar_one()
    if not owned:
        raise NotFound("Match not found", code="match_not_found")


async def create_team(
    session: AsyncSession, owner_id: str, name: str, division: str | None = None
) -> Team:
    async with unit_of_work(session):
        team = Team(id=uuid.uuid4().hex, name=name, division=division, owner_id=owner_id)
        session.add(team)
    return team


async def list_teams(session: AsyncSession, owner_id: str) -> Sequence[Team]:
    return (
        await session.execute(
            select(Team).where(Team.owner_id == owner_id).order_by(Team.created_at, Team.name)
        )
    ).scalars().all()


async def add_player(
    session: AsyncSession,
    team_id: str,
    name: str,
    number: int,
    role: str | None = None,
) -> Player:
    if role is not None and role not in PLAYER_ROLES:
        raise BadRequest(f"unknown player role '{role}'", code="player_invalid_role")
    try:
        async with unit_of_work(session):
            await get_team(session, team_id)
            player = Player(
                id=uuid.uuid4().hex,
                team_id=team_id,
                name=name,
                number=number,
                role=role,
            )
            session.add(player)
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise BadRequest(
                f"number {number} is already taken on this team",
                code="player_number_taken",
            )
        raise
    return player


async def list_players(session: AsyncSession, team_id: str) -> Sequence[Player]:
    return (
        await session.execute(
            select(Player).where(Player.team_id == team_id).order_by(Player.number)
        )
    ).scalars().all()


async def create_match(
    session: AsyncSession, owner_id: str, team_a_id: str, team_b_id: str
) -> tuple[Match, list[MatchSet]]:
    """Create a match between two owned teams together with its five sets."""

    if team_a_id == team_b_id:
        raise BadRequest("Teams must be different", code="match_same_teams")

    async with unit_of_work(session):
        teams = (
            await session.execute(
                select(Team).where(
                    Team.id.in_([team_a_id, team_b_id]), Team.owner_id == owner_id
                )
            )
        ).scalars().all()
        if len(teams) != 2:
            raise NotFound(
                "Teams not found or not owned by user", code="team_not_owned"
            )

        match = Match(id=uuid.uuid4().hex, team_a_id=team_a_id, team_b_id=team_b_id)
        session.add(match)
        sets = [
            MatchSet(id=uuid.uuid4().hex, match_id=match.id, key=key, points_a=0, points_b=0)
            for key in range(SETS_PER_MATCH)
        ]
        session.add_all(sets)

    LOGGER.info("Created match %s (%s vs %s)", match.id, team_a_id, team_b_id)
    return match, sets


async def list_sets(session: AsyncSession, match_id: str) -> Sequence[MatchSet]:
    await get_match(session, match_id)
    return (
        await session.execute(
            select(MatchSet).where(MatchSet.match_id == match_id).order_by(MatchSet.key)
        )
    ).scalars().all()


async def list_matches_for_team(session: AsyncSession, team_id: str) -> Sequence[Match]:
    return (
        await session.execute(
            select(Match)
            .where(or_(Match.team_a_id == team_id, Match.team_b_id == team_id))
            .order_by(Match.created_at.desc())
        )
    ).scalars().all()
