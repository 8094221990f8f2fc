"""Starting lineups per set and the rotation state derived from them.

A lineup is editable until the set's ledger has its first entry. The current
rotation is never stored; ``get_rotation_state`` replays the ledger over the
starting lineups on every read.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import unit_of_work
from ..db_errors import is_unique_violation
from ..exceptions import BadRequest, NotFound
from ..models import MatchAction, MatchSet, StartingRotation
from ..scoring import rotation
from . import events
from .matches import ensure_team_in_match, get_match, get_set, get_team, list_team_player_ids
from .validation import ValidationError, missing_players, validate_lineup

LOGGER = logging.getLogger(__name__)


async def _find_rotation(
    session: AsyncSession, set_id: str, team_id: str
) -> StartingRotation | None:
    return (
        await session.execute(
            select(StartingRotation).where(
                StartingRotation.set_id == set_id,
                StartingRotation.team_id == team_id,
            )
        )
    ).scalar_one_or_none()


async def _ledger_size(session: AsyncSession, set_id: str) -> int:
    return (
        await session.execute(
            select(func.count()).select_from(MatchAction).where(MatchAction.set_id == set_id)
        )
    ).scalar_one()


async def get_starting_rotation(
    session: AsyncSession, set_id: str, team_id: str
) -> StartingRotation:
    await get_set(session, set_id)
    found = await _find_rotation(session, set_id, team_id)
    if not found:
        raise NotFound("Starting rotation not found", code="rotation_not_found")
    return found


async def set_starting_rotation(
    session: AsyncSession,
    set_id: str,
    team_id: str,
    positions: Sequence[str],
    libero_id: str,
) -> StartingRotation:
    """Store the six-slot lineup and libero of ``team_id`` for one set.

    ``positions[0]`` is the server. A lineup can be stored once per
    (set, team); delete it first to replace it.
    """

    try:
        async with unit_of_work(session):
            match_set = await get_set(session, set_id, for_update=True)
            await get_team(session, team_id)
            match = await get_match(session, match_set.match_id)
            ensure_team_in_match(match, team_id)

            if await _find_rotation(session, set_id, team_id):
                raise BadRequest(
                    "Starting rotation already set for this team",
                    code="rotation_already_set",
                )

            try:
                ids = validate_lineup(positions, libero_id)
            except ValidationError as exc:
                raise BadRequest(exc.detail, code="rotation_invalid")

            absent = missing_players(ids, await list_team_player_ids(session, team_id))
            if absent:
                raise BadRequest(
                    f"Players not on team: {', '.join(absent)}",
                    code="rotation_player_not_on_team",
                )

            lineup = list(positions)
            row = StartingRotation(
                id=uuid.uuid4().hex,
                set_id=set_id,
                team_id=team_id,
                position1_id=lineup[0],
                position2_id=lineup[1],
                position3_id=lineup[2],
                position4_id=lineup[3],
                position5_id=lineup[4],
                position6_id=lineup[5],
                libero_id=libero_id,
            )
            session.add(row)
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise BadRequest(
                "Starting rotation already set for this team",
                code="rotation_already_set",
            )
        raise

    LOGGER.info("Starting rotation set for team %s in set %s", team_id, set_id)
    await events.sink.publish(
        events.StartingRotationSet(
            set_id=set_id,
            team_id=team_id,
            positions=tuple(row.positions),
            libero_id=libero_id,
        )
    )
    return row


async def delete_starting_rotation(session: AsyncSession, set_id: str, team_id: str) -> None:
    async with unit_of_work(session):
        match_set = await get_set(session, set_id, for_update=True)
        match = await get_match(session, match_set.match_id)
        ensure_team_in_match(match, team_id)

        found = await _find_rotation(session, set_id, team_id)
        if not found:
            raise NotFound("Starting rotation not found", code="rotation_not_found")

        # Either team's actions lock both lineups.
        if await _ledger_size(session, set_id):
            raise BadRequest(
                "Cannot delete starting rotation after actions have been recorded",
                code="rotation_locked",
            )
        await session.delete(found)

    LOGGER.info("Starting rotation deleted for team %s in set %s", team_id, set_id)
    await events.sink.publish(events.StartingRotationDeleted(set_id=set_id, team_id=team_id))


async def set_initial_server(session: AsyncSession, set_id: str, team_id: str) -> MatchSet:
    async with unit_of_work(session):
        match_set = await get_set(session, set_id, for_update=True)
        await get_team(session, team_id)
        match = await get_match(session, match_set.match_id)
        ensure_team_in_match(match, team_id)

        if (match_set.points_a or 0) or (match_set.points_b or 0):
            raise BadRequest(
                "Initial server can only be set before the set has a score",
                code="initial_server_locked",
            )
        if await _ledger_size(session, set_id):
            raise BadRequest(
                "Initial server can only be set before actions are recorded",
                code="initial_server_locked",
            )
        match_set.initial_serving_team_id = team_id

    LOGGER.info("Initial server for set %s is team %s", set_id, team_id)
    return match_set


async def get_rotation_state(session: AsyncSession, set_id: str) -> Dict[str, Any]:
    """Replay the set's ledger over its starting lineups.

    Raises ``NotFound`` when the set is unknown or neither team has a lineup.
    """

    match_set = await get_set(session, set_id)
    match = await get_match(session, match_set.match_id)

    lineups = {
        row.team_id: row
        for row in (
            await session.execute(
                select(StartingRotation).where(StartingRotation.set_id == set_id)
            )
        ).scalars()
    }
    if not lineups:
        raise NotFound("No starting rotation for this set", code="rotation_not_found")

    lineup_a = lineups.get(match.team_a_id)
    lineup_b = lineups.get(match.team_b_id)
    state = rotation.init_state(
        match.team_a_id,
        match.team_b_id,
        lineup_a=lineup_a.positions if lineup_a else None,
        libero_a=lineup_a.libero_id if lineup_a else None,
        lineup_b=lineup_b.positions if lineup_b else None,
        libero_b=lineup_b.libero_id if lineup_b else None,
        initial_serving_team_id=match_set.initial_serving_team_id,
    )

    entries = (
        await session.execute(
            select(MatchAction.team_id, MatchAction.point_delta)
            .where(MatchAction.set_id == set_id)
            .order_by(MatchAction.sequence)
        )
    ).all()
    state = rotation.replay(
        ({"team_id": team_id, "point_delta": delta} for team_id, delta in entries), state
    )
    return {"setId": set_id, "matchId": match.id, **rotation.summary(state)}
