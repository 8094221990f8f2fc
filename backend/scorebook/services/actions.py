"""Action command engine: append to and delete from a set's ledger.

Both commands run as a single unit of work that holds a row lock on the set.
The ledger rows, the set's cached score and the player's stats projection are
written together or not at all. Events go to the sink only after commit.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import unit_of_work
from ..db_errors import is_unique_violation
from ..exceptions import BadRequest, Conflict, NotFound
from ..models import MatchAction, Player
from ..scoring import ledger
from ..time_utils import coerce_utc, utcnow
from . import events, stats
from .matches import ensure_team_in_match, get_match, get_set, get_set_for_match
from .validation import (
    ValidationError,
    validate_action_type,
    validate_outcome,
    validate_point_delta,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordedAction:
    action: MatchAction
    score: events.Score


@dataclass(frozen=True)
class DeletedAction:
    action_id: str
    match_id: str
    set_id: str
    score: events.Score


def _entry(action: MatchAction) -> dict[str, Any]:
    return {"team_id": action.team_id, "point_delta": action.point_delta}


async def _last_action(session: AsyncSession, set_id: str) -> MatchAction | None:
    return (
        await session.execute(
            select(MatchAction)
            .where(MatchAction.set_id == set_id)
            .order_by(MatchAction.sequence.desc())
            .limit(1)
        )
    ).scalar_one_or_none()


async def record_action(
    session: AsyncSession,
    match_id: str,
    set_id: str,
    team_id: str,
    player_id: str,
    action_type: str,
    outcome: str,
    point_delta: int,
    occurred_at: datetime | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> RecordedAction:
    """Append one entry to the set's ledger and update the cached set score.

    Raises ``NotFound`` for an unknown match, set or player, ``BadRequest``
    when the team is not in the match, the player is not on the team or the
    entry itself is malformed, and ``Conflict`` when a concurrent append took
    the same sequence number.
    """

    try:
        async with unit_of_work(session):
            match = await get_match(session, match_id)
            match_set = await get_set_for_match(session, match.id, set_id, for_update=True)
            ensure_team_in_match(match, team_id)

            player = await session.get(Player, player_id)
            if not player:
                raise NotFound("Player not found", code="player_not_found")
            if player.team_id != team_id:
                raise BadRequest(
                    "Player does not belong to the team", code="player_not_on_team"
                )

            try:
                kind = validate_action_type(action_type)
                delta = validate_point_delta(point_delta)
                outcome = validate_outcome(outcome)
            except ValidationError as exc:
                raise BadRequest(exc.detail, code="action_invalid")

            last = await _last_action(session, match_set.id)
            state = ledger.resume(
                match.team_a_id,
                match.team_b_id,
                sequence=last.sequence if last else 0,
                rally=last.rally if last else 0,
                points_a=match_set.points_a or 0,
                points_b=match_set.points_b or 0,
            )
            state = ledger.apply({"team_id": team_id, "point_delta": delta}, state)
            score = ledger.summary(state)

            match_set.points_a = score["pointsA"]
            match_set.points_b = score["pointsB"]

            action = MatchAction(
                id=uuid.uuid4().hex,
                match_id=match.id,
                set_id=match_set.id,
                team_id=team_id,
                player_id=player_id,
                action_type=kind.value,
                outcome=outcome,
                point_delta=delta,
                sequence=state["sequence"],
                rally=state["rally"],
                occurred_at=coerce_utc(occurred_at) or utcnow(),
                meta=dict(metadata) if metadata is not None else None,
                created_at=utcnow(),
            )
            session.add(action)
            await session.flush()

            await stats.apply_action_recorded(
                session,
                match_id=match.id,
                player_id=player_id,
                action_type=action.action_type,
                outcome=action.outcome,
                point_delta=delta,
            )
    except IntegrityError as exc:
        if is_unique_violation(exc):
            LOGGER.warning(
                "Sequence conflict appending to set %s; caller may retry", set_id
            )
            raise Conflict(
                "Another action was recorded for this set at the same time; retry",
                code="action_sequence_conflict",
            )
        raise

    result_score = events.Score(match_set.points_a, match_set.points_b)
    LOGGER.info(
        "Recorded action %s (%s, delta %d) as #%d in set %s; score %d-%d",
        action.id,
        action.action_type,
        delta,
        action.sequence,
        match_set.id,
        result_score.points_a,
        result_score.points_b,
    )
    await events.sink.publish(
        events.ActionRecorded(
            action_id=action.id,
            match_id=action.match_id,
            set_id=action.set_id,
            team_id=action.team_id,
            player_id=action.player_id,
            action_type=action.action_type,
            outcome=action.outcome,
            point_delta=action.point_delta,
            sequence=action.sequence,
            rally=action.rally,
            occurred_at=coerce_utc(action.occurred_at),
            score=result_score,
            metadata=action.meta,
        )
    )
    return RecordedAction(action=action, score=result_score)


async def delete_action(session: AsyncSession, action_id: str) -> DeletedAction:
    """Remove one entry and replay the survivors of its set.

    Sequence numbers, rally numbers and the set score are rebuilt from zero,
    because removing a non-trailing entry shifts everything after it.
    """

    try:
        async with unit_of_work(session):
            target = await session.get(MatchAction, action_id)
            if not target:
                raise NotFound("Action not found", code="action_not_found")

            match = await get_match(session, target.match_id)
            match_set = await get_set(session, target.set_id, for_update=True)
            if match_set.match_id != match.id:
                raise NotFound("Set does not belong to match", code="set_not_found")

            ledger_rows: Sequence[MatchAction] = (
                await session.execute(
                    select(MatchAction)
                    .where(MatchAction.set_id == match_set.id)
                    .order_by(MatchAction.sequence)
                )
            ).scalars().all()
            remaining = [row for row in ledger_rows if row.id != action_id]
            if len(remaining) == len(ledger_rows):
                raise NotFound("Action not found in set", code="action_not_found")

            removed_team_id = target.team_id
            removed_player_id = target.player_id

            await session.delete(target)

            assigned, state = ledger.replay(
                [_entry(row) for row in remaining], match.team_a_id, match.team_b_id
            )

            # Park renumbered rows on negative sequences first so the
            # (set_id, sequence) constraint never sees two rows with the same value.
            moved = [
                (row, seq, rally)
                for row, (seq, rally) in zip(remaining, assigned)
                if row.sequence != seq or row.rally != rally
            ]
            for row, seq, _ in moved:
                if row.sequence != seq:
                    row.sequence = -seq
            await session.flush()
            for row, seq, rally in moved:
                row.sequence = seq
                row.rally = rally

            score = ledger.summary(state)
            match_set.points_a = score["pointsA"]
            match_set.points_b = score["pointsB"]
            await session.flush()

            await stats.recompute_player_stats(session, match.id, removed_player_id)
    except IntegrityError as exc:
        if is_unique_violation(exc):
            LOGGER.warning(
                "Sequence conflict renumbering set of action %s; caller may retry", action_id
            )
            raise Conflict(
                "The set was modified concurrently; retry",
                code="action_sequence_conflict",
            )
        raise

    result_score = events.Score(match_set.points_a, match_set.points_b)
    LOGGER.info(
        "Deleted action %s from set %s; renumbered %d entries, score %d-%d",
        action_id,
        match_set.id,
        len(moved),
        result_score.points_a,
        result_score.points_b,
    )
    await events.sink.publish(
        events.ActionDeleted(
            action_id=action_id,
            match_id=match.id,
            set_id=match_set.id,
            team_id=removed_team_id,
            player_id=removed_player_id,
            score=result_score,
        )
    )
    return DeletedAction(
        action_id=action_id, match_id=match.id, set_id=match_set.id, score=result_score
    )


async def list_actions(
    session: AsyncSession, match_id: str, set_id: str
) -> Sequence[MatchAction]:
    await get_match(session, match_id)
    await get_set_for_match(session, match_id, set_id)
    return (
        await session.execute(
            select(MatchAction)
            .where(MatchAction.match_id == match_id, MatchAction.set_id == set_id)
            .order_by(MatchAction.sequence)
        )
    ).scalars().all()
