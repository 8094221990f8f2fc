from typing import Iterable, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import NotFound, ProblemDetail
from ..models import Match, MatchAction, MatchSet, PlayerMatchStats
from ..schemas import (
    ActionCreate,
    ActionDeletedOut,
    ActionOut,
    ActionRecordedOut,
    MatchCreate,
    MatchOut,
    MatchTotalsOut,
    PlayerStatsOut,
    PlayerTotalsOut,
    ScoreOut,
    SetOut,
)
from ..services import actions as action_service
from ..services import matches as directory
from ..services import stats as stats_service
from ..time_utils import coerce_utc
from .auth import get_current_owner, limiter, record_action_rate_limit

# Resource router for matches, their sets, their ledgers and their stats
router = APIRouter(
    tags=["matches"],
    responses={404: {"model": ProblemDetail}, 409: {"model": ProblemDetail}},
)


def _to_set_out(match_set: MatchSet) -> SetOut:
    return SetOut(
        id=match_set.id,
        key=match_set.key,
        pointsA=match_set.points_a or 0,
        pointsB=match_set.points_b or 0,
        initialServingTeamId=match_set.initial_serving_team_id,
    )


def to_match_out(match: Match, sets: Optional[Iterable[MatchSet]] = None) -> MatchOut:
    return MatchOut(
        id=match.id,
        teamAId=match.team_a_id,
        teamBId=match.team_b_id,
        sets=[_to_set_out(s) for s in sets or []],
    )


def _to_action_out(action: MatchAction) -> ActionOut:
    return ActionOut(
        id=action.id,
        matchId=action.match_id,
        setId=action.set_id,
        teamId=action.team_id,
        playerId=action.player_id,
        actionType=action.action_type,
        outcome=action.outcome,
        pointDelta=action.point_delta,
        sequence=action.sequence,
        rally=action.rally,
        occurredAt=coerce_utc(action.occurred_at),
        metadata=action.meta,
    )


def _to_player_stats_out(stats: PlayerMatchStats) -> PlayerStatsOut:
    return PlayerStatsOut(
        matchId=stats.match_id,
        playerId=stats.player_id,
        actions=stats.actions,
        scoringActions=stats.scoring_actions,
        penalties=stats.penalties,
        byType=stats.by_type or {},
        updatedAt=coerce_utc(stats.updated_at),
    )


@router.post("/matches", response_model=MatchOut, status_code=status.HTTP_201_CREATED)
async def create_match(
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> MatchOut:
    match, sets = await directory.create_match(
        session, owner_id, body.teamAId, body.teamBId
    )
    return to_match_out(match, sets)


@router.get("/matches/{match_id}", response_model=MatchOut)
async def get_match(match_id: str, session: AsyncSession = Depends(get_session)) -> MatchOut:
    match = await directory.get_match(session, match_id)
    sets = await directory.list_sets(session, match_id)
    return to_match_out(match, sets)


@router.get("/matches/{match_id}/sets", response_model=list[SetOut])
async def list_sets(
    match_id: str, session: AsyncSession = Depends(get_session)
) -> list[SetOut]:
    return [_to_set_out(s) for s in await directory.list_sets(session, match_id)]


@router.post(
    "/matches/{match_id}/actions",
    response_model=ActionRecordedOut,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(record_action_rate_limit)
async def record_action(
    request: Request,
    match_id: str,
    body: ActionCreate,
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> ActionRecordedOut:
    match = await directory.get_match(session, match_id)
    await directory.ensure_match_owner(session, match, owner_id)
    result = await action_service.record_action(
        session,
        match_id,
        body.setId,
        body.teamId,
        body.playerId,
        body.actionType,
        body.outcome,
        body.pointDelta,
        occurred_at=body.occurredAt,
        metadata=body.metadata,
    )
    return ActionRecordedOut(
        action=_to_action_out(result.action),
        score=ScoreOut(**result.score.as_dict()),
    )


@router.get("/matches/{match_id}/sets/{set_id}/actions", response_model=list[ActionOut])
async def list_actions(
    match_id: str, set_id: str, session: AsyncSession = Depends(get_session)
) -> list[ActionOut]:
    rows = await action_service.list_actions(session, match_id, set_id)
    return [_to_action_out(row) for row in rows]


@router.delete("/actions/{action_id}", response_model=ActionDeletedOut)
async def delete_action(
    action_id: str,
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> ActionDeletedOut:
    action = await session.get(MatchAction, action_id)
    if not action:
        raise NotFound("Action not found", code="action_not_found")
    match = await directory.get_match(session, action.match_id)
    await directory.ensure_match_owner(session, match, owner_id)

    result = await action_service.delete_action(session, action_id)
    return ActionDeletedOut(
        id=result.action_id,
        matchId=result.match_id,
        setId=result.set_id,
        score=ScoreOut(**result.score.as_dict()),
    )


@router.get("/matches/{match_id}/players/{player_id}/stats", response_model=PlayerStatsOut)
async def get_player_stats(
    match_id: str, player_id: str, session: AsyncSession = Depends(get_session)
) -> PlayerStatsOut:
    stats = await stats_service.get_player_stats(session, match_id, player_id)
    return _to_player_stats_out(stats)


@router.get("/matches/{match_id}/teams/{team_id}/stats", response_model=list[PlayerTotalsOut])
async def get_match_stats(
    match_id: str, team_id: str, session: AsyncSession = Depends(get_session)
) -> list[PlayerTotalsOut]:
    rows = await stats_service.get_match_stats(session, match_id, team_id)
    return [PlayerTotalsOut(**row) for row in rows]


@router.get(
    "/matches/{match_id}/teams/{team_id}/sets/{set_id}/stats",
    response_model=list[PlayerTotalsOut],
)
async def get_set_stats(
    match_id: str,
    team_id: str,
    set_id: str,
    session: AsyncSession = Depends(get_session),
) -> list[PlayerTotalsOut]:
    rows = await stats_service.get_set_stats(session, match_id, team_id, set_id)
    return [PlayerTotalsOut(**row) for row in rows]


@router.get("/matches/{match_id}/totals", response_model=MatchTotalsOut)
async def get_match_totals(
    match_id: str, session: AsyncSession = Depends(get_session)
) -> MatchTotalsOut:
    return MatchTotalsOut(**await stats_service.get_match_totals_by_player(session, match_id))
