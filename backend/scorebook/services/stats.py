"""Per-player statistics derived from the ledger.

Two views live here:

* the persisted ``PlayerMatchStats`` projection, incremented on every append
  and rebuilt from scratch after a delete (a delete may remove any entry, so
  subtracting it back out could attribute the wrong ``lastOutcome`` and drift
  from the ledger);
* read-side aggregations that fold a filtered slice of the ledger into
  attack/serve/block/reception category totals on demand.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..action_types import CATEGORY_MEMBERSHIP, RECEPTION_RATINGS, categories_for
from ..cache import match_stats_cache
from ..exceptions import NotFound
from ..models import MatchAction, Player, PlayerMatchStats
from .matches import ensure_team_in_match, get_match, get_set_for_match, get_team


# ---------------------------------------------------------------------------
# Persisted projection
# ---------------------------------------------------------------------------


def _apply_to_breakdown(
    by_type: Dict[str, Dict[str, Any]], action_type: str, outcome: str, point_delta: int
) -> None:
    breakdown = dict(by_type.get(action_type) or {"attempts": 0, "successes": 0, "penalties": 0})
    breakdown["attempts"] = breakdown.get("attempts", 0) + 1
    if point_delta > 0:
        breakdown["successes"] = breakdown.get("successes", 0) + 1
    if point_delta < 0:
        breakdown["penalties"] = breakdown.get("penalties", 0) + 1
    breakdown["lastOutcome"] = outcome
    by_type[action_type] = breakdown


async def _get_or_create(
    session: AsyncSession, match_id: str, player_id: str
) -> PlayerMatchStats:
    stats = (
        await session.execute(
            select(PlayerMatchStats).where(
                PlayerMatchStats.match_id == match_id,
                PlayerMatchStats.player_id == player_id,
            )
        )
    ).scalar_one_or_none()
    if not stats:
        stats = PlayerMatchStats(
            id=uuid.uuid4().hex,
            match_id=match_id,
            player_id=player_id,
            actions=0,
            scoring_actions=0,
            penalties=0,
            by_type={},
        )
        session.add(stats)
    return stats


async def apply_action_recorded(
    session: AsyncSession,
    *,
    match_id: str,
    player_id: str,
    action_type: str,
    outcome: str,
    point_delta: int,
) -> PlayerMatchStats:
    """Increment the (match, player) aggregate for one appended action."""

    stats = await _get_or_create(session, match_id, player_id)
    stats.actions = (stats.actions or 0) + 1
    if point_delta > 0:
        stats.scoring_actions = (stats.scoring_actions or 0) + 1
    if point_delta < 0:
        stats.penalties = (stats.penalties or 0) + 1

    # Copy before mutating so SQLAlchemy sees a new JSON value.
    by_type = {key: dict(value) for key, value in (stats.by_type or {}).items()}
    _apply_to_breakdown(by_type, action_type, outcome, point_delta)
    stats.by_type = by_type
    return stats


async def recompute_player_stats(
    session: AsyncSession, match_id: str, player_id: str
) -> PlayerMatchStats:
    """Rebuild the (match, player) aggregate from the remaining ledger rows.

    Rows are folded in the order they were recorded, the same order
    ``apply_action_recorded`` saw them, so a rebuild reproduces ``lastOutcome``.
    """

    rows = (
        await session.execute(
            select(MatchAction)
            .where(MatchAction.match_id == match_id, MatchAction.player_id == player_id)
            .order_by(MatchAction.created_at, MatchAction.id)
        )
    ).scalars().all()

    stats = await _get_or_create(session, match_id, player_id)
    actions = scoring = penalties = 0
    by_type: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        actions += 1
        if row.point_delta > 0:
            scoring += 1
        if row.point_delta < 0:
            penalties += 1
        _apply_to_breakdown(by_type, row.action_type, row.outcome, row.point_delta)

    stats.actions = actions
    stats.scoring_actions = scoring
    stats.penalties = penalties
    stats.by_type = by_type
    return stats


async def get_player_stats(
    session: AsyncSession, match_id: str, player_id: str
) -> PlayerMatchStats:
    stats = (
        await session.execute(
            select(PlayerMatchStats).where(
                PlayerMatchStats.match_id == match_id,
                PlayerMatchStats.player_id == player_id,
            )
        )
    ).scalar_one_or_none()
    if not stats:
        raise NotFound("Stats not found", code="stats_not_found")
    return stats


# ---------------------------------------------------------------------------
# Read-side aggregation
# ---------------------------------------------------------------------------


def _empty_category() -> Dict[str, int]:
    return {"attempts": 0, "scored": 0, "errors": 0}


def _empty_totals(player_id: str, team_id: str | None) -> Dict[str, Any]:
    categories: Dict[str, Dict[str, Any]] = {
        name: _empty_category() for name in CATEGORY_MEMBERSHIP
    }
    categories["reception"]["ratings"] = {rating: 0 for rating in RECEPTION_RATINGS.values()}
    return {
        "playerId": player_id,
        "teamId": team_id,
        "total": 0,
        "scored": 0,
        "errors": 0,
        "categories": categories,
        "byType": {},
    }


def _tally(bucket: Dict[str, int], point_delta: int) -> None:
    bucket["attempts"] += 1
    if point_delta > 0:
        bucket["scored"] += 1
    if point_delta < 0:
        bucket["errors"] += 1


def finalize_category(category: Mapping[str, int]) -> Dict[str, Any]:
    attempts = category.get("attempts", 0)
    return {
        **category,
        "successPct": round(category.get("scored", 0) / attempts, 2) if attempts else 0.0,
        "errorPct": round(category.get("errors", 0) / attempts, 2) if attempts else 0.0,
    }


def aggregate_player_totals(actions: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    """Fold ledger rows into per-player category totals.

    ``actions`` may be ORM rows or any objects exposing ``player_id``,
    ``team_id``, ``action_type`` and ``point_delta``.
    """

    totals: Dict[str, Dict[str, Any]] = {}
    for action in actions:
        player_id = action.player_id
        if not player_id:
            continue
        entry = totals.get(player_id)
        if entry is None:
            entry = totals[player_id] = _empty_totals(player_id, action.team_id)

        delta = action.point_delta
        entry["total"] += 1
        if delta > 0:
            entry["scored"] += 1
        elif delta < 0:
            entry["errors"] += 1

        for name in categories_for(action.action_type):
            _tally(entry["categories"][name], delta)

        rating = RECEPTION_RATINGS.get(action.action_type)
        if rating:
            entry["categories"]["reception"]["ratings"][rating] += 1

        by_type = entry["byType"].setdefault(action.action_type, _empty_category())
        _tally(by_type, delta)

    for entry in totals.values():
        entry["categories"] = {
            name: finalize_category(cat) for name, cat in entry["categories"].items()
        }
    return totals


async def _ledger_slice(
    session: AsyncSession,
    match_id: str,
    *,
    set_id: str | None = None,
    player_ids: Sequence[str] | None = None,
) -> Sequence[MatchAction]:
    stmt = select(MatchAction).where(MatchAction.match_id == match_id)
    if set_id:
        stmt = stmt.where(MatchAction.set_id == set_id)
    if player_ids is not None:
        stmt = stmt.where(MatchAction.player_id.in_(player_ids))
    return (await session.execute(stmt.order_by(MatchAction.sequence))).scalars().all()


async def _team_player_stats(
    session: AsyncSession, match_id: str, team_id: str, set_id: str | None
) -> list[Dict[str, Any]]:
    cache_key = (match_id, team_id, set_id)
    cached = await match_stats_cache.get(cache_key)
    if cached is not None:
        return cached
    generation = await match_stats_cache.generation(match_id)

    players = (
        await session.execute(
            select(Player).where(Player.team_id == team_id).order_by(Player.number)
        )
    ).scalars().all()
    rows = await _ledger_slice(
        session, match_id, set_id=set_id, player_ids=[p.id for p in players]
    )
    totals = aggregate_player_totals(rows)

    result = []
    for player in players:
        entry = totals.get(player.id)
        if entry is None:
            entry = _empty_totals(player.id, team_id)
            entry["categories"] = {
                name: finalize_category(cat) for name, cat in entry["categories"].items()
            }
        result.append({**entry, "name": player.name, "number": player.number})

    await match_stats_cache.set(cache_key, result, generation=generation)
    return result


async def get_match_stats(
    session: AsyncSession, match_id: str, team_id: str
) -> list[Dict[str, Any]]:
    match = await get_match(session, match_id)
    await get_team(session, team_id)
    ensure_team_in_match(match, team_id)
    return await _team_player_stats(session, match_id, team_id, None)


async def get_set_stats(
    session: AsyncSession, match_id: str, team_id: str, set_id: str
) -> list[Dict[str, Any]]:
    match = await get_match(session, match_id)
    await get_team(session, team_id)
    ensure_team_in_match(match, team_id)
    await get_set_for_match(session, match_id, set_id)
    return await _team_player_stats(session, match_id, team_id, set_id)


async def get_match_totals_by_player(
    session: AsyncSession, match_id: str
) -> Dict[str, Any]:
    await get_match(session, match_id)
    rows = await _ledger_slice(session, match_id)
    totals = aggregate_player_totals(rows)
    return {"matchId": match_id, "players": list(totals.values())}
