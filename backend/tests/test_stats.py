import asyncio
from types import SimpleNamespace

import pytest

from factories import build_match
from scorebook import db
from scorebook.cache import match_stats_cache
from scorebook.exceptions import BadRequest, NotFound
from scorebook.services import actions, stats


async def _record(fx, roster, player_index, action_type, delta, *, set_id=None, outcome="x"):
    async with db.AsyncSessionLocal() as session:
        return await actions.record_action(
            session,
            fx.match_id,
            set_id or fx.set_id,
            roster.team_id,
            roster.player_ids[player_index],
            action_type,
            outcome,
            delta,
        )


async def _player_stats(fx, player_id):
    async with db.AsyncSessionLocal() as session:
        return await stats.get_player_stats(session, fx.match_id, player_id)


def test_projection_counts_each_append():
    async def run():
        fx = await build_match()
        await _record(fx, fx.a, 0, "earned.spike", 1, outcome="kill")
        await _record(fx, fx.a, 0, "error.spike", -1, outcome="net")
        await _record(fx, fx.a, 0, "earned.spike", 1, outcome="tool")
        await _record(fx, fx.a, 0, "inRally.dig", 0, outcome="up")
        return await _player_stats(fx, fx.a.player_ids[0])

    row = asyncio.run(run())

    assert (row.actions, row.scoring_actions, row.penalties) == (4, 2, 1)
    assert row.by_type["earned.spike"] == {
        "attempts": 2,
        "successes": 2,
        "penalties": 0,
        "lastOutcome": "tool",
    }
    assert row.by_type["error.spike"]["penalties"] == 1
    assert row.by_type["inRally.dig"]["attempts"] == 1


def test_projection_after_delete_equals_recompute_from_ledger():
    async def run():
        fx = await build_match()
        first = await _record(fx, fx.a, 0, "earned.spike", 1, outcome="first")
        await _record(fx, fx.a, 0, "error.serve", -1)
        # Same player, another set.
        await _record(fx, fx.a, 0, "earned.spike", 1, set_id=fx.set_ids[1], outcome="later")
        await _record(fx, fx.a, 0, "earned.spike", 1, outcome="last")
        await _record(fx, fx.b, 0, "earned.ace", 1)

        async with db.AsyncSessionLocal() as session:
            await actions.delete_action(session, first.action.id)
        after_delete = await _player_stats(fx, fx.a.player_ids[0])

        async with db.AsyncSessionLocal() as session:
            rebuilt = await stats.recompute_player_stats(
                session, fx.match_id, fx.a.player_ids[0]
            )
            await session.commit()
        untouched = await _player_stats(fx, fx.b.player_ids[0])
        return after_delete, rebuilt, untouched

    after_delete, rebuilt, untouched = asyncio.run(run())

    assert (after_delete.actions, after_delete.scoring_actions, after_delete.penalties) == (3, 2, 1)
    assert after_delete.by_type == rebuilt.by_type
    # Entries fold in recording order, not set order.
    assert after_delete.by_type["earned.spike"]["lastOutcome"] == "last"
    assert after_delete.by_type["earned.spike"]["attempts"] == 2
    assert untouched.actions == 1


def test_deleting_unrelated_action_keeps_last_outcome_across_sets():
    async def run():
        fx = await build_match()
        await _record(fx, fx.a, 0, "earned.spike", 1, set_id=fx.set_ids[1], outcome="from-set-1")
        extra = await _record(fx, fx.a, 0, "inRally.dig", 0, set_id=fx.set_ids[1], outcome="extra")
        await _record(fx, fx.a, 0, "earned.spike", 1, outcome="from-set-0")
        before = await _player_stats(fx, fx.a.player_ids[0])
        async with db.AsyncSessionLocal() as session:
            await actions.delete_action(session, extra.action.id)
        after = await _player_stats(fx, fx.a.player_ids[0])
        return before, after

    before, after = asyncio.run(run())

    assert before.by_type["earned.spike"]["lastOutcome"] == "from-set-0"
    assert after.by_type["earned.spike"] == before.by_type["earned.spike"]
    assert "inRally.dig" not in after.by_type


def test_deleting_only_action_leaves_zeroed_projection():
    async def run():
        fx = await build_match()
        only = await _record(fx, fx.a, 2, "earned.block", 1)
        async with db.AsyncSessionLocal() as session:
            await actions.delete_action(session, only.action.id)
        return await _player_stats(fx, fx.a.player_ids[2])

    row = asyncio.run(run())
    assert (row.actions, row.scoring_actions, row.penalties, row.by_type) == (0, 0, 0, {})


def test_player_without_actions_has_no_projection():
    async def run():
        fx = await build_match()
        with pytest.raises(NotFound):
            await _player_stats(fx, fx.a.player_ids[3])

    asyncio.run(run())


def test_aggregate_player_totals_groups_by_category():
    rows = [
        SimpleNamespace(player_id="p1", team_id="t1", action_type=action_type, point_delta=delta)
        for action_type, delta in [
            ("earned.spike", 1),
            ("error.spike", -1),
            ("inRally.hitStillInPlay", 0),
            ("earned.ace", 1),
            ("receive.three", 0),
            ("receive.one", 0),
            ("error.receive", -1),
            ("fault.net", -1),
        ]
    ]

    totals = stats.aggregate_player_totals(rows)["p1"]

    assert (totals["total"], totals["scored"], totals["errors"]) == (8, 2, 3)
    attack = totals["categories"]["attack"]
    assert (attack["attempts"], attack["scored"], attack["errors"]) == (3, 1, 1)
    assert attack["successPct"] == 0.33
    assert attack["errorPct"] == 0.33
    assert totals["categories"]["serve"]["successPct"] == 1.0
    assert totals["categories"]["block"] == {
        "attempts": 0,
        "scored": 0,
        "errors": 0,
        "successPct": 0.0,
        "errorPct": 0.0,
    }
    reception = totals["categories"]["reception"]
    assert reception["attempts"] == 3
    assert reception["ratings"] == {"one": 1, "two": 0, "three": 1, "overpass": 0}
    # Faults belong to no category but still count toward totals.
    assert totals["byType"]["fault.net"] == {"attempts": 1, "scored": 0, "errors": 1}


def test_team_stats_include_idle_players_and_filter_by_set():
    async def run():
        fx = await build_match()
        await _record(fx, fx.a, 0, "earned.spike", 1)
        await _record(fx, fx.a, 1, "earned.ace", 1, set_id=fx.set_ids[1])
        await _record(fx, fx.b, 0, "earned.block", 1)
        async with db.AsyncSessionLocal() as session:
            match_view = await stats.get_match_stats(session, fx.match_id, fx.a.team_id)
            set_view = await stats.get_set_stats(
                session, fx.match_id, fx.a.team_id, fx.set_ids[1]
            )
            totals = await stats.get_match_totals_by_player(session, fx.match_id)
        return fx, match_view, set_view, totals

    fx, match_view, set_view, totals = asyncio.run(run())

    assert [entry["playerId"] for entry in match_view] == fx.a.player_ids
    by_player = {entry["playerId"]: entry for entry in match_view}
    assert by_player[fx.a.player_ids[0]]["categories"]["attack"]["scored"] == 1
    assert by_player[fx.a.player_ids[1]]["categories"]["serve"]["scored"] == 1
    assert by_player[fx.a.player_ids[5]]["total"] == 0
    assert by_player[fx.a.player_ids[5]]["number"] == 6

    set_totals = {entry["playerId"]: entry["total"] for entry in set_view}
    assert set_totals[fx.a.player_ids[0]] == 0
    assert set_totals[fx.a.player_ids[1]] == 1

    assert {entry["playerId"] for entry in totals["players"]} == {
        fx.a.player_ids[0],
        fx.a.player_ids[1],
        fx.b.player_ids[0],
    }


def test_team_stats_cache_is_invalidated_by_ledger_changes():
    async def run():
        fx = await build_match()
        await _record(fx, fx.a, 0, "earned.spike", 1)
        async with db.AsyncSessionLocal() as session:
            before = await stats.get_match_stats(session, fx.match_id, fx.a.team_id)
        cached = await match_stats_cache.get((fx.match_id, fx.a.team_id, None))
        await _record(fx, fx.a, 0, "earned.spike", 1)
        evicted = await match_stats_cache.get((fx.match_id, fx.a.team_id, None))
        async with db.AsyncSessionLocal() as session:
            after = await stats.get_match_stats(session, fx.match_id, fx.a.team_id)
        return before, cached, evicted, after

    before, cached, evicted, after = asyncio.run(run())

    assert cached == before
    assert evicted is None
    assert before[0]["total"] == 1
    assert after[0]["total"] == 2


def test_team_stats_reject_foreign_team_and_set():
    async def run():
        fx = await build_match()
        other = await build_match(owner_id="owner-2")
        async with db.AsyncSessionLocal() as session:
            with pytest.raises(BadRequest):
                await stats.get_match_stats(session, fx.match_id, other.a.team_id)
            with pytest.raises(NotFound):
                await stats.get_set_stats(
                    session, fx.match_id, fx.a.team_id, other.set_id
                )
            with pytest.raises(NotFound):
                await stats.get_match_totals_by_player(session, "missing")

    asyncio.run(run())


def test_team_stats_callers_get_independent_copies():
    async def run():
        fx = await build_match()
        await _record(fx, fx.a, 0, "earned.spike", 1)
        async with db.AsyncSessionLocal() as session:
            first = await stats.get_match_stats(session, fx.match_id, fx.a.team_id)
            first[0]["total"] = 99
            first.clear()
            second = await stats.get_match_stats(session, fx.match_id, fx.a.team_id)
        return second

    second = asyncio.run(run())
    assert second[0]["total"] == 1


def test_cache_drops_fill_that_started_before_invalidation():
    async def run():
        key = ("m1", "t1", None)
        generation = await match_stats_cache.generation("m1")
        await match_stats_cache.invalidate_match("m1")
        stored = await match_stats_cache.set(key, [{"total": 1}], generation=generation)
        stale = await match_stats_cache.get(key)
        fresh = await match_stats_cache.generation("m1")
        await match_stats_cache.set(key, [{"total": 2}], generation=fresh)
        return stored, stale, await match_stats_cache.get(key)

    stored, stale, current = asyncio.run(run())

    assert stored is False
    assert stale is None
    assert current == [{"total": 2}]
