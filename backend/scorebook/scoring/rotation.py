"""Rotation-state replay for a single set.

State is ``(positions A, positions B, serving side)``. Only scoring entries
move it: when the receiving team wins the rally it rotates once and takes the
serve; when the serving team wins nothing changes. Liberos are carried next to
the six-slot arrays and never rotate, so a libero can never reach position 1.
"""

from typing import Dict, Iterable, Mapping, Optional, Sequence

from . import ledger

ROTATION_SLOTS = 6


def rotate(positions: Sequence[Optional[str]]) -> list[Optional[str]]:
    """Forward rotation: each player moves one slot down, position 1 goes to 6."""

    positions = list(positions)
    return positions[1:] + positions[:1]


def _lineup(positions: Optional[Sequence[Optional[str]]], libero: Optional[str]) -> Dict:
    if positions is None:
        positions = [None] * ROTATION_SLOTS
    if len(positions) != ROTATION_SLOTS:
        raise ValueError(f"a lineup has exactly {ROTATION_SLOTS} positions")
    return {"positions": list(positions), "libero": libero, "rotations": 0}


def init_state(
    team_a_id: str,
    team_b_id: str,
    *,
    lineup_a: Optional[Sequence[Optional[str]]] = None,
    libero_a: Optional[str] = None,
    lineup_b: Optional[Sequence[Optional[str]]] = None,
    libero_b: Optional[str] = None,
    initial_serving_team_id: Optional[str] = None,
) -> Dict:
    """Return the state before the first rally.

    ``initial_serving_team_id`` defaults to team A. A team without a stored
    lineup gets six empty slots.
    """

    state = ledger.init_state(team_a_id, team_b_id)
    serving_team_id = initial_serving_team_id or team_a_id
    return {
        "teams": state["teams"],
        "lineups": {
            "A": _lineup(lineup_a, libero_a),
            "B": _lineup(lineup_b, libero_b),
        },
        "initialServing": ledger.side_of(serving_team_id, state),
        "serving": ledger.side_of(serving_team_id, state),
    }


def apply(entry: Mapping, state: Dict) -> Dict:
    scoring = ledger.scoring_side(entry["team_id"], int(entry["point_delta"]), state)
    if scoring is None or scoring == state["serving"]:
        return state

    # Side-out: the receiving team won the rally.
    lineup = state["lineups"][scoring]
    lineup["positions"] = rotate(lineup["positions"])
    lineup["rotations"] += 1
    state["serving"] = scoring
    return state


def _team_summary(side: str, state: Dict) -> Dict:
    lineup = state["lineups"][side]
    return {
        "teamId": state["teams"][side],
        "positions": list(lineup["positions"]),
        "serverId": lineup["positions"][0],
        "liberoId": lineup["libero"],
        "rotations": lineup["rotations"],
    }


def summary(state: Dict) -> Dict:
    return {
        "teamA": _team_summary("A", state),
        "teamB": _team_summary("B", state),
        "servingTeamId": state["teams"][state["serving"]],
        "initialServingTeamId": state["teams"][state["initialServing"]],
    }


def replay(entries: Iterable[Mapping], state: Dict) -> Dict:
    for entry in entries:
        state = apply(entry, state)
    return state
