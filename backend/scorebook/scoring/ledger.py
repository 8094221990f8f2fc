"""Ledger fold for a single set.

Tracks the sequence counter, the rally counter and the score of both teams.
Entries are mappings with ``team_id`` and ``point_delta`` keys; only those two
fields influence the fold.
"""

from typing import Dict, Iterable, List, Mapping, Tuple


def init_state(team_a_id: str, team_b_id: str) -> Dict:
    """Return the state of an empty ledger for a match between two teams."""

    if team_a_id == team_b_id:
        raise ValueError("a match needs two distinct teams")
    return {
        "teams": {"A": team_a_id, "B": team_b_id},
        "points": {"A": 0, "B": 0},
        "sequence": 0,
        "rally": 0,
    }


def side_of(team_id: str, state: Dict) -> str:
    teams = state["teams"]
    if team_id == teams["A"]:
        return "A"
    if team_id == teams["B"]:
        return "B"
    raise ValueError(f"team '{team_id}' is not part of this match")


def _other(side: str) -> str:
    return "B" if side == "A" else "A"


def scoring_side(team_id: str, point_delta: int, state: Dict) -> str | None:
    """Side credited with the point, or ``None`` for a non-scoring entry.

    A positive delta credits the acting team; a negative delta is an error or
    fault charged against the acting team and credits the opponent.
    """

    if point_delta == 0:
        return None
    side = side_of(team_id, state)
    return side if point_delta > 0 else _other(side)


def apply(entry: Mapping, state: Dict) -> Dict:
    """Append ``entry`` to the fold.

    After the call ``state["sequence"]`` and ``state["rally"]`` hold the values
    assigned to ``entry``.
    """

    point_delta = int(entry["point_delta"])
    if point_delta not in (-1, 0, 1):
        raise ValueError("point_delta must be -1, 0 or 1")

    side = scoring_side(entry["team_id"], point_delta, state)

    state["sequence"] += 1
    if side is not None:
        state["rally"] += 1
        state["points"][side] += abs(point_delta)
    elif state["rally"] == 0:
        state["rally"] = 1
    return state


def summary(state: Dict) -> Dict:
    return {
        "pointsA": state["points"]["A"],
        "pointsB": state["points"]["B"],
    }


def replay(
    entries: Iterable[Mapping], team_a_id: str, team_b_id: str
) -> Tuple[List[Tuple[int, int]], Dict]:
    """Fold ``entries`` from an empty ledger.

    Returns the ``(sequence, rally)`` pair assigned to each entry, in input
    order, and the final state.
    """

    state = init_state(team_a_id, team_b_id)
    assigned: List[Tuple[int, int]] = []
    for entry in entries:
        state = apply(entry, state)
        assigned.append((state["sequence"], state["rally"]))
    return assigned, state


def resume(
    team_a_id: str,
    team_b_id: str,
    *,
    sequence: int,
    rally: int,
    points_a: int,
    points_b: int,
) -> Dict:
    """Rebuild a state from the last stored entry and the cached set score."""

    state = init_state(team_a_id, team_b_id)
    state["sequence"] = sequence
    state["rally"] = rally
    state["points"] = {"A": points_a, "B": points_b}
    return state
