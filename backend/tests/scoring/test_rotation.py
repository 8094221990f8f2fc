from scorebook.scoring import rotation

A, B = "team-a", "team-b"
LINEUP_A = ["a1", "a2", "a3", "a4", "a5", "a6"]
LINEUP_B = ["b1", "b2", "b3", "b4", "b5", "b6"]


def _entry(team, delta):
    return {"team_id": team, "point_delta": delta}


def _state(initial_serving_team_id=None):
    return rotation.init_state(
        A,
        B,
        lineup_a=LINEUP_A,
        libero_a="aL",
        lineup_b=LINEUP_B,
        libero_b="bL",
        initial_serving_team_id=initial_serving_team_id,
    )


def test_rotate_moves_position_one_to_six():
    assert rotation.rotate(LINEUP_A) == ["a2", "a3", "a4", "a5", "a6", "a1"]


def test_serving_team_holds_then_receiving_team_sides_out():
    state = _state(initial_serving_team_id=A)

    state = rotation.apply(_entry(A, 1), state)
    summary = rotation.summary(state)
    assert summary["servingTeamId"] == A
    assert summary["teamA"]["positions"] == LINEUP_A

    state = rotation.apply(_entry(A, 1), state)
    assert rotation.summary(state)["servingTeamId"] == A

    state = rotation.apply(_entry(B, 1), state)
    summary = rotation.summary(state)
    assert summary["servingTeamId"] == B
    assert summary["initialServingTeamId"] == A
    assert summary["teamB"]["positions"] == ["b2", "b3", "b4", "b5", "b6", "b1"]
    assert summary["teamB"]["serverId"] == "b2"
    assert summary["teamB"]["rotations"] == 1
    assert summary["teamA"]["positions"] == LINEUP_A


def test_error_by_server_is_a_side_out_for_the_receiver():
    state = rotation.apply(_entry(A, -1), _state())

    summary = rotation.summary(state)
    assert summary["servingTeamId"] == B
    assert summary["teamB"]["rotations"] == 1


def test_non_scoring_entries_leave_state_untouched():
    state = rotation.replay([_entry(B, 0), _entry(A, 0)], _state())

    summary = rotation.summary(state)
    assert summary["servingTeamId"] == A
    assert summary["teamA"]["rotations"] == summary["teamB"]["rotations"] == 0


def test_default_server_is_team_a():
    summary = rotation.summary(_state())

    assert summary["servingTeamId"] == A
    assert summary["initialServingTeamId"] == A


def test_libero_never_enters_the_rotating_slots():
    entries = [_entry(B, 1), _entry(A, 1)] * 9
    state = rotation.replay(entries, _state())

    summary = rotation.summary(state)
    assert sorted(summary["teamA"]["positions"]) == sorted(LINEUP_A)
    assert sorted(summary["teamB"]["positions"]) == sorted(LINEUP_B)
    assert summary["teamA"]["liberoId"] == "aL"
    assert "aL" not in summary["teamA"]["positions"]
    # Six side-outs bring a lineup back to where it started.
    assert summary["teamB"]["rotations"] == 9
    assert summary["teamA"]["rotations"] == 9
    assert summary["teamA"]["positions"] == rotation.rotate(rotation.rotate(rotation.rotate(LINEUP_A)))


def test_replay_is_idempotent():
    entries = [_entry(A, 1), _entry(B, 1), _entry(B, -1), _entry(A, 0)]

    first = rotation.summary(rotation.replay(entries, _state()))
    second = rotation.summary(rotation.replay(entries, _state()))

    assert first == second


def test_missing_lineup_is_six_empty_slots():
    state = rotation.init_state(A, B, lineup_a=LINEUP_A, libero_a="aL")

    summary = rotation.summary(rotation.apply(_entry(B, 1), state))
    assert summary["teamB"]["positions"] == [None] * 6
    assert summary["teamB"]["serverId"] is None
    assert summary["servingTeamId"] == B
