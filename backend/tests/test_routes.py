import os

import jwt
import pytest
from fastapi.testclient import TestClient

from scorebook.config import API_PREFIX
from scorebook.main import app
from scorebook.routers.auth import JWT_ALG
from scorebook.services import actions as action_service

BASE = f"{API_PREFIX}/v0"


def _auth(owner_id: str = "coach-1") -> dict:
    token = jwt.encode({"sub": owner_id}, os.environ["JWT_SECRET"], algorithm=JWT_ALG)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


def _team(client, name, headers):
    resp = client.post(f"{BASE}/teams", json={"name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    team = resp.json()
    players = []
    for number in range(1, 8):
        resp = client.post(
            f"{BASE}/teams/{team['id']}/players",
            json={"name": f"{name} {number}", "number": number},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        players.append(resp.json()["id"])
    return team["id"], players


def _match(client, headers=None):
    headers = headers or _auth()
    team_a, players_a = _team(client, "Aces", headers)
    team_b, players_b = _team(client, "Blockers", headers)
    resp = client.post(
        f"{BASE}/matches", json={"teamAId": team_a, "teamBId": team_b}, headers=headers
    )
    assert resp.status_code == 201, resp.text
    match = resp.json()
    return match, (team_a, players_a), (team_b, players_b)


def _action(set_id, team_id, player_id, action_type, delta):
    return {
        "setId": set_id,
        "teamId": team_id,
        "playerId": player_id,
        "actionType": action_type,
        "outcome": "point" if delta else "play",
        "pointDelta": delta,
        "occurredAt": "2024-05-01T18:30:00Z",
    }


def test_full_set_flow(client):
    headers = _auth()
    match, (team_a, players_a), (team_b, players_b) = _match(client, headers)
    assert [s["key"] for s in match["sets"]] == [0, 1, 2, 3, 4]
    set_id = match["sets"][0]["id"]

    for team_id, players in ((team_a, players_a), (team_b, players_b)):
        resp = client.put(
            f"{BASE}/sets/{set_id}/rotations/{team_id}",
            json={"positions": players[:6], "liberoId": players[6]},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text

    resp = client.put(
        f"{BASE}/sets/{set_id}/initial-server", json={"teamId": team_a}, headers=headers
    )
    assert resp.json()["initialServingTeamId"] == team_a

    recorded = []
    for team_id, player_id, action_type in [
        (team_a, players_a[0], "earned.ace"),
        (team_a, players_a[0], "earned.ace"),
        (team_b, players_b[3], "earned.spike"),
    ]:
        resp = client.post(
            f"{BASE}/matches/{match['id']}/actions",
            json=_action(set_id, team_id, player_id, action_type, 1),
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        recorded.append(resp.json())
    assert recorded[-1]["score"] == {"pointsA": 2, "pointsB": 1}
    assert recorded[-1]["action"]["sequence"] == 3

    state = client.get(f"{BASE}/sets/{set_id}/rotation-state").json()
    assert state["servingTeamId"] == team_b
    assert state["teamB"]["positions"] == players_b[1:6] + players_b[:1]

    resp = client.delete(
        f"{BASE}/actions/{recorded[0]['action']['id']}", headers=headers
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["score"] == {"pointsA": 1, "pointsB": 1}

    listed = client.get(f"{BASE}/matches/{match['id']}/sets/{set_id}/actions").json()
    assert [a["sequence"] for a in listed] == [1, 2]
    assert [a["id"] for a in listed] == [r["action"]["id"] for r in recorded[1:]]

    sets = client.get(f"{BASE}/matches/{match['id']}/sets").json()
    assert (sets[0]["pointsA"], sets[0]["pointsB"]) == (1, 1)

    player_stats = client.get(
        f"{BASE}/matches/{match['id']}/players/{players_a[0]}/stats"
    ).json()
    assert player_stats["actions"] == 1
    assert player_stats["byType"]["earned.ace"]["successes"] == 1

    team_stats = client.get(f"{BASE}/matches/{match['id']}/teams/{team_b}/stats").json()
    assert len(team_stats) == 7
    spiker = next(p for p in team_stats if p["playerId"] == players_b[3])
    assert spiker["categories"]["attack"]["successPct"] == 1.0

    set_stats = client.get(
        f"{BASE}/matches/{match['id']}/teams/{team_a}/sets/{set_id}/stats"
    ).json()
    assert sum(p["total"] for p in set_stats) == 1

    totals = client.get(f"{BASE}/matches/{match['id']}/totals").json()
    assert {p["playerId"] for p in totals["players"]} == {players_a[0], players_b[3]}

    resp = client.delete(f"{BASE}/sets/{set_id}/rotations/{team_a}", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "rotation_locked"


def test_errors_are_problem_json(client):
    headers = _auth()
    match, (team_a, players_a), (team_b, _) = _match(client, headers)
    set_id = match["sets"][0]["id"]

    resp = client.post(
        f"{BASE}/matches/missing/actions",
        json=_action(set_id, team_a, players_a[0], "earned.ace", 1),
        headers=headers,
    )
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["code"] == "match_not_found"

    resp = client.post(
        f"{BASE}/matches/{match['id']}/actions",
        json=_action(set_id, team_a, players_a[0], "earned.smash", 1),
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "action_invalid"

    resp = client.post(
        f"{BASE}/matches/{match['id']}/actions",
        json=_action(set_id, team_b, players_a[0], "earned.ace", 1),
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "player_not_on_team"

    resp = client.post(
        f"{BASE}/matches/{match['id']}/actions",
        json={"setId": set_id},
        headers=headers,
    )
    assert resp.status_code == 422

    resp = client.get(f"{BASE}/sets/{set_id}/rotation-state")
    assert resp.status_code == 404
    assert resp.json()["code"] == "rotation_not_found"


def test_naive_timestamp_is_rejected(client):
    headers = _auth()
    match, (team_a, players_a), _ = _match(client, headers)
    body = _action(match["sets"][0]["id"], team_a, players_a[0], "earned.ace", 1)
    body["occurredAt"] = "2024-05-01T18:30:00"

    resp = client.post(f"{BASE}/matches/{match['id']}/actions", json=body, headers=headers)
    assert resp.status_code == 422


def test_mutations_require_token_and_ownership(client):
    match, (team_a, players_a), _ = _match(client)
    set_id = match["sets"][0]["id"]
    body = _action(set_id, team_a, players_a[0], "earned.ace", 1)

    resp = client.post(f"{BASE}/matches/{match['id']}/actions", json=body)
    assert resp.status_code == 401
    assert resp.json()["code"] == "auth_missing_token"

    resp = client.post(
        f"{BASE}/matches/{match['id']}/actions",
        json=body,
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert resp.status_code == 401
    assert resp.json()["code"] == "auth_invalid_token"

    stranger = _auth("coach-2")
    resp = client.post(f"{BASE}/matches/{match['id']}/actions", json=body, headers=stranger)
    assert resp.status_code == 404

    resp = client.put(
        f"{BASE}/sets/{set_id}/rotations/{team_a}",
        json={"positions": players_a[:6], "liberoId": players_a[6]},
        headers=stranger,
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "team_not_owned"

    resp = client.get(f"{BASE}/teams", headers=stranger)
    assert resp.json() == []


def test_sequence_conflict_is_retryable(client, monkeypatch):
    headers = _auth()
    match, (team_a, players_a), _ = _match(client, headers)

    set_id = match["sets"][0]["id"]
    url = f"{BASE}/matches/{match['id']}/actions"
    first = client.post(
        url, json=_action(set_id, team_a, players_a[0], "earned.ace", 1), headers=headers
    )
    assert first.status_code == 201

    async def stale_read(session, set_id):
        return None

    monkeypatch.setattr(action_service, "_last_action", stale_read)
    resp = client.post(
        url, json=_action(set_id, team_a, players_a[1], "earned.ace", 1), headers=headers
    )

    assert resp.status_code == 409
    assert resp.headers["retry-after"] == "0"
    assert resp.json()["code"] == "action_sequence_conflict"


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get(f"{API_PREFIX}/healthz").json() == {"status": "ok"}
