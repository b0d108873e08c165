from __future__ import annotations

from fastapi.testclient import TestClient


def test_undo_without_moves_returns_400(client: TestClient) -> None:
    r = client.post("/api/games")
    game_id = r.json()["game_id"]

    r_undo = client.post(f"/api/games/{game_id}/undo")
    assert r_undo.status_code == 400
    body = r_undo.json()
    assert body["error"]["code"] == "bad_request"
    assert "no moves" in body["error"]["message"].lower()


def test_undo_restores_prior_state(client: TestClient) -> None:
    r = client.post("/api/games")
    game_id = r.json()["game_id"]
    start_fen = r.json()["fen"]

    # Make a legal move e2e4
    r_move = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    assert r_move.status_code == 200
    assert r_move.json()["fen"] != start_fen

    r_undo = client.post(f"/api/games/{game_id}/undo")
    assert r_undo.status_code == 200
    state = r_undo.json()
    assert state["fen"] == start_fen
    assert state["move_history"] == []
    assert state["last_move"] is None


def test_undo_unknown_game_404(client: TestClient) -> None:
    r = client.post("/api/games/nope/undo")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"
