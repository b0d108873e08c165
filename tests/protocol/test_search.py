from __future__ import annotations

from fastapi.testclient import TestClient


def _new_game(client: TestClient, fen: str | None = None) -> str:
    r = client.post("/api/games", json={"fen": fen} if fen else None)
    assert r.status_code == 200
    return r.json()["game_id"]


def test_search_returns_legal_move_and_leaves_game_alone(client: TestClient) -> None:
    game_id = _new_game(client)
    before = client.get(f"/api/games/{game_id}/state").json()

    r = client.post(f"/api/games/{game_id}/search", json={"depth": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["best_move"] in before["legal_moves"]
    assert body["depth"] == 2
    assert body["nodes"] > 0
    assert set(body["score"]) == {"cp"}
    assert body["cancelled"] is False

    after = client.get(f"/api/games/{game_id}/state").json()
    assert after["fen"] == before["fen"]


def test_search_uses_configured_depth_without_body(client: TestClient) -> None:
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/search")
    assert r.status_code == 200
    assert r.json()["depth"] == 2


def test_search_reports_mate_score(client: TestClient) -> None:
    game_id = _new_game(client)
    for token in ("f2f3", "e7e6", "g2g4"):
        client.post(f"/api/games/{game_id}/move", json={"move": token})
    body = client.post(f"/api/games/{game_id}/search", json={"depth": 3}).json()
    assert body["best_move"] == "d8h4"
    assert body["score"] == {"mate": 1}


def test_search_rejects_bad_limits(client: TestClient) -> None:
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/search", json={"depth": 0})
    assert r.status_code == 422
    r = client.post(f"/api/games/{game_id}/search", json={"movetime_ms": -5})
    assert r.status_code == 422


def test_play_applies_engine_move(client: TestClient) -> None:
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/play", json={"depth": 1})
    assert r.status_code == 200
    body = r.json()
    move = body["search"]["best_move"]
    assert body["state"]["last_move"] == move
    assert body["state"]["side_to_move"] == "b"
    assert body["state"]["move_history"] == [move]


def test_play_in_finished_game_conflicts(client: TestClient) -> None:
    game_id = _new_game(client, "7k/6Q1/6K1/8/8/8/8/8 b - - 0 1")
    r = client.post(f"/api/games/{game_id}/play")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "conflict"


def test_search_unknown_game_404(client: TestClient) -> None:
    r = client.post("/api/games/missing/search", json={"depth": 1})
    assert r.status_code == 404


def test_perft_endpoint(client: TestClient) -> None:
    r = client.post("/api/perft", json={"depth": 2})
    assert r.status_code == 200
    assert r.json()["nodes"] == 400

    kiwipete = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"
    r = client.post("/api/perft", json={"fen": kiwipete, "depth": 1})
    assert r.json() == {"fen": kiwipete, "depth": 1, "nodes": 48}
