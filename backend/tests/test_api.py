import os, importlib
from fastapi.testclient import TestClient

os.environ.setdefault("ORIGIN", "http://localhost:5173")
app_mod = importlib.import_module("main")


def make_client() -> TestClient:
    return TestClient(app_mod.create_app())


def test_health():
    client = make_client()
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_room_crud_flow():
    client = make_client()
    r = client.post("/api/rooms", json={"name": "Test", "maxPlayers": 9})
    assert r.status_code == 201
    room = r.json()
    assert room["maxPlayers"] == 6
    assert room["status"] == "waiting"

    listed = client.get("/api/rooms").json()
    assert [x["id"] for x in listed] == [room["id"]]

    got = client.get(f"/api/rooms/{room['id']}")
    assert got.status_code == 200
    assert got.json()["name"] == "Test"

    assert client.delete(f"/api/rooms/{room['id']}").status_code == 204
    assert client.get(f"/api/rooms/{room['id']}").status_code == 404
    assert client.delete(f"/api/rooms/{room['id']}").status_code == 404


def test_create_room_defaults_and_validation():
    client = make_client()
    r = client.post("/api/rooms", json={"name": "Default"})
    assert r.status_code == 201
    assert r.json()["maxPlayers"] == 6

    small = client.post("/api/rooms", json={"name": "Small", "maxPlayers": 1})
    assert small.json()["maxPlayers"] == 2

    assert client.post("/api/rooms", json={"maxPlayers": 3}).status_code == 422
    assert client.post("/api/rooms", json={"name": ""}).status_code == 422


def test_ws_full_game_start_flow():
    client = make_client()
    room_id = client.post("/api/rooms", json={"name": "WS", "maxPlayers": 2}).json()["id"]

    with client.websocket_connect("/ws") as ws_a, client.websocket_connect("/ws") as ws_b:
        assert ws_a.receive_json()["type"] == "connect"
        assert ws_b.receive_json()["type"] == "connect"

        ws_a.send_json({"type": "join_room", "data": {"roomId": room_id, "playerName": "Ann"}})
        joined_a = ws_a.receive_json()
        assert joined_a["type"] == "join_room"
        ann_id = joined_a["data"]["player"]["id"]

        ws_b.send_json({"type": "join_room", "data": {"roomId": room_id, "playerName": "Bob"}})
        assert ws_b.receive_json()["data"]["player"]["name"] == "Bob"
        assert ws_a.receive_json()["type"] == "join_room"

        ws_a.send_json({"type": "start_game", "data": {"roomId": room_id}})
        state_a = ws_a.receive_json()
        state_b = ws_b.receive_json()
        assert state_a["type"] == state_b["type"] == "game_state"
        assert state_a["data"]["game"]["status"] == "playing"
        assert state_a["data"]["game"]["deck"] == 23
        players_a = {p["id"]: p for p in state_a["data"]["game"]["players"]}
        assert all("suit" in card for card in players_a[ann_id]["cards"])
        players_b = {p["id"]: p for p in state_b["data"]["game"]["players"]}
        assert players_b[ann_id]["cards"] == [{"hidden": True}] * 6

        rooms = client.get("/api/rooms").json()
        assert rooms[0]["status"] == "playing"


def test_ws_invalid_message_returns_error_without_disconnect():
    client = make_client()
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json()["type"] == "connect"

        ws.send_text("{broken")
        error_message = ws.receive_json()
        assert error_message["type"] == "error"

        ws.send_json({"type": "pass", "data": {}})
        repeat_error = ws.receive_json()
        assert repeat_error["type"] == "error"
        assert repeat_error["data"]["message"] == "Join a room first"


def test_settings_read_port_and_room_size_from_env(monkeypatch):
    from app.settings import Settings

    monkeypatch.setenv("PORT", "8123")
    monkeypatch.setenv("DEFAULT_MAX_PLAYERS", "4")
    settings = Settings()
    assert settings.port == 8123
    assert settings.default_max_players == 4

    monkeypatch.delenv("PORT")
    assert Settings().port == 3001
