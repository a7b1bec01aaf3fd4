"""
HTTP route tests.
"""

from unittest.mock import Mock

from pictionary.game import service
from pictionary.game.words import DEFAULT_WORDS


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.get_json() == {"ok": True, "rooms": 0}


def test_room_not_found(client):
    res = client.get("/api/rooms/nope")
    assert res.status_code == 404
    assert res.get_json() == {"error": "room_not_found"}


def test_room_state_hides_the_word(client, scheduler):
    room = service.create_room("r1", Mock(), scheduler)
    room.add_participant("a", "Alice")
    room.add_participant("b", "Bob")
    room.tick()

    res = client.get("/api/rooms/r1")
    assert res.status_code == 200
    data = res.get_json()
    assert data["phase"] == "round_in_progress"
    assert data["drawerId"] == "a"
    assert data["totalRounds"] == 8
    assert [p["id"] for p in data["players"]] == ["a", "b"]
    assert room.current_word not in res.get_data(as_text=True)


def test_list_rooms(client, scheduler):
    service.create_room("r1", Mock(), scheduler)
    res = client.get("/api/rooms")
    assert res.get_json() == {"rooms": [{"code": "r1", "phase": "idle", "players": 0}]}


def test_words_by_difficulty(client):
    res = client.get("/api/words?difficulty=hard&count=2")
    assert res.status_code == 200
    data = res.get_json()
    assert data["difficulty"] == "hard"
    assert len(data["words"]) == 2
    assert all(w in DEFAULT_WORDS["hard"] for w in data["words"])


def test_words_invalid_difficulty(client):
    res = client.get("/api/words?difficulty=impossible")
    assert res.status_code == 400
    assert res.get_json() == {"error": "invalid_difficulty"}
