"""End-to-end tests for the HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from prefsync.main import app
from prefsync.share.codec import b64url_encode


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _doc(title: str, topics: list[dict]) -> dict:
    return {
        "version": "tsb.v1",
        "title": title,
        "notes": "",
        "topics": topics,
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-01T00:00:00.000Z",
    }


FIREARMS = {
    "id": "topic-firearms",
    "title": "Firearms",
    "importance": 4,
    "stance": "lean_for",
    "directions": [{"id": "dir-f1", "text": "Much less death and injury by firearms", "stars": 5}],
}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_diff(client):
    left = _doc("L", [{"id": "t1", "title": "Housing", "importance": 2}])
    right = _doc("R", [
        {"id": "t1", "title": "Housing", "importance": 5},
        {"id": "t2", "title": "Transit", "importance": 3},
    ])
    resp = client.post("/diff", json={"left": left, "right": right})
    assert resp.status_code == 200
    data = resp.json()

    assert data["diff"]["summary"]["modified_count"] == 1
    assert data["diff"]["summary"]["added_count"] == 1
    assert data["diff"]["topics"]["added"][0]["title"] == "Transit"
    assert data["diff"]["topics"]["modified"][0]["changes"]["importance"] == {"left": 2, "right": 5}
    assert [row["topic_title"] for row in data["priorities"]] == ["Housing", "Transit"]


def test_diff_rejects_invalid_document(client):
    resp = client.post("/diff", json={"left": {"title": "x"}, "right": {"version": "nope", "title": "y"}})
    assert resp.status_code == 422


def test_merge(client):
    current = _doc("Mine", [{"id": "t1", "title": "Housing", "importance": 2, "notes": "mine"}])
    incoming = _doc("Theirs", [
        {"id": "x", "title": "housing", "importance": 5, "notes": "theirs"},
        {"id": "t2", "title": "Transit", "importance": 3},
    ])
    resp = client.post("/merge", json={"current": current, "incoming": incoming})
    assert resp.status_code == 200
    data = resp.json()

    assert data["title"] == "Mine"
    assert "createdAt" in data
    assert [t["title"] for t in data["topics"]] == ["Housing", "Transit"]
    assert data["topics"][0]["importance"] == 2
    assert data["topics"][0]["notes"].startswith("mine\n\n")
    assert data["topics"][0]["notes"].endswith("\ntheirs")


def test_selective_merge(client):
    current = _doc("Mine", [{"id": "t1", "title": "Housing"}])
    incoming = _doc("Theirs", [{"id": "t2", "title": "Transit"}, {"id": "t3", "title": "Climate"}])
    resp = client.post("/merge", json={"current": current, "incoming": incoming, "acceptTitles": ["climate"]})
    assert [t["title"] for t in resp.json()["topics"]] == ["Housing", "Climate"]


def test_share_round_trip(client):
    resp = client.post("/share/encode", json={"topics": [FIREARMS]})
    assert resp.status_code == 200
    encoded = resp.json()
    assert encoded["url"].endswith(f"#sp2={encoded['payload']}")

    decoded = client.post("/share/decode", json={"url": encoded["url"]}).json()["payload"]
    assert decoded["v"] == "sp-v1"
    assert decoded["tip"] == [[0, 4]]
    assert decoded["dsp"] == [[0, 0, 5]]

    resp = client.post("/share/apply", json={"payload": encoded["payload"], "topics": []})
    assert resp.status_code == 200
    applied = resp.json()
    assert applied["applied"] == 1
    assert applied["topics"][0]["id"] == "topic-firearms"
    assert applied["topics"][0]["importance"] == 4


def test_share_legacy_encoding(client):
    encoded = client.post("/share/encode", json={"topics": [FIREARMS], "legacy": True}).json()
    assert "#sp=" in encoded["url"]
    decoded = client.post("/share/decode", json={"payload": encoded["payload"]}).json()["payload"]
    assert decoded["tip"] == [[0, 4]]


def test_decode_garbage_is_null(client):
    resp = client.post("/share/decode", json={"payload": "%%%"})
    assert resp.status_code == 200
    assert resp.json() == {"payload": None}


def test_decode_requires_input(client):
    assert client.post("/share/decode", json={}).status_code == 422


def test_apply_unrecognized_payload(client):
    resp = client.post("/share/apply", json={"payload": "%%%", "topics": []})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Unrecognized share payload"


def test_decode_non_finite_rating_is_null(client):
    payload = b64url_encode('{"v":"sp-v1","tip":[[0,1e999]],"dsp":[]}')
    resp = client.post("/share/decode", json={"payload": payload})
    assert resp.status_code == 200
    assert resp.json() == {"payload": None}
