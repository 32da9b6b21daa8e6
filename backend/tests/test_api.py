"""HTTP-level tests for the recommendation, feedback and blocklist routes."""
from unittest.mock import patch

from bookvault.services import recommendation_engine
from bookvault.services.recommendation_engine import RecommendationError
from conftest import make_doc


LIBRARY = [
    {"id": 1, "title": "Node B", "authors": "Author X", "status": "read", "rating": 9, "subjects": '["grief", "fiction"]'},
    {"id": 2, "title": "Owned", "authors": "Author O", "isbn": "9780000000001", "status": "unread", "rating": "n/a"},
]


def _seed_catalog(fake_catalog):
    fake_catalog.results['subject:"grief"'] = [
        make_doc("Quiet Grief", "Author G", "9780000000101", subjects=["grief"], work_key="/works/G1"),
        make_doc("Owned Again", "Author O", "9780000000001", subjects=["grief"]),
    ]
    fake_catalog.results['author:"Author X"'] = [
        make_doc("Node C", "Author X", "9780000000105", subjects=["grief"], work_key="/works/X2"),
    ]


def test_post_recommendations(client, fake_catalog):
    _seed_catalog(fake_catalog)
    response = client.post("/api/recommendations", json={"user_id": 1, "entries": LIBRARY})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["profile"]["liked_count"] == 1
    assert body["profile"]["top_authors"][0]["author"] == "Author X"
    titles = [r["title"] for r in body["recommendations"]]
    assert titles == ["Node C", "Quiet Grief"]
    assert "Owned Again" not in titles
    assert "debug" not in body
    first = body["recommendations"][0]
    for key in ("work_key", "cover_url", "description"):
        assert key in first
    assert first["description"] is None


def test_post_recommendations_with_debug(client, fake_catalog):
    _seed_catalog(fake_catalog)
    response = client.post("/api/recommendations?debug=true", json={"entries": LIBRARY})
    assert response.status_code == 200
    debug = response.json()["debug"]
    assert debug["entry_count"] == 2
    assert debug["dropped_owned_isbn"] == 1
    assert len(debug["catalog_calls"]) == 3


def test_empty_profile_is_not_an_error(client, fake_catalog):
    response = client.post("/api/recommendations", json={"entries": [{"title": "X", "status": "unread"}]})
    assert response.status_code == 200
    assert response.json()["recommendations"] == []
    assert fake_catalog.call_count == 0


def test_request_validation(client):
    assert client.post("/api/recommendations", json={"entries": [], "limit": 5}).status_code == 422
    assert client.post("/api/recommendations", json={"entries": [], "seed_mode": "all"}).status_code == 422
    assert client.post("/api/recommendations", json={"entries": [], "min_rating": 11}).status_code == 422


def test_engine_failure_returns_500_with_error(client):
    with patch.object(recommendation_engine, "get_recommendations", side_effect=RecommendationError("catalog exploded")):
        response = client.post("/api/recommendations", json={"entries": LIBRARY})
    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "catalog exploded"}


def test_feedback_then_recommendations_respect_dislike(client, fake_catalog):
    _seed_catalog(fake_catalog)
    response = client.post(
        "/api/recommendation-feedback",
        json={"user_id": 5, "action": "dislike", "rec_id": "ol:/works/X2", "title": "Node C", "authors": "Author X"},
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True, "key": "ol:/works/X2", "action": "dislike"}

    body = client.post("/api/recommendations", json={"user_id": 5, "entries": LIBRARY}).json()
    assert "Node C" not in [r["title"] for r in body["recommendations"]]


def test_feedback_invalid_action(client):
    response = client.post("/api/recommendation-feedback", json={"user_id": 5, "action": "love", "title": "X"})
    assert response.status_code == 400


def test_blocklist_roundtrip(client, fake_catalog):
    created = client.post(
        "/api/blocklist",
        json={"user_id": 3, "title": "Quiet Grief", "authors": "Author G", "isbn": "9780000000101"},
    )
    assert created.status_code == 200
    block_id = created.json()["id"]

    listed = client.get("/api/blocklist", params={"user_id": 3}).json()
    assert listed["ok"] is True
    assert listed["items"][0]["work_key"] == "na:author g|quiet grief"
    assert listed["items"][0]["title"] == "Quiet Grief"

    _seed_catalog(fake_catalog)
    body = client.post("/api/recommendations", json={"user_id": 3, "entries": LIBRARY}).json()
    assert "Quiet Grief" not in [r["title"] for r in body["recommendations"]]

    assert client.delete(f"/api/blocklist/{block_id}", params={"user_id": 4}).status_code == 404
    deleted = client.delete(f"/api/blocklist/{block_id}", params={"user_id": 3})
    assert deleted.status_code == 200
    assert deleted.json() == {"ok": True, "id": block_id}
    assert client.get("/api/blocklist", params={"user_id": 3}).json()["items"] == []
