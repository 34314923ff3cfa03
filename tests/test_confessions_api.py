"""
Tests for confession endpoints.
"""
import pytest
from unittest.mock import patch, MagicMock

from confess_api.models import Confession, PushOutbox
from confess_api.routes.confessions import APPROVED_PREFIX, OVERVIEW_KEY


def submit(client, content="hello", sender="u1", push_id="token-u1"):
    response = client.post(
        "/api/confessions",
        json={"content": content, "sender": sender, "push_id": push_id},
    )
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def push_ok():
    with patch("confess_api.push.requests.post") as post:
        post.return_value = MagicMock(status_code=200)
        yield post


class TestSubmission:
    """Anonymous submission and lookup."""

    def test_submit_confession(self, client):
        data = submit(client, content="hello", sender="u1")
        assert data["content"] == "hello"
        assert data["sender"] == "u1"
        assert data["status"] == 0
        assert data["cfs_id"] == 0

    def test_submit_requires_content(self, client):
        response = client.post(
            "/api/confessions",
            json={"content": "", "sender": "u1", "push_id": "t"},
        )
        assert response.status_code == 422

    def test_get_confession(self, client):
        created = submit(client)
        response = client.get(f"/api/confessions/{created['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_get_confession_not_found(self, client):
        response = client.get("/api/confessions/99999")
        assert response.status_code == 404
        body = response.json()
        assert body["ok"] is False
        assert body["error_code"] == "NOT_FOUND"

    def test_list_confessions_newest_first(self, client):
        first = submit(client, content="one")
        second = submit(client, content="two")
        response = client.get("/api/confessions", params={"limit": 10})
        assert [c["id"] for c in response.json()] == [second["id"], first["id"]]

    def test_by_sender(self, client):
        mine = submit(client, sender="u1")
        submit(client, sender="u2")
        response = client.get("/api/confessions/sender/u1")
        assert [c["id"] for c in response.json()] == [mine["id"]]

    def test_delete_confession(self, client):
        created = submit(client)
        response = client.delete(f"/api/confessions/{created['id']}")
        assert response.status_code == 200
        assert response.json()["ok"] is True

        response = client.get(f"/api/confessions/{created['id']}")
        assert response.status_code == 404


class TestModeration:
    """Approve, reject and rollback over HTTP."""

    def test_approve_delivers_push(self, client, db, push_ok):
        created = submit(client, push_id="device-1")
        response = client.post(
            f"/api/confessions/{created['id']}/approve",
            json={"approver_id": 42},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == 1
        assert data["approver"] == 42
        assert data["cfs_id"] == 1

        push_ok.assert_called_once()
        _, kwargs = push_ok.call_args
        assert kwargs["json"]["to"] == "device-1"
        assert kwargs["headers"]["Authorization"] == "key=test-server-key"

        db.expire_all()
        outbox = db.query(PushOutbox).one()
        assert outbox.status == "sent"
        assert outbox.attempts == 1

    def test_push_failure_does_not_fail_approval(self, client, db):
        created = submit(client)
        with patch("confess_api.push.requests.post") as post:
            post.return_value = MagicMock(status_code=500)
            response = client.post(
                f"/api/confessions/{created['id']}/approve",
                json={"approver_id": 1},
            )
        assert response.status_code == 200
        assert response.json()["status"] == 1

        db.expire_all()
        outbox = db.query(PushOutbox).one()
        assert outbox.status == "failed"
        assert outbox.last_error == "status=500"

    def test_approve_twice_conflicts(self, client, push_ok):
        created = submit(client)
        client.post(f"/api/confessions/{created['id']}/approve", json={"approver_id": 1})
        response = client.post(f"/api/confessions/{created['id']}/approve", json={"approver_id": 2})
        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_STATE"

    def test_approve_missing(self, client):
        response = client.post("/api/confessions/404/approve", json={"approver_id": 1})
        assert response.status_code == 404

    def test_reject(self, client, push_ok):
        created = submit(client)
        response = client.post(
            f"/api/confessions/{created['id']}/reject",
            json={"approver_id": 7, "reason": "Spam"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == 2
        assert data["reason"] == "Spam"
        push_ok.assert_called_once()

    def test_rollback(self, client, push_ok):
        created = submit(client)
        client.post(f"/api/confessions/{created['id']}/approve", json={"approver_id": 42})
        response = client.post(
            f"/api/confessions/{created['id']}/rollback",
            json={"approver_id": 42},
        )
        assert response.status_code == 200
        data = response.json()
        assert (data["status"], data["approver"], data["cfs_id"]) == (0, 0, 0)

    def test_next_id(self, client, push_ok):
        assert client.get("/api/confessions/next-id").json() == {"next_id": 1}
        created = submit(client)
        client.post(f"/api/confessions/{created['id']}/approve", json={"approver_id": 1})
        assert client.get("/api/confessions/next-id").json() == {"next_id": 2}


class TestFeeds:
    """Cached feeds, search and push id sync."""

    def test_overview_is_refreshed_after_moderation(self, client, push_ok):
        created = submit(client)
        assert client.get("/api/confessions/overview").json() == {"total": 1, "pending": 1, "rejected": 0}

        client.post(f"/api/confessions/{created['id']}/reject", json={"approver_id": 1, "reason": "no"})
        assert client.get("/api/confessions/overview").json() == {"total": 1, "pending": 0, "rejected": 1}

    def test_overview_is_served_from_cache(self, client, db):
        assert client.get("/api/confessions/overview").json()["total"] == 0

        # Written behind the API's back, so the cached value still wins
        db.add(Confession(content="direct", sender="u9", push_id="t", status=0))
        db.commit()
        assert client.get("/api/confessions/overview").json()["total"] == 0

    def test_approved_feed(self, client, push_ok):
        approved = submit(client, content="approved one")
        submit(client, content="pending one")
        assert client.get("/api/confessions/approved").json() == []

        client.post(f"/api/confessions/{approved['id']}/approve", json={"approver_id": 1})
        feed = client.get("/api/confessions/approved").json()
        assert [c["id"] for c in feed] == [approved["id"]]

    def test_search(self, client, push_ok):
        match = submit(client, content="hello world")
        submit(client, content="hello pending")
        client.post(f"/api/confessions/{match['id']}/approve", json={"approver_id": 1})

        response = client.get("/api/confessions/search", params={"q": "hello"})
        assert [c["id"] for c in response.json()] == [match["id"]]

    def test_public_feeds_hide_submitter(self, client, push_ok):
        created = submit(client, content="hello from the dorm", sender="student-42", push_id="device-secret")
        client.post(f"/api/confessions/{created['id']}/approve", json={"approver_id": 1})

        feed = client.get("/api/confessions/approved").json()
        found = client.get("/api/confessions/search", params={"q": "dorm"}).json()
        for items in (feed, found):
            assert len(items) == 1
            assert items[0]["content"] == "hello from the dorm"
            assert items[0]["cfs_id"] == 1
            assert "sender" not in items[0]
            assert "push_id" not in items[0]
            assert "student-42" not in str(items)
            assert "device-secret" not in str(items)

    def test_submitter_routes_keep_full_record(self, client):
        created = submit(client, sender="student-42", push_id="device-secret")
        mine = client.get("/api/confessions/sender/student-42").json()
        assert mine[0]["push_id"] == "device-secret"
        assert client.get(f"/api/confessions/{created['id']}").json()["sender"] == "student-42"

    def test_sync_push_id_drops_cached_feeds(self, client, push_ok):
        created = submit(client, sender="u1", push_id="old")
        client.post(f"/api/confessions/{created['id']}/approve", json={"approver_id": 1})
        client.get("/api/confessions/approved")
        client.get("/api/confessions/overview")

        cache = client.app.state.cache
        assert any(key.startswith(APPROVED_PREFIX) for key in cache.keys())

        client.put("/api/confessions/push-id", json={"sender": "u1", "push_id": "new"})
        assert not any(key.startswith(APPROVED_PREFIX) for key in cache.keys())
        assert cache.get(OVERVIEW_KEY) is None

    def test_sync_push_id(self, client, db):
        created = submit(client, sender="u1", push_id="old")
        response = client.put(
            "/api/confessions/push-id",
            json={"sender": "u1", "push_id": "new"},
        )
        assert response.status_code == 200

        response = client.get(f"/api/confessions/{created['id']}")
        assert response.json()["push_id"] == "new"


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
