"""
HTTP tests for the /auth/v1, /rest/v1 and /realtime/v1 surfaces.
"""

import pytest
from fastapi.testclient import TestClient

DAY = "2025-03-14"


@pytest.fixture
def client():
    from main import app
    return TestClient(app)


def _sign_up(client, email, full_name=""):
    r = client.post("/auth/v1/signup", json={"email": email, "password": "secret123", "data": {"full_name": full_name}})
    assert r.status_code == 200, r.text
    body = r.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}


@pytest.fixture
def alice_session(client):
    return _sign_up(client, "alice@example.com", "Alice")


@pytest.fixture
def bob_session(client):
    return _sign_up(client, "bob@example.com", "Bob")


def test_health_check(client):
    r = client.get("/health-check")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


class TestAuth:
    def test_sign_up_returns_session_and_profile(self, client, alice_session):
        user_id, headers = alice_session

        r = client.get("/auth/v1/user", headers=headers)

        assert r.status_code == 200
        assert r.json()["id"] == user_id
        assert r.json()["profile"]["full_name"] == "Alice"

    def test_duplicate_sign_up(self, client, alice_session):
        r = client.post("/auth/v1/signup", json={"email": "alice@example.com", "password": "secret123"})
        assert r.status_code == 400

    def test_short_password_rejected(self, client):
        r = client.post("/auth/v1/signup", json={"email": "x@example.com", "password": "123"})
        assert r.status_code == 422

    def test_password_grant(self, client, alice_session):
        user_id, _ = alice_session

        r = client.post("/auth/v1/token", params={"grant_type": "password"},
                        json={"email": "alice@example.com", "password": "secret123"})

        assert r.status_code == 200
        assert r.json()["user"]["id"] == user_id
        assert r.json()["token_type"] == "bearer"

    def test_wrong_password(self, client, alice_session):
        r = client.post("/auth/v1/token", params={"grant_type": "password"},
                        json={"email": "alice@example.com", "password": "nope"})
        assert r.status_code == 400

    def test_missing_token(self, client):
        assert client.get("/rest/v1/tasks").status_code == 401

    def test_bad_token(self, client):
        r = client.get("/rest/v1/tasks", headers={"Authorization": "Bearer not-a-jwt"})
        assert r.status_code == 401

    def test_delete_account(self, client, alice_session):
        user_id, headers = alice_session
        client.post("/rest/v1/tasks", headers=headers, json={"user_id": user_id, "title": "x", "task_date": DAY})

        assert client.delete("/auth/v1/user", headers=headers).status_code == 200
        assert client.get("/auth/v1/user", headers=headers).status_code == 404
        assert client.get("/rest/v1/tasks", headers=headers).json() == []

    def test_logout_revokes_token(self, client, alice_session):
        _, headers = alice_session

        r = client.post("/auth/v1/logout", headers=headers)

        assert r.status_code == 200
        assert client.get("/auth/v1/user", headers=headers).status_code == 401
        assert client.get("/rest/v1/tasks", headers=headers).status_code == 401
        assert client.get("/realtime/v1/tasks", headers=headers).status_code == 401
        assert client.post("/auth/v1/logout", headers=headers).status_code == 401

    def test_logout_leaves_other_sessions(self, client, alice_session):
        user_id, first = alice_session
        r = client.post("/auth/v1/token", params={"grant_type": "password"},
                        json={"email": "alice@example.com", "password": "secret123"})
        second = {"Authorization": f"Bearer {r.json()['access_token']}"}

        client.post("/auth/v1/logout", headers=first)

        r = client.get("/auth/v1/user", headers=second)
        assert r.status_code == 200
        assert r.json()["id"] == user_id

    def test_logout_requires_identity(self, client):
        assert client.post("/auth/v1/logout").status_code == 401


class TestRecords:
    def test_insert_and_select(self, client, alice_session):
        user_id, headers = alice_session

        r = client.post("/rest/v1/tasks", headers=headers,
                        json={"user_id": user_id, "title": "Write report", "task_date": DAY, "alarm_time": "09:30"})
        assert r.status_code == 201, r.text
        [created] = r.json()
        assert created["alarm_time"] == "09:30:00"

        r = client.get("/rest/v1/tasks", headers=headers,
                       params={"select": "*", "user_id": f"eq.{user_id}", "task_date": f"eq.{DAY}", "order": "created_at.asc"})
        assert r.status_code == 200
        assert [t["id"] for t in r.json()] == [created["id"]]

    def test_select_is_isolated(self, client, alice_session, bob_session):
        alice_id, alice_headers = alice_session
        bob_id, bob_headers = bob_session
        client.post("/rest/v1/goals", headers=bob_headers, json={"user_id": bob_id, "title": "Secret", "goal_type": "yearly"})

        assert client.get("/rest/v1/goals", headers=alice_headers).json() == []
        # Asking for another owner's rows explicitly still returns nothing
        r = client.get("/rest/v1/goals", headers=alice_headers, params={"user_id": f"eq.{bob_id}"})
        assert r.status_code == 200
        assert r.json() == []

    def test_insert_for_another_owner_denied(self, client, alice_session, bob_session):
        _, alice_headers = alice_session
        bob_id, _ = bob_session

        r = client.post("/rest/v1/tasks", headers=alice_headers, json={"user_id": bob_id, "title": "x", "task_date": DAY})

        assert r.status_code == 403
        assert r.json()["detail"] == "permission denied"

    def test_validation_error(self, client, alice_session):
        user_id, headers = alice_session

        r = client.post("/rest/v1/goals", headers=headers, json={"user_id": user_id, "title": "x", "goal_type": "weekly"})

        assert r.status_code == 422

    def test_unknown_table(self, client, alice_session):
        _, headers = alice_session
        assert client.get("/rest/v1/users", headers=headers).status_code == 404

    def test_bad_filter(self, client, alice_session):
        _, headers = alice_session
        r = client.get("/rest/v1/tasks", headers=headers, params={"title": "like.x"})
        assert r.status_code == 400

    def test_update_and_delete_foreign_row_match_nothing(self, client, alice_session, bob_session):
        _, alice_headers = alice_session
        bob_id, bob_headers = bob_session
        [row] = client.post("/rest/v1/tasks", headers=bob_headers,
                            json={"user_id": bob_id, "title": "Bob's", "task_date": DAY}).json()

        r = client.patch("/rest/v1/tasks", headers=alice_headers, params={"id": f"eq.{row['id']}"}, json={"completed": True})
        assert r.status_code == 200
        assert r.json() == []

        r = client.delete("/rest/v1/tasks", headers=alice_headers, params={"id": f"eq.{row['id']}"})
        assert r.json() == []

        [still] = client.get("/rest/v1/tasks", headers=bob_headers).json()
        assert still["completed"] is False

    def test_owner_change_denied(self, client, alice_session, bob_session):
        alice_id, headers = alice_session
        bob_id, _ = bob_session
        [row] = client.post("/rest/v1/tasks", headers=headers, json={"user_id": alice_id, "title": "x", "task_date": DAY}).json()

        r = client.patch("/rest/v1/tasks", headers=headers, params={"id": f"eq.{row['id']}"}, json={"user_id": bob_id})

        assert r.status_code == 403

    def test_null_completed_is_validation_error(self, client, alice_session):
        user_id, headers = alice_session
        [row] = client.post("/rest/v1/tasks", headers=headers, json={"user_id": user_id, "title": "x", "task_date": DAY}).json()

        r = client.patch("/rest/v1/tasks", headers=headers, params={"id": f"eq.{row['id']}"}, json={"completed": None})

        assert r.status_code == 422

    def test_toggle_then_delete(self, client, alice_session):
        user_id, headers = alice_session
        [row] = client.post("/rest/v1/milestones", headers=headers, json={"user_id": user_id, "title": "Run 5k"}).json()
        assert row["goal_id"] is None

        [updated] = client.patch("/rest/v1/milestones", headers=headers,
                                 params={"id": f"eq.{row['id']}"}, json={"completed": True}).json()
        assert updated["completed"] is True

        [deleted] = client.delete("/rest/v1/milestones", headers=headers, params={"id": f"eq.{row['id']}"}).json()
        assert deleted["id"] == row["id"]

    def test_goal_filter_null(self, client, alice_session):
        user_id, headers = alice_session
        [goal] = client.post("/rest/v1/goals", headers=headers, json={"user_id": user_id, "title": "G", "goal_type": "monthly"}).json()
        client.post("/rest/v1/milestones", headers=headers, json={"user_id": user_id, "title": "linked", "goal_id": goal["id"]})
        client.post("/rest/v1/milestones", headers=headers, json={"user_id": user_id, "title": "standalone"})

        r = client.get("/rest/v1/milestones", headers=headers, params={"goal_id": "is.null"})

        assert [m["title"] for m in r.json()] == ["standalone"]


class TestRealtimeGuards:
    def test_foreign_owner_filter_denied(self, client, alice_session, bob_session):
        _, headers = alice_session
        bob_id, _ = bob_session

        r = client.get("/realtime/v1/tasks", headers=headers, params={"filter": f"user_id=eq.{bob_id}"})

        assert r.status_code == 403

    def test_unknown_table(self, client, alice_session):
        _, headers = alice_session
        assert client.get("/realtime/v1/nope", headers=headers).status_code == 404

    def test_unsupported_filter(self, client, alice_session):
        _, headers = alice_session
        r = client.get("/realtime/v1/tasks", headers=headers, params={"filter": "title=like.x"})
        assert r.status_code == 400

    def test_requires_identity(self, client):
        assert client.get("/realtime/v1/tasks").status_code == 401
