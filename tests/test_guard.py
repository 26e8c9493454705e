import time

import pytest

from conftest import add_students, student_rows
from roster.guard import SessionState

PROTECTED = [
    ("get", "/students/"),
    ("get", "/students/new"),
    ("post", "/students/new"),
    ("get", "/students/delete?id=1"),
    ("get", "/backups/"),
    ("post", "/backups/"),
    ("get", "/backups/download?file=x.sql"),
    ("get", "/backups/delete?file=x.sql"),
]


@pytest.mark.parametrize("method,url", PROTECTED)
def test_unauthenticated_requests_redirect_to_login(client, method, url):
    resp = getattr(client, method)(url)
    assert resp.status_code == 302
    assert "/auth/login" in resp.headers["Location"]


def test_unauthenticated_requests_do_not_mutate(app, client, executor):
    add_students(app, 3)
    client.get("/students/delete?id=2")
    client.post("/students/new", data={
        "student_no": "NEW1", "fullname": "New Person",
        "email": "new@example.com", "course": "Crypto",
    })
    client.post("/backups/")

    assert student_rows(app) == [(1, "S1"), (2, "S2"), (3, "S3")]
    assert executor.calls == []


def test_expired_session_is_destroyed(app, logged_in):
    with logged_in.session_transaction() as sess:
        sess["login_time"] = time.time() - app.config["SESSION_TIMEOUT"] - 1

    resp = logged_in.get("/students/")
    assert resp.status_code == 302
    assert "expired=1" in resp.headers["Location"]

    with logged_in.session_transaction() as sess:
        assert "user" not in sess
        assert "_user_id" not in sess

    resp = logged_in.get("/students/")
    assert resp.status_code == 302
    assert "expired=1" not in resp.headers["Location"]


def test_expired_session_blocks_mutation(app, logged_in):
    add_students(app, 2)
    with logged_in.session_transaction() as sess:
        sess["login_time"] = time.time() - 3600

    resp = logged_in.get("/students/delete?id=1")
    assert "expired=1" in resp.headers["Location"]
    assert student_rows(app) == [(1, "S1"), (2, "S2")]


def test_activity_refreshes_timeout(app, logged_in):
    stale = time.time() - app.config["SESSION_TIMEOUT"] + 60
    with logged_in.session_transaction() as sess:
        sess["login_time"] = stale

    assert logged_in.get("/students/").status_code == 200
    with logged_in.session_transaction() as sess:
        assert sess["login_time"] > stale + 30


def test_missing_initialized_marker_is_rejected(logged_in):
    with logged_in.session_transaction() as sess:
        del sess["initialized"]

    resp = logged_in.get("/students/")
    assert resp.status_code == 302
    assert "/auth/login" in resp.headers["Location"]
    with logged_in.session_transaction() as sess:
        assert "_user_id" not in sess


def test_session_state_requires_full_payload():
    assert SessionState.from_session({}) is None
    assert SessionState.from_session({"user": "admin", "initialized": "yes"}) is None
    assert SessionState.from_session({"user": "admin", "initialized": True}) is None

    state = SessionState.from_session({
        "sid": "abc", "user": "admin", "user_id": "7",
        "initialized": True, "login_time": 12.5,
    })
    assert state == SessionState("abc", "admin", 7, True, 12.5)

    data = {}
    state.save(data)
    assert data["user_id"] == 7 and data["initialized"] is True
