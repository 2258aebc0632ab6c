from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from campusops import models

from conftest import TestingSessionLocal, auth_headers


def add_event(created_by: int, status: str = "PUBLISHED", clubs=(), **fields) -> int:
    with TestingSessionLocal() as session:
        event = models.Event(
            title=fields.pop("title", "Open Day"),
            start_date=fields.pop("start_date", datetime.utcnow() + timedelta(days=3)),
            end_date=fields.pop("end_date", datetime.utcnow() + timedelta(days=3, hours=2)),
            status=status,
            created_by_id=created_by,
            **fields,
        )
        session.add(event)
        session.flush()
        for club_id in clubs:
            session.add(models.EventClub(event_id=event.id, club_id=club_id))
        session.commit()
        return event.id


def test_register_and_login(client):
    resp = client.post(
        "/api/auth/register",
        json={"email": "Fresh@Campus.edu", "password": "secretpass", "name": "Fresh"},
    )
    assert resp.status_code == 200
    user = resp.json()
    assert user["email"] == "fresh@campus.edu"
    assert user["global_role"] == "STUDENT"

    duplicate = client.post(
        "/api/auth/register",
        json={"email": "fresh@campus.edu", "password": "x", "name": "Again"},
    )
    assert duplicate.status_code == 409

    login = client.post("/api/auth/login", json={"email": "fresh@campus.edu", "password": "secretpass"})
    assert login.status_code == 200
    token = login.json()["token"]
    me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["name"] == "Fresh"

    bad = client.post("/api/auth/login", json={"email": "fresh@campus.edu", "password": "nope"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid credentials"}



def test_password_is_kept_as_typed(client):
    resp = client.post(
        "/api/auth/register",
        json={"email": "spaces@campus.edu", "password": " correct horse ", "name": "Spacey"},
    )
    assert resp.status_code == 200

    login = client.post("/api/auth/login", json={"email": "spaces@campus.edu", "password": " correct horse "})
    assert login.status_code == 200
    trimmed = client.post("/api/auth/login", json={"email": "spaces@campus.edu", "password": "correct horse"})
    assert trimmed.status_code == 401

    blank = client.post(
        "/api/auth/register",
        json={"email": "blank@campus.edu", "password": "   ", "name": "Blank"},
    )
    assert blank.status_code == 400


def test_register_validation_names_field(client):
    resp = client.post("/api/auth/register", json={"email": "a@campus.edu", "password": "pw"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "name is required"}


def test_requests_need_a_valid_token(client):
    assert client.get("/api/clubs").status_code == 401
    bad = client.get("/api/clubs", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid token"}
    ghost = client.get("/api/clubs", headers=auth_headers(4242))
    assert ghost.status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_profile_and_activity_summary(client, make_user, make_club):
    user = make_user(name="Priya")
    club = make_club("Debate", {user: "ORGANIZER"})
    add_event(user, status="APPROVED", clubs=[club])
    add_event(user, status="DRAFT", clubs=[club])

    updated = client.patch(
        "/api/users/me",
        json={"department": "  Physics ", "academic_year": "2"},
        headers=auth_headers(user),
    )
    assert updated.status_code == 200
    assert updated.json()["department"] == "Physics"

    me = client.get("/api/users/me", headers=auth_headers(user)).json()
    assert me["activity_summary"] == {
        "events_registered": 0,
        "events_organized": 2,
        "events_approved": 1,
    }
    assert [(m["club_name"], m["club_role"]) for m in me["memberships"]] == [("Debate", "ORGANIZER")]


def test_registration_flow(client, make_user):
    organizer = make_user(name="Org")
    student = make_user(name="Stu", department="CS", academic_year="3")
    published = add_event(organizer)
    draft = add_event(organizer, status="DRAFT", title="Hidden")

    closed = client.post("/api/registrations", json={"event_id": draft}, headers=auth_headers(student))
    assert closed.status_code == 400

    first = client.post("/api/registrations", json={"event_id": published}, headers=auth_headers(student))
    assert first.status_code == 200
    assert first.json()["department"] == "CS"
    assert first.json()["academic_year"] == "3"

    again = client.post("/api/registrations", json={"event_id": published}, headers=auth_headers(student))
    assert again.json()["id"] == first.json()["id"]

    mine = client.get("/api/registrations/me", headers=auth_headers(student)).json()
    assert [r["event"]["id"] for r in mine] == [published]

    assert client.delete(f"/api/registrations/by-event/{published}", headers=auth_headers(student)).status_code == 200
    gone = client.delete(f"/api/registrations/by-event/{published}", headers=auth_headers(student))
    assert gone.status_code == 404
    assert gone.json() == {"error": "Registration not found"}
    assert client.post("/api/registrations", json={"event_id": 9999}, headers=auth_headers(student)).status_code == 404


def test_registration_deadline(client, make_user):
    organizer = make_user(name="Org")
    student = make_user(name="Late")
    event = add_event(organizer, registration_deadline=datetime.utcnow() - timedelta(hours=1))
    resp = client.post("/api/registrations", json={"event_id": event}, headers=auth_headers(student))
    assert resp.status_code == 400
    assert resp.json()["error"] == "The registration deadline has passed"


def test_notifications(client, make_user):
    user = make_user(name="Nia")
    other = make_user(name="Omar")
    with TestingSessionLocal() as session:
        session.add_all(
            [
                models.Notification(user_id=user, type="EVENT_APPROVED", category="Events", message="a"),
                models.Notification(user_id=user, type="BOOKING_APPROVED", category="Bookings", message="b"),
                models.Notification(user_id=other, type="EVENT_REJECTED", category="Events", message="c"),
            ]
        )
        session.commit()
        first_id = session.execute(
            select(models.Notification.id).where(models.Notification.message == "a")
        ).scalar_one()

    headers = auth_headers(user)
    assert len(client.get("/api/notifications/me", headers=headers).json()) == 2
    events_only = client.get("/api/notifications/me", params={"category": "Events"}, headers=headers)
    assert [n["message"] for n in events_only.json()] == ["a"]
    assert client.get("/api/notifications/me/unread-count", headers=headers).json() == {"count": 2}

    assert client.patch(f"/api/notifications/{first_id}/read", headers=auth_headers(other)).status_code == 403
    read = client.patch(f"/api/notifications/{first_id}/read", headers=headers)
    assert read.json()["read"] is True
    assert read.json()["read_at"] is not None

    marked = client.post("/api/notifications/me/mark-all-read", json={}, headers=headers)
    assert marked.json() == {"updated": 1}
    assert client.get("/api/notifications/me/unread-count", headers=headers).json() == {"count": 0}
    assert client.get("/api/notifications/me/unread-count", headers=auth_headers(other)).json() == {"count": 1}


def test_resources_admin_crud(client, make_user, admin_id):
    student = make_user()
    body = {"name": "Lab 2", "type": "LAB", "capacity": 30}
    assert client.post("/api/resources", json=body, headers=auth_headers(student)).status_code == 403

    created = client.post("/api/resources", json=body, headers=auth_headers(admin_id))
    assert created.status_code == 200
    resource = created.json()
    assert resource["requires_approval"] is True
    assert resource["auto_approve"] is False
    assert resource["active"] is True

    assert client.post("/api/resources", json=body, headers=auth_headers(admin_id)).status_code == 409

    patched = client.patch(
        f"/api/resources/{resource['id']}", json={"active": False}, headers=auth_headers(admin_id)
    )
    assert patched.json()["active"] is False
    assert patched.json()["capacity"] == 30

    everything = client.get("/api/resources", headers=auth_headers(student)).json()
    active = client.get("/api/resources", params={"active_only": True}, headers=auth_headers(student)).json()
    assert len(everything) == 1
    assert active == []


def test_audit_and_analytics_are_admin_only(client, make_user, make_club, make_resource, admin_id):
    organizer = make_user(name="Ada")
    club = make_club("Astronomy", {organizer: "HEAD"})
    make_club("Knitting")
    event = add_event(organizer, status="SUBMITTED", clubs=[club])
    hall = make_resource("Observatory")
    with TestingSessionLocal() as session:
        start = datetime.utcnow() + timedelta(days=3)
        session.add(
            models.Booking(resource_id=hall, event_id=event, start_time=start, end_time=start + timedelta(hours=1))
        )
        session.commit()

    assert client.get("/api/audit/recent", headers=auth_headers(organizer)).status_code == 403
    assert client.get("/api/analytics/pending-attention", headers=auth_headers(organizer)).status_code == 403

    attention = client.get("/api/analytics/pending-attention", headers=auth_headers(admin_id)).json()
    assert attention == {
        "pending_event_approvals": 1,
        "pending_bookings": 1,
        "clubs_inactive_60_days": 1,
    }

    client.post(f"/api/events/{event}/review", json={"approve": True}, headers=auth_headers(admin_id))
    logs = client.get("/api/audit/recent", headers=auth_headers(admin_id)).json()
    assert logs[0]["action"] == "EVENT_APPROVED"
    assert logs[0]["user_email"] == "admin@campus.edu"
    assert logs[0]["metadata"] == {"approve": True, "reason": None}

    summary = client.get("/api/analytics/summary", headers=auth_headers(admin_id)).json()
    assert summary["events_per_club"] == [{"id": club, "name": "Astronomy", "count": 1}]
    assert summary["bookings_per_resource"] == [{"id": hall, "name": "Observatory", "count": 1}]

    past = (datetime.utcnow() - timedelta(days=30)).date().isoformat()
    earlier = (datetime.utcnow() - timedelta(days=20)).date().isoformat()
    empty = client.get(
        "/api/analytics/summary", params={"start": past, "end": earlier}, headers=auth_headers(admin_id)
    ).json()
    assert empty["events_per_club"] == []
    assert empty["bookings_per_resource"] == []


@pytest.mark.parametrize("path", ["/api/events/pending", "/api/bookings/pending", "/api/audit/recent"])
def test_denials_do_not_leak_details(client, make_user, path):
    resp = client.get(path, headers=auth_headers(make_user()))
    assert resp.status_code == 403
    assert resp.json() == {"error": "You don't have permission to perform this action."}
