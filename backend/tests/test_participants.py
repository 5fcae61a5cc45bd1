import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from athletehub.api.deps import get_db, get_notifier
from athletehub.db.base import Base
import athletehub.models  # noqa: F401
from athletehub.main import app
from athletehub.services.notifications import NotificationPublisher


class RecordingPublisher(NotificationPublisher):
    def __init__(self):
        self.events = []

    def deliver(self, kind, **fields):
        self.events.append((kind, fields))


class BrokenPublisher(NotificationPublisher):
    def deliver(self, kind, **fields):
        raise RuntimeError("push gateway down")


@pytest.fixture()
def publisher():
    return RecordingPublisher()


@pytest.fixture()
def client(publisher):
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: publisher
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _post(client, user="u1", **overrides):
    payload = {"type": "social_event", "title": "BBQ", "date": "2025-07-04"}
    payload.update(overrides)
    r = client.post("/api/v1/group-posts", json=payload, headers={"X-User-Id": user})
    assert r.status_code == 201
    return r.json()["group_post"]["id"]


def _participants(client, post_id, user="u1"):
    r = client.get(f"/api/v1/group-posts/{post_id}/participants", headers={"X-User-Id": user})
    assert r.status_code == 200
    return {p["profile_id"]: p for p in r.json()["participants"]}


def test_add_participants_and_notify(client, publisher):
    post_id = _post(client)
    r = client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": ["u2", "u3"], "role": "organizer"},
        headers={"X-User-Id": "u1"},
    )
    assert r.status_code == 201
    added = r.json()["participants"]
    assert {p["profile_id"] for p in added} == {"u2", "u3"}
    assert all(p["role"] == "organizer" and p["status"] == "pending" for p in added)

    invites = [fields for kind, fields in publisher.events if kind == "group_post_invite"]
    assert {f["recipient_id"] for f in invites} == {"u2", "u3"}
    assert all(f["actor_id"] == "u1" and f["group_post_id"] == post_id for f in invites)


def test_duplicate_batch_is_rejected_without_partial_insert(client):
    post_id = _post(client)
    client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": ["u2"]},
        headers={"X-User-Id": "u1"},
    )

    r = client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": ["u3", "u2"]},
        headers={"X-User-Id": "u1"},
    )
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"
    assert set(_participants(client, post_id)) == {"u1", "u2"}

    creator_again = client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": ["u1"]},
        headers={"X-User-Id": "u1"},
    )
    assert creator_again.status_code == 409


def test_add_validation(client):
    post_id = _post(client)
    empty = client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": []},
        headers={"X-User-Id": "u1"},
    )
    assert empty.status_code == 400

    bad_role = client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": ["u2"], "role": "creator"},
        headers={"X-User-Id": "u1"},
    )
    assert bad_role.status_code == 400


def test_only_creator_or_organizer_can_add(client):
    post_id = _post(client, participant_ids=["u2"])
    client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": ["org"], "role": "organizer"},
        headers={"X-User-Id": "u1"},
    )

    by_participant = client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": ["u4"]},
        headers={"X-User-Id": "u2"},
    )
    assert by_participant.status_code == 403

    by_organizer = client.post(
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_ids": ["u4"]},
        headers={"X-User-Id": "org"},
    )
    assert by_organizer.status_code == 201


def test_remove_rules(client):
    post_id = _post(client, participant_ids=["u2", "u3"])

    creator = client.request(
        "DELETE",
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_id": "u1"},
        headers={"X-User-Id": "u1"},
    )
    assert creator.status_code == 403

    other = client.request(
        "DELETE",
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_id": "u3"},
        headers={"X-User-Id": "u2"},
    )
    assert other.status_code == 403

    self_removal = client.request(
        "DELETE",
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_id": "u2"},
        headers={"X-User-Id": "u2"},
    )
    assert self_removal.status_code == 200

    by_creator = client.request(
        "DELETE",
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_id": "u3"},
        headers={"X-User-Id": "u1"},
    )
    assert by_creator.status_code == 200
    assert set(_participants(client, post_id)) == {"u1"}

    missing = client.request(
        "DELETE",
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_id": "nobody"},
        headers={"X-User-Id": "u1"},
    )
    assert missing.status_code == 404


def test_removal_cascades_scores(client):
    post_id = _post(client, type="golf_round", participant_ids=["u2"])
    client.post(
        f"/api/v1/group-posts/{post_id}/attest",
        json={"status": "confirmed"},
        headers={"X-User-Id": "u2"},
    )
    row_id = _participants(client, post_id)["u2"]["id"]
    scored = client.post(
        f"/api/v1/golf/participants/{row_id}/scores",
        json={"scores": [{"hole_number": 1, "strokes": 5}]},
        headers={"X-User-Id": "u2"},
    )
    assert scored.status_code == 201

    r = client.request(
        "DELETE",
        f"/api/v1/group-posts/{post_id}/participants",
        json={"participant_id": "u2"},
        headers={"X-User-Id": "u1"},
    )
    assert r.status_code == 200
    assert client.get(
        f"/api/v1/golf/participants/{row_id}/scores", headers={"X-User-Id": "u1"}
    ).status_code == 404


def test_attestation_notifies_creator(client, publisher):
    post_id = _post(client, participant_ids=["u2"])
    publisher.events.clear()

    client.post(
        f"/api/v1/group-posts/{post_id}/attest",
        json={"status": "maybe"},
        headers={"X-User-Id": "u2"},
    )
    assert publisher.events == [
        (
            "group_post_attestation",
            {"recipient_id": "u1", "actor_id": "u2", "group_post_id": post_id, "status": "maybe"},
        )
    ]


def test_failing_notifier_does_not_fail_request(client):
    app.dependency_overrides[get_notifier] = lambda: BrokenPublisher()
    post_id = _post(client, participant_ids=["u2"])
    assert set(_participants(client, post_id)) == {"u1", "u2"}
