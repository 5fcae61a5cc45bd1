import datetime as dt

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from athletehub.api.deps import get_db
from athletehub.core.errors import ValidationError
from athletehub.db.base import Base
import athletehub.models  # noqa: F401
from athletehub.main import app
from athletehub.models.group_post import GroupPostParticipant
from athletehub.services.attestation import ATTESTABLE_STATUSES, apply_transition
from athletehub.services.group_posts import INVITABLE_ROLES


@pytest.fixture()
def client():
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
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _post_with(client, *invitees, visibility="public"):
    r = client.post(
        "/api/v1/group-posts",
        json={
            "type": "hockey_game",
            "title": "Thursday skate",
            "date": "2025-02-13",
            "visibility": visibility,
            "participant_ids": list(invitees),
        },
        headers={"X-User-Id": "u1"},
    )
    assert r.status_code == 201
    return r.json()["group_post"]["id"]


def _attest(client, post_id, user, status):
    return client.post(
        f"/api/v1/group-posts/{post_id}/attest", json={"status": status}, headers={"X-User-Id": user}
    )


def test_confirm_then_decline_then_maybe(client):
    post_id = _post_with(client, "u2")

    confirmed = _attest(client, post_id, "u2", "confirmed")
    assert confirmed.status_code == 200
    body = confirmed.json()
    assert body["participant"]["status"] == "confirmed"
    assert body["participant"]["attested_at"] is not None
    assert body["group_post"]["id"] == post_id

    declined = _attest(client, post_id, "u2", "declined").json()["participant"]
    assert declined["status"] == "declined"
    assert declined["attested_at"] is None

    maybe = _attest(client, post_id, "u2", "maybe").json()["participant"]
    assert maybe["status"] == "maybe"
    assert maybe["attested_at"] is None

    current = client.get(f"/api/v1/group-posts/{post_id}/attest", headers={"X-User-Id": "u2"})
    assert current.status_code == 200
    assert current.json()["participant"]["status"] == "maybe"


def test_reconfirm_keeps_attested_at(client):
    post_id = _post_with(client, "u2")
    first = _attest(client, post_id, "u2", "confirmed").json()["participant"]["attested_at"]
    second = _attest(client, post_id, "u2", "confirmed").json()["participant"]["attested_at"]
    assert first == second


def test_non_participant_gets_404(client):
    post_id = _post_with(client, "u2")
    r = _attest(client, post_id, "outsider", "confirmed")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"
    assert client.get(
        f"/api/v1/group-posts/{post_id}/attest", headers={"X-User-Id": "outsider"}
    ).status_code == 404


def test_invalid_status_returns_400(client):
    post_id = _post_with(client, "u2")
    assert _attest(client, post_id, "u2", "pending").status_code == 400
    assert _attest(client, post_id, "u2", "yes").status_code == 400
    assert client.post(
        f"/api/v1/group-posts/{post_id}/attest", json={}, headers={"X-User-Id": "u2"}
    ).status_code == 400


def test_private_post_hidden_from_outsider(client):
    post_id = _post_with(client, "u2", visibility="participants_only")
    assert _attest(client, post_id, "u9", "confirmed").status_code == 404
    assert _attest(client, post_id, "u2", "confirmed").status_code == 200


def _row(status="pending", attested_at=None):
    return GroupPostParticipant(
        group_post_id=1, profile_id=2, role="participant", status=status, attested_at=attested_at
    )


def test_transition_confirmed_stamps_time():
    now = dt.datetime(2025, 1, 1, tzinfo=dt.timezone.utc)
    row = apply_transition(_row(), "confirmed", now=now)
    assert row.status == "confirmed"
    assert row.attested_at == now


def test_transition_reconfirm_is_idempotent():
    earlier = dt.datetime(2024, 12, 31, tzinfo=dt.timezone.utc)
    later = dt.datetime(2025, 1, 1, tzinfo=dt.timezone.utc)
    row = apply_transition(_row("confirmed", earlier), "confirmed", now=later)
    assert row.attested_at == earlier


def test_transition_confirm_from_maybe_restamps():
    earlier = dt.datetime(2024, 12, 31, tzinfo=dt.timezone.utc)
    later = dt.datetime(2025, 1, 1, tzinfo=dt.timezone.utc)
    row = apply_transition(_row("maybe", earlier), "confirmed", now=later)
    assert row.attested_at == later


def test_transition_declined_clears_and_maybe_keeps():
    stamp = dt.datetime(2025, 1, 1, tzinfo=dt.timezone.utc)
    assert apply_transition(_row("confirmed", stamp), "declined").attested_at is None
    assert apply_transition(_row("confirmed", stamp), "maybe").attested_at == stamp


def test_transition_rejects_pending():
    with pytest.raises(ValidationError):
        apply_transition(_row(), "pending")


def test_attestable_statuses_exclude_pending():
    assert ATTESTABLE_STATUSES == ("confirmed", "declined", "maybe")
    assert INVITABLE_ROLES == ("organizer", "participant", "spectator")
