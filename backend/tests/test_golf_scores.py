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
from athletehub.models.golf import GolfHoleScore
from athletehub.services.scores import compute_totals, validate_hole_scores


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


def _round(client, *invitees, type="golf_round"):
    r = client.post(
        "/api/v1/group-posts",
        json={
            "type": type,
            "title": "Nine holes",
            "date": "2025-08-01",
            "participant_ids": list(invitees),
        },
        headers={"X-User-Id": "u1"},
    )
    assert r.status_code == 201
    post = r.json()["group_post"]
    return post["id"], {p["profile_id"]: p["id"] for p in post["participants"]}


def _record(client, row_id, user, scores, **extra):
    return client.post(
        f"/api/v1/golf/participants/{row_id}/scores",
        json={"scores": scores, **extra},
        headers={"X-User-Id": user},
    )


def test_upsert_and_totals(client):
    _post_id, rows = _round(client)
    me = rows["u1"]

    first = _record(client, me, "u1", [{"hole_number": 1, "strokes": 5, "par": 4}, {"hole_number": 2, "strokes": 3}])
    assert first.status_code == 201
    scores = first.json()["golf_scores"]
    assert scores["total_score"] == 8
    assert scores["to_par"] == 0
    assert scores["holes_completed"] == 2
    assert scores["entered_by"] == "u1"
    assert scores["scores_confirmed"] is False

    again = _record(client, me, "u1", [{"hole_number": 1, "strokes": 6, "par": 5, "putts": 2}])
    assert again.status_code == 201
    scores = again.json()["golf_scores"]
    assert scores["holes_completed"] == 2
    assert scores["total_score"] == 9
    assert scores["to_par"] == 0
    hole_one = scores["hole_scores"][0]
    assert hole_one == {
        "hole_number": 1,
        "strokes": 6,
        "putts": 2,
        "fairway_hit": None,
        "green_in_regulation": None,
        "par": 5,
    }

    fetched = client.get(f"/api/v1/golf/participants/{me}/scores", headers={"X-User-Id": "u2"})
    assert fetched.status_code == 200
    assert fetched.json()["golf_scores"]["total_score"] == 9


def test_participant_marked_as_contributor(client):
    post_id, rows = _round(client)
    _record(client, rows["u1"], "u1", [{"hole_number": 1, "strokes": 4}])
    participants = client.get(
        f"/api/v1/group-posts/{post_id}/participants", headers={"X-User-Id": "u1"}
    ).json()["participants"]
    assert participants[0]["data_contributed"] is True
    assert participants[0]["last_contribution"] is not None


@pytest.mark.parametrize(
    "scores",
    [
        [],
        [{"hole_number": 0, "strokes": 4}],
        [{"hole_number": 19, "strokes": 4}],
        [{"hole_number": 1, "strokes": 0}],
        [{"hole_number": 1, "strokes": 16}],
        [{"hole_number": 1, "strokes": 4, "putts": 5}],
        [{"hole_number": 1, "strokes": 4}, {"hole_number": 1, "strokes": 5}],
    ],
)
def test_invalid_scores_rejected(client, scores):
    _post_id, rows = _round(client)
    r = _record(client, rows["u1"], "u1", scores)
    assert r.status_code == 400
    assert r.json()["error"] == "validation"


def test_pending_participant_cannot_record(client):
    _post_id, rows = _round(client, "u2")
    r = _record(client, rows["u2"], "u2", [{"hole_number": 1, "strokes": 4}])
    assert r.status_code == 400


def test_non_golf_post_rejected(client):
    _post_id, rows = _round(client, type="social_event")
    r = _record(client, rows["u1"], "u1", [{"hole_number": 1, "strokes": 4}])
    assert r.status_code == 400


def test_other_participant_cannot_record(client):
    post_id, rows = _round(client, "u2")
    client.post(
        f"/api/v1/group-posts/{post_id}/attest", json={"status": "confirmed"}, headers={"X-User-Id": "u2"}
    )
    r = _record(client, rows["u2"], "u1", [{"hole_number": 1, "strokes": 4}])
    assert r.status_code == 403
    assert client.post(
        "/api/v1/golf/participants/9999/scores",
        json={"scores": [{"hole_number": 1, "strokes": 4}]},
        headers={"X-User-Id": "u1"},
    ).status_code == 404


def test_designated_scorer_can_continue(client):
    post_id, rows = _round(client, "u2")
    client.post(
        f"/api/v1/group-posts/{post_id}/attest", json={"status": "confirmed"}, headers={"X-User-Id": "u2"}
    )
    first = _record(client, rows["u2"], "u2", [{"hole_number": 1, "strokes": 4}], entered_by="u1")
    assert first.status_code == 201
    assert first.json()["golf_scores"]["entered_by"] == "u1"

    by_scorer = _record(client, rows["u2"], "u1", [{"hole_number": 2, "strokes": 5}])
    assert by_scorer.status_code == 201
    assert by_scorer.json()["golf_scores"]["holes_completed"] == 2

    outsider = _record(client, rows["u1"], "u1", [{"hole_number": 1, "strokes": 4}], entered_by="stranger")
    assert outsider.status_code == 400


def test_confirm_locks_and_creator_unlocks(client):
    post_id, rows = _round(client, "u2")
    client.post(
        f"/api/v1/group-posts/{post_id}/attest", json={"status": "confirmed"}, headers={"X-User-Id": "u2"}
    )
    row = rows["u2"]

    empty_confirm = client.post(f"/api/v1/golf/participants/{row}/scores/confirm", headers={"X-User-Id": "u2"})
    assert empty_confirm.status_code == 400

    _record(client, row, "u2", [{"hole_number": 1, "strokes": 4}])
    c = client.post(f"/api/v1/golf/participants/{row}/scores/confirm", headers={"X-User-Id": "u2"})
    assert c.status_code == 200
    assert c.json()["golf_scores"]["scores_confirmed"] is True
    assert client.post(
        f"/api/v1/golf/participants/{row}/scores/confirm", headers={"X-User-Id": "u2"}
    ).status_code == 200

    locked = _record(client, row, "u2", [{"hole_number": 1, "strokes": 7}])
    assert locked.status_code == 403
    assert locked.json()["error"] == "locked"
    unchanged = client.get(f"/api/v1/golf/participants/{row}/scores", headers={"X-User-Id": "u2"})
    assert unchanged.json()["golf_scores"]["total_score"] == 4

    assert client.post(
        f"/api/v1/golf/participants/{row}/scores/unlock", headers={"X-User-Id": "u2"}
    ).status_code == 403
    unlocked = client.post(f"/api/v1/golf/participants/{row}/scores/unlock", headers={"X-User-Id": "u1"})
    assert unlocked.status_code == 200
    assert unlocked.json()["golf_scores"]["scores_confirmed"] is False

    fixed = _record(client, row, "u2", [{"hole_number": 1, "strokes": 7}])
    assert fixed.status_code == 201
    assert fixed.json()["golf_scores"]["total_score"] == 7


def test_missing_scores_returns_404(client):
    _post_id, rows = _round(client)
    r = client.get(f"/api/v1/golf/participants/{rows['u1']}/scores", headers={"X-User-Id": "u1"})
    assert r.status_code == 404


def test_compute_totals_defaults_par():
    holes = [GolfHoleScore(hole_number=1, strokes=5), GolfHoleScore(hole_number=2, strokes=2, par=3)]
    assert compute_totals(holes) == (7, 0, 2)
    assert compute_totals([]) == (None, None, 0)


def test_validate_hole_scores_messages():
    with pytest.raises(ValidationError, match="Invalid hole_number: 19"):
        validate_hole_scores([{"hole_number": 19, "strokes": 4}])
    with pytest.raises(ValidationError, match="Invalid par"):
        validate_hole_scores([{"hole_number": 1, "strokes": 4, "par": 7}])
    cleaned = validate_hole_scores([{"hole_number": 3, "strokes": 4}])
    assert cleaned[0]["putts"] is None


def test_confirmed_scores_stay_locked_after_reattesting(client):
    post_id, rows = _round(client)
    me = rows["u1"]
    _record(client, me, "u1", [{"hole_number": 1, "strokes": 4}])
    client.post(f"/api/v1/golf/participants/{me}/scores/confirm", headers={"X-User-Id": "u1"})

    for status in ("maybe", "declined"):
        client.post(
            f"/api/v1/group-posts/{post_id}/attest", json={"status": status}, headers={"X-User-Id": "u1"}
        )
        r = _record(client, me, "u1", [{"hole_number": 1, "strokes": 6}])
        assert r.status_code == 403
        assert r.json()["error"] == "locked"


def test_entered_by_cannot_be_reassigned(client):
    post_id, rows = _round(client, "u2")
    client.post(
        f"/api/v1/group-posts/{post_id}/attest", json={"status": "confirmed"}, headers={"X-User-Id": "u2"}
    )
    _record(client, rows["u2"], "u2", [{"hole_number": 1, "strokes": 4}])

    moved = _record(client, rows["u2"], "u2", [{"hole_number": 2, "strokes": 4}], entered_by="u1")
    assert moved.status_code == 400
    assert "first score entry" in moved.json()["detail"]

    same = _record(client, rows["u2"], "u2", [{"hole_number": 2, "strokes": 4}], entered_by="u2")
    assert same.status_code == 201
    assert same.json()["golf_scores"]["entered_by"] == "u2"
