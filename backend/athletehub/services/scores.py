"""Hole-by-hole golf scores for a single participant.

Holes are upserted by (score record, hole number), so resubmitting a hole replaces
it. Totals are recomputed on every write. `confirm_scores` locks the record; only
the group post creator may unlock it again for corrections.
"""

import datetime as dt

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from athletehub.core.errors import ConflictError, ScoresLockedError, ValidationError
from athletehub.models.golf import GolfHoleScore, GolfParticipantScores
from athletehub.models.group_post import GroupPost, GroupPostParticipant
from athletehub.models.profile import Profile

logger = structlog.get_logger(__name__)

GOLF_POST_TYPE = "golf_round"
DEFAULT_HOLE_PAR = 4
HOLE_FIELDS = ("hole_number", "strokes", "putts", "fairway_hit", "green_in_regulation", "par")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_hole_scores(scores: list[dict]) -> list[dict]:
    if not scores:
        raise ValidationError("scores must be a non-empty array")

    seen: set[int] = set()
    cleaned = []
    for raw in scores:
        hole_number = raw.get("hole_number")
        strokes = raw.get("strokes")
        putts = raw.get("putts")
        par = raw.get("par")

        if not _is_int(hole_number) or not 1 <= hole_number <= 18:
            raise ValidationError(f"Invalid hole_number: {hole_number}. Must be between 1 and 18.")
        if hole_number in seen:
            raise ValidationError(f"Duplicate hole_number: {hole_number}")
        seen.add(hole_number)

        if not _is_int(strokes) or not 1 <= strokes <= 15:
            raise ValidationError(f"Invalid strokes: {strokes}. Must be between 1 and 15.")
        if putts is not None and (not _is_int(putts) or not 0 <= putts <= strokes):
            raise ValidationError(f"Invalid putts: {putts}. Must be between 0 and {strokes}.")
        if par is not None and (not _is_int(par) or not 3 <= par <= 6):
            raise ValidationError(f"Invalid par: {par}. Must be between 3 and 6.")

        cleaned.append({f: raw.get(f) for f in HOLE_FIELDS})
    return cleaned


def compute_totals(holes: list[GolfHoleScore]) -> tuple[int | None, int | None, int]:
    if not holes:
        return None, None, 0
    total = sum(h.strokes for h in holes)
    par = sum(h.par if h.par is not None else DEFAULT_HOLE_PAR for h in holes)
    return total, total - par, len(holes)


def _refresh_totals(record: GolfParticipantScores) -> None:
    record.total_score, record.to_par, record.holes_completed = compute_totals(record.hole_scores)


def get_scores(db: Session, participant: GroupPostParticipant) -> GolfParticipantScores | None:
    return db.execute(
        select(GolfParticipantScores)
        .options(selectinload(GolfParticipantScores.hole_scores))
        .where(GolfParticipantScores.participant_id == participant.id)
    ).scalars().one_or_none()


def record_hole_scores(
    db: Session,
    post: GroupPost,
    participant: GroupPostParticipant,
    actor: Profile,
    scores: list[dict],
    entered_by: Profile | None = None,
) -> GolfParticipantScores:
    if post.type != GOLF_POST_TYPE:
        raise ValidationError(f'Group post type must be "{GOLF_POST_TYPE}" to record golf scores')

    record = get_scores(db, participant)
    if record is not None and record.scores_confirmed:
        raise ScoresLockedError("Scores are confirmed and locked")
    if participant.status != "confirmed":
        raise ValidationError("Participant must confirm attendance before entering scores")

    cleaned = validate_hole_scores(scores)

    if record is None:
        record = GolfParticipantScores(
            participant_id=participant.id,
            entered_by=(entered_by or actor).id,
            scores_confirmed=False,
            holes_completed=0,
        )
        db.add(record)

    by_number = {h.hole_number: h for h in record.hole_scores}
    for hole in cleaned:
        existing = by_number.get(hole["hole_number"])
        if existing:
            for name, value in hole.items():
                setattr(existing, name, value)
        else:
            record.hole_scores.append(GolfHoleScore(**hole))

    _refresh_totals(record)
    now = dt.datetime.now(dt.timezone.utc)
    participant.data_contributed = True
    participant.last_contribution = now

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Scores for this participant were modified concurrently")

    logger.info(
        "golf.scores_recorded",
        participant_id=participant.id,
        holes=len(cleaned),
        actor_id=actor.id,
    )
    return get_scores(db, participant)


def confirm_scores(db: Session, participant: GroupPostParticipant) -> GolfParticipantScores:
    record = get_scores(db, participant)
    if record is None or not record.hole_scores:
        raise ValidationError("No hole scores recorded for this participant")
    if record.scores_confirmed:
        return record

    _refresh_totals(record)
    record.scores_confirmed = True
    db.commit()

    logger.info(
        "golf.scores_confirmed",
        participant_id=participant.id,
        total_score=record.total_score,
        to_par=record.to_par,
    )
    return get_scores(db, participant)


def unlock_scores(db: Session, participant: GroupPostParticipant) -> GolfParticipantScores:
    record = get_scores(db, participant)
    if record is None:
        raise ValidationError("No hole scores recorded for this participant")

    record.scores_confirmed = False
    db.commit()

    logger.info("golf.scores_unlocked", participant_id=participant.id)
    return get_scores(db, participant)
