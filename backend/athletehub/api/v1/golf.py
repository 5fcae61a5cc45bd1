import datetime as dt

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from athletehub.api.deps import ensure_profile, get_current_user_id, get_db
from athletehub.core.errors import NotFoundError, ValidationError
from athletehub.models.golf import GolfParticipantScores, GolfScorecardData
from athletehub.models.group_post import GroupPost, GroupPostParticipant
from athletehub.models.profile import Profile
from athletehub.services import authorization, extensions, group_posts, scores

router = APIRouter()


class ScorecardCreate(BaseModel):
    group_post_id: int
    course_name: str | None = None
    course_id: str | None = None
    round_type: str | None = None
    holes_played: int | None = None
    tee_color: str | None = None
    slope_rating: float | None = None
    course_rating: float | None = None
    weather_conditions: str | None = None
    temperature: int | None = None
    wind_speed: int | None = None


class ScorecardPatch(BaseModel):
    course_name: str | None = None
    course_id: str | None = None
    round_type: str | None = None
    holes_played: int | None = None
    tee_color: str | None = None
    slope_rating: float | None = None
    course_rating: float | None = None
    weather_conditions: str | None = None
    temperature: int | None = None
    wind_speed: int | None = None


class ScorecardOut(BaseModel):
    id: int
    group_post_id: int
    course_name: str
    course_id: str | None
    round_type: str
    holes_played: int
    tee_color: str | None
    slope_rating: float | None
    course_rating: float | None
    weather_conditions: str | None
    temperature: int | None
    wind_speed: int | None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class ScorecardEnvelope(BaseModel):
    golf_data: ScorecardOut


class HoleScoreIn(BaseModel):
    hole_number: int
    strokes: int
    putts: int | None = None
    fairway_hit: bool | None = None
    green_in_regulation: bool | None = None
    par: int | None = None


class ScoresIn(BaseModel):
    scores: list[HoleScoreIn]
    # Profile recorded as scorekeeper on first entry; defaults to the caller.
    entered_by: str | None = None


class HoleScoreOut(BaseModel):
    hole_number: int
    strokes: int
    putts: int | None
    fairway_hit: bool | None
    green_in_regulation: bool | None
    par: int | None

    class Config:
        from_attributes = True


class ParticipantScoresOut(BaseModel):
    id: int
    participant_id: int
    entered_by: str | None
    scores_confirmed: bool
    total_score: int | None
    to_par: int | None
    holes_completed: int
    updated_at: dt.datetime
    hole_scores: list[HoleScoreOut]


class ParticipantScoresEnvelope(BaseModel):
    golf_scores: ParticipantScoresOut


def _scores_to_out(record: GolfParticipantScores) -> ParticipantScoresOut:
    scorer = record.entered_by_profile
    return ParticipantScoresOut(
        id=record.id,
        participant_id=record.participant_id,
        entered_by=scorer.external_id if scorer else None,
        scores_confirmed=bool(record.scores_confirmed),
        total_score=record.total_score,
        to_par=record.to_par,
        holes_completed=record.holes_completed or 0,
        updated_at=record.updated_at,
        hole_scores=[HoleScoreOut.model_validate(h) for h in record.hole_scores],
    )


def _load_scorecard(
    db: Session, me: Profile, group_post_id: int, operation: str
) -> tuple[GroupPost, GolfScorecardData | None]:
    post = group_posts.get_post(db, group_post_id)
    authorization.require(me, operation, post=post)
    return post, extensions.get_scorecard(db, post)


def _load_participant(
    db: Session, participant_id: int
) -> tuple[GroupPost | None, GroupPostParticipant | None]:
    participant = group_posts.get_participant(db, participant_id)
    if not participant:
        return None, None
    return group_posts.get_post(db, participant.group_post_id), participant


@router.post("/golf/scorecards", response_model=ScorecardEnvelope, status_code=201)
def create_golf_scorecard(
    payload: ScorecardCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post = group_posts.get_post(db, payload.group_post_id)
    authorization.require(me, authorization.CREATE_EXTENSION, post=post)

    data = payload.model_dump(exclude={"group_post_id"}, exclude_none=True)
    scorecard = extensions.create_scorecard(db, post, data)
    return ScorecardEnvelope(golf_data=ScorecardOut.model_validate(scorecard))


@router.get("/golf/scorecards", response_model=ScorecardEnvelope)
def get_golf_scorecard(
    group_post_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    _post, scorecard = _load_scorecard(db, me, group_post_id, authorization.READ_EXTENSION)
    if not scorecard:
        raise NotFoundError("Golf scorecard data not found")
    return ScorecardEnvelope(golf_data=ScorecardOut.model_validate(scorecard))


@router.patch("/golf/scorecards", response_model=ScorecardEnvelope)
def update_golf_scorecard(
    group_post_id: int,
    payload: ScorecardPatch,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post, scorecard = _load_scorecard(db, me, group_post_id, authorization.UPDATE_EXTENSION)
    if not scorecard:
        raise NotFoundError("Golf scorecard data not found")

    scorecard = extensions.update_scorecard(
        db, post, scorecard, payload.model_dump(exclude_unset=True)
    )
    return ScorecardEnvelope(golf_data=ScorecardOut.model_validate(scorecard))


@router.get(
    "/golf/participants/{participant_id}/scores", response_model=ParticipantScoresEnvelope
)
def get_participant_scores(
    participant_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post, participant = _load_participant(db, participant_id)
    authorization.require(me, authorization.READ_SCORES, post=post)

    record = scores.get_scores(db, participant)
    if not record:
        raise NotFoundError("Golf scores not found for this participant")
    return ParticipantScoresEnvelope(golf_scores=_scores_to_out(record))


@router.post(
    "/golf/participants/{participant_id}/scores",
    response_model=ParticipantScoresEnvelope,
    status_code=201,
)
def record_participant_scores(
    participant_id: int,
    payload: ScoresIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post, participant = _load_participant(db, participant_id)
    existing = scores.get_scores(db, participant) if participant else None
    authorization.require(
        me, authorization.RECORD_SCORES, post=post, participant=participant, scores=existing
    )

    entered_by = None
    if payload.entered_by:
        ref = payload.entered_by.strip()
        # The scorer is fixed by the first write and cannot be reassigned.
        if existing is not None and not existing.scores_confirmed:
            scorer = existing.entered_by_profile
            if scorer is None or scorer.external_id != ref:
                raise ValidationError("entered_by can only be set on the first score entry")
        entered_by = next((p.profile for p in post.participants if p.profile.external_id == ref), None)
        if entered_by is None:
            raise ValidationError("entered_by must be a participant of this group post")

    record = scores.record_hole_scores(
        db,
        post,
        participant,
        me,
        [s.model_dump() for s in payload.scores],
        entered_by=entered_by,
    )
    return ParticipantScoresEnvelope(golf_scores=_scores_to_out(record))


@router.post(
    "/golf/participants/{participant_id}/scores/confirm",
    response_model=ParticipantScoresEnvelope,
)
def confirm_participant_scores(
    participant_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post, participant = _load_participant(db, participant_id)
    existing = scores.get_scores(db, participant) if participant else None
    authorization.require(
        me, authorization.CONFIRM_SCORES, post=post, participant=participant, scores=existing
    )

    record = scores.confirm_scores(db, participant)
    return ParticipantScoresEnvelope(golf_scores=_scores_to_out(record))


@router.post(
    "/golf/participants/{participant_id}/scores/unlock",
    response_model=ParticipantScoresEnvelope,
)
def unlock_participant_scores(
    participant_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post, participant = _load_participant(db, participant_id)
    authorization.require(me, authorization.UNLOCK_SCORES, post=post)

    record = scores.unlock_scores(db, participant)
    return ParticipantScoresEnvelope(golf_scores=_scores_to_out(record))
