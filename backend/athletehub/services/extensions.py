"""Sport-specific extension data attached to group posts.

Each sport registers a `SportExtension` naming the group post type it binds to,
the ORM model holding its data, and a validator for the create/update payload.
Golf is the only sport with a full extension today; other post types have none.
"""

from collections.abc import Callable
from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from athletehub.core.errors import ConflictError, ScoresLockedError, ValidationError
from athletehub.models.golf import ROUND_TYPES, GolfParticipantScores, GolfScorecardData
from athletehub.models.group_post import GroupPost, GroupPostParticipant

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SportExtension:
    key: str
    post_type: str
    model: type
    validate: Callable[[dict, bool], dict]


GOLF_SCORECARD_FIELDS = (
    "course_name",
    "course_id",
    "round_type",
    "holes_played",
    "tee_color",
    "slope_rating",
    "course_rating",
    "weather_conditions",
    "temperature",
    "wind_speed",
)
# Fields frozen once any participant of the round has confirmed scores.
GOLF_LOCKED_FIELDS = ("round_type", "holes_played")


def validate_golf_scorecard(data: dict, partial: bool = False) -> dict:
    unknown = set(data) - set(GOLF_SCORECARD_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown scorecard fields: {', '.join(sorted(unknown))}")

    if not partial:
        missing = [f for f in ("course_name", "round_type", "holes_played") if data.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cleaned = dict(data)

    if "course_name" in cleaned:
        course_name = (cleaned["course_name"] or "").strip()
        if not course_name:
            raise ValidationError("course_name is required")
        cleaned["course_name"] = course_name

    if "round_type" in cleaned and cleaned["round_type"] not in ROUND_TYPES:
        raise ValidationError('round_type must be "outdoor" or "indoor"')

    if "holes_played" in cleaned:
        holes = cleaned["holes_played"]
        if isinstance(holes, bool) or not isinstance(holes, int) or not 1 <= holes <= 18:
            raise ValidationError("holes_played must be between 1 and 18")

    for rating in ("slope_rating", "course_rating"):
        value = cleaned.get(rating)
        if value is not None and value <= 0:
            raise ValidationError(f"{rating} must be positive")

    if cleaned.get("wind_speed") is not None and cleaned["wind_speed"] < 0:
        raise ValidationError("wind_speed must not be negative")

    return cleaned


SPORT_EXTENSIONS: dict[str, SportExtension] = {
    "golf": SportExtension(
        key="golf",
        post_type="golf_round",
        model=GolfScorecardData,
        validate=validate_golf_scorecard,
    ),
}


def extension_for(key: str) -> SportExtension:
    return SPORT_EXTENSIONS[key]


def _check_post_type(post: GroupPost, extension: SportExtension) -> None:
    if post.type != extension.post_type:
        raise ValidationError(
            f'Group post type must be "{extension.post_type}" to add {extension.key} data'
        )


def get_scorecard(db: Session, post: GroupPost) -> GolfScorecardData | None:
    return db.execute(
        select(GolfScorecardData).where(GolfScorecardData.group_post_id == post.id)
    ).scalars().one_or_none()


def create_scorecard(db: Session, post: GroupPost, data: dict) -> GolfScorecardData:
    extension = extension_for("golf")
    _check_post_type(post, extension)
    cleaned = extension.validate(data, False)

    if get_scorecard(db, post) is not None:
        raise ConflictError("Golf scorecard data already exists for this group post")

    scorecard = GolfScorecardData(group_post_id=post.id, **cleaned)
    db.add(scorecard)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent create for the same post.
        db.rollback()
        raise ConflictError("Golf scorecard data already exists for this group post")

    db.refresh(scorecard)
    logger.info("golf.scorecard_created", group_post_id=post.id, scorecard_id=scorecard.id)
    return scorecard


def _has_confirmed_scores(db: Session, post: GroupPost) -> bool:
    return (
        db.execute(
            select(GolfParticipantScores.id)
            .join(GroupPostParticipant, GroupPostParticipant.id == GolfParticipantScores.participant_id)
            .where(
                GroupPostParticipant.group_post_id == post.id,
                GolfParticipantScores.scores_confirmed.is_(True),
            )
            .limit(1)
        ).first()
        is not None
    )


def update_scorecard(
    db: Session, post: GroupPost, scorecard: GolfScorecardData, fields: dict
) -> GolfScorecardData:
    if not fields:
        raise ValidationError("No fields to update")

    cleaned = extension_for("golf").validate(fields, True)

    touched_locked = [
        f for f in GOLF_LOCKED_FIELDS if f in cleaned and cleaned[f] != getattr(scorecard, f)
    ]
    if touched_locked and _has_confirmed_scores(db, post):
        raise ScoresLockedError(
            f"Cannot change {', '.join(touched_locked)} after scores have been confirmed"
        )

    for name, value in cleaned.items():
        setattr(scorecard, name, value)

    db.commit()
    db.refresh(scorecard)
    logger.info("golf.scorecard_updated", group_post_id=post.id, fields=sorted(cleaned))
    return scorecard
