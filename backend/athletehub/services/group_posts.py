"""Group posts and their participant rows.

Creation is deliberately two-phase: the post is committed first and the creator's
participant row second. A reader may observe the post before the creator row
exists, and if the second write fails the post is kept and the failure logged.
Callers must tolerate a post that is (briefly or permanently) missing its creator
participant; authorization treats `creator_id` as authoritative for that reason.
"""

import datetime as dt

import structlog
from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from athletehub.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from athletehub.models.group_post import (
    GROUP_POST_STATUSES,
    GROUP_POST_TYPES,
    PARTICIPANT_ROLES,
    VISIBILITIES,
    GroupPost,
    GroupPostParticipant,
)
from athletehub.models.profile import Profile

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = ("title", "description", "date", "location", "visibility", "status")
INVITABLE_ROLES = tuple(r for r in PARTICIPANT_ROLES if r != "creator")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _require_one_of(field: str, value, allowed: tuple[str, ...]) -> None:
    if value not in allowed:
        raise ValidationError(f"Invalid {field}. Must be one of: {', '.join(allowed)}")


def _clean_title(title) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("title is required")
    return title


def _coerce_date(value) -> dt.date:
    if value is None or value == "":
        raise ValidationError("date is required")
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("date must be an ISO date (YYYY-MM-DD)")


def create_post(
    db: Session,
    creator: Profile,
    *,
    type: str,
    title: str,
    date,
    description: str | None = None,
    location: str | None = None,
    visibility: str | None = None,
    status: str | None = None,
    post_id: int | None = None,
) -> GroupPost:
    _require_one_of("type", type, GROUP_POST_TYPES)
    visibility = visibility or "public"
    _require_one_of("visibility", visibility, VISIBILITIES)
    status = status or "pending"
    _require_one_of("status", status, GROUP_POST_STATUSES)

    post = GroupPost(
        creator_id=creator.id,
        type=type,
        title=_clean_title(title),
        description=description,
        date=_coerce_date(date),
        location=location,
        visibility=visibility,
        status=status,
        post_id=post_id,
    )
    db.add(post)
    db.commit()
    logger.info("group_post.created", group_post_id=post.id, type=type, creator_id=creator.id)

    try:
        db.add(
            GroupPostParticipant(
                group_post_id=post.id,
                profile_id=creator.id,
                role="creator",
                status="confirmed",
                attested_at=_utcnow(),
                data_contributed=False,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "group_post.creator_participant_failed",
            group_post_id=post.id,
            creator_id=creator.id,
            exc_info=True,
        )

    db.refresh(post)
    return post


def get_post(db: Session, group_post_id: int) -> GroupPost | None:
    return db.execute(
        select(GroupPost)
        .options(selectinload(GroupPost.participants).selectinload(GroupPostParticipant.profile))
        .where(GroupPost.id == group_post_id)
    ).scalars().one_or_none()


def get_participant(db: Session, participant_id: int) -> GroupPostParticipant | None:
    return db.execute(
        select(GroupPostParticipant).where(GroupPostParticipant.id == participant_id)
    ).scalars().one_or_none()


def find_participant(db: Session, post: GroupPost, profile_id: int) -> GroupPostParticipant | None:
    return db.execute(
        select(GroupPostParticipant).where(
            GroupPostParticipant.group_post_id == post.id,
            GroupPostParticipant.profile_id == profile_id,
        )
    ).scalars().one_or_none()


def list_participants(db: Session, post: GroupPost) -> list[GroupPostParticipant]:
    return list(
        db.execute(
            select(GroupPostParticipant)
            .options(selectinload(GroupPostParticipant.profile))
            .where(GroupPostParticipant.group_post_id == post.id)
            .order_by(GroupPostParticipant.id.asc())
        ).scalars().all()
    )


def _readable_clause(viewer: Profile):
    is_member = exists().where(
        GroupPostParticipant.group_post_id == GroupPost.id,
        GroupPostParticipant.profile_id == viewer.id,
    )
    return or_(GroupPost.visibility == "public", GroupPost.creator_id == viewer.id, is_member)


def list_posts(
    db: Session,
    viewer: Profile,
    *,
    type: str | None = None,
    status: str | None = None,
    limit: int = 20,
    cursor: str | None = None,
) -> tuple[list[GroupPost], bool, str | None]:
    if type is not None:
        _require_one_of("type", type, GROUP_POST_TYPES)
    if status is not None:
        _require_one_of("status", status, GROUP_POST_STATUSES)
    if limit < 1:
        raise ValidationError("limit must be positive")

    stmt = (
        select(GroupPost)
        .options(selectinload(GroupPost.participants).selectinload(GroupPostParticipant.profile))
        .where(_readable_clause(viewer))
        .order_by(GroupPost.id.desc())
        .limit(limit + 1)
    )
    if type is not None:
        stmt = stmt.where(GroupPost.type == type)
    if status is not None:
        stmt = stmt.where(GroupPost.status == status)
    if cursor:
        try:
            before_id = int(cursor)
        except ValueError:
            raise ValidationError("Invalid cursor")
        stmt = stmt.where(GroupPost.id < before_id)

    rows = list(db.execute(stmt).scalars().all())
    has_more = len(rows) > limit
    rows = rows[:limit]
    next_cursor = str(rows[-1].id) if has_more and rows else None
    return rows, has_more, next_cursor


def add_participants(
    db: Session,
    post: GroupPost,
    profiles: list[Profile],
    role: str | None = None,
) -> list[GroupPostParticipant]:
    role = role or "participant"
    _require_one_of("role", role, INVITABLE_ROLES)
    if not profiles:
        raise ValidationError("participant_ids must be a non-empty array")

    ids = [p.id for p in profiles]
    if len(set(ids)) != len(ids):
        raise ValidationError("participant_ids must not contain duplicates")

    existing = db.execute(
        select(GroupPostParticipant.profile_id).where(
            GroupPostParticipant.group_post_id == post.id,
            GroupPostParticipant.profile_id.in_(ids),
        )
    ).scalars().all()
    if existing or post.creator_id in ids:
        raise ConflictError("One or more participants are already in this group post")

    rows = [
        GroupPostParticipant(
            group_post_id=post.id,
            profile_id=p.id,
            role=role,
            status="pending",
            data_contributed=False,
        )
        for p in profiles
    ]
    db.add_all(rows)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("One or more participants are already in this group post")

    for row in rows:
        db.refresh(row)
    logger.info(
        "group_post.participants_added", group_post_id=post.id, count=len(rows), role=role
    )
    return rows


def remove_participant(db: Session, post: GroupPost, profile_id: int) -> None:
    if profile_id == post.creator_id:
        raise ForbiddenError("Cannot remove the creator from the group post")

    row = find_participant(db, post, profile_id)
    if not row:
        raise NotFoundError("Participant not found")

    # Cascades to the participant's golf scores and hole scores.
    db.delete(row)
    db.commit()
    logger.info("group_post.participant_removed", group_post_id=post.id, profile_id=profile_id)


def update_post(db: Session, post: GroupPost, fields: dict) -> GroupPost:
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    if not fields:
        raise ValidationError("No fields to update")

    if "title" in fields:
        fields["title"] = _clean_title(fields["title"])
    if "date" in fields:
        fields["date"] = _coerce_date(fields["date"])
    if "visibility" in fields:
        _require_one_of("visibility", fields["visibility"], VISIBILITIES)
    if "status" in fields:
        _require_one_of("status", fields["status"], GROUP_POST_STATUSES)

    for name, value in fields.items():
        setattr(post, name, value)

    db.commit()
    db.refresh(post)
    logger.info("group_post.updated", group_post_id=post.id, fields=sorted(fields))
    return post


def delete_post(db: Session, post: GroupPost) -> None:
    group_post_id = post.id
    # ORM cascade removes participants, the scorecard, and all score data.
    db.delete(post)
    db.commit()
    logger.info("group_post.deleted", group_post_id=group_post_id)
