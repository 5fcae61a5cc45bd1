import datetime as dt

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from athletehub.api.deps import ensure_profile, get_current_user_id, get_db, get_notifier
from athletehub.core.errors import DomainError, NotFoundError, ValidationError
from athletehub.core.settings import settings
from athletehub.models.group_post import GroupPost, GroupPostParticipant
from athletehub.models.profile import Profile
from athletehub.services import attestation, authorization, group_posts
from athletehub.services.notifications import (
    GROUP_POST_ATTESTATION,
    GROUP_POST_INVITE,
    NotificationPublisher,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


class GroupPostCreate(BaseModel):
    type: str | None = None
    title: str | None = None
    date: dt.date | None = None
    description: str | None = None
    location: str | None = None
    visibility: str | None = None
    participant_ids: list[str] | None = None


class GroupPostPatch(BaseModel):
    title: str | None = None
    description: str | None = None
    date: dt.date | None = None
    location: str | None = None
    visibility: str | None = None
    status: str | None = None


class ParticipantsAdd(BaseModel):
    participant_ids: list[str] | None = None
    role: str | None = None


class ParticipantRemove(BaseModel):
    participant_id: str | None = None


class AttestIn(BaseModel):
    status: str | None = None


class ParticipantOut(BaseModel):
    id: int
    group_post_id: int
    profile_id: str
    role: str
    status: str
    attested_at: dt.datetime | None
    data_contributed: bool
    last_contribution: dt.datetime | None
    created_at: dt.datetime


class GroupPostOut(BaseModel):
    id: int
    creator_id: str
    type: str
    title: str
    description: str | None
    date: dt.date
    location: str | None
    visibility: str
    status: str
    post_id: int | None
    created_at: dt.datetime
    updated_at: dt.datetime
    participants: list[ParticipantOut]


class GroupPostEnvelope(BaseModel):
    group_post: GroupPostOut


class GroupPostPage(BaseModel):
    group_posts: list[GroupPostOut]
    has_more: bool
    next_cursor: str | None


class ParticipantsEnvelope(BaseModel):
    participants: list[ParticipantOut]


class ParticipantEnvelope(BaseModel):
    participant: ParticipantOut


class AttestOut(BaseModel):
    participant: ParticipantOut
    group_post: GroupPostOut


def _participant_to_out(p: GroupPostParticipant) -> ParticipantOut:
    return ParticipantOut(
        id=p.id,
        group_post_id=p.group_post_id,
        profile_id=p.profile.external_id,
        role=p.role,
        status=p.status,
        attested_at=p.attested_at,
        data_contributed=bool(p.data_contributed),
        last_contribution=p.last_contribution,
        created_at=p.created_at,
    )


def _post_to_out(post: GroupPost) -> GroupPostOut:
    return GroupPostOut(
        id=post.id,
        creator_id=post.creator.external_id,
        type=post.type,
        title=post.title,
        description=post.description,
        date=post.date,
        location=post.location,
        visibility=post.visibility,
        status=post.status,
        post_id=post.post_id,
        created_at=post.created_at,
        updated_at=post.updated_at,
        participants=[_participant_to_out(p) for p in post.participants],
    )


def _resolve_profile_refs(db: Session, refs: list[str]) -> list[Profile]:
    profiles: list[Profile] = []
    for ref in refs:
        ref = (ref or "").strip()
        if not ref:
            raise ValidationError("Empty participant reference")
        profiles.append(ensure_profile(db, ref))
    return profiles


def _load_post(db: Session, group_post_id: int) -> GroupPost | None:
    return group_posts.get_post(db, group_post_id)


def _invite_on_create(
    db: Session,
    post: GroupPost,
    creator: Profile,
    refs: list[str],
) -> list[GroupPostParticipant]:
    seen: set[str] = {creator.external_id}
    unique_refs = []
    for ref in refs:
        ref = (ref or "").strip()
        if ref and ref not in seen:
            seen.add(ref)
            unique_refs.append(ref)
    if not unique_refs:
        return []

    try:
        invitees = _resolve_profile_refs(db, unique_refs)
        return group_posts.add_participants(db, post, invitees, "participant")
    except (DomainError, SQLAlchemyError):
        # The post and creator row already exist; invitations can be retried.
        db.rollback()
        logger.warning("group_post.invite_on_create_failed", group_post_id=post.id, exc_info=True)
        return []


def _notify_invited(
    background_tasks: BackgroundTasks,
    notifier: NotificationPublisher,
    post: GroupPost,
    actor: Profile,
    rows: list[GroupPostParticipant],
) -> None:
    for row in rows:
        background_tasks.add_task(
            notifier.publish,
            GROUP_POST_INVITE,
            recipient_id=row.profile.external_id,
            actor_id=actor.external_id,
            group_post_id=post.id,
            role=row.role,
        )


@router.post("/group-posts", response_model=GroupPostEnvelope, status_code=201)
def create_group_post(
    payload: GroupPostCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    notifier: NotificationPublisher = Depends(get_notifier),
):
    creator = ensure_profile(db, user_id)
    authorization.require(creator, authorization.CREATE_POST)

    missing = [f for f in ("type", "title", "date") if not getattr(payload, f)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    post = group_posts.create_post(
        db,
        creator,
        type=payload.type,
        title=payload.title,
        date=payload.date,
        description=payload.description,
        location=payload.location,
        visibility=payload.visibility,
    )

    invited = _invite_on_create(db, post, creator, payload.participant_ids or [])
    _notify_invited(background_tasks, notifier, post, creator, invited)

    return GroupPostEnvelope(group_post=_post_to_out(_load_post(db, post.id)))


@router.get("/group-posts", response_model=GroupPostPage)
def list_group_posts(
    type_: str | None = Query(default=None, alias="type"),
    status: str | None = None,
    limit: int | None = None,
    cursor: str | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    if limit is None:
        limit = settings.GROUP_POSTS_PAGE_SIZE
    limit = min(limit, settings.GROUP_POSTS_PAGE_SIZE_MAX)

    posts, has_more, next_cursor = group_posts.list_posts(
        db, me, type=type_, status=status, limit=limit, cursor=cursor
    )
    return GroupPostPage(
        group_posts=[_post_to_out(p) for p in posts],
        has_more=has_more,
        next_cursor=next_cursor,
    )


@router.get("/group-posts/{group_post_id}", response_model=GroupPostEnvelope)
def get_group_post(
    group_post_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post = _load_post(db, group_post_id)
    authorization.require(me, authorization.READ_POST, post=post)
    return GroupPostEnvelope(group_post=_post_to_out(post))


@router.patch("/group-posts/{group_post_id}", response_model=GroupPostEnvelope)
def update_group_post(
    group_post_id: int,
    payload: GroupPostPatch,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post = _load_post(db, group_post_id)
    authorization.require(me, authorization.UPDATE_POST, post=post)

    group_posts.update_post(db, post, payload.model_dump(exclude_unset=True))
    return GroupPostEnvelope(group_post=_post_to_out(_load_post(db, group_post_id)))


@router.delete("/group-posts/{group_post_id}")
def delete_group_post(
    group_post_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post = _load_post(db, group_post_id)
    authorization.require(me, authorization.DELETE_POST, post=post)

    group_posts.delete_post(db, post)
    return {"ok": True}


@router.get("/group-posts/{group_post_id}/participants", response_model=ParticipantsEnvelope)
def list_group_post_participants(
    group_post_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post = _load_post(db, group_post_id)
    authorization.require(me, authorization.READ_PARTICIPANTS, post=post)

    rows = group_posts.list_participants(db, post)
    return ParticipantsEnvelope(participants=[_participant_to_out(p) for p in rows])


@router.post(
    "/group-posts/{group_post_id}/participants",
    response_model=ParticipantsEnvelope,
    status_code=201,
)
def add_group_post_participants(
    group_post_id: int,
    payload: ParticipantsAdd,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    notifier: NotificationPublisher = Depends(get_notifier),
):
    me = ensure_profile(db, user_id)
    post = _load_post(db, group_post_id)
    authorization.require(me, authorization.ADD_PARTICIPANTS, post=post)

    if not payload.participant_ids:
        raise ValidationError("participant_ids must be a non-empty array")

    profiles = _resolve_profile_refs(db, payload.participant_ids)
    rows = group_posts.add_participants(db, post, profiles, payload.role)
    _notify_invited(background_tasks, notifier, post, me, rows)

    return ParticipantsEnvelope(participants=[_participant_to_out(p) for p in rows])


@router.delete("/group-posts/{group_post_id}/participants")
def remove_group_post_participant(
    group_post_id: int,
    payload: ParticipantRemove,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    ref = (payload.participant_id or "").strip()
    if not ref:
        raise ValidationError("participant_id is required")

    post = _load_post(db, group_post_id)
    target = db.execute(select(Profile).where(Profile.external_id == ref)).scalars().one_or_none()
    authorization.require(
        me,
        authorization.REMOVE_PARTICIPANT,
        post=post,
        target_profile_id=target.id if target else None,
    )
    if not target:
        raise NotFoundError("Participant not found")

    group_posts.remove_participant(db, post, target.id)
    return {"ok": True}


@router.get("/group-posts/{group_post_id}/attest", response_model=ParticipantEnvelope)
def get_attestation(
    group_post_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    me = ensure_profile(db, user_id)
    post = _load_post(db, group_post_id)
    authorization.require(me, authorization.ATTEST, post=post)

    participant = attestation.get_attestation(db, post, me)
    return ParticipantEnvelope(participant=_participant_to_out(participant))


@router.post("/group-posts/{group_post_id}/attest", response_model=AttestOut)
def attest_group_post(
    group_post_id: int,
    payload: AttestIn,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    notifier: NotificationPublisher = Depends(get_notifier),
):
    me = ensure_profile(db, user_id)
    if payload.status not in attestation.ATTESTABLE_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(attestation.ATTESTABLE_STATUSES)}"
        )

    post = _load_post(db, group_post_id)
    authorization.require(me, authorization.ATTEST, post=post)

    participant = attestation.attest(db, post, me, payload.status)

    post = _load_post(db, group_post_id)
    if post.creator_id != me.id:
        background_tasks.add_task(
            notifier.publish,
            GROUP_POST_ATTESTATION,
            recipient_id=post.creator.external_id,
            actor_id=me.external_id,
            group_post_id=post.id,
            status=participant.status,
        )

    return AttestOut(participant=_participant_to_out(participant), group_post=_post_to_out(post))
