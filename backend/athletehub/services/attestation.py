"""Participant attestation.

States are pending, confirmed, declined and maybe. Any of the three attestable
states can be entered from any state, including itself, so a participant can
change their mind indefinitely:

- entering confirmed stamps ``attested_at``; re-confirming keeps the stamp;
- declined clears ``attested_at``;
- maybe leaves ``attested_at`` as it was.
"""

import datetime as dt

import structlog
from sqlalchemy.orm import Session

from athletehub.core.errors import NotFoundError, ValidationError
from athletehub.models.group_post import PARTICIPANT_STATUSES, GroupPost, GroupPostParticipant
from athletehub.models.profile import Profile
from athletehub.services.group_posts import find_participant

logger = structlog.get_logger(__name__)

ATTESTABLE_STATUSES = tuple(s for s in PARTICIPANT_STATUSES if s != "pending")


def apply_transition(
    participant: GroupPostParticipant,
    status: str,
    now: dt.datetime | None = None,
) -> GroupPostParticipant:
    if status not in ATTESTABLE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ATTESTABLE_STATUSES)}")

    now = now or dt.datetime.now(dt.timezone.utc)

    if status == "confirmed":
        if participant.status != "confirmed" or participant.attested_at is None:
            participant.attested_at = now
    elif status == "declined":
        participant.attested_at = None

    participant.status = status
    return participant


def get_attestation(db: Session, post: GroupPost, actor: Profile) -> GroupPostParticipant:
    participant = find_participant(db, post, actor.id)
    if not participant:
        raise NotFoundError("You are not a participant in this group post")
    return participant


def attest(db: Session, post: GroupPost, actor: Profile, status: str) -> GroupPostParticipant:
    if status not in ATTESTABLE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ATTESTABLE_STATUSES)}")

    participant = get_attestation(db, post, actor)
    previous = participant.status
    apply_transition(participant, status)
    db.commit()
    db.refresh(participant)

    logger.info(
        "group_post.attested",
        group_post_id=post.id,
        participant_id=participant.id,
        previous_status=previous,
        status=status,
    )
    return participant
