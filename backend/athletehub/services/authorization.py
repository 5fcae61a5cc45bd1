"""Capability checks for group posts and their sub-entities.

`can` is a pure decision function: it looks only at the objects handed to it
(the post with its participants loaded, and optionally a participant row and its
score record) and never touches the session. Routers call `require` before any
mutation so a denial always happens before a write is attempted.
"""

from dataclasses import dataclass

from athletehub.core.errors import ForbiddenError, NotFoundError, UnauthenticatedError
from athletehub.models.golf import GolfParticipantScores
from athletehub.models.group_post import GroupPost, GroupPostParticipant
from athletehub.models.profile import Profile

CREATE_POST = "create_post"
READ_POST = "read_post"
UPDATE_POST = "update_post"
DELETE_POST = "delete_post"
READ_PARTICIPANTS = "read_participants"
ADD_PARTICIPANTS = "add_participants"
REMOVE_PARTICIPANT = "remove_participant"
ATTEST = "attest"
CREATE_EXTENSION = "create_extension"
UPDATE_EXTENSION = "update_extension"
READ_EXTENSION = "read_extension"
READ_SCORES = "read_scores"
RECORD_SCORES = "record_scores"
CONFIRM_SCORES = "confirm_scores"
UNLOCK_SCORES = "unlock_scores"

UNAUTHORIZED = "unauthorized"
FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"

_READ_OPERATIONS = {READ_POST, READ_PARTICIPANTS, READ_EXTENSION, READ_SCORES}
_CREATOR_OPERATIONS = {UPDATE_POST, DELETE_POST, CREATE_EXTENSION, UPDATE_EXTENSION, UNLOCK_SCORES}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None
    message: str | None = None


ALLOW = Decision(allowed=True)


def _deny(reason: str, message: str) -> Decision:
    return Decision(allowed=False, reason=reason, message=message)


def membership(post: GroupPost, profile_id: int) -> GroupPostParticipant | None:
    return next((p for p in post.participants if p.profile_id == profile_id), None)


def is_creator(post: GroupPost, actor: Profile) -> bool:
    return post.creator_id == actor.id


def is_organizer(post: GroupPost, actor: Profile) -> bool:
    row = membership(post, actor.id)
    return row is not None and row.role == "organizer"


def can_read(post: GroupPost, actor: Profile) -> bool:
    # Creator counts even while their participant row is not yet visible.
    return (
        post.visibility == "public"
        or is_creator(post, actor)
        or membership(post, actor.id) is not None
    )


def can(
    actor: Profile | None,
    operation: str,
    *,
    post: GroupPost | None = None,
    participant: GroupPostParticipant | None = None,
    scores: GolfParticipantScores | None = None,
    target_profile_id: int | None = None,
) -> Decision:
    if actor is None:
        return _deny(UNAUTHORIZED, "Authentication required")

    if operation == CREATE_POST:
        return ALLOW

    if post is None or not can_read(post, actor):
        return _deny(NOT_FOUND, "Group post not found")

    if operation in _READ_OPERATIONS:
        return ALLOW

    if operation in _CREATOR_OPERATIONS:
        if is_creator(post, actor):
            return ALLOW
        return _deny(FORBIDDEN, f"Only the creator can perform {operation}")

    if operation == ADD_PARTICIPANTS:
        if is_creator(post, actor) or is_organizer(post, actor):
            return ALLOW
        return _deny(FORBIDDEN, "Only creator or organizers can add participants")

    if operation == REMOVE_PARTICIPANT:
        if is_creator(post, actor) or is_organizer(post, actor) or target_profile_id == actor.id:
            return ALLOW
        return _deny(
            FORBIDDEN,
            "Only creator, organizers, or the participant themselves can remove participants",
        )

    if operation == ATTEST:
        # Membership is not disclosed: a non-participant sees "not found".
        if membership(post, actor.id) is None:
            return _deny(NOT_FOUND, "You are not a participant in this group post")
        return ALLOW

    if operation in (RECORD_SCORES, CONFIRM_SCORES):
        if participant is None or participant.group_post_id != post.id:
            return _deny(NOT_FOUND, "Participant not found")
        if participant.profile_id == actor.id:
            return ALLOW
        if scores is not None and scores.entered_by == actor.id:
            return ALLOW
        return _deny(FORBIDDEN, "Only the participant or the recorded scorer can enter scores")

    return _deny(FORBIDDEN, f"Unknown operation: {operation}")


def require(actor: Profile | None, operation: str, **context) -> None:
    decision = can(actor, operation, **context)
    if decision.allowed:
        return
    if decision.reason == UNAUTHORIZED:
        raise UnauthenticatedError(decision.message)
    if decision.reason == NOT_FOUND:
        raise NotFoundError(decision.message)
    raise ForbiddenError(decision.message)
