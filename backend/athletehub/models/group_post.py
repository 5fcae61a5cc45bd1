import datetime as dt

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from athletehub.db.base import Base

GROUP_POST_TYPES = (
    "golf_round",
    "hockey_game",
    "volleyball_match",
    "basketball_game",
    "social_event",
    "practice_session",
    "tournament_round",
    "watch_party",
)
VISIBILITIES = ("public", "private", "participants_only")
GROUP_POST_STATUSES = ("pending", "active", "completed", "cancelled")

PARTICIPANT_ROLES = ("creator", "organizer", "participant", "spectator")
PARTICIPANT_STATUSES = ("pending", "confirmed", "declined", "maybe")


class GroupPost(Base):
    __tablename__ = "group_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Set once at creation; never part of an update.
    creator_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    location: Mapped[str | None] = mapped_column(String(200))

    visibility: Mapped[str] = mapped_column(String(32), nullable=False, server_default="public")
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default="pending", index=True
    )

    # Optional link to a plain social post (posts live outside this service).
    post_id: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    creator = relationship("Profile")
    participants: Mapped[list["GroupPostParticipant"]] = relationship(
        back_populates="group_post",
        cascade="all, delete-orphan",
        order_by="GroupPostParticipant.id",
    )
    golf_scorecard = relationship(
        "GolfScorecardData",
        back_populates="group_post",
        cascade="all, delete-orphan",
        uselist=False,
    )


class GroupPostParticipant(Base):
    __tablename__ = "group_post_participants"
    __table_args__ = (
        UniqueConstraint("group_post_id", "profile_id", name="uq_group_post_participant"),
        # At most one creator row per post.
        Index(
            "uq_group_post_creator",
            "group_post_id",
            unique=True,
            sqlite_where=text("role = 'creator'"),
            postgresql_where=text("role = 'creator'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group_post_id: Mapped[int] = mapped_column(
        ForeignKey("group_posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    profile_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="participant")
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default="pending", index=True
    )
    attested_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    data_contributed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="0")
    last_contribution: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    group_post: Mapped["GroupPost"] = relationship(back_populates="participants")
    profile = relationship("Profile")
    golf_scores = relationship(
        "GolfParticipantScores",
        back_populates="participant",
        cascade="all, delete-orphan",
        uselist=False,
    )
