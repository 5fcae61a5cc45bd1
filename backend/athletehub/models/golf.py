from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from athletehub.db.base import Base

ROUND_TYPES = ("outdoor", "indoor")


class GolfScorecardData(Base):
    __tablename__ = "golf_scorecard_data"
    __table_args__ = (
        CheckConstraint("holes_played BETWEEN 1 AND 18", name="ck_golf_scorecard_holes_played"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # One scorecard per group post.
    group_post_id: Mapped[int] = mapped_column(
        ForeignKey("group_posts.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )

    course_name: Mapped[str] = mapped_column(String(200), nullable=False)
    course_id: Mapped[str | None] = mapped_column(String(64))
    round_type: Mapped[str] = mapped_column(String(16), nullable=False)
    holes_played: Mapped[int] = mapped_column(Integer, nullable=False)

    tee_color: Mapped[str | None] = mapped_column(String(32))
    slope_rating: Mapped[float | None] = mapped_column(Float)
    course_rating: Mapped[float | None] = mapped_column(Float)
    weather_conditions: Mapped[str | None] = mapped_column(String(64))
    temperature: Mapped[int | None] = mapped_column(Integer)
    wind_speed: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    group_post = relationship("GroupPost", back_populates="golf_scorecard")


class GolfParticipantScores(Base):
    __tablename__ = "golf_participant_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("group_post_participants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    entered_by: Mapped[int | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), index=True
    )
    scores_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="0")

    total_score: Mapped[int | None] = mapped_column(Integer)
    to_par: Mapped[int | None] = mapped_column(Integer)
    holes_completed: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    participant = relationship("GroupPostParticipant", back_populates="golf_scores")
    entered_by_profile = relationship("Profile")
    hole_scores: Mapped[list["GolfHoleScore"]] = relationship(
        back_populates="participant_scores",
        cascade="all, delete-orphan",
        order_by="GolfHoleScore.hole_number",
    )


class GolfHoleScore(Base):
    __tablename__ = "golf_hole_scores"
    __table_args__ = (
        UniqueConstraint("golf_participant_id", "hole_number", name="uq_golf_hole_score"),
        CheckConstraint("hole_number BETWEEN 1 AND 18", name="ck_golf_hole_number"),
        CheckConstraint("strokes BETWEEN 1 AND 15", name="ck_golf_hole_strokes"),
        CheckConstraint("putts IS NULL OR putts >= 0", name="ck_golf_hole_putts"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    golf_participant_id: Mapped[int] = mapped_column(
        ForeignKey("golf_participant_scores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hole_number: Mapped[int] = mapped_column(Integer, nullable=False)
    strokes: Mapped[int] = mapped_column(Integer, nullable=False)
    putts: Mapped[int | None] = mapped_column(Integer)
    fairway_hit: Mapped[bool | None] = mapped_column(Boolean)
    green_in_regulation: Mapped[bool | None] = mapped_column(Boolean)
    # Par is optional; totals assume par 4 when it is missing.
    par: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    participant_scores: Mapped["GolfParticipantScores"] = relationship(back_populates="hole_scores")
