"""add profiles, group posts, participants and golf extension tables

Revision ID: a1c4e7b90d21
Revises:
Create Date: 2026-10-16

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c4e7b90d21"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_profiles_external_id"), "profiles", ["external_id"], unique=True)
    op.create_index(op.f("ix_profiles_username"), "profiles", ["username"], unique=True)

    op.create_table(
        "group_posts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("creator_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("visibility", sa.String(length=32), server_default="public", nullable=False),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["creator_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_group_posts_creator_id"), "group_posts", ["creator_id"], unique=False)
    op.create_index(op.f("ix_group_posts_type"), "group_posts", ["type"], unique=False)
    op.create_index(op.f("ix_group_posts_date"), "group_posts", ["date"], unique=False)
    op.create_index(op.f("ix_group_posts_status"), "group_posts", ["status"], unique=False)

    op.create_table(
        "group_post_participants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_post_id", sa.Integer(), nullable=False),
        sa.Column("profile_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=16), server_default="participant", nullable=False),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("attested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_contributed", sa.Boolean(), server_default="0", nullable=False),
        sa.Column("last_contribution", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["group_post_id"], ["group_posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_post_id", "profile_id", name="uq_group_post_participant"),
    )
    op.create_index(
        op.f("ix_group_post_participants_group_post_id"),
        "group_post_participants",
        ["group_post_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_group_post_participants_profile_id"),
        "group_post_participants",
        ["profile_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_group_post_participants_status"),
        "group_post_participants",
        ["status"],
        unique=False,
    )
    op.create_index(
        "uq_group_post_creator",
        "group_post_participants",
        ["group_post_id"],
        unique=True,
        sqlite_where=sa.text("role = 'creator'"),
        postgresql_where=sa.text("role = 'creator'"),
    )

    op.create_table(
        "golf_scorecard_data",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_post_id", sa.Integer(), nullable=False),
        sa.Column("course_name", sa.String(length=200), nullable=False),
        sa.Column("course_id", sa.String(length=64), nullable=True),
        sa.Column("round_type", sa.String(length=16), nullable=False),
        sa.Column("holes_played", sa.Integer(), nullable=False),
        sa.Column("tee_color", sa.String(length=32), nullable=True),
        sa.Column("slope_rating", sa.Float(), nullable=True),
        sa.Column("course_rating", sa.Float(), nullable=True),
        sa.Column("weather_conditions", sa.String(length=64), nullable=True),
        sa.Column("temperature", sa.Integer(), nullable=True),
        sa.Column("wind_speed", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("holes_played BETWEEN 1 AND 18", name="ck_golf_scorecard_holes_played"),
        sa.ForeignKeyConstraint(["group_post_id"], ["group_posts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_golf_scorecard_data_group_post_id"),
        "golf_scorecard_data",
        ["group_post_id"],
        unique=True,
    )

    op.create_table(
        "golf_participant_scores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("entered_by", sa.Integer(), nullable=True),
        sa.Column("scores_confirmed", sa.Boolean(), server_default="0", nullable=False),
        sa.Column("total_score", sa.Integer(), nullable=True),
        sa.Column("to_par", sa.Integer(), nullable=True),
        sa.Column("holes_completed", sa.Integer(), server_default="0", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["participant_id"], ["group_post_participants.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["entered_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_golf_participant_scores_participant_id"),
        "golf_participant_scores",
        ["participant_id"],
        unique=True,
    )
    op.create_index(
        op.f("ix_golf_participant_scores_entered_by"),
        "golf_participant_scores",
        ["entered_by"],
        unique=False,
    )

    op.create_table(
        "golf_hole_scores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("golf_participant_id", sa.Integer(), nullable=False),
        sa.Column("hole_number", sa.Integer(), nullable=False),
        sa.Column("strokes", sa.Integer(), nullable=False),
        sa.Column("putts", sa.Integer(), nullable=True),
        sa.Column("fairway_hit", sa.Boolean(), nullable=True),
        sa.Column("green_in_regulation", sa.Boolean(), nullable=True),
        sa.Column("par", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("hole_number BETWEEN 1 AND 18", name="ck_golf_hole_number"),
        sa.CheckConstraint("strokes BETWEEN 1 AND 15", name="ck_golf_hole_strokes"),
        sa.CheckConstraint("putts IS NULL OR putts >= 0", name="ck_golf_hole_putts"),
        sa.ForeignKeyConstraint(
            ["golf_participant_id"], ["golf_participant_scores.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("golf_participant_id", "hole_number", name="uq_golf_hole_score"),
    )
    op.create_index(
        op.f("ix_golf_hole_scores_golf_participant_id"),
        "golf_hole_scores",
        ["golf_participant_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_golf_hole_scores_golf_participant_id"), table_name="golf_hole_scores")
    op.drop_table("golf_hole_scores")
    op.drop_index(op.f("ix_golf_participant_scores_entered_by"), table_name="golf_participant_scores")
    op.drop_index(
        op.f("ix_golf_participant_scores_participant_id"), table_name="golf_participant_scores"
    )
    op.drop_table("golf_participant_scores")
    op.drop_index(op.f("ix_golf_scorecard_data_group_post_id"), table_name="golf_scorecard_data")
    op.drop_table("golf_scorecard_data")
    op.drop_index("uq_group_post_creator", table_name="group_post_participants")
    op.drop_index(op.f("ix_group_post_participants_status"), table_name="group_post_participants")
    op.drop_index(op.f("ix_group_post_participants_profile_id"), table_name="group_post_participants")
    op.drop_index(
        op.f("ix_group_post_participants_group_post_id"), table_name="group_post_participants"
    )
    op.drop_table("group_post_participants")
    op.drop_index(op.f("ix_group_posts_status"), table_name="group_posts")
    op.drop_index(op.f("ix_group_posts_date"), table_name="group_posts")
    op.drop_index(op.f("ix_group_posts_type"), table_name="group_posts")
    op.drop_index(op.f("ix_group_posts_creator_id"), table_name="group_posts")
    op.drop_table("group_posts")
    op.drop_index(op.f("ix_profiles_username"), table_name="profiles")
    op.drop_index(op.f("ix_profiles_external_id"), table_name="profiles")
    op.drop_table("profiles")
