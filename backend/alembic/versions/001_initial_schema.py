"""Initial schema: accounts, courts, slot templates, requests, reservations, usage ledger.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("tier", sa.String(20), nullable=False, server_default=sa.text("'standard'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("tier IN ('priority', 'standard')", name="check_user_tier"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "courts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_courts_id", "courts", ["id"])

    op.create_table(
        "time_slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_peak", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.UniqueConstraint("day_of_week", "start_time", name="uq_time_slot_day_start"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_time_slot_day"),
        sa.CheckConstraint("duration_minutes > 0", name="check_time_slot_duration_positive"),
    )
    op.create_index("ix_time_slots_id", "time_slots", ["id"])
    op.create_index("ix_time_slots_day_of_week", "time_slots", ["day_of_week"])

    op.create_table(
        "booking_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("slot_key", sa.String(5), nullable=False),
        sa.Column("player_count", sa.Integer(), nullable=False),
        sa.Column("participant_ids", sa.JSON(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        *_timestamps(),
        sa.CheckConstraint("player_count BETWEEN 2 AND 4", name="check_request_player_count"),
        sa.CheckConstraint("status IN ('pending', 'resolved', 'cancelled')", name="check_request_status"),
    )
    op.create_index("ix_booking_requests_id", "booking_requests", ["id"])
    op.create_index("ix_booking_requests_user_id", "booking_requests", ["user_id"])
    # The lottery reads its pool with exactly this predicate
    op.create_index("ix_booking_requests_pool", "booking_requests", ["target_date", "slot_key", "status"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("court_id", sa.Integer(), sa.ForeignKey("courts.id"), nullable=False),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("slot_key", sa.String(5), nullable=False),
        sa.Column("player_count", sa.Integer(), nullable=False),
        sa.Column("participant_ids", sa.JSON(), nullable=False),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("booking_requests.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("player_count BETWEEN 2 AND 4", name="check_reservation_player_count"),
        sa.CheckConstraint(
            "status IN ('confirmed', 'completed', 'cancelled')", name="check_reservation_status"
        ),
    )
    op.create_index("ix_reservations_id", "reservations", ["id"])
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])
    op.create_index("ix_reservations_court_id", "reservations", ["court_id"])
    op.create_index("ix_reservations_request_id", "reservations", ["request_id"])
    op.create_index("ix_reservations_date_slot", "reservations", ["target_date", "slot_key", "status"])
    # NO DOUBLE BOOKING: at most one confirmed reservation per court and slot.
    # Cancelled and completed rows fall outside the index and never block a slot.
    op.create_index(
        "uq_reservation_active_slot",
        "reservations",
        ["court_id", "target_date", "slot_key"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
        sqlite_where=sa.text("status = 'confirmed'"),
    )

    op.create_table(
        "usage_counters",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_reset_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("count >= 0", name="check_usage_count_non_negative"),
    )
    op.create_index("ix_usage_counters_id", "usage_counters", ["id"])

    op.create_table(
        "usage_resets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reset_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("counters_reset", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_usage_resets_id", "usage_resets", ["id"])
    op.create_index("ix_usage_resets_reset_at", "usage_resets", ["reset_at"])


def downgrade() -> None:
    op.drop_table("usage_resets")
    op.drop_table("usage_counters")
    op.drop_table("reservations")
    op.drop_table("booking_requests")
    op.drop_table("time_slots")
    op.drop_table("courts")
    op.drop_table("users")
