"""Initial schema: employees, seats, bookings with partial unique indexes.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_BOOKING = sa.text("status IN ('confirmed', 'checked_in')")


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("employee_code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'employee'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('employee', 'admin')", name="check_employee_role"),
        sa.CheckConstraint("status IN ('active', 'inactive')", name="check_employee_status"),
    )
    op.create_index("ix_employees_id", "employees", ["id"])
    op.create_index("ix_employees_employee_code", "employees", ["employee_code"], unique=True)
    op.create_index("ix_employees_email", "employees", ["email"], unique=True)

    op.create_table(
        "seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("seat_number", sa.String(20), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_seats_id", "seats", ["id"])
    # Seat numbers only need to be unique among live seats; a deleted seat's
    # number can be handed out again.
    op.create_index(
        "uq_seats_live_seat_number",
        "seats",
        ["seat_number"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("seat_id", sa.Integer(), sa.ForeignKey("seats.id"), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("idempotency_key", sa.String(64), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("employee_id", "idempotency_key", name="uq_bookings_employee_idempotency_key"),
        sa.CheckConstraint(
            "status IN ('confirmed', 'checked_in', 'cancelled', 'expired')",
            name="check_booking_status",
        ),
        sa.CheckConstraint(
            "(status = 'checked_in' AND check_in_time IS NOT NULL)"
            " OR (status <> 'checked_in' AND check_in_time IS NULL)",
            name="check_booking_check_in_time",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_employee_id", "bookings", ["employee_id"])
    op.create_index("ix_bookings_seat_id", "bookings", ["seat_id"])
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"])
    # THE double-booking guard. Two concurrent INSERTs for the same seat/day
    # (or the same employee/day) cannot both commit while either is active;
    # cancelled and expired rows drop out of the index and free the key.
    op.create_index(
        "uq_bookings_active_seat_date",
        "bookings",
        ["seat_id", "booking_date"],
        unique=True,
        postgresql_where=ACTIVE_BOOKING,
    )
    op.create_index(
        "uq_bookings_active_employee_date",
        "bookings",
        ["employee_id", "booking_date"],
        unique=True,
        postgresql_where=ACTIVE_BOOKING,
    )
    # Expiry sweeper: WHERE status = 'confirmed' AND booking_date < today
    op.create_index("ix_bookings_status_date", "bookings", ["status", "booking_date"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("seats")
    op.drop_table("employees")
