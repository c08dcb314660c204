"""Initial schema: users, drivers, live locations, zones, fare matrix,
rides and notifications.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

DRIVER_STATUS = ("online", "busy", "offline")
BOOKING_TYPES = ("regular", "rental", "outstation", "airport")
RIDE_STATUS = (
    "requested",
    "accepted",
    "driver_arrived",
    "in_progress",
    "completed",
    "cancelled",
    "no_drivers_available",
)
NOTIFICATION_STATUS = ("unread", "read", "cancelled")


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def upgrade() -> None:
    booking_type = sa.Enum(*BOOKING_TYPES, name="bookingtype")

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("phone_number", sa.String(20), unique=True, nullable=True),
        sa.Column("email", sa.String(255), unique=True, nullable=True),
        _created_at(),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "status",
            sa.Enum(*DRIVER_STATUS, name="driverstatus"),
            nullable=False,
            server_default="offline",
        ),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("vehicle_type", sa.String(30), nullable=True),
        sa.Column("rating", sa.Float, server_default="5.0"),
        _created_at(),
    )
    op.create_index("idx_drivers_status", "drivers", ["status", "is_verified"])

    # ── live_locations ────────────────────────────────────────────────
    op.create_table(
        "live_locations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("heading", sa.Float, nullable=True),
        sa.Column("speed", sa.Float, nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── zones ─────────────────────────────────────────────────────────
    op.create_table(
        "zones",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(60), nullable=False),
        sa.Column("center_latitude", sa.Float, nullable=False),
        sa.Column("center_longitude", sa.Float, nullable=False),
        sa.Column("radius_km", sa.Float, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index("idx_zones_name", "zones", ["name", "is_active"])

    # ── fare_matrix ───────────────────────────────────────────────────
    op.create_table(
        "fare_matrix",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("vehicle_type", sa.String(30), nullable=False),
        sa.Column("booking_type", booking_type, nullable=False, server_default="regular"),
        sa.Column("base_fare", sa.Float, nullable=False),
        sa.Column("per_km_rate", sa.Float, nullable=False),
        sa.Column("minimum_fare", sa.Float, nullable=False),
        sa.Column("surge_multiplier", sa.Float, nullable=False, server_default="1.0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index(
        "idx_fare_matrix_lookup",
        "fare_matrix",
        ["vehicle_type", "booking_type", "is_active"],
    )

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("ride_code", sa.String(6), nullable=False),
        sa.Column(
            "customer_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("pickup_address", sa.String(255), nullable=False, server_default=""),
        sa.Column("pickup_latitude", sa.Float, nullable=False),
        sa.Column("pickup_longitude", sa.Float, nullable=False),
        sa.Column(
            "destination_address", sa.String(255), nullable=False, server_default=""
        ),
        sa.Column("destination_latitude", sa.Float, nullable=False),
        sa.Column("destination_longitude", sa.Float, nullable=False),
        sa.Column("vehicle_type", sa.String(30), nullable=False),
        sa.Column(
            "booking_type",
            postgresql.ENUM(*BOOKING_TYPES, name="bookingtype", create_type=False),
            nullable=False,
            server_default="regular",
        ),
        sa.Column("fare_amount", sa.Float, nullable=True),
        sa.Column(
            "status",
            sa.Enum(*RIDE_STATUS, name="ridestatus"),
            nullable=False,
            server_default="requested",
        ),
        sa.Column(
            "driver_id", sa.String(36), sa.ForeignKey("drivers.id"), nullable=True
        ),
        _created_at(),
        _updated_at(),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_customer", "rides", ["customer_id"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("ride_id", sa.String(36), sa.ForeignKey("rides.id"), nullable=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("message", sa.String(500), nullable=False),
        sa.Column("data", sa.JSON, nullable=True),
        sa.Column(
            "status",
            sa.Enum(*NOTIFICATION_STATUS, name="notificationstatus"),
            nullable=False,
            server_default="unread",
        ),
        _created_at(),
        _updated_at(),
    )
    op.create_index("idx_notifications_ride", "notifications", ["ride_id", "type"])
    op.create_index("idx_notifications_user", "notifications", ["user_id", "status"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("rides")
    op.drop_table("fare_matrix")
    op.drop_table("zones")
    op.drop_table("live_locations")
    op.drop_table("drivers")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS notificationstatus")
    op.execute("DROP TYPE IF EXISTS ridestatus")
    op.execute("DROP TYPE IF EXISTS bookingtype")
    op.execute("DROP TYPE IF EXISTS driverstatus")
