"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 12:00:00

"""
from alembic import op
import sqlalchemy as sa
import sqlmodel

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

Str = sqlmodel.sql.sqltypes.AutoString


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", Str(), nullable=False),
        sa.Column("email", Str(), nullable=False),
        sa.Column("display_name", Str(), nullable=False),
        sa.Column("role", Str(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("organization_name", Str(), nullable=True),
        sa.Column("phone_number", Str(), nullable=True),
        sa.Column("address", Str(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)
    op.create_index("ix_user_role", "user", ["role"])

    op.create_table(
        "donation",
        sa.Column("id", Str(), nullable=False),
        sa.Column("title", Str(length=200), nullable=False),
        sa.Column("description", Str(), nullable=False),
        sa.Column("category", Str(), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("quantity_unit", Str(length=32), nullable=False),
        sa.Column("pickup_address", Str(), nullable=False),
        sa.Column("pickup_instructions", Str(), nullable=True),
        sa.Column("expiry_date", sa.DateTime(), nullable=False),
        sa.Column("donor_id", Str(), nullable=False),
        sa.Column("donor_name", Str(), nullable=True),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        sa.Column("status", Str(), nullable=False),
        sa.Column("reserved_by", Str(), nullable=True),
        sa.Column("reserved_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_donation_category", "donation", ["category"])
    op.create_index("ix_donation_donor_id", "donation", ["donor_id"])
    op.create_index("ix_donation_status", "donation", ["status"])
    op.create_index("ix_donation_reserved_by", "donation", ["reserved_by"])
    op.create_index("ix_donation_created_at", "donation", ["created_at"])

    op.create_table(
        "reservation",
        sa.Column("id", Str(), nullable=False),
        sa.Column("donation_id", Str(), nullable=False),
        sa.Column("recipient_id", Str(), nullable=False),
        sa.Column("recipient_name", Str(), nullable=True),
        sa.Column("status", Str(), nullable=False),
        sa.Column("pickup_time", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["donation_id"], ["donation.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reservation_donation_id", "reservation", ["donation_id"])
    op.create_index("ix_reservation_recipient_id", "reservation", ["recipient_id"])

    op.create_table(
        "food_request",
        sa.Column("id", Str(), nullable=False),
        sa.Column("title", Str(length=200), nullable=False),
        sa.Column("description", Str(), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("category", Str(), nullable=False),
        sa.Column("urgency", Str(), nullable=False),
        sa.Column("recipient_id", Str(), nullable=False),
        sa.Column("status", Str(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_food_request_recipient_id", "food_request", ["recipient_id"])
    op.create_index("ix_food_request_status", "food_request", ["status"])
    op.create_index("ix_food_request_created_at", "food_request", ["created_at"])

    op.create_table(
        "notification",
        sa.Column("id", Str(), nullable=False),
        sa.Column("user_id", Str(), nullable=False),
        sa.Column("title", Str(), nullable=False),
        sa.Column("message", Str(), nullable=False),
        sa.Column("type", Str(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.Column("link", Str(), nullable=True),
        sa.Column("related_entity_id", Str(), nullable=True),
        sa.Column("related_entity_type", Str(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notification_user_id", "notification", ["user_id"])
    op.create_index("ix_notification_created_at", "notification", ["created_at"])

    op.create_table(
        "system_health",
        sa.Column("key", Str(), nullable=False),
        sa.Column("status", Str(), nullable=False),
        sa.Column("last_check", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("system_health")
    op.drop_index("ix_notification_created_at", table_name="notification")
    op.drop_index("ix_notification_user_id", table_name="notification")
    op.drop_table("notification")
    op.drop_index("ix_food_request_created_at", table_name="food_request")
    op.drop_index("ix_food_request_status", table_name="food_request")
    op.drop_index("ix_food_request_recipient_id", table_name="food_request")
    op.drop_table("food_request")
    op.drop_index("ix_reservation_recipient_id", table_name="reservation")
    op.drop_index("ix_reservation_donation_id", table_name="reservation")
    op.drop_table("reservation")
    op.drop_index("ix_donation_created_at", table_name="donation")
    op.drop_index("ix_donation_reserved_by", table_name="donation")
    op.drop_index("ix_donation_status", table_name="donation")
    op.drop_index("ix_donation_donor_id", table_name="donation")
    op.drop_index("ix_donation_category", table_name="donation")
    op.drop_table("donation")
    op.drop_index("ix_user_role", table_name="user")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
