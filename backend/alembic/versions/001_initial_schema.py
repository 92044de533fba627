"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates every table owned by the inventory module. Databases first created
by the app's startup create_all() can be brought under Alembic with:

    alembic stamp head
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SERVER_STATUSES = ("passive", "setup", "shippable", "active", "transit", "field")
ACTIVITY_TYPES = ("add", "transfer", "note", "setup", "edit", "status", "delete")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200)),
        sa.Column("email", sa.String(255)),
        sa.Column("role", sa.Enum("admin", "user", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # --- locations ---
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.Enum("depot", "office", "field", name="locationtype"), nullable=False),
        sa.Column("address", sa.Text()),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    # --- server_models ---
    op.create_table(
        "server_models",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("brand", sa.String(100), nullable=False),
        sa.Column("specs", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    # --- servers ---
    op.create_table(
        "servers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("server_id", sa.String(50), nullable=False),
        sa.Column("model", sa.String(200), nullable=False),
        sa.Column("model_id", sa.Integer(), nullable=True),
        sa.Column("specs", sa.Text(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.Enum(*SERVER_STATUSES, name="serverstatus"), nullable=False),
        sa.Column("ip_address", sa.String(64)),
        sa.Column("username", sa.String(100)),
        sa.Column("password", sa.String(500)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_servers_server_id", "servers", ["server_id"], unique=True)
    op.create_index("ix_servers_model_id", "servers", ["model_id"])
    op.create_index("ix_servers_location_id", "servers", ["location_id"])

    # --- server_notes ---
    op.create_table(
        "server_notes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("server_id", sa.Integer(), sa.ForeignKey("servers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_server_notes_server_id", "server_notes", ["server_id"])

    # --- server_transfers ---
    op.create_table(
        "server_transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("server_id", sa.Integer(), sa.ForeignKey("servers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_location_id", sa.Integer(), nullable=False),
        sa.Column("to_location_id", sa.Integer(), nullable=False),
        sa.Column("transferred_by", sa.Integer(), nullable=False),
        sa.Column("transfer_date", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_server_transfers_server_id", "server_transfers", ["server_id"])

    # --- server_details ---
    op.create_table(
        "server_details",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("server_id", sa.Integer(), sa.ForeignKey("servers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vm_name", sa.String(200), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("password", sa.String(500), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_server_details_server_id", "server_details", ["server_id"])

    # --- activities ---
    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("server_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.Enum(*ACTIVITY_TYPES, name="activitytype"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_activities_server_id", "activities", ["server_id"])
    op.create_index("ix_activities_created_at", "activities", ["created_at"])

    # --- id_sequences ---
    op.create_table(
        "id_sequences",
        sa.Column("name", sa.String(50), primary_key=True),
        sa.Column("value", sa.Integer(), nullable=False),
    )
    op.execute("INSERT INTO id_sequences (name, value) VALUES ('server_id_seq', 0)")


def downgrade() -> None:
    for table in (
        "id_sequences", "activities", "server_details", "server_transfers",
        "server_notes", "servers", "server_models", "locations", "users",
    ):
        op.drop_table(table)
