"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "activation_records",
        sa.Column("storage_key", sa.String(length=96), primary_key=True, nullable=False),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "revoked", name="keystatus"),
            nullable=False,
        ),
        sa.Column("label", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("session_fingerprint", sa.Text(), nullable=True),
        sa.Column("session_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("session_last_heartbeat_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.UniqueConstraint("key", name="uq_activation_records_key"),
    )
    op.create_index(op.f("ix_activation_records_created_at"), "activation_records", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_activation_records_created_at"), table_name="activation_records")
    op.drop_table("activation_records")

    op.execute("DROP TYPE IF EXISTS keystatus")
