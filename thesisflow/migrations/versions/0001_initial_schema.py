"""Initial schema: users, theses, thesis_transitions

Revision ID: 0001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all workflow tables."""

    # --- users (no FK deps) ---
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("department", sa.String(255), nullable=True),
        sa.Column("scholar_number", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_role", "users", ["role"])

    # --- theses (FK -> users) ---
    op.create_table(
        "theses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("abstract", sa.Text(), nullable=False, server_default=""),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("file_filename", sa.String(500), nullable=True),
        sa.Column("file_original_name", sa.String(500), nullable=True),
        sa.Column("file_path", sa.String(1000), nullable=True),
        sa.Column("file_mimetype", sa.String(255), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("scholar_id", sa.Uuid(), nullable=False),
        sa.Column("guide_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="submitted"),
        sa.Column("current_stage", sa.String(50), nullable=False, server_default="guide"),
        sa.Column("approvals", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_theses"),
        sa.ForeignKeyConstraint(["scholar_id"], ["users.id"], name="fk_theses_scholar_id_users"),
        sa.ForeignKeyConstraint(["guide_id"], ["users.id"], name="fk_theses_guide_id_users"),
    )
    op.create_index("ix_theses_scholar_id", "theses", ["scholar_id"])
    op.create_index("ix_theses_guide_id", "theses", ["guide_id"])
    op.create_index("ix_theses_status", "theses", ["status"])
    op.create_index("ix_theses_current_stage", "theses", ["current_stage"])
    op.create_index("ix_theses_created_at", "theses", ["created_at"])

    # --- thesis_transitions (FK -> theses, users) ---
    op.create_table(
        "thesis_transitions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("thesis_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("decision", sa.String(50), nullable=True),
        sa.Column("from_status", sa.String(50), nullable=False),
        sa.Column("from_stage", sa.String(50), nullable=False),
        sa.Column("to_status", sa.String(50), nullable=False),
        sa.Column("to_stage", sa.String(50), nullable=False),
        sa.Column("approval_key", sa.String(50), nullable=True),
        sa.Column("approval_record", sa.JSON(), nullable=True),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("actor_role", sa.String(20), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_thesis_transitions"),
        sa.ForeignKeyConstraint(
            ["thesis_id"],
            ["theses.id"],
            name="fk_thesis_transitions_thesis_id_theses",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["actor_id"],
            ["users.id"],
            name="fk_thesis_transitions_actor_id_users",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_thesis_transitions_thesis_id", "thesis_transitions", ["thesis_id"])
    op.create_index("ix_thesis_transitions_created_at", "thesis_transitions", ["created_at"])


def downgrade() -> None:
    """Drop all workflow tables in reverse dependency order."""
    op.drop_table("thesis_transitions")
    op.drop_table("theses")
    op.drop_table("users")
