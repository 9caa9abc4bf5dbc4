"""Initial database schema

Revision ID: 001_init
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_init"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create items, comparisons and engine_settings."""

    # Create items table
    op.create_table(
        "items",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("rating", sa.Float(), nullable=False, server_default="1500"),
        sa.Column("comparison_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skip_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("familiarity_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rating_confidence", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_compared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("peak_rating", sa.Float(), nullable=True),
        sa.Column("peak_rating_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "current_streak_wins", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "current_streak_losses", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "longest_win_streak", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("upset_win_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("first_vote_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_items_id"), "items", ["id"], unique=False)
    op.create_index("ix_items_rating", "items", ["rating"], unique=False)
    op.create_index(
        "ix_items_comparison_count", "items", ["comparison_count"], unique=False
    )
    op.create_index(
        "uq_items_title_lower", "items", [sa.text("lower(title)")], unique=True
    )

    # Create comparisons table
    op.create_table(
        "comparisons",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("item1_id", sa.String(), nullable=False),
        sa.Column("item2_id", sa.String(), nullable=False),
        sa.Column("winner_id", sa.String(), nullable=False),
        sa.Column("item1_rating_before", sa.Float(), nullable=False),
        sa.Column("item2_rating_before", sa.Float(), nullable=False),
        sa.Column("item1_rating_after", sa.Float(), nullable=False),
        sa.Column("item2_rating_after", sa.Float(), nullable=False),
        sa.Column("rating_difference", sa.Float(), nullable=False),
        sa.Column("was_upset", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("session_id", sa.String(), nullable=True),
        sa.Column("idempotency_key", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["item1_id"], ["items.id"]),
        sa.ForeignKeyConstraint(["item2_id"], ["items.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key"),
    )
    op.create_index(op.f("ix_comparisons_id"), "comparisons", ["id"], unique=False)
    op.create_index(
        "ix_comparisons_session_created",
        "comparisons",
        ["session_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_comparisons_user_created",
        "comparisons",
        ["user_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_comparisons_created_at", "comparisons", ["created_at"], unique=False
    )

    # Create engine_settings table
    op.create_table(
        "engine_settings",
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("engine_settings")

    op.drop_index("ix_comparisons_created_at", table_name="comparisons")
    op.drop_index("ix_comparisons_user_created", table_name="comparisons")
    op.drop_index("ix_comparisons_session_created", table_name="comparisons")
    op.drop_index(op.f("ix_comparisons_id"), table_name="comparisons")
    op.drop_table("comparisons")

    op.drop_index("uq_items_title_lower", table_name="items")
    op.drop_index("ix_items_comparison_count", table_name="items")
    op.drop_index("ix_items_rating", table_name="items")
    op.drop_index(op.f("ix_items_id"), table_name="items")
    op.drop_table("items")
