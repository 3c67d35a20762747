"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the Creation Studio backend:
users, credit_transactions, creations, votes, favorites, orders, referrals.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(255), primary_key=True),
        sa.Column("credits", sa.Integer, nullable=False, server_default="10"),
        sa.Column("referral_code", sa.String(16), nullable=True, unique=True),
        sa.Column("referral_clicks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
    )

    # --- credit_transactions ---
    op.create_table(
        "credit_transactions",
        sa.Column("transaction_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column("kind", sa.Enum("debit", "credit", name="transactionkind"), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("reason", sa.String(100), nullable=False),
        sa.Column("balance_after", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- creations ---
    op.create_table(
        "creations",
        sa.Column("creation_id", sa.String(36), primary_key=True),
        sa.Column("kind", sa.Enum("image", "video", name="creationkind"), nullable=False, index=True),
        sa.Column("generated_url", sa.Text, nullable=False),
        sa.Column("original_url", sa.Text, nullable=True),
        sa.Column("source_image_id", sa.String(36), nullable=True, index=True),
        sa.Column("video_chain", sa.JSON, nullable=True),
        sa.Column("prompt", sa.Text, nullable=False, server_default=""),
        sa.Column("model", sa.String(150), nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        sa.Column("owner_name", sa.String(255), nullable=True),
        sa.Column("owner_email", sa.String(255), nullable=True),
        sa.Column("owner_avatar", sa.Text, nullable=True),
        sa.Column("vote_score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    # --- votes (no FK: the cascade from creations is done by the application) ---
    op.create_table(
        "votes",
        sa.Column("user_id", sa.String(255), primary_key=True),
        sa.Column("creation_id", sa.String(36), primary_key=True, index=True),
        sa.Column("direction", sa.Enum("up", "down", name="votedirection"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- favorites ---
    op.create_table(
        "favorites",
        sa.Column("user_id", sa.String(255), primary_key=True),
        sa.Column("creation_id", sa.String(36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- orders ---
    op.create_table(
        "orders",
        sa.Column("order_id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("package_id", sa.String(50), nullable=False),
        sa.Column("credits", sa.Integer, nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column(
            "status",
            sa.Enum("pending", "completed", "failed", "expired", name="orderstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("charge_id", sa.String(100), nullable=True, index=True),
        sa.Column("charge_code", sa.String(50), nullable=True),
        sa.Column("charge_data", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- referrals ---
    op.create_table(
        "referrals",
        sa.Column("referral_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("referrer_id", sa.String(255), nullable=False, index=True),
        sa.Column("referee_id", sa.String(255), nullable=False, unique=True),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("credits_awarded", sa.Integer, nullable=False, server_default="0"),
        sa.Column("signed_up_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("referrals")
    op.drop_table("orders")
    op.drop_table("favorites")
    op.drop_table("votes")
    op.drop_table("creations")
    op.drop_table("credit_transactions")
    op.drop_table("users")
    for enum_name in ("orderstatus", "votedirection", "creationkind", "transactionkind"):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
