"""create initial tables

Revision ID: 20261019_01
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


NOTIFICATION_TYPE = sa.Enum(
    "LIKE",
    "COMMENT",
    "FOLLOW",
    "MENTION",
    "MESSAGE",
    "SYSTEM",
    "ACCOUNT_UPDATE",
    "SECURITY_ALERT",
    "FEATURE_ANNOUNCEMENT",
    name="notification_type",
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("avatar", sa.String(length=512), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("email_likes", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_comments", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_follows", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_likes", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_comments", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("push_follows", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "poems",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "author_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _created_at(),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("poem_id", sa.Integer(), sa.ForeignKey("poems.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "likes",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("poem_id", sa.Integer(), sa.ForeignKey("poems.id", ondelete="CASCADE"), nullable=False),
        _created_at(),
        sa.UniqueConstraint("user_id", "poem_id", name="uq_likes_user_poem"),
    )

    op.create_table(
        "follows",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("follower_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("following_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _created_at(),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
    )

    op.create_table(
        "chats",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _created_at(),
    )

    op.create_table(
        "chat_participants",
        sa.Column("chat_id", sa.Integer(), sa.ForeignKey("chats.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("type", NOTIFICATION_TYPE, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("link", sa.String(length=512), nullable=True),
        sa.Column("recipient_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("poem_id", sa.Integer(), sa.ForeignKey("poems.id", ondelete="SET NULL"), nullable=True),
        sa.Column("comment_id", sa.Integer(), sa.ForeignKey("comments.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_notifications_recipient_created",
        "notifications",
        ["recipient_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_recipient_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("chat_participants")
    op.drop_table("chats")
    op.drop_table("follows")
    op.drop_table("likes")
    op.drop_table("comments")
    op.drop_table("poems")
    op.drop_table("users")
    NOTIFICATION_TYPE.drop(op.get_bind(), checkfirst=True)
