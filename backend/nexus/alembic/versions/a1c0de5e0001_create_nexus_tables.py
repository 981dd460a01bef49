"""Create Nexus tables (Snowflake BIGINT IDs)

Revision ID: a1c0de5e0001
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c0de5e0001"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False)


def _ts(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False)


def _user_fk(name: str = "user_id", ondelete: str = "CASCADE") -> list:
    return [
        sa.Column(name, sa.BigInteger(), nullable=ondelete == "SET NULL"),
        sa.ForeignKeyConstraint([name], ["users.id"], ondelete=ondelete),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(length=32), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=64), nullable=False),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("music_service", sa.String(length=32), nullable=True),
        sa.Column("subscription_status", sa.String(length=16), nullable=False, server_default="inactive"),
        sa.Column("subscription_expires_at", sa.DateTime(timezone=True), nullable=True),
        _ts(),
        _ts("updated_at"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "user_roles",
        _id(),
        *_user_fk(),
        sa.Column("role", sa.String(length=16), nullable=False),
        _ts(),
        sa.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])

    op.create_table(
        "user_points",
        _id(),
        *_user_fk(),
        sa.Column("balance", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _ts("updated_at"),
        sa.CheckConstraint("balance >= 0", name="ck_user_points_balance_non_negative"),
    )
    op.create_index("ix_user_points_user_id", "user_points", ["user_id"], unique=True)

    op.create_table(
        "point_transactions",
        _id(),
        *_user_fk(),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=64), nullable=True),
        sa.Column("reference_id", sa.BigInteger(), nullable=True),
        _ts(),
    )
    op.create_index("ix_point_transactions_user_id", "point_transactions", ["user_id"])

    op.create_table(
        "homework_posts",
        _id(),
        *_user_fk("author_id"),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("points_required", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("likes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _ts(),
        sa.CheckConstraint("points_required >= 0", name="ck_homework_posts_price_non_negative"),
        sa.CheckConstraint("likes >= 0", name="ck_homework_posts_likes_non_negative"),
    )
    op.create_index("ix_homework_posts_author_id", "homework_posts", ["author_id"])
    op.create_index("ix_homework_posts_created_at", "homework_posts", ["created_at"])

    for table in ("homework_replies", "homework_likes", "user_unlocked_posts"):
        user_col = "author_id" if table == "homework_replies" else "user_id"
        columns = [
            _id(),
            sa.Column("post_id", sa.BigInteger(), nullable=False),
            sa.ForeignKeyConstraint(["post_id"], ["homework_posts.id"], ondelete="CASCADE"),
            *_user_fk(user_col),
        ]
        if table == "homework_replies":
            columns += [sa.Column("content", sa.Text(), nullable=False), _ts()]
        elif table == "homework_likes":
            columns += [_ts(), sa.UniqueConstraint("user_id", "post_id", name="uq_homework_likes_user_post")]
        else:
            columns += [
                sa.Column("points_spent", sa.Integer(), nullable=False, server_default=sa.text("0")),
                _ts("unlocked_at"),
                sa.UniqueConstraint("user_id", "post_id", name="uq_user_unlocked_posts_user_post"),
            ]
        op.create_table(table, *columns)
        op.create_index(f"ix_{table}_post_id", table, ["post_id"])
        op.create_index(f"ix_{table}_{user_col}", table, [user_col])

    op.create_table(
        "chat_messages",
        _id(),
        sa.Column("room", sa.String(length=64), nullable=False),
        *_user_fk(),
        sa.Column("display_name", sa.String(length=64), nullable=False),
        sa.Column("content", sa.String(length=500), nullable=False),
        _ts(),
    )
    op.create_index("ix_chat_messages_user_id", "chat_messages", ["user_id"])
    op.create_index("idx_chat_messages_room_created", "chat_messages", ["room", "created_at"])

    op.create_table(
        "games",
        _id(),
        sa.Column("title", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("game_url", sa.String(length=1024), nullable=False),
        sa.Column("thumbnail_url", sa.String(length=1024), nullable=True),
        sa.Column("points_reward", sa.Integer(), nullable=False, server_default=sa.text("10")),
        *_user_fk("created_by", ondelete="SET NULL"),
        _ts(),
    )

    op.create_table(
        "game_plays",
        _id(),
        *_user_fk(),
        sa.Column("game_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["game_id"], ["games.id"], ondelete="CASCADE"),
        sa.Column("points_awarded", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _ts(),
        sa.UniqueConstraint("user_id", "game_id", name="uq_game_plays_user_game"),
    )
    op.create_index("ix_game_plays_user_id", "game_plays", ["user_id"])
    op.create_index("ix_game_plays_game_id", "game_plays", ["game_id"])

    op.create_table(
        "merch_items",
        _id(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        _ts(),
    )

    op.create_table(
        "music_embeds",
        _id(),
        *_user_fk("owner_id"),
        sa.Column("title", sa.String(length=128), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("source_url", sa.String(length=1024), nullable=False),
        _ts(),
    )
    op.create_index("ix_music_embeds_owner_id", "music_embeds", ["owner_id"])

    op.create_table(
        "subscriptions",
        _id(),
        *_user_fk(),
        sa.Column("provider_customer_id", sa.String(length=128), nullable=True),
        sa.Column("price_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        _ts(),
        _ts("updated_at"),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"], unique=True)

    op.create_table(
        "payment_events",
        _id(),
        sa.Column("event_id", sa.String(length=64), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        _ts(),
    )
    op.create_index("ix_payment_events_event_id", "payment_events", ["event_id"], unique=True)


def downgrade() -> None:
    for table in (
        "payment_events",
        "subscriptions",
        "music_embeds",
        "merch_items",
        "game_plays",
        "games",
        "chat_messages",
        "user_unlocked_posts",
        "homework_likes",
        "homework_replies",
        "homework_posts",
        "point_transactions",
        "user_points",
        "user_roles",
        "users",
    ):
        op.drop_table(table)
