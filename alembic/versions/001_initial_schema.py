"""Initial schema — all 16 ITDA tables.

Revision ID: 001_initial
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _fk(name: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer, server_default="0", nullable=False)


def upgrade() -> None:
    # ── 1. users ────────────────────────────────────────────────────
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String, unique=True, index=True, nullable=False),
        sa.Column("display_name", sa.String, nullable=True),
        sa.Column(
            "user_type",
            sa.String,
            nullable=False,
            comment="influencer / advertiser / admin",
        ),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
    )

    # ── 2. influencers ──────────────────────────────────────────────
    op.create_table(
        "influencers",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("username", sa.String, nullable=True),
        sa.Column("avatar", sa.String, nullable=True),
        _counter("followers_count"),
        sa.Column(
            "engagement_rate",
            sa.Float,
            server_default="0",
            nullable=False,
            comment="Percentage",
        ),
        sa.Column("categories", postgresql.JSONB, nullable=False),
        sa.Column("tier", sa.String, server_default="bronze", nullable=False),
        sa.Column("is_verified", sa.Boolean, server_default="false", nullable=False),
        _counter("daily_swipes_count"),
        sa.Column("last_swipe_date", sa.Date, nullable=True),
        sa.Column("last_swipe_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    # ── 3. advertisers ──────────────────────────────────────────────
    op.create_table(
        "advertisers",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("company_name", sa.String, nullable=False),
        sa.Column("company_logo", sa.String, nullable=True),
        sa.Column("is_verified", sa.Boolean, server_default="false", nullable=False),
        _created_at(),
    )

    # ── 4. campaigns ────────────────────────────────────────────────
    op.create_table(
        "campaigns",
        _uuid_pk(),
        _fk("advertiser_id", "advertisers.id"),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("budget", sa.BigInteger, nullable=False),
        sa.Column("categories", postgresql.JSONB, nullable=False),
        _counter("min_followers"),
        sa.Column("min_engagement_rate", sa.Float, server_default="0", nullable=False),
        sa.Column(
            "status",
            sa.String,
            server_default="draft",
            nullable=False,
            comment="draft / active / paused / completed / cancelled",
        ),
        sa.Column("is_premium", sa.Boolean, server_default="false", nullable=False),
        sa.Column("urgency", sa.String, server_default="medium", nullable=False),
        sa.Column("deliverables", postgresql.JSONB, nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        _counter("view_count"),
        _counter("like_count"),
        _counter("super_like_count"),
        _counter("application_count"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("budget > 0", name="ck_campaign_budget_positive"),
    )
    op.create_index("ix_campaigns_status_created", "campaigns", ["status", "created_at"])

    # ── 5. swipe_history ────────────────────────────────────────────
    op.create_table(
        "swipe_history",
        _uuid_pk(),
        _fk("influencer_id", "influencers.id"),
        _fk("campaign_id", "campaigns.id"),
        sa.Column("action", sa.String, nullable=False, comment="like / pass / super_like"),
        sa.Column("match_score", sa.Integer, nullable=True),
        sa.Column("category_match", sa.Boolean, server_default="false", nullable=False),
        sa.Column(
            "swiped_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("influencer_id", "campaign_id", name="uq_swipe_pair"),
    )
    op.create_index(
        "ix_swipe_history_influencer_swiped",
        "swipe_history",
        ["influencer_id", "swiped_at"],
    )

    # ── 6. campaign_influencers ─────────────────────────────────────
    op.create_table(
        "campaign_influencers",
        _uuid_pk(),
        _fk("campaign_id", "campaigns.id"),
        _fk("influencer_id", "influencers.id"),
        sa.Column("status", sa.String, server_default="pending", nullable=False),
        sa.Column("match_score", sa.Integer, nullable=False),
        sa.Column("proposed_price", sa.BigInteger, nullable=True),
        sa.Column("agreed_price", sa.BigInteger, nullable=True),
        sa.Column("match_details", postgresql.JSONB, nullable=True),
        sa.Column(
            "applied_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("campaign_id", "influencer_id", name="uq_campaign_influencer"),
    )

    # ── 7. chat_rooms ───────────────────────────────────────────────
    op.create_table(
        "chat_rooms",
        _uuid_pk(),
        _fk("campaign_id", "campaigns.id"),
        _fk("advertiser_id", "advertisers.id"),
        _fk("influencer_id", "influencers.id"),
        sa.Column("status", sa.String, server_default="active", nullable=False),
        sa.Column(
            "contract_status", sa.String, server_default="negotiating", nullable=False
        ),
        sa.Column("last_message", sa.Text, nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        _counter("unread_advertiser"),
        _counter("unread_influencer"),
        _created_at(),
        sa.UniqueConstraint(
            "campaign_id", "advertiser_id", "influencer_id", name="uq_chat_room_triple"
        ),
    )

    # ── 8. messages ─────────────────────────────────────────────────
    op.create_table(
        "messages",
        _uuid_pk(),
        _fk("chat_room_id", "chat_rooms.id"),
        sa.Column("sender_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("message_type", sa.String, server_default="text", nullable=False),
        _created_at(),
    )
    op.create_index("ix_messages_room_created", "messages", ["chat_room_id", "created_at"])

    # ── 9. notifications ────────────────────────────────────────────
    op.create_table(
        "notifications",
        _uuid_pk(),
        _fk("user_id", "users.id"),
        sa.Column("type", sa.String, nullable=False),
        sa.Column("title", sa.String, nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.Column("priority", sa.String, server_default="medium", nullable=False),
        sa.Column("action_url", sa.String, nullable=True),
        sa.Column("is_read", sa.Boolean, server_default="false", nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])
    op.create_index(
        "ix_notifications_user_created", "notifications", ["user_id", "created_at"]
    )

    # ── 10. notification_batches ────────────────────────────────────
    op.create_table(
        "notification_batches",
        _uuid_pk(),
        _fk("campaign_id", "campaigns.id"),
        _fk("advertiser_id", "advertisers.id"),
        sa.Column("applicants", postgresql.JSONB, nullable=False),
        sa.Column("status", sa.String, server_default="pending", nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "uq_notification_batches_open",
        "notification_batches",
        ["campaign_id", "advertiser_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'completed'"),
    )

    # ── 11. notification_batch_sends ────────────────────────────────
    op.create_table(
        "notification_batch_sends",
        _uuid_pk(),
        _fk("batch_id", "notification_batches.id"),
        sa.Column("window", sa.String, nullable=False, comment="30min / 2hour / 24hour"),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        _counter("attempts"),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.UniqueConstraint("batch_id", "window", name="uq_batch_send_window"),
    )
    op.create_index(
        "ix_batch_sends_due", "notification_batch_sends", ["sent_at", "due_at"]
    )

    # ── 12. push_subscriptions ──────────────────────────────────────
    op.create_table(
        "push_subscriptions",
        _uuid_pk(),
        _fk("user_id", "users.id"),
        sa.Column("endpoint", sa.String, unique=True, nullable=False),
        sa.Column("keys", postgresql.JSONB, nullable=False),
        _created_at(),
    )
    op.create_index("ix_push_subscriptions_user_id", "push_subscriptions", ["user_id"])

    # ── 13. notification_preferences ────────────────────────────────
    op.create_table(
        "notification_preferences",
        _uuid_pk(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column("channels", postgresql.JSONB, nullable=False),
        sa.Column("types", postgresql.JSONB, nullable=False),
        sa.Column("quiet_hours", postgresql.JSONB, nullable=False),
        sa.Column("grouping", postgresql.JSONB, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── 14. notification_logs ───────────────────────────────────────
    op.create_table(
        "notification_logs",
        _uuid_pk(),
        sa.Column("notification_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("event_type", sa.String, nullable=False),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        _created_at(),
    )

    # ── 15. price_predictions ───────────────────────────────────────
    op.create_table(
        "price_predictions",
        _uuid_pk(),
        _fk("influencer_id", "influencers.id"),
        _fk("campaign_id", "campaigns.id", nullable=True, ondelete="SET NULL"),
        sa.Column("predicted_price", sa.BigInteger, nullable=False),
        sa.Column("min_price", sa.BigInteger, nullable=False),
        sa.Column("max_price", sa.BigInteger, nullable=False),
        sa.Column("confidence", sa.Integer, nullable=False),
        sa.Column("factors", postgresql.JSONB, nullable=False),
        sa.Column("inputs", postgresql.JSONB, nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_price_predictions_influencer_created",
        "price_predictions",
        ["influencer_id", "created_at"],
    )

    # ── 16. waitlist_entries ────────────────────────────────────────
    op.create_table(
        "waitlist_entries",
        _uuid_pk(),
        sa.Column("email", sa.String, unique=True, nullable=False),
        sa.Column("name", sa.String, nullable=True),
        sa.Column("user_type", sa.String, nullable=False),
        sa.Column("company", sa.String, nullable=True),
        _created_at(),
    )
    op.create_index("ix_waitlist_entries_email", "waitlist_entries", ["email"])


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_index("ix_waitlist_entries_email", table_name="waitlist_entries")
    op.drop_table("waitlist_entries")

    op.drop_index(
        "ix_price_predictions_influencer_created", table_name="price_predictions"
    )
    op.drop_table("price_predictions")

    op.drop_table("notification_logs")
    op.drop_table("notification_preferences")

    op.drop_index("ix_push_subscriptions_user_id", table_name="push_subscriptions")
    op.drop_table("push_subscriptions")

    op.drop_index("ix_batch_sends_due", table_name="notification_batch_sends")
    op.drop_table("notification_batch_sends")

    op.drop_index("uq_notification_batches_open", table_name="notification_batches")
    op.drop_table("notification_batches")

    op.drop_index("ix_notifications_user_created", table_name="notifications")
    op.drop_index("ix_notifications_user_read", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_messages_room_created", table_name="messages")
    op.drop_table("messages")
    op.drop_table("chat_rooms")
    op.drop_table("campaign_influencers")

    op.drop_index("ix_swipe_history_influencer_swiped", table_name="swipe_history")
    op.drop_table("swipe_history")

    op.drop_index("ix_campaigns_status_created", table_name="campaigns")
    op.drop_table("campaigns")

    op.drop_table("advertisers")
    op.drop_table("influencers")
    op.drop_table("users")
