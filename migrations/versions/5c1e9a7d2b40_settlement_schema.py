"""settlement schema

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-18 09:12:41.517302

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from skinbag_settlement.models.common import (
    AUDIT_ACTOR_TYPES,
    CHAINS,
    CHALLENGE_STATUSES,
    DISPUTE_RESOLUTIONS,
    DISPUTE_STATUSES,
    DISPUTE_TARGET_TYPES,
    ESCROW_STATUSES,
    EXECUTION_MODES,
    MILESTONE_SOURCE_TYPES,
    MILESTONE_STATUSES,
    NETWORKS,
    PAYOUT_ACTOR_TYPES,
    PAYOUT_STATUSES,
    SOURCE_TYPES,
    WALLET_VERIFICATION_STATUSES,
    WEBHOOK_DELIVERY_STATUSES,
    WEBHOOK_SUBSCRIPTION_STATUSES,
)
from skinbag_settlement.models.marketplace import (
    APPLICATION_STATUSES,
    BOOKING_STATUSES,
    BOUNTY_STATUSES,
    USER_ROLES,
)

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _in(column: str, values: Sequence[str], name: str) -> sa.CheckConstraint:
    allowed = ", ".join(f"'{value}'" for value in values)
    return sa.CheckConstraint(f"{column} IN ({allowed})", name=name)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [_ts("created_at"), _ts("updated_at")]


def _event_table(name: str, parent_column: str, parent_table: str, actor_types, index: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column(parent_column, sa.String(length=36), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False),
        sa.Column("actor_type", sa.String(length=16), nullable=False),
        sa.Column("actor_id", sa.String(length=120), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=True),
        _ts("created_at"),
        sa.ForeignKeyConstraint([parent_column], [f"{parent_table}.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        _in("actor_type", actor_types, f"ck_{name}_actor_type"),
    )
    op.create_index(index, name, [parent_column])


def upgrade() -> None:
    """Create the marketplace collaborator tables and the settlement tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        _in("role", USER_ROLES, "ck_users_role"),
    )
    op.create_table(
        "humans",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("headline", sa.Text(), nullable=False),
        sa.Column("hourly_rate_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("human_id", sa.String(length=36), nullable=False),
        _ts("starts_at"),
        _ts("ends_at"),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("total_price_cents", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["human_id"], ["humans.id"]),
        sa.PrimaryKeyConstraint("id"),
        _in("status", BOOKING_STATUSES, "ck_bookings_status"),
    )
    op.create_table(
        "bounties",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("budget_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        _in("status", BOUNTY_STATUSES, "ck_bounties_status"),
    )
    op.create_table(
        "bounty_applications",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("bounty_id", sa.String(length=36), nullable=False),
        sa.Column("human_id", sa.String(length=36), nullable=False),
        sa.Column("cover_letter", sa.Text(), nullable=False),
        sa.Column("proposed_amount_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["bounty_id"], ["bounties.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["human_id"], ["humans.id"]),
        sa.PrimaryKeyConstraint("id"),
        _in("status", APPLICATION_STATUSES, "ck_bounty_applications_status"),
    )

    op.create_table(
        "payment_policies",
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("autopay_enabled", sa.Boolean(), nullable=False),
        sa.Column("require_approval", sa.Boolean(), nullable=False),
        sa.Column("max_single_payout_cents", sa.Integer(), nullable=False),
        sa.Column("max_daily_payout_cents", sa.Integer(), nullable=False),
        sa.Column("allowed_chains_json", sa.JSON(), nullable=False),
        sa.Column("allowed_tokens_json", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
        sa.CheckConstraint("max_single_payout_cents > 0", name="ck_policy_single_positive"),
        sa.CheckConstraint("max_daily_payout_cents > 0", name="ck_policy_daily_positive"),
    )

    op.create_table(
        "human_wallets",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("human_id", sa.String(length=36), nullable=False),
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("chain", sa.String(length=16), nullable=False),
        sa.Column("network", sa.String(length=16), nullable=False),
        sa.Column("token_symbol", sa.String(length=12), nullable=False),
        sa.Column("address", sa.String(length=120), nullable=False),
        sa.Column("destination_tag", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("verification_status", sa.String(length=16), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["human_id"], ["humans.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "human_id", "chain", "network", "token_symbol", "address",
            name="uq_human_wallets_natural_key",
        ),
        _in("chain", CHAINS, "ck_human_wallets_chain"),
        _in("network", NETWORKS, "ck_human_wallets_network"),
        _in(
            "verification_status",
            WALLET_VERIFICATION_STATUSES,
            "ck_human_wallets_verification_status",
        ),
    )
    op.create_index("idx_wallets_human_id", "human_wallets", ["human_id"])

    op.create_table(
        "wallet_verification_challenges",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("wallet_id", sa.String(length=36), nullable=False),
        sa.Column("human_id", sa.String(length=36), nullable=False),
        sa.Column("challenge", sa.String(length=64), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("proof_method", sa.String(length=32), nullable=False),
        sa.Column("expected_signature_hash", sa.String(length=64), nullable=False),
        sa.Column("provided_signature", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        _ts("expires_at"),
        _ts("verified_at", nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["wallet_id"], ["human_wallets.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["human_id"], ["humans.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        _in("status", CHALLENGE_STATUSES, "ck_wallet_challenges_status"),
    )
    op.create_index(
        "idx_wallet_challenges_wallet_status",
        "wallet_verification_challenges",
        ["wallet_id", "status"],
    )
    op.create_index(
        "idx_wallet_challenges_human_status",
        "wallet_verification_challenges",
        ["human_id", "status"],
    )

    op.create_table(
        "crypto_payouts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("human_id", sa.String(length=36), nullable=False),
        sa.Column("source_type", sa.String(length=16), nullable=False),
        sa.Column("source_id", sa.String(length=36), nullable=True),
        sa.Column("wallet_id", sa.String(length=36), nullable=False),
        sa.Column("chain", sa.String(length=16), nullable=False),
        sa.Column("network", sa.String(length=16), nullable=False),
        sa.Column("token_symbol", sa.String(length=12), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("execution_mode", sa.String(length=16), nullable=False),
        sa.Column("tx_hash", sa.String(length=140), nullable=True),
        sa.Column("idempotency_key", sa.String(length=120), nullable=True),
        sa.Column("requested_by_agent_id", sa.String(length=120), nullable=True),
        _ts("approved_at", nullable=True),
        _ts("submitted_at", nullable=True),
        _ts("confirmed_at", nullable=True),
        _ts("failed_at", nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        _ts("cancelled_at", nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["human_id"], ["humans.id"]),
        sa.ForeignKeyConstraint(["wallet_id"], ["human_wallets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_crypto_payouts_idempotency"),
        sa.CheckConstraint("amount_cents > 0", name="ck_crypto_payouts_amount_positive"),
        _in("source_type", SOURCE_TYPES, "ck_crypto_payouts_source_type"),
        _in("chain", CHAINS, "ck_crypto_payouts_chain"),
        _in("network", NETWORKS, "ck_crypto_payouts_network"),
        _in("status", PAYOUT_STATUSES, "ck_crypto_payouts_status"),
        _in("execution_mode", EXECUTION_MODES, "ck_crypto_payouts_execution_mode"),
    )
    op.create_index("idx_payouts_user_status", "crypto_payouts", ["user_id", "status"])
    _event_table(
        "payout_events", "payout_id", "crypto_payouts", PAYOUT_ACTOR_TYPES,
        "idx_payout_events_payout_id",
    )

    op.create_table(
        "escrow_holds",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("human_id", sa.String(length=36), nullable=False),
        sa.Column("wallet_id", sa.String(length=36), nullable=False),
        sa.Column("source_type", sa.String(length=16), nullable=False),
        sa.Column("source_id", sa.String(length=36), nullable=True),
        sa.Column("chain", sa.String(length=16), nullable=False),
        sa.Column("network", sa.String(length=16), nullable=False),
        sa.Column("token_symbol", sa.String(length=12), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("release_payout_id", sa.String(length=36), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_by_agent_id", sa.String(length=120), nullable=True),
        _ts("held_at"),
        _ts("released_at", nullable=True),
        _ts("cancelled_at", nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["human_id"], ["humans.id"]),
        sa.ForeignKeyConstraint(["wallet_id"], ["human_wallets.id"]),
        sa.ForeignKeyConstraint(["release_payout_id"], ["crypto_payouts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount_cents > 0", name="ck_escrow_holds_amount_positive"),
        _in("source_type", SOURCE_TYPES, "ck_escrow_holds_source_type"),
        _in("chain", CHAINS, "ck_escrow_holds_chain"),
        _in("network", NETWORKS, "ck_escrow_holds_network"),
        _in("status", ESCROW_STATUSES, "ck_escrow_holds_status"),
    )
    op.create_index("idx_escrow_holds_user_status", "escrow_holds", ["user_id", "status"])
    op.create_index("idx_escrow_holds_source", "escrow_holds", ["source_type", "source_id"])
    _event_table(
        "escrow_events", "escrow_id", "escrow_holds", AUDIT_ACTOR_TYPES,
        "idx_escrow_events_escrow_id",
    )

    op.create_table(
        "disputes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("target_type", sa.String(length=16), nullable=False),
        sa.Column("target_id", sa.String(length=36), nullable=False),
        sa.Column("opened_by_agent_id", sa.String(length=120), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("evidence_json", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("resolution", sa.String(length=16), nullable=True),
        sa.Column("resolution_note", sa.Text(), nullable=True),
        sa.Column("resolved_by_user_id", sa.String(length=36), nullable=True),
        _ts("opened_at"),
        _ts("resolved_at", nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["resolved_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        _in("target_type", DISPUTE_TARGET_TYPES, "ck_disputes_target_type"),
        _in("status", DISPUTE_STATUSES, "ck_disputes_status"),
        _in("resolution", DISPUTE_RESOLUTIONS, "ck_disputes_resolution"),
    )
    op.create_index("idx_disputes_user_status", "disputes", ["user_id", "status"])
    op.create_index("idx_disputes_target", "disputes", ["target_type", "target_id"])
    _event_table(
        "dispute_events", "dispute_id", "disputes", AUDIT_ACTOR_TYPES,
        "idx_dispute_events_dispute_id",
    )

    op.create_table(
        "booking_milestones",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("source_type", sa.String(length=16), nullable=False),
        sa.Column("source_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        _ts("due_at", nullable=True),
        _ts("completed_at", nullable=True),
        sa.Column("payout_id", sa.String(length=36), nullable=True),
        sa.Column("created_by_agent_id", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["payout_id"], ["crypto_payouts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount_cents > 0", name="ck_booking_milestones_amount_positive"),
        _in("source_type", MILESTONE_SOURCE_TYPES, "ck_booking_milestones_source_type"),
        _in("status", MILESTONE_STATUSES, "ck_booking_milestones_status"),
    )
    op.create_index(
        "idx_booking_milestones_user_status", "booking_milestones", ["user_id", "status"]
    )
    op.create_index(
        "idx_booking_milestones_source", "booking_milestones", ["source_type", "source_id"]
    )

    op.create_table(
        "payout_webhook_subscriptions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("endpoint_url", sa.Text(), nullable=False),
        sa.Column("secret_hash", sa.String(length=64), nullable=True),
        sa.Column("events_json", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by_agent_id", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        _in("status", WEBHOOK_SUBSCRIPTION_STATUSES, "ck_payout_webhooks_status"),
    )
    op.create_index(
        "idx_payout_webhooks_user_status", "payout_webhook_subscriptions", ["user_id", "status"]
    )
    op.create_table(
        "payout_webhook_deliveries",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("subscription_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("payout_id", sa.String(length=36), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False),
        sa.Column("payload_json", sa.JSON(), nullable=False),
        sa.Column("delivery_status", sa.String(length=16), nullable=False),
        sa.Column("attempt_count", sa.Integer(), nullable=False),
        sa.Column("http_status", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        _ts("last_attempt_at", nullable=True),
        _ts("delivered_at", nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["subscription_id"], ["payout_webhook_subscriptions.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["payout_id"], ["crypto_payouts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        _in(
            "delivery_status",
            WEBHOOK_DELIVERY_STATUSES,
            "ck_payout_webhook_deliveries_status",
        ),
    )
    op.create_index(
        "idx_payout_webhooks_delivery_sub",
        "payout_webhook_deliveries",
        ["subscription_id", "created_at"],
    )
    op.create_index(
        "idx_payout_webhooks_delivery_payout",
        "payout_webhook_deliveries",
        ["payout_id", "event_type"],
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    for table in (
        "payout_webhook_deliveries",
        "payout_webhook_subscriptions",
        "booking_milestones",
        "dispute_events",
        "disputes",
        "escrow_events",
        "escrow_holds",
        "payout_events",
        "crypto_payouts",
        "wallet_verification_challenges",
        "human_wallets",
        "payment_policies",
        "bounty_applications",
        "bounties",
        "bookings",
        "humans",
        "users",
    ):
        op.drop_table(table)
