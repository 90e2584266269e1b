"""Instance lifecycle schema.

- instances (soft delete, live-domain uniqueness, version column)
- instance_infrastructure / instance_health (version column)
- instance_billing / instance_configs
- provisioning_events (one row per step phase attempt)
- worker_identity_registry, seeded for the allocatable range 11..1023
- provisioning_queue
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_lifecycle_schema"
down_revision = None
branch_labels = None
depends_on = None

WORKER_ID_MIN = 11
WORKER_ID_MAX = 1023


def _instance_fk() -> sa.Column:
    return sa.Column(
        "instance_id",
        sa.BigInteger(),
        sa.ForeignKey("instances.id", ondelete="CASCADE", name=None),
        primary_key=True,
        autoincrement=False,
    )


def upgrade():
    # ---------- instances ----------
    op.create_table(
        "instances",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("owner_id", sa.BigInteger(), nullable=False),
        sa.Column("domain", sa.String(253), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("online_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("worker_identity", sa.Integer(), nullable=True),
        sa.Column("provisioning_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("provisioning_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint(
            "status IN ('pending','provisioning','running','suspended','destroyed','failed')",
            name="ck_instances_status",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_instances"),
    )
    op.create_index("ix_instances_owner_id", "instances", ["owner_id"])
    op.create_index(
        "uq_instances_domain_live",
        "instances",
        ["domain"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index(
        "ix_instances_status_live",
        "instances",
        ["status"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    # ---------- per-instance records ----------
    op.create_table(
        "instance_infrastructure",
        _instance_fk(),
        sa.Column("database_name", sa.String(63), nullable=False),
        sa.Column("database_password", sa.Text(), nullable=True),
        sa.Column("storage_access_key", sa.String(128), nullable=False),
        sa.Column("storage_secret_key", sa.Text(), nullable=True),
        sa.Column("media_relay_api_key", sa.String(128), nullable=False),
        sa.Column("media_relay_secret", sa.Text(), nullable=True),
        sa.Column("instance_kek", sa.Text(), nullable=True),
        sa.Column("bootstrap_token_hash", sa.String(64), nullable=True),
        sa.Column("network_id", sa.String(128), nullable=True),
        sa.Column("container_id", sa.String(128), nullable=True),
        sa.Column("proxy_route_id", sa.String(128), nullable=True),
        sa.Column("runtime_secret_id", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )

    op.create_table(
        "instance_health",
        _instance_fk(),
        sa.Column("is_healthy", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_check_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("consecutive_failures", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("response_time_ms", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )

    op.create_table(
        "instance_billing",
        _instance_fk(),
        sa.Column("feature_tier", sa.String(20), nullable=False),
        sa.Column("user_count_tier", sa.Integer(), nullable=False),
        sa.Column("billing_exempt", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("feature_tier IN ('chat','audio','video')", name="ck_instance_billing_feature_tier"),
        sa.CheckConstraint("user_count_tier IN (10, 50, 100, 500)", name="ck_instance_billing_user_count_tier"),
    )

    op.create_table(
        "instance_configs",
        _instance_fk(),
        sa.Column("resource_limits", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("feature_flags", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # ---------- provisioning audit ----------
    op.create_table(
        "provisioning_events",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column(
            "instance_id",
            sa.BigInteger(),
            sa.ForeignKey("instances.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("step_name", sa.String(64), nullable=False),
        sa.Column("phase", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("phase IN ('execute','verify')", name="ck_provisioning_events_phase"),
        sa.CheckConstraint(
            "status IN ('in_progress','completed','failed')",
            name="ck_provisioning_events_status",
        ),
    )
    op.create_index(
        "ix_provisioning_events_instance_started",
        "provisioning_events",
        ["instance_id", "started_at"],
    )

    # ---------- worker identities ----------
    op.create_table(
        "worker_identity_registry",
        sa.Column("worker_id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("instance_id", sa.BigInteger(), nullable=True),
        sa.Column("is_tombstoned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("allocated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "worker_id >= 0 AND worker_id <= 1023",
            name="ck_worker_identity_registry_worker_id_range",
        ),
    )
    op.create_index(
        "uq_worker_identity_registry_instance_live",
        "worker_identity_registry",
        ["instance_id"],
        unique=True,
        postgresql_where=sa.text("instance_id IS NOT NULL AND is_tombstoned = false"),
    )
    op.execute(
        f"""
        INSERT INTO worker_identity_registry (worker_id)
        SELECT g FROM generate_series({WORKER_ID_MIN}, {WORKER_ID_MAX}) AS g
        ON CONFLICT (worker_id) DO NOTHING
        """
    )

    # ---------- queue ----------
    op.create_table(
        "provisioning_queue",
        sa.Column("instance_id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("enqueued_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_provisioning_queue_enqueued_at", "provisioning_queue", ["enqueued_at"])


def downgrade():
    op.drop_table("provisioning_queue")
    op.drop_index("uq_worker_identity_registry_instance_live", table_name="worker_identity_registry")
    op.drop_table("worker_identity_registry")
    op.drop_index("ix_provisioning_events_instance_started", table_name="provisioning_events")
    op.drop_table("provisioning_events")
    op.drop_table("instance_configs")
    op.drop_table("instance_billing")
    op.drop_table("instance_health")
    op.drop_table("instance_infrastructure")
    op.drop_index("ix_instances_status_live", table_name="instances")
    op.drop_index("uq_instances_domain_live", table_name="instances")
    op.drop_index("ix_instances_owner_id", table_name="instances")
    op.drop_table("instances")
