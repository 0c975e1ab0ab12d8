"""create fleet compliance tables

Revision ID: 3c1f9a7d2e10
Revises:
Create Date: 2026-10-19 09:12:31.402118
"""
from alembic import op
import sqlalchemy as sa

revision = "3c1f9a7d2e10"
down_revision = None
branch_labels = None
depends_on = None


CHECKLIST_TABLES = ("daily_checklist", "weekly_checklist", "monthly_checklist")


def _franchise_fk():
    return sa.Column("franchise_id", sa.Integer(), sa.ForeignKey("franchise.id"), nullable=False)


def _vehicle_fk():
    return sa.Column("vehicle_id", sa.Integer(), sa.ForeignKey("vehicle.id"), nullable=False)


def upgrade():
    op.create_table(
        "franchise",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "vehicle",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        sa.Column("vehicle_number", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("current_odometer", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_vehicle_franchise_id", "vehicle", ["franchise_id"])
    op.create_index("ix_vehicle_franchise_status", "vehicle", ["franchise_id", "status"])

    op.create_table(
        "vehicle_issue",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        _vehicle_fk(),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("severity", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_vehicle_issue_franchise_id", "vehicle_issue", ["franchise_id"])
    op.create_index("ix_vehicle_issue_vehicle_id", "vehicle_issue", ["vehicle_id"])

    op.create_table(
        "daily_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        _vehicle_fk(),
        sa.Column("driver_id", sa.String(length=64), nullable=True),
        sa.Column("log_date", sa.Date(), nullable=False),
        sa.Column("start_odometer", sa.Integer(), nullable=True),
        sa.Column("end_odometer", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("vehicle_id", "log_date", name="uq_daily_log_vehicle_date"),
    )
    op.create_index("ix_daily_log_franchise_id", "daily_log", ["franchise_id"])
    op.create_index("ix_daily_log_vehicle_id", "daily_log", ["vehicle_id"])
    op.create_index("ix_daily_log_log_date", "daily_log", ["log_date"])

    for table in CHECKLIST_TABLES:
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            _franchise_fk(),
            _vehicle_fk(),
            sa.Column("driver_id", sa.String(length=64), nullable=True),
            sa.Column("checklist_date", sa.Date(), nullable=False),
            sa.Column("overall_status", sa.String(length=32), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint("vehicle_id", "checklist_date", name=f"uq_{table}_vehicle_date"),
        )
        op.create_index(f"ix_{table}_franchise_id", table, ["franchise_id"])
        op.create_index(f"ix_{table}_vehicle_id", table, ["vehicle_id"])
        op.create_index(f"ix_{table}_checklist_date", table, ["checklist_date"])

    op.create_table(
        "checklist_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        sa.Column("checklist_type", sa.String(length=16), nullable=False),
        sa.Column("interval_days", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("franchise_id", "checklist_type", name="uq_checklist_settings_franchise_type"),
        sa.CheckConstraint("interval_days > 0", name="ck_checklist_settings_interval_pos"),
    )

    op.create_table(
        "scheduled_maintenance",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        _vehicle_fk(),
        sa.Column("maintenance_type", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("due_odometer", sa.Integer(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "due_date IS NOT NULL OR due_odometer IS NOT NULL",
            name="ck_scheduled_maintenance_has_trigger",
        ),
    )
    op.create_index("ix_scheduled_maintenance_vehicle_id", "scheduled_maintenance", ["vehicle_id"])
    op.create_index("ix_sm_franchise_completed", "scheduled_maintenance", ["franchise_id", "completed"])

    op.create_table(
        "push_subscription",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("endpoint", sa.String(length=1024), nullable=False),
        sa.Column("p256dh", sa.String(length=255), nullable=False),
        sa.Column("auth", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_push_sub_franchise_user_active", "push_subscription", ["franchise_id", "user_id", "is_active"]
    )

    op.create_table(
        "notification_run",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        sa.Column("run_date", sa.Date(), nullable=False),
        sa.Column("run_type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="claimed"),
        sa.Column("reason", sa.String(length=32), nullable=True),
        sa.Column("sent_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("deactivated_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("franchise_id", "run_date", "run_type", name="uq_notification_run_key"),
    )

    op.create_table(
        "vehicle_assignment",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        _vehicle_fk(),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_vehicle_assignment_franchise_id", "vehicle_assignment", ["franchise_id"])
    op.create_index("ix_vehicle_assignment_vehicle_id", "vehicle_assignment", ["vehicle_id"])

    op.create_table(
        "franchise_membership",
        sa.Column("id", sa.Integer(), primary_key=True),
        _franchise_fk(),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="driver"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("franchise_id", "user_id", name="uq_franchise_membership"),
    )
    op.create_index("ix_franchise_membership_franchise_id", "franchise_membership", ["franchise_id"])


def downgrade():
    op.drop_table("franchise_membership")
    op.drop_table("vehicle_assignment")
    op.drop_table("notification_run")
    op.drop_table("push_subscription")
    op.drop_table("scheduled_maintenance")
    op.drop_table("checklist_settings")
    for table in reversed(CHECKLIST_TABLES):
        op.drop_table(table)
    op.drop_table("daily_log")
    op.drop_table("vehicle_issue")
    op.drop_table("vehicle")
    op.drop_table("franchise")
