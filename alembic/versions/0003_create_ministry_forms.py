"""ministry forms, decisions, audit log and notifications

Revision ID: 0003_create_ministry_forms
Revises: 0002_create_ministries
Create Date: 2025-01-08
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0003_create_ministry_forms"
down_revision = "0002_create_ministries"
branch_labels = None
depends_on = None

FORM_STATUSES = ("draft", "pending_pillar", "pending_pastor", "approved", "rejected")
FORM_ACTIONS = ("submit", "approve", "reject", "query", "revoke")


def upgrade() -> None:
    bind = op.get_bind()
    postgresql.ENUM(*FORM_STATUSES, name="ministry_form_status").create(bind, checkfirst=True)
    postgresql.ENUM(*FORM_ACTIONS, name="ministry_form_action").create(bind, checkfirst=True)

    op.create_table(
        "ministry_forms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("form_number", sa.String(length=32), nullable=False),
        sa.Column("ministry_id", sa.Integer(), sa.ForeignKey("ministries.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("ministry_leader_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(*FORM_STATUSES, name="ministry_form_status", create_type=False),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("sections", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pillar_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pillar_approved_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("pastor_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pastor_approved_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("rejected_stage", sa.String(length=32), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("ix_ministry_forms_form_number", "ministry_forms", ["form_number"], unique=True)
    op.create_index("ix_ministry_forms_ministry_id", "ministry_forms", ["ministry_id"])
    op.create_index("ix_ministry_forms_ministry_leader_id", "ministry_forms", ["ministry_leader_id"])
    op.create_index("ix_ministry_forms_status", "ministry_forms", ["status"])

    op.create_table(
        "form_decisions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("form_id", sa.Integer(), sa.ForeignKey("ministry_forms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column(
            "action",
            postgresql.ENUM(*FORM_ACTIONS, name="ministry_form_action", create_type=False),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(length=32), nullable=False),
        sa.Column("to_status", sa.String(length=32), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("signature", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("ix_form_decisions_form_id", "form_decisions", ["form_id"])

    op.create_table(
        "form_audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("form_id", sa.Integer(), sa.ForeignKey("ministry_forms.id", ondelete="SET NULL"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("ix_form_audit_logs_form_id", "form_audit_logs", ["form_id"])
    op.create_index("ix_form_audit_logs_created_at", "form_audit_logs", ["created_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("form_id", sa.Integer(), sa.ForeignKey("ministry_forms.id", ondelete="CASCADE"), nullable=True),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_form_id", "notifications", ["form_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_notifications_created_at", table_name="notifications")
    op.drop_index("ix_notifications_form_id", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_form_audit_logs_created_at", table_name="form_audit_logs")
    op.drop_index("ix_form_audit_logs_form_id", table_name="form_audit_logs")
    op.drop_table("form_audit_logs")
    op.drop_index("ix_form_decisions_form_id", table_name="form_decisions")
    op.drop_table("form_decisions")
    op.drop_index("ix_ministry_forms_status", table_name="ministry_forms")
    op.drop_index("ix_ministry_forms_ministry_leader_id", table_name="ministry_forms")
    op.drop_index("ix_ministry_forms_ministry_id", table_name="ministry_forms")
    op.drop_index("ix_ministry_forms_form_number", table_name="ministry_forms")
    op.drop_table("ministry_forms")
    bind = op.get_bind()
    postgresql.ENUM(name="ministry_form_action").drop(bind, checkfirst=True)
    postgresql.ENUM(name="ministry_form_status").drop(bind, checkfirst=True)
