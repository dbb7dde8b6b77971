"""create event types and per-form events and goals

Revision ID: 0005_event_types_form_entries
Revises: 0004_form_decision_reason
Create Date: 2025-02-10
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0005_event_types_form_entries"
down_revision = "0004_form_decision_reason"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "event_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    op.create_table(
        "form_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("form_id", sa.Integer(), sa.ForeignKey("ministry_forms.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "event_type_id",
            sa.Integer(),
            sa.ForeignKey("event_types.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("event_name", sa.String(length=200), nullable=True),
        sa.Column("purpose", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("estimated_expenses", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("expected_attendance", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("ix_form_events_form_id", "form_events", ["form_id"])
    op.create_index("ix_form_events_event_type_id", "form_events", ["event_type_id"])

    op.create_table(
        "form_goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("form_id", sa.Integer(), sa.ForeignKey("ministry_forms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("goal_description", sa.Text(), nullable=False),
        sa.Column("specific", sa.Text(), nullable=True),
        sa.Column("measurable", sa.Text(), nullable=True),
        sa.Column("achievable", sa.Text(), nullable=True),
        sa.Column("relevant", sa.Text(), nullable=True),
        sa.Column("time_bound", sa.Text(), nullable=True),
        sa.Column("measure_target", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("ix_form_goals_form_id", "form_goals", ["form_id"])


def downgrade() -> None:
    op.drop_index("ix_form_goals_form_id", table_name="form_goals")
    op.drop_table("form_goals")
    op.drop_index("ix_form_events_event_type_id", table_name="form_events")
    op.drop_index("ix_form_events_form_id", table_name="form_events")
    op.drop_table("form_events")
    op.drop_table("event_types")
