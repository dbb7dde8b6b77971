"""keep the decision reason apart from reviewer comments

Revision ID: 0004_form_decision_reason
Revises: 0003_create_ministry_forms
Create Date: 2025-02-03
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0004_form_decision_reason"
down_revision = "0003_create_ministry_forms"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("form_decisions", sa.Column("reason", sa.Text(), nullable=True))


def downgrade() -> None:
    op.drop_column("form_decisions", "reason")
