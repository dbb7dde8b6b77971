"""create ministries and pillar assignments

Revision ID: 0002_create_ministries
Revises: 0001_create_users
Create Date: 2025-01-06
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_create_ministries"
down_revision = "0001_create_users"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "ministries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("slug", sa.String(length=140), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ministry_leader_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    op.create_table(
        "ministry_pillars",
        sa.Column("ministry_id", sa.Integer(), sa.ForeignKey("ministries.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.UniqueConstraint("ministry_id", "user_id", name="uq_ministry_pillar"),
    )
    op.create_index("ix_ministry_pillars_user_id", "ministry_pillars", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_ministry_pillars_user_id", table_name="ministry_pillars")
    op.drop_table("ministry_pillars")
    op.drop_table("ministries")
