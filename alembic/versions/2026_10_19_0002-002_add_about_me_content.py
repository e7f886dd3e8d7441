"""add about_me_content

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

Single-row table backing the editable About page.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "about_me_content",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("hero_image", sa.String(512), nullable=True),
        sa.Column("life_pictures_title", sa.String(255), nullable=False, server_default="Life in Pictures"),
        sa.Column("life_pictures_image", sa.String(512), nullable=True),
        sa.Column("life_pictures_caption", sa.String(255), nullable=False, server_default=""),
        sa.Column("life_pictures_description", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("about_me_content")
