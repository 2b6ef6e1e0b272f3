"""Create product_images and user_avatars tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _asset_columns():
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("storage_path", sa.String(length=1000), nullable=False),
        sa.Column("url", sa.String(length=2000), nullable=False),
        sa.Column("alt_text", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade() -> None:
    op.create_table(
        "product_images",
        *_asset_columns(),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("storage_path"),
    )
    op.create_index("ix_product_images_id", "product_images", ["id"], unique=False)
    op.create_index("ix_product_images_product_id", "product_images", ["product_id"], unique=False)
    op.create_index(
        "ix_product_images_product_sort", "product_images", ["product_id", "sort_order"], unique=False
    )

    op.create_table(
        "user_avatars",
        *_asset_columns(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("viewport_x", sa.Float(), nullable=True),
        sa.Column("viewport_y", sa.Float(), nullable=True),
        sa.Column("viewport_size", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("storage_path"),
    )
    op.create_index("ix_user_avatars_id", "user_avatars", ["id"], unique=False)
    op.create_index("ix_user_avatars_user_id", "user_avatars", ["user_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_user_avatars_user_id", table_name="user_avatars")
    op.drop_index("ix_user_avatars_id", table_name="user_avatars")
    op.drop_table("user_avatars")

    op.drop_index("ix_product_images_product_sort", table_name="product_images")
    op.drop_index("ix_product_images_product_id", table_name="product_images")
    op.drop_index("ix_product_images_id", table_name="product_images")
    op.drop_table("product_images")
