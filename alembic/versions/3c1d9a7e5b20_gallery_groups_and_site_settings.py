"""gallery_groups_and_site_settings

Revision ID: 3c1d9a7e5b20
Revises:
Create Date: 2026-10-12 10:41:03.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1d9a7e5b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'gallery_images',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(), nullable=False, server_default=''),
        sa.Column('image_url', sa.String(), nullable=False),
        sa.Column('published', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('group_id', sa.String(length=36), nullable=True),
        sa.Column('is_cover', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f('ix_gallery_images_category'), 'gallery_images', ['category'], unique=False)
    op.create_index(op.f('ix_gallery_images_published'), 'gallery_images', ['published'], unique=False)
    op.create_index(op.f('ix_gallery_images_order'), 'gallery_images', ['order'], unique=False)
    op.create_index(op.f('ix_gallery_images_group_id'), 'gallery_images', ['group_id'], unique=False)

    # At most one cover per group; "exactly one" is kept by the writers
    op.create_index(
        'uq_gallery_images_group_cover',
        'gallery_images',
        ['group_id'],
        unique=True,
        postgresql_where=sa.text('is_cover AND group_id IS NOT NULL'),
        sqlite_where=sa.text('is_cover AND group_id IS NOT NULL'),
    )

    op.create_table(
        'site_settings',
        sa.Column('key', sa.String(), primary_key=True),
        sa.Column('value', sa.String(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.execute("INSERT INTO site_settings (key, value) VALUES ('maintenance_mode', 'false')")


def downgrade() -> None:
    op.drop_table('site_settings')
    op.drop_index('uq_gallery_images_group_cover', table_name='gallery_images')
    op.drop_index(op.f('ix_gallery_images_group_id'), table_name='gallery_images')
    op.drop_index(op.f('ix_gallery_images_order'), table_name='gallery_images')
    op.drop_index(op.f('ix_gallery_images_published'), table_name='gallery_images')
    op.drop_index(op.f('ix_gallery_images_category'), table_name='gallery_images')
    op.drop_table('gallery_images')
