"""create snapshot, listing and change record tables

Revision ID: 3f1c9a7e2b4d
Revises:
Create Date: 2026-10-17 10:12:03.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b4d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('snapshots',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('seller_id', sa.String(), nullable=False),
    sa.Column('captured_at', sa.DateTime(), nullable=False),
    sa.Column('total_listing_count', sa.Integer(), nullable=False),
    sa.Column('total_sold_units', sa.Integer(), nullable=False),
    sa.Column('average_ticket', sa.Float(), nullable=True),
    sa.Column('raw_payload', sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_snapshots_seller', 'snapshots', ['seller_id'], unique=False)
    op.create_table('snapshot_listings',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('snapshot_id', sa.Integer(), nullable=False),
    sa.Column('item_id', sa.String(), nullable=False),
    sa.Column('title', sa.String(), nullable=False),
    sa.Column('price', sa.Float(), nullable=False),
    sa.Column('available_stock', sa.Integer(), nullable=False),
    sa.Column('sold_count', sa.Integer(), nullable=False),
    sa.Column('category_id', sa.String(), nullable=True),
    sa.Column('status', sa.String(), nullable=False),
    sa.Column('thumbnail_url', sa.String(), nullable=True),
    sa.Column('raw_payload', sa.Text(), nullable=True),
    sa.ForeignKeyConstraint(['snapshot_id'], ['snapshots.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('snapshot_id', 'item_id', name='uq_snapshot_item')
    )
    op.create_index('idx_listings_item', 'snapshot_listings', ['item_id'], unique=False)
    op.create_index('idx_listings_snapshot', 'snapshot_listings', ['snapshot_id'], unique=False)
    op.create_table('change_records',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('item_id', sa.String(), nullable=False),
    sa.Column('change_type', sa.String(), nullable=False),
    sa.Column('previous_value', sa.Text(), nullable=True),
    sa.Column('new_value', sa.Text(), nullable=True),
    sa.Column('percent_variation', sa.Float(), nullable=True),
    sa.Column('detected_at', sa.DateTime(), nullable=False),
    sa.Column('sold_count_before', sa.Integer(), nullable=True),
    sa.Column('sold_count_after', sa.Integer(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_changes_item', 'change_records', ['item_id'], unique=False)
    op.create_index('idx_changes_detected', 'change_records', ['detected_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_changes_detected', table_name='change_records')
    op.drop_index('idx_changes_item', table_name='change_records')
    op.drop_table('change_records')
    op.drop_index('idx_listings_snapshot', table_name='snapshot_listings')
    op.drop_index('idx_listings_item', table_name='snapshot_listings')
    op.drop_table('snapshot_listings')
    op.drop_index('idx_snapshots_seller', table_name='snapshots')
    op.drop_table('snapshots')
