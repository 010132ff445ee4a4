"""Add outage groups and items tables

Revision ID: 001_add_outage_tables
Revises:
Create Date: 2025-11-29 09:00:27.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_add_outage_tables'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create outages_groups and outages_items."""
    op.create_table(
        'outages_groups',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('event_type', sa.String(length=255), nullable=False),
        sa.Column('controller_id', sa.String(length=255), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'idx_time_event_controller', 'outages_groups',
        ['start_time', 'end_time', 'event_type', 'controller_id'], unique=False
    )
    op.create_index('idx_event_controller', 'outages_groups', ['controller_id', 'event_type'], unique=False)

    op.create_table(
        'outages_items',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('group_id', sa.BigInteger(), nullable=False),
        sa.Column('occurrence_time', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('group_id', 'occurrence_time', name='idx_group_id_occurrence_time')
    )


def downgrade() -> None:
    """Drop outage tables."""
    op.drop_table('outages_items')
    op.drop_index('idx_event_controller', table_name='outages_groups')
    op.drop_index('idx_time_event_controller', table_name='outages_groups')
    op.drop_table('outages_groups')
