"""create_reservation_tables

Revision ID: a3f9c1d20b71
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from reservation_engine.db.base import UUIDType, UTCDateTime

# revision identifiers, used by Alembic.
revision: str = 'a3f9c1d20b71'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create restaurants, tables and reservations."""
    op.create_table('restaurants',
        sa.Column('id', UUIDType(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),

        # Local time of day, closing <= opening runs past midnight
        sa.Column('opening_time', sa.String(length=8), nullable=False),
        sa.Column('closing_time', sa.String(length=8), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False, comment='IANA timezone name'),

        # Timestamps
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('last_modified', UTCDateTime(), nullable=False),

        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('tables',
        sa.Column('id', UUIDType(), nullable=False),
        sa.Column('restaurant_id', UUIDType(), nullable=False),
        sa.Column('table_number', sa.Integer(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('last_modified', UTCDateTime(), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('restaurant_id', 'table_number', name='uq_table_restaurant_number'),
        sa.CheckConstraint('capacity >= 1', name='ck_table_capacity_positive'),
    )
    op.create_index('ix_tables_restaurant_id', 'tables', ['restaurant_id'])

    op.create_table('reservations',
        sa.Column('id', UUIDType(), nullable=False),
        sa.Column('restaurant_id', UUIDType(), nullable=False),
        sa.Column('table_id', UUIDType(), nullable=False),

        # Customer
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=50), nullable=False),
        sa.Column('party_size', sa.Integer(), nullable=False),

        # Window, half-open [start_time, end_time)
        sa.Column('start_time', UTCDateTime(), nullable=False),
        sa.Column('end_time', UTCDateTime(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, comment='pending, confirmed, seated, completed, cancelled, waitlist'),

        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('last_modified', UTCDateTime(), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['table_id'], ['tables.id'], ondelete='CASCADE'),
        sa.CheckConstraint('party_size >= 1', name='ck_reservation_party_positive'),
        sa.CheckConstraint('start_time < end_time', name='ck_reservation_window_order'),
    )

    op.create_index('ix_reservations_restaurant_id', 'reservations', ['restaurant_id'])
    op.create_index('ix_reservations_table_id', 'reservations', ['table_id'])
    op.create_index('ix_reservations_customer_phone', 'reservations', ['customer_phone'])
    op.create_index('ix_reservations_status', 'reservations', ['status'])
    op.create_index('ix_reservations_table_window', 'reservations', ['table_id', 'start_time', 'end_time'])
    op.create_index('ix_reservations_restaurant_status', 'reservations', ['restaurant_id', 'status'])


def downgrade() -> None:
    """Drop reservation tables."""
    op.drop_table('reservations')
    op.drop_table('tables')
    op.drop_table('restaurants')
