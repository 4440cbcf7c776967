"""Initial allocation schema

Revision ID: 001_initial_allocation
Revises:
Create Date: 2025-03-14

Adds:
- materials, stock_balances, inventory_adjustments
- orders, order_items, order_sequences
- production_tasks, production_reservations, stock_reservations
- inventory_receipts, inventory_receipt_items
- notifications
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_allocation'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'materials',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False, server_default='UN'),
        sa.Column('min_stock', sa.Numeric(precision=18, scale=4), nullable=False, server_default='0'),
        sa.Column('reorder_point', sa.Numeric(precision=18, scale=4), nullable=False, server_default='0'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_materials_id', 'materials', ['id'])
    op.create_index('ix_materials_sku', 'materials', ['sku'], unique=True)

    op.create_table(
        'stock_balances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('on_hand', sa.Numeric(precision=18, scale=4), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('on_hand >= 0', name='ck_stock_balances_on_hand_non_negative'),
    )
    op.create_index('ix_stock_balances_id', 'stock_balances', ['id'])
    op.create_index('ix_stock_balances_material_id', 'stock_balances', ['material_id'], unique=True)

    op.create_table(
        'inventory_adjustments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('qty_before', sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column('qty_after', sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column('adjustment_qty', sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('actor', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_adjustments_id', 'inventory_adjustments', ['id'])
    op.create_index('ix_inventory_adjustments_material_id', 'inventory_adjustments', ['material_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='OPEN'),
        sa.Column('total', sa.Numeric(precision=18, scale=4), nullable=False, server_default='0'),
        *_timestamps(),
        sa.Column('trashed_at', sa.DateTime(), nullable=True),
        sa.Column('status_before_trash', sa.String(length=20), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table(
        'order_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('day_key', sa.String(length=8), nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('day_key'),
    )
    op.create_index('ix_order_sequences_id', 'order_sequences', ['id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=18, scale=4), nullable=False, server_default='0'),
        sa.Column('qty_reserved_from_stock', sa.Numeric(precision=18, scale=4), nullable=False, server_default='0'),
        sa.Column('qty_to_produce', sa.Numeric(precision=18, scale=4), nullable=False, server_default='0'),
        sa.Column('shortage_action', sa.String(length=10), nullable=False, server_default='PRODUCE'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('qty_reserved_from_stock >= 0', name='ck_order_items_reserved_non_negative'),
        sa.CheckConstraint('qty_reserved_from_stock <= quantity', name='ck_order_items_reserved_within_requested'),
    )
    op.create_index('ix_order_items_id', 'order_items', ['id'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_material_id', 'order_items', ['material_id'])

    op.create_table(
        'production_tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('qty_to_produce', sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'material_id', name='uq_production_tasks_order_material'),
    )
    op.create_index('ix_production_tasks_id', 'production_tasks', ['id'])
    op.create_index('ix_production_tasks_order_id', 'production_tasks', ['order_id'])
    op.create_index('ix_production_tasks_material_id', 'production_tasks', ['material_id'])
    op.create_index('ix_production_tasks_status', 'production_tasks', ['status'])

    op.create_table(
        'production_reservations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Numeric(precision=18, scale=4), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'material_id', name='uq_production_reservations_order_material'),
    )
    op.create_index('ix_production_reservations_id', 'production_reservations', ['id'])
    op.create_index('ix_production_reservations_order_id', 'production_reservations', ['order_id'])
    op.create_index('ix_production_reservations_material_id', 'production_reservations', ['material_id'])

    op.create_table(
        'stock_reservations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=100), nullable=True),
        sa.Column('qty', sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'material_id', name='uq_stock_reservations_order_material'),
    )
    op.create_index('ix_stock_reservations_id', 'stock_reservations', ['id'])
    op.create_index('ix_stock_reservations_order_id', 'stock_reservations', ['order_id'])
    op.create_index('ix_stock_reservations_material_id', 'stock_reservations', ['material_id'])

    op.create_table(
        'inventory_receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='DRAFT'),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='GENERAL'),
        sa.Column('source_ref', sa.String(length=100), nullable=True),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.Column('posted_by', sa.String(length=100), nullable=True),
        sa.Column('auto_allocated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_receipts_id', 'inventory_receipts', ['id'])
    op.create_index('ix_inventory_receipts_status', 'inventory_receipts', ['status'])

    op.create_table(
        'inventory_receipt_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Numeric(precision=18, scale=4), nullable=False),
        sa.ForeignKeyConstraint(['receipt_id'], ['inventory_receipts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_receipt_items_id', 'inventory_receipt_items', ['id'])
    op.create_index('ix_inventory_receipt_items_receipt_id', 'inventory_receipt_items', ['receipt_id'])
    op.create_index('ix_inventory_receipt_items_material_id', 'inventory_receipt_items', ['material_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('role_target', sa.String(length=50), nullable=True),
        sa.Column('user_target', sa.String(length=100), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('material_id', sa.Integer(), nullable=True),
        sa.Column('dedupe_key', sa.String(length=150), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('dedupe_key'),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_order_id', 'notifications', ['order_id'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('inventory_receipt_items')
    op.drop_table('inventory_receipts')
    op.drop_table('stock_reservations')
    op.drop_table('production_reservations')
    op.drop_table('production_tasks')
    op.drop_table('order_items')
    op.drop_table('order_sequences')
    op.drop_table('orders')
    op.drop_table('inventory_adjustments')
    op.drop_table('stock_balances')
    op.drop_table('materials')
