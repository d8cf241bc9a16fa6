"""users, orders, settlement transactions, notifications, audit logs

Revision ID: 9c1e4a7b2d30
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = '9c1e4a7b2d30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    existing = set(insp.get_table_names())

    if "users" not in existing:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('full_name', sa.String(length=120), nullable=False, server_default=''),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('password_hash', sa.String(length=255), nullable=False, server_default=''),
            sa.Column('role', sa.String(length=32), nullable=False, server_default='customer'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if "orders" not in existing:
        op.create_table(
            'orders',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
            sa.Column('total_money', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
            sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='SEPAY'),
            sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='UNPAID'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_orders_user_id', 'orders', ['user_id'])
        op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])

    if "transactions" not in existing:
        op.create_table(
            'transactions',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('order_id', sa.String(length=36), sa.ForeignKey('orders.id'), nullable=False),
            sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='SEPAY'),
            sa.Column('transaction_code', sa.String(length=128), nullable=False),
            sa.Column('amount', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
            sa.Column('description', sa.String(length=500), nullable=True),
            sa.Column('paid_at', sa.DateTime(), nullable=False),
            sa.UniqueConstraint('transaction_code', name='uq_transactions_transaction_code'),
        )
        op.create_index('ix_transactions_order_id', 'transactions', ['order_id'])

    if "notifications" not in existing:
        op.create_table(
            'notifications',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
            sa.Column('type', sa.String(length=32), nullable=False, server_default='SYSTEM'),
            sa.Column('title', sa.String(length=160), nullable=False, server_default=''),
            sa.Column('message', sa.Text(), nullable=False),
            sa.Column('data', sa.Text(), nullable=True),
            sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('read_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
        op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])

    if "audit_logs" not in existing:
        op.create_table(
            'audit_logs',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('actor_user_id', sa.Integer(), nullable=True),
            sa.Column('action', sa.String(length=64), nullable=False),
            sa.Column('target_type', sa.String(length=64), nullable=True),
            sa.Column('target_id', sa.String(length=64), nullable=True),
            sa.Column('meta', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )


def downgrade():
    op.drop_table('audit_logs')
    op.drop_index('ix_notifications_is_read', table_name='notifications')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_transactions_order_id', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_orders_payment_status', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
