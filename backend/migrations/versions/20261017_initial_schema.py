"""Initial schema: profiles, sessions, catalogs, orders, purchase orders, attendance, wastage, reports

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17

Creates:
1. profiles (single manager enforced by a partial unique index) and session_tokens
2. factory_inventory and kiosk_inventory
3. orders and purchase_orders
4. clock_logs and wastage
5. reports (archived daily summaries)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261017_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. IDENTITY
    # ==========================================================================
    op.create_table('profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('kiosk_name', sa.String(length=100), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('profiles', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_profiles_email'), ['email'], unique=True)
        batch_op.create_index(batch_op.f('ix_profiles_role'), ['role'], unique=False)
        batch_op.create_index(
            'uq_profiles_single_manager',
            ['role'],
            unique=True,
            sqlite_where=sa.text("role = 'manager'"),
            postgresql_where=sa.text("role = 'manager'"),
        )

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.String(length=36), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_profile_id'), ['profile_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)

    # ==========================================================================
    # 2. CATALOGS
    # ==========================================================================
    op.create_table('factory_inventory',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table('kiosk_inventory',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('kiosk_id', sa.String(length=36), nullable=False),
        sa.Column('item_name', sa.String(length=120), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('stock >= 0', name='ck_kiosk_inventory_stock_nonnegative'),
        sa.ForeignKeyConstraint(['kiosk_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kiosk_id', 'item_name', name='uq_kiosk_inventory_kiosk_item'),
    )
    with op.batch_alter_table('kiosk_inventory', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_kiosk_inventory_kiosk_id'), ['kiosk_id'], unique=False)

    # ==========================================================================
    # 3. SALES AND REPLENISHMENT
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('kiosk_id', sa.String(length=36), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('payment_type', sa.String(length=8), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(['kiosk_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_orders_kiosk_id'), ['kiosk_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_orders_date'), ['date'], unique=False)
        batch_op.create_index('ix_orders_kiosk_date', ['kiosk_id', 'date'], unique=False)

    op.create_table('purchase_orders',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('kiosk_id', sa.String(length=36), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('auto_generated', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['kiosk_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('purchase_orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_orders_kiosk_id'), ['kiosk_id'], unique=False)
        batch_op.create_index('ix_purchase_orders_kiosk_status', ['kiosk_id', 'status'], unique=False)

    # ==========================================================================
    # 4. ATTENDANCE AND WASTAGE
    # ==========================================================================
    op.create_table('clock_logs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('kiosk_id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=3), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.CheckConstraint("type IN ('in', 'out')", name='ck_clock_logs_type'),
        sa.ForeignKeyConstraint(['kiosk_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('clock_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_clock_logs_kiosk_id'), ['kiosk_id'], unique=False)
        batch_op.create_index('ix_clock_logs_kiosk_timestamp', ['kiosk_id', 'timestamp'], unique=False)

    op.create_table('wastage',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('kiosk_id', sa.String(length=36), nullable=False),
        sa.Column('order_id', sa.String(length=36), nullable=False),
        sa.Column('item_name', sa.String(length=120), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['kiosk_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('wastage', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_wastage_kiosk_id'), ['kiosk_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_wastage_order_id'), ['order_id'], unique=False)

    # ==========================================================================
    # 5. ARCHIVED REPORTS
    # ==========================================================================
    op.create_table('reports',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('kiosk_id', sa.String(length=36), nullable=False),
        sa.Column('revenue_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('order_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clock_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('clock_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['kiosk_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kiosk_id', 'date', name='uq_reports_kiosk_date'),
    )
    with op.batch_alter_table('reports', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reports_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_reports_kiosk_id'), ['kiosk_id'], unique=False)


def downgrade():
    op.drop_table('reports')
    op.drop_table('wastage')
    op.drop_table('clock_logs')
    op.drop_table('purchase_orders')
    op.drop_table('orders')
    op.drop_table('kiosk_inventory')
    op.drop_table('factory_inventory')
    op.drop_table('session_tokens')
    with op.batch_alter_table('profiles', schema=None) as batch_op:
        batch_op.drop_index('uq_profiles_single_manager')
    op.drop_table('profiles')
