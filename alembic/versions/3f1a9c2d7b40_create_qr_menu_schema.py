"""create_qr_menu_schema

Revision ID: 3f1a9c2d7b40
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum values are the member names, as SQLAlchemy stores them
user_role = postgresql.ENUM('PLATFORM_ADMIN', 'OWNER', 'MANAGER', 'STAFF', name='userrole', create_type=False)
subscription_plan = postgresql.ENUM('BASIC', 'PRO', 'ENTERPRISE', name='subscriptionplan', create_type=False)
subscription_status = postgresql.ENUM(
    'ACTIVE', 'TRIALING', 'PAST_DUE', 'CANCELLED', name='subscriptionstatus', create_type=False
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create users, tenants, subscriptions, QR codes, menu and analytics tables."""
    bind = op.get_bind()
    for enum_type in (user_role, subscription_plan, subscription_status):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('requires_password_change', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_user_id', 'user', ['id'])
    op.create_index('ix_user_phone', 'user', ['phone'], unique=True)

    op.create_table(
        'tenant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('logo', sa.String(), nullable=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('timezone', sa.String(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_tenant_id', 'tenant', ['id'])
    op.create_index('ix_tenant_slug', 'tenant', ['slug'], unique=True)
    op.create_index('ix_tenant_owner_id', 'tenant', ['owner_id'])

    op.create_table(
        'tenant_settings',
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenant.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('languages', postgresql.JSONB(), nullable=False),
        sa.Column('default_language', sa.String(), nullable=False),
        sa.Column('custom_logo', sa.String(), nullable=True),
        sa.Column('primary_color', sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'membership',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('permissions', postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'user_id', name='uq_membership_tenant_user'),
    )
    op.create_index('ix_membership_id', 'membership', ['id'])
    op.create_index('ix_membership_tenant_id', 'membership', ['tenant_id'])
    op.create_index('ix_membership_user_id', 'membership', ['user_id'])

    op.create_table(
        'subscription',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('plan', subscription_plan, nullable=False),
        sa.Column('status', subscription_status, nullable=False),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('billing_customer_ref', sa.String(), nullable=True),
        sa.Column('billing_subscription_ref', sa.String(), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_subscription_id', 'subscription', ['id'])
    op.create_index('ix_subscription_billing_subscription_ref', 'subscription', ['billing_subscription_ref'])

    op.create_table(
        'qr_code',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False),
        sa.Column('table_id', sa.String(), nullable=True, unique=True),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('public_url', sa.String(), nullable=False),
        sa.Column('image_key', sa.String(), nullable=True),
        sa.Column('scan_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_scanned_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_qr_code_id', 'qr_code', ['id'])
    op.create_index('ix_qr_code_tenant_id', 'qr_code', ['tenant_id'])
    op.create_index('ix_qr_code_code', 'qr_code', ['code'], unique=True)

    op.create_table(
        'scan_event',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('qr_code_id', sa.Integer(), sa.ForeignKey('qr_code.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False),
        sa.Column('scanned_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('source_address', sa.String(), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
    )
    op.create_index('ix_scan_event_id', 'scan_event', ['id'])
    op.create_index('ix_scan_event_qr_code_id', 'scan_event', ['qr_code_id'])
    op.create_index('ix_scan_event_tenant_id', 'scan_event', ['tenant_id'])
    op.create_index('ix_scan_event_scanned_at', 'scan_event', ['scanned_at'])

    op.create_table(
        'daily_analytics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unique_views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('qr_scans', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('item_views', postgresql.JSONB(), nullable=True),
        sa.Column('category_views', postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'date', name='uq_daily_analytics_tenant_date'),
    )
    op.create_index('ix_daily_analytics_id', 'daily_analytics', ['id'])
    op.create_index('ix_daily_analytics_tenant_id', 'daily_analytics', ['tenant_id'])

    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('name_translations', postgresql.JSONB(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_category_id', 'category', ['id'])
    op.create_index('ix_category_tenant_id', 'category', ['tenant_id'])

    op.create_table(
        'menu_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('category.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('name_translations', postgresql.JSONB(), nullable=True),
        sa.Column('description_translations', postgresql.JSONB(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_menu_item_id', 'menu_item', ['id'])
    op.create_index('ix_menu_item_tenant_id', 'menu_item', ['tenant_id'])
    op.create_index('ix_menu_item_category_id', 'menu_item', ['category_id'])


def downgrade() -> None:
    """Drop all tables and enum types."""
    for table in (
        'menu_item', 'category', 'daily_analytics', 'scan_event', 'qr_code',
        'subscription', 'membership', 'tenant_settings', 'tenant', 'user',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (subscription_status, subscription_plan, user_role):
        enum_type.drop(bind, checkfirst=True)
