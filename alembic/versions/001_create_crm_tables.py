"""Create CRM tables (users, customers, orders, segments, campaigns, communication_logs)

Revision ID: 001_create_crm_tables
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_crm_tables'
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(name):
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade():
    """Create CRM tables."""
    if not _table_exists('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('google_id', sa.String(255), nullable=False, unique=True, index=True),
            sa.Column('display_name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
            sa.Column('photo', sa.String(1024)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )

    if not _table_exists('customers'):
        op.create_table(
            'customers',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
            sa.Column('phone', sa.String(50)),
            # Behavioral attributes used by segment rules
            sa.Column('total_spend', sa.Float(), nullable=False, server_default='0'),
            sa.Column('visits', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_visit', sa.DateTime(timezone=True)),
            sa.Column('tags', sa.JSON()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )

    if not _table_exists('orders'):
        op.create_table(
            'orders',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('order_number', sa.String(100), nullable=False, unique=True),
            sa.Column('amount', sa.Float(), nullable=False),
            sa.Column('items', sa.JSON()),
            sa.Column('status', sa.Enum('pending', 'processing', 'completed', 'cancelled',
                                        name='order_status_enum'), nullable=False),
            sa.Column('payment_status', sa.Enum('pending', 'paid', 'failed',
                                                name='order_payment_status_enum'), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )

    if not _table_exists('segments'):
        op.create_table(
            'segments',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('name', sa.String(100), nullable=False),
            sa.Column('description', sa.Text()),
            sa.Column('rules', sa.JSON(), nullable=False),
            sa.Column('estimated_audience', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )

    if not _table_exists('campaigns'):
        op.create_table(
            'campaigns',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('name', sa.String(255), nullable=False, index=True),
            sa.Column('description', sa.Text()),
            sa.Column('type', sa.Enum('email', 'sms', 'push', name='campaign_type_enum'), nullable=False),
            sa.Column('status', sa.Enum('draft', 'scheduled', 'active', 'completed', 'paused',
                                        name='campaign_status_enum'), nullable=False, index=True),
            sa.Column('segment_id', sa.Integer(), sa.ForeignKey('segments.id', ondelete='RESTRICT'),
                      nullable=False),
            sa.Column('content', sa.JSON(), nullable=False),
            sa.Column('schedule', sa.JSON()),
            # Metrics
            sa.Column('sent', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('delivered', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('opened', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('clicked', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('bounced', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('complained', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('unsubscribed', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('failed', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'),
                      index=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )

    if not _table_exists('communication_logs'):
        op.create_table(
            'communication_logs',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaigns.id', ondelete='CASCADE'),
                      nullable=False),
            sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id', ondelete='CASCADE'),
                      nullable=False),
            sa.Column('message', sa.Text(), nullable=False),
            sa.Column('status', sa.Enum('queued', 'sent', 'delivered', 'failed',
                                        name='communication_status_enum'), nullable=False),
            sa.Column('vendor_message_id', sa.String(255), index=True),
            sa.Column('error_details', sa.Text()),
            sa.Column('metadata', sa.JSON()),
            sa.Column('sent_at', sa.DateTime(timezone=True)),
            sa.Column('delivered_at', sa.DateTime(timezone=True)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index('ix_communication_logs_campaign_customer', 'communication_logs',
                        ['campaign_id', 'customer_id'])
        op.create_index('ix_communication_logs_status_campaign', 'communication_logs',
                        ['status', 'campaign_id'])


def downgrade():
    """Drop CRM tables."""
    for table in ('communication_logs', 'campaigns', 'segments', 'orders', 'customers', 'users'):
        if _table_exists(table):
            op.drop_table(table)

    bind = op.get_bind()
    for enum_name in (
        'communication_status_enum',
        'campaign_status_enum',
        'campaign_type_enum',
        'order_payment_status_enum',
        'order_status_enum',
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
