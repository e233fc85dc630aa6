"""create_notification_tables

Revision ID: 7c41d0e5a2b9
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '7c41d0e5a2b9'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, notifications, preferences and templates, then seed templates."""

    # --- users (directory mirror, owned by the helpdesk system) ---
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False,
                  server_default='Employee'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )
    op.create_index('ix_users_role', 'users', ['role'])

    # --- notifications (one row per recipient) ---
    op.create_table('notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False,
                  server_default='medium'),
        sa.Column('category', sa.String(length=30), nullable=False,
                  server_default='alerts'),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False,
                  server_default='false'),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('snoozed_until', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text("(NOW() AT TIME ZONE 'utc')")),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_created',
                    'notifications', ['user_id', 'created_at'])
    op.create_index('ix_notifications_user_unread',
                    'notifications', ['user_id', 'is_read'])
    # Retention purge only touches read rows
    op.create_index('ix_notifications_read_created',
                    'notifications', ['created_at'],
                    postgresql_where=sa.text('is_read = TRUE'))

    # --- notification_preferences (one row per user) ---
    op.create_table('notification_preferences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('ticket_assignments', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('ticket_status_changes', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('asset_assignments', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('maintenance_alerts', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('upgrade_requests', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('system_announcements', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('employee_changes', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('dnd_enabled', sa.Boolean(), nullable=False,
                  server_default='false'),
        sa.Column('dnd_start_time', sa.String(length=5), nullable=True),
        sa.Column('dnd_end_time', sa.String(length=5), nullable=True),
        sa.Column('dnd_days', postgresql.JSONB(astext_type=sa.Text()),
                  nullable=True, server_default='[]'),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    # --- notification_templates (admin registry) ---
    op.create_table('notification_templates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=30), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False,
                  server_default='medium'),
        sa.Column('title_template', sa.String(length=255), nullable=False),
        sa.Column('message_template', sa.Text(), nullable=False),
        sa.Column('variables', postgresql.JSONB(astext_type=sa.Text()),
                  nullable=True, server_default='[]'),
        sa.Column('is_active', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True,
                  server_default=sa.text("(NOW() AT TIME ZONE 'utc')")),
        sa.Column('updated_at', sa.DateTime(), nullable=True,
                  server_default=sa.text("(NOW() AT TIME ZONE 'utc')")),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'],
                                ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index('ix_notification_templates_category',
                    'notification_templates', ['category'])

    # --- Seed default templates ---
    op.execute("""
        INSERT INTO notification_templates
            (name, description, category, type, priority,
             title_template, message_template, variables)
        VALUES
            ('ticket_assignment',
             'Sent to a technician when a ticket is assigned to them',
             'assignments', 'Ticket', 'medium',
             'New Ticket Assigned: {{ticket_number}}',
             'You have been assigned ticket {{ticket_number}}: {{subject}}',
             '["ticket_number", "subject"]'),
            ('ticket_status_change',
             'Sent to ticket participants when the status changes',
             'status_changes', 'Ticket', 'low',
             'Ticket {{ticket_number}} Status Updated',
             'Ticket {{ticket_number}} changed from {{old_status}} to {{new_status}}',
             '["ticket_number", "old_status", "new_status"]'),
            ('asset_assignment',
             'Sent to an employee when an asset is assigned to them',
             'assignments', 'Asset', 'medium',
             'Asset Assigned: {{asset_name}}',
             'Asset {{asset_name}} ({{asset_tag}}) has been assigned to you',
             '["asset_name", "asset_tag"]'),
            ('maintenance_scheduled',
             'Sent to the asset holder when maintenance is booked',
             'maintenance', 'Asset', 'medium',
             'Maintenance Scheduled: {{asset_name}}',
             '{{maintenance_type}} maintenance for {{asset_name}} is scheduled on {{scheduled_date}}',
             '["asset_name", "maintenance_type", "scheduled_date"]'),
            ('upgrade_approval_pending',
             'Sent to approvers when an upgrade request is submitted',
             'approvals', 'Asset', 'high',
             'Upgrade Approval Needed: {{asset_name}}',
             '{{requester_name}} requested {{upgrade_type}} for {{asset_name}}',
             '["asset_name", "requester_name", "upgrade_type"]'),
            ('system_announcement',
             'Organization-wide announcement',
             'announcements', 'System', 'medium',
             '{{title}}',
             '{{message}}',
             '["title", "message"]');
    """)


def downgrade() -> None:
    """Drop notification tables."""
    op.drop_index('ix_notification_templates_category',
                  table_name='notification_templates')
    op.drop_table('notification_templates')

    op.drop_table('notification_preferences')

    op.drop_index('ix_notifications_read_created', table_name='notifications')
    op.drop_index('ix_notifications_user_unread', table_name='notifications')
    op.drop_index('ix_notifications_user_created', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('ix_users_role', table_name='users')
    op.drop_table('users')
