"""Scheduled redirects - Backoffice

Revision ID: 0001_scheduled_redirects
Revises:
Create Date: 2026-10-19

Backoffice-owned tables:
- scheduled_redirects (durable redirect windows; rows are never deleted)

App-chat tables (accounts, chats, chats_tags) belong to the chat platform and
are not migrated here.
"""

from alembic import op
import sqlalchemy as sa

revision = '0001_scheduled_redirects'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'scheduled_redirects',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('source_user_id', sa.Text(), nullable=False),
        sa.Column('destination_user_id', sa.Text(), nullable=False),
        sa.Column('sector_code', sa.Text(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(20), server_default='scheduled', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('scheduled', 'active', 'completed', 'cancelled')",
            name='ck_scheduled_redirects_status',
        ),
        sa.CheckConstraint(
            'end_date IS NULL OR end_date > start_date',
            name='ck_scheduled_redirects_window',
        ),
    )
    op.create_index('idx_scheduled_redirects_status_start', 'scheduled_redirects', ['status', 'start_date'])
    op.create_index('idx_scheduled_redirects_status_end', 'scheduled_redirects', ['status', 'end_date'])


def downgrade():
    op.drop_index('idx_scheduled_redirects_status_end', table_name='scheduled_redirects')
    op.drop_index('idx_scheduled_redirects_status_start', table_name='scheduled_redirects')
    op.drop_table('scheduled_redirects')
