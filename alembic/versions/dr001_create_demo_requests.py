"""Create demo_requests and demo_schedule_locks tables

Revision ID: dr001
Revises:
Create Date: 2025-06-02

This migration creates tables for:
- Demo requests: bookings from the website form, chatbot and chat tool
- Demo schedule locks: the row confirmations lock to avoid double-booking
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'dr001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ==== DEMO REQUESTS TABLE ====
    op.create_table(
        'demo_requests',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('company', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('demo_type', sa.String(32), nullable=False, server_default='general'),

        # Scheduling (UTC instants + the requester's IANA zone)
        sa.Column('preferred_datetime', sa.DateTime(timezone=True), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('confirmed_datetime', sa.DateTime(timezone=True), nullable=True),

        # Provenance
        sa.Column('source', sa.String(20), nullable=False, server_default='manual'),
        sa.Column('session_id', sa.String(100), nullable=True),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),

        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('ix_demo_requests_session_id', 'demo_requests', ['session_id'])
    op.create_index(
        'ix_demo_requests_status_preferred', 'demo_requests', ['status', 'preferred_datetime']
    )
    op.create_index(
        'ix_demo_requests_status_confirmed', 'demo_requests', ['status', 'confirmed_datetime']
    )
    op.create_index('ix_demo_requests_email_status', 'demo_requests', ['email', 'status'])

    # ==== DEMO SCHEDULE LOCKS TABLE ====
    op.create_table(
        'demo_schedule_locks',
        sa.Column('name', sa.String(64), primary_key=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
    )
    op.execute(
        "INSERT INTO demo_schedule_locks (name, version) VALUES ('demo_confirmations', 0)"
    )


def downgrade() -> None:
    op.drop_table('demo_schedule_locks')
    op.drop_index('ix_demo_requests_email_status', table_name='demo_requests')
    op.drop_index('ix_demo_requests_status_confirmed', table_name='demo_requests')
    op.drop_index('ix_demo_requests_status_preferred', table_name='demo_requests')
    op.drop_index('ix_demo_requests_session_id', table_name='demo_requests')
    op.drop_table('demo_requests')
