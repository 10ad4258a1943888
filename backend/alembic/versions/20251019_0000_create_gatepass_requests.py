"""create_gatepass_requests

Revision ID: create_gatepass_requests
Revises:
Create Date: 2025-10-19 00:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa
from gatepass.database_types import GUID, UTCDateTime
from gatepass.models.gatepass_request import gatepass_status_type


revision = 'create_gatepass_requests'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    if 'gatepass_requests' in inspector.get_table_names():
        return

    op.create_table(
        'gatepass_requests',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('student_name', sa.String(255), nullable=False),
        sa.Column('roll_number', sa.String(64), nullable=False),
        sa.Column('student_email', sa.String(320), nullable=True),
        sa.Column('parent_email', sa.String(320), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('destination', sa.String(255), nullable=True),
        sa.Column('departure_date_time', UTCDateTime(), nullable=False),
        sa.Column('return_date_time', UTCDateTime(), nullable=True),
        sa.Column('duration', sa.String(64), nullable=True),
        sa.Column('status', gatepass_status_type, nullable=False, server_default='Pending Parent Approval'),
        sa.Column('parent_approved_at', UTCDateTime(), nullable=True),
        sa.Column('parent_rejection_reason', sa.Text(), nullable=True),
        sa.Column('warden_approved_at', UTCDateTime(), nullable=True),
        sa.Column('warden_notes', sa.Text(), nullable=True),
        sa.Column('completed_at', UTCDateTime(), nullable=True),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
    )
    op.create_index('ix_gatepass_requests_roll_number', 'gatepass_requests', ['roll_number'])
    op.create_index('idx_gatepass_status_created', 'gatepass_requests', ['status', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_gatepass_status_created', table_name='gatepass_requests')
    op.drop_index('ix_gatepass_requests_roll_number', table_name='gatepass_requests')
    op.drop_table('gatepass_requests')
