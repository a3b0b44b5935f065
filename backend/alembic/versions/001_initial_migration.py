"""Initial migration

Revision ID: 001
Revises: 
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create timesheet_entries table
    op.create_table('timesheet_entries',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.String(length=100), nullable=False),
    sa.Column('project_id', sa.String(length=100), nullable=True),
    sa.Column('date', sa.Date(), nullable=False),
    sa.Column('duration', sa.Integer(), nullable=False),
    sa.Column('is_billable', sa.Boolean(), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('is_manual', sa.Boolean(), nullable=False),
    sa.Column('is_skipped', sa.Boolean(), nullable=False),
    sa.Column('event_id', sa.String(length=255), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_timesheet_entries_id'), 'timesheet_entries', ['id'], unique=False)
    op.create_index(op.f('ix_timesheet_entries_user_id'), 'timesheet_entries', ['user_id'], unique=False)
    op.create_index(op.f('ix_timesheet_entries_project_id'), 'timesheet_entries', ['project_id'], unique=False)
    op.create_index('idx_timesheet_entries_user_date', 'timesheet_entries', ['user_id', 'date'], unique=False)

    # Create rm_connections table
    op.create_table('rm_connections',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.String(length=100), nullable=False),
    sa.Column('rm_user_id', sa.Integer(), nullable=False),
    sa.Column('rm_user_email', sa.String(length=255), nullable=True),
    sa.Column('rm_user_name', sa.String(length=255), nullable=True),
    sa.Column('api_token', sa.Text(), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('auto_sync_enabled', sa.Boolean(), nullable=False),
    sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_rm_connections_id'), 'rm_connections', ['id'], unique=False)
    op.create_index(op.f('ix_rm_connections_user_id'), 'rm_connections', ['user_id'], unique=True)

    # Create rm_project_mappings table
    op.create_table('rm_project_mappings',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('connection_id', sa.Integer(), nullable=False),
    sa.Column('project_id', sa.String(length=100), nullable=False),
    sa.Column('rm_project_id', sa.Integer(), nullable=False),
    sa.Column('rm_project_name', sa.String(length=255), nullable=False),
    sa.Column('rm_project_code', sa.String(length=100), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['connection_id'], ['rm_connections.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('connection_id', 'project_id', name='uq_rm_mapping_connection_project'),
    sa.UniqueConstraint('connection_id', 'rm_project_id', name='uq_rm_mapping_connection_rm_project')
    )
    op.create_index(op.f('ix_rm_project_mappings_id'), 'rm_project_mappings', ['id'], unique=False)
    op.create_index(op.f('ix_rm_project_mappings_connection_id'), 'rm_project_mappings', ['connection_id'], unique=False)

    # Create rm_synced_entries table
    op.create_table('rm_synced_entries',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('mapping_id', sa.Integer(), nullable=False),
    sa.Column('remote_entry_id', sa.Integer(), nullable=False),
    sa.Column('aggregation_date', sa.Date(), nullable=False),
    sa.Column('last_synced_hash', sa.String(length=64), nullable=False),
    sa.Column('sync_version', sa.Integer(), nullable=False),
    sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['mapping_id'], ['rm_project_mappings.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('mapping_id', 'aggregation_date', name='uq_rm_synced_entry_mapping_date')
    )
    op.create_index(op.f('ix_rm_synced_entries_id'), 'rm_synced_entries', ['id'], unique=False)
    op.create_index('idx_rm_synced_entries_aggregation_date', 'rm_synced_entries', ['aggregation_date'], unique=False)

    # Create rm_synced_entry_components table
    op.create_table('rm_synced_entry_components',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('rm_synced_entry_id', sa.Integer(), nullable=False),
    sa.Column('timesheet_entry_id', sa.Integer(), nullable=False),
    sa.Column('duration_minutes', sa.Integer(), nullable=False),
    sa.Column('is_billable', sa.Boolean(), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['rm_synced_entry_id'], ['rm_synced_entries.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['timesheet_entry_id'], ['timesheet_entries.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('rm_synced_entry_id', 'timesheet_entry_id', name='uq_rm_component_entry_pair')
    )
    op.create_index(op.f('ix_rm_synced_entry_components_id'), 'rm_synced_entry_components', ['id'], unique=False)
    op.create_index(op.f('ix_rm_synced_entry_components_rm_synced_entry_id'), 'rm_synced_entry_components', ['rm_synced_entry_id'], unique=False)
    op.create_index(op.f('ix_rm_synced_entry_components_timesheet_entry_id'), 'rm_synced_entry_components', ['timesheet_entry_id'], unique=False)

    # Create rm_sync_logs table
    op.create_table('rm_sync_logs',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.String(length=100), nullable=False),
    sa.Column('connection_id', sa.Integer(), nullable=True),
    sa.Column('trigger_type', sa.String(length=50), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('range_start', sa.String(length=10), nullable=True),
    sa.Column('range_end', sa.String(length=10), nullable=True),
    sa.Column('entries_created', sa.Integer(), nullable=False),
    sa.Column('entries_updated', sa.Integer(), nullable=False),
    sa.Column('entries_deleted', sa.Integer(), nullable=False),
    sa.Column('entries_skipped', sa.Integer(), nullable=False),
    sa.Column('entries_failed', sa.Integer(), nullable=False),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('error_details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['connection_id'], ['rm_connections.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_rm_sync_logs_id'), 'rm_sync_logs', ['id'], unique=False)
    op.create_index(op.f('ix_rm_sync_logs_user_id'), 'rm_sync_logs', ['user_id'], unique=False)
    op.create_index('idx_rm_sync_logs_connection_started', 'rm_sync_logs', ['connection_id', 'started_at'], unique=False)
    # At most one RUNNING sync per connection
    op.create_index(
        'uq_rm_sync_logs_connection_running',
        'rm_sync_logs',
        ['connection_id'],
        unique=True,
        postgresql_where=sa.text("status = 'RUNNING'")
    )


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_index('uq_rm_sync_logs_connection_running', table_name='rm_sync_logs')
    op.drop_index('idx_rm_sync_logs_connection_started', table_name='rm_sync_logs')
    op.drop_index(op.f('ix_rm_sync_logs_user_id'), table_name='rm_sync_logs')
    op.drop_index(op.f('ix_rm_sync_logs_id'), table_name='rm_sync_logs')
    op.drop_table('rm_sync_logs')

    op.drop_index(op.f('ix_rm_synced_entry_components_timesheet_entry_id'), table_name='rm_synced_entry_components')
    op.drop_index(op.f('ix_rm_synced_entry_components_rm_synced_entry_id'), table_name='rm_synced_entry_components')
    op.drop_index(op.f('ix_rm_synced_entry_components_id'), table_name='rm_synced_entry_components')
    op.drop_table('rm_synced_entry_components')

    op.drop_index('idx_rm_synced_entries_aggregation_date', table_name='rm_synced_entries')
    op.drop_index(op.f('ix_rm_synced_entries_id'), table_name='rm_synced_entries')
    op.drop_table('rm_synced_entries')

    op.drop_index(op.f('ix_rm_project_mappings_connection_id'), table_name='rm_project_mappings')
    op.drop_index(op.f('ix_rm_project_mappings_id'), table_name='rm_project_mappings')
    op.drop_table('rm_project_mappings')

    op.drop_index(op.f('ix_rm_connections_user_id'), table_name='rm_connections')
    op.drop_index(op.f('ix_rm_connections_id'), table_name='rm_connections')
    op.drop_table('rm_connections')

    op.drop_index('idx_timesheet_entries_user_date', table_name='timesheet_entries')
    op.drop_index(op.f('ix_timesheet_entries_project_id'), table_name='timesheet_entries')
    op.drop_index(op.f('ix_timesheet_entries_user_id'), table_name='timesheet_entries')
    op.drop_index(op.f('ix_timesheet_entries_id'), table_name='timesheet_entries')
    op.drop_table('timesheet_entries')
