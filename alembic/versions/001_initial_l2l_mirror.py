"""initial_l2l_mirror

Revision ID: 001
Revises:
Create Date: 2026-10-16 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('plants'):
        op.create_table('plants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.String(length=100), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id', name='uq_plants_external_id'),
        )
        op.create_index(op.f('ix_plants_id'), 'plants', ['id'], unique=False)
        op.create_index(op.f('ix_plants_name'), 'plants', ['name'], unique=False)
        op.create_index(op.f('ix_plants_status'), 'plants', ['status'], unique=False)

    if not inspector.has_table('production_lines'):
        op.create_table('production_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('plant_id', sa.Integer(), nullable=False),
        sa.Column('id_l2l', sa.String(length=50), nullable=True),
        sa.Column('external_id', sa.String(length=100), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['plant_id'], ['plants.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id_l2l', name='uq_production_lines_id_l2l'),
        )
        op.create_index(op.f('ix_production_lines_id'), 'production_lines', ['id'], unique=False)
        op.create_index(op.f('ix_production_lines_plant_id'), 'production_lines', ['plant_id'], unique=False)
        op.create_index(op.f('ix_production_lines_external_id'), 'production_lines', ['external_id'], unique=False)
        op.create_index(op.f('ix_production_lines_status'), 'production_lines', ['status'], unique=False)

    if not inspector.has_table('work_stations'):
        op.create_table('work_stations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('line_id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.String(length=50), nullable=True),
        sa.Column('external_id', sa.String(length=100), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['line_id'], ['production_lines.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('station_id', name='uq_work_stations_station_id'),
        )
        op.create_index(op.f('ix_work_stations_id'), 'work_stations', ['id'], unique=False)
        op.create_index(op.f('ix_work_stations_line_id'), 'work_stations', ['line_id'], unique=False)
        op.create_index(op.f('ix_work_stations_external_id'), 'work_stations', ['external_id'], unique=False)
        op.create_index(op.f('ix_work_stations_status'), 'work_stations', ['status'], unique=False)

    if not inspector.has_table('line_documents'):
        op.create_table('line_documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('line_id', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('external_id', sa.String(length=100), nullable=True),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('document_url', sa.Text(), nullable=False, server_default=''),
        sa.Column('view_info_url', sa.Text(), nullable=True),
        sa.Column('version', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['station_id'], ['work_stations.id']),
        sa.ForeignKeyConstraint(['line_id'], ['production_lines.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('station_id', 'category', name='uq_line_documents_station_category'),
        )
        op.create_index(op.f('ix_line_documents_id'), 'line_documents', ['id'], unique=False)
        op.create_index(op.f('ix_line_documents_station_id'), 'line_documents', ['station_id'], unique=False)
        op.create_index(op.f('ix_line_documents_line_id'), 'line_documents', ['line_id'], unique=False)

    if not inspector.has_table('l2l_sync_logs'):
        op.create_table('l2l_sync_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sync_type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('records_created', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('records_updated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('records_deactivated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('errors', sa.Text(), nullable=True),
        sa.Column('synced_by', sa.String(length=64), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_l2l_sync_logs_id'), 'l2l_sync_logs', ['id'], unique=False)
        op.create_index(op.f('ix_l2l_sync_logs_sync_type'), 'l2l_sync_logs', ['sync_type'], unique=False)
        op.create_index(op.f('ix_l2l_sync_logs_synced_at'), 'l2l_sync_logs', ['synced_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ('l2l_sync_logs', 'line_documents', 'work_stations', 'production_lines', 'plants'):
        if inspector.has_table(table):
            op.drop_table(table)
