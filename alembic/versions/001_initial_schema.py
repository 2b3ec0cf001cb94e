"""Initial schema: queue_jobs table for asynchronous AI jobs

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create queue_jobs table
    op.create_table(
        'queue_jobs',
        sa.Column('job_id', sa.String(64), primary_key=True),
        sa.Column('queue_name', sa.String(64), nullable=False),
        sa.Column('job_type', sa.String(64), nullable=False, server_default='default'),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('result', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('error_code', sa.String(64), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_queue_jobs_queue_name', 'queue_jobs', ['queue_name'])
    op.create_index('ix_queue_jobs_status', 'queue_jobs', ['status'])
    op.create_index('ix_queue_jobs_created_at', 'queue_jobs', ['created_at'])
    op.create_index('ix_queue_jobs_queue_status', 'queue_jobs', ['queue_name', 'status'])


def downgrade() -> None:
    op.drop_index('ix_queue_jobs_queue_status', table_name='queue_jobs')
    op.drop_index('ix_queue_jobs_created_at', table_name='queue_jobs')
    op.drop_index('ix_queue_jobs_status', table_name='queue_jobs')
    op.drop_index('ix_queue_jobs_queue_name', table_name='queue_jobs')
    op.drop_table('queue_jobs')
