"""Add recording and video storage tables.

Revision ID: 001_video_storage_tables
Revises:
Create Date: 2025-09-01 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_video_storage_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'interview_recordings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('host_user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_interview_recordings_host_user_id', 'interview_recordings', ['host_user_id'])

    op.create_table(
        'video_files',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('recording_id', sa.Integer(), nullable=False),
        sa.Column('original_filename', sa.String(255), nullable=True),
        sa.Column('storage_path', sa.String(1024), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('format', sa.String(16), nullable=False, server_default='mp4'),
        sa.Column('mime_type', sa.String(100), nullable=False, server_default='video/mp4'),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('duration', sa.Float(), nullable=True),
        sa.Column('bitrate', sa.Integer(), nullable=True),
        sa.Column('processing_status', sa.String(32), nullable=False, server_default='stored'),
        sa.Column('metadata', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['recording_id'], ['interview_recordings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_video_files_recording_id', 'video_files', ['recording_id'])
    op.create_index('ix_video_files_created_at', 'video_files', ['created_at'])

    op.create_table(
        'video_processing_queue',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('recording_id', sa.Integer(), nullable=False),
        sa.Column('processing_type', sa.String(32), nullable=False),
        sa.Column('status', sa.String(32), nullable=False, server_default='pending'),
        sa.Column('processing_params', sa.Text(), nullable=True),
        sa.Column('output_path', sa.String(1024), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['recording_id'], ['interview_recordings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_video_processing_queue_recording_id', 'video_processing_queue', ['recording_id'])
    op.create_index(
        'ix_video_processing_queue_type_status',
        'video_processing_queue',
        ['recording_id', 'processing_type', 'status'],
    )

    op.create_table(
        'storage_statistics',
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('total_files', sa.Integer(), nullable=True),
        sa.Column('total_recordings', sa.Integer(), nullable=True),
        sa.Column('total_size_bytes', sa.BigInteger(), nullable=True),
        sa.Column('mp4_files', sa.Integer(), nullable=True),
        sa.Column('webm_files', sa.Integer(), nullable=True),
        sa.Column('other_files', sa.Integer(), nullable=True),
        sa.Column('pending_processing', sa.Integer(), nullable=True),
        sa.Column('failed_processing', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('date'),
    )


def downgrade() -> None:
    op.drop_table('storage_statistics')
    op.drop_index('ix_video_processing_queue_type_status', table_name='video_processing_queue')
    op.drop_index('ix_video_processing_queue_recording_id', table_name='video_processing_queue')
    op.drop_table('video_processing_queue')
    op.drop_index('ix_video_files_created_at', table_name='video_files')
    op.drop_index('ix_video_files_recording_id', table_name='video_files')
    op.drop_table('video_files')
    op.drop_index('ix_interview_recordings_host_user_id', table_name='interview_recordings')
    op.drop_table('interview_recordings')
