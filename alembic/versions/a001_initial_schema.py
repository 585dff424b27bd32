"""Initial schema creation

Revision ID: a001
Revises: 
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create users and requests tables."""
    
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(32), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_users_email', 'users', ['email'])
    
    # Create requests table; reviewer and requester ids are not foreign keys
    # because requests outlive deleted accounts
    op.create_table(
        'requests',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('user_name', sa.String(255), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('shift', sa.String(32), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('instructor_id', sa.String(64), nullable=False),
        sa.Column('instructor_name', sa.String(255), nullable=True),
        sa.Column('manager_id', sa.String(64), nullable=True),
        sa.Column('manager_name', sa.String(255), nullable=True),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('handled_by', sa.String(255), nullable=True),
        sa.Column('handled_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_requests_user_id', 'requests', ['user_id'])
    op.create_index('ix_requests_date', 'requests', ['date'])
    op.create_index('ix_requests_instructor_id', 'requests', ['instructor_id'])
    op.create_index('ix_requests_manager_id', 'requests', ['manager_id'])
    op.create_index('ix_requests_status', 'requests', ['status'])
    op.create_index('ix_requests_created_at', 'requests', ['created_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('requests')
    op.drop_table('users')
