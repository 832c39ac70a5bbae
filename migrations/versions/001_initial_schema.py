"""Initial schema

Revision ID: initial_schema
Revises:
Create Date: 2026-10-19

Adds tables for:
- users
- contacts
- dashboards
- points_transactions
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=True),
        sa.Column('google_id', sa.String(255), nullable=True, unique=True),
        sa.Column('avatar', sa.String(1000), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Create contacts table
    op.create_table(
        'contacts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('linkedin_id', sa.String(255), nullable=True, unique=True, index=True),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('job_title', sa.String(500), nullable=True),
        sa.Column('company', sa.String(500), nullable=True),
        sa.Column('location', sa.String(500), nullable=True),
        sa.Column('industry', sa.String(255), nullable=True),
        sa.Column('seniority_level', sa.String(50), nullable=True),
        sa.Column('experience', sa.Integer, nullable=False, server_default='0'),
        sa.Column('skills', postgresql.JSON, nullable=True),
        sa.Column('education', sa.Text, nullable=True),
        sa.Column('work_experience', sa.Text, nullable=True),
        sa.Column('company_size', sa.String(100), nullable=True),
        sa.Column('avatar', sa.String(1000), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(100), nullable=True),
        sa.Column('linkedin_url', sa.String(1000), nullable=True),
        sa.Column('extra_links', postgresql.JSON, nullable=True),
        sa.Column('uploaded_by', sa.String(36), nullable=True, index=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_index('idx_contacts_uploaded_by_at', 'contacts', ['uploaded_by', 'uploaded_at'])

    # Create dashboards table
    op.create_table(
        'dashboards',
        sa.Column('user_id', sa.String(36), primary_key=True),
        sa.Column('available_points', sa.Integer, nullable=False, server_default='100'),
        sa.Column('total_contacts', sa.Integer, nullable=False, server_default='0'),
        sa.Column('unlocked_profiles', sa.Integer, nullable=False, server_default='0'),
        sa.Column('my_uploads', sa.Integer, nullable=False, server_default='0'),
        sa.Column('uploaded_profile_ids', postgresql.JSON, nullable=True),
        sa.Column('unlocked_contact_ids', postgresql.JSON, nullable=True),
        sa.Column('recent_activity', postgresql.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Create points_transactions table
    op.create_table(
        'points_transactions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('reason', sa.String(500), nullable=False),
        sa.Column('reference', sa.String(255), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade():
    op.drop_table('points_transactions')
    op.drop_table('dashboards')
    op.drop_index('idx_contacts_uploaded_by_at', table_name='contacts')
    op.drop_table('contacts')
    op.drop_table('users')
