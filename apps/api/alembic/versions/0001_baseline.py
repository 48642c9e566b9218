"""Baseline migration - users, clients, claims, leads, claim comments

Revision ID: 0001_baseline
Revises: 
Create Date: 2026-10-19

Portable DDL (PostgreSQL and SQLite): UUIDs use sa.Uuid, file_paths is JSON.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    """Create engine tables."""

    # ==========================================================================
    # Users (self-referencing supervisor tree)
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(255)),
        sa.Column('password_hash', sa.String(255)),
        sa.Column('role', sa.String(20), nullable=False, server_default=sa.text("'client'")),
        sa.Column('supervisor_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default=sa.text('1')),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.CheckConstraint(
            "role IN ('admin', 'supervisor', 'operator', 'client')",
            name='ck_users_role',
        ),
    )
    op.create_index('idx_users_supervisor_role', 'users', ['supervisor_id', 'role'])

    # ==========================================================================
    # Clients (created by lead conversion)
    # ==========================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False, unique=True,
        ),
        sa.Column('company', sa.String(255)),
        sa.Column('address', sa.Text()),
        sa.Column('phone', sa.String(50)),
        _timestamp('created_at'),
    )

    # ==========================================================================
    # Claims
    # ==========================================================================
    op.create_table(
        'claims',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default=sa.text("'submitted'")),
        sa.Column('reply', sa.Text()),
        sa.Column('file_paths', sa.JSON(), nullable=False),
        sa.Column('assigned_to', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.CheckConstraint(
            "status IN ('submitted', 'in_review', 'resolved', 'rejected')",
            name='ck_claims_status',
        ),
    )
    op.create_index('idx_claims_client_created', 'claims', ['client_id', 'created_at'])
    op.create_index('idx_claims_assigned_created', 'claims', ['assigned_to', 'created_at'])

    # ==========================================================================
    # Leads
    # ==========================================================================
    op.create_table(
        'leads',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('status', sa.String(50), nullable=False, server_default=sa.text("'new'")),
        sa.Column('assigned_to', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('notes', sa.Text()),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    )
    op.create_index('idx_leads_assigned_created', 'leads', ['assigned_to', 'created_at'])

    # ==========================================================================
    # Claim comments (append-only)
    # ==========================================================================
    op.create_table(
        'claim_comments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'claim_id', sa.Uuid(),
            sa.ForeignKey('claims.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('visible_to_client', sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp('created_at'),
    )
    op.create_index(
        'idx_claim_comments_claim_created', 'claim_comments', ['claim_id', 'created_at']
    )


def downgrade() -> None:
    """Drop engine tables in reverse dependency order."""
    op.drop_index('idx_claim_comments_claim_created', table_name='claim_comments')
    op.drop_table('claim_comments')

    op.drop_index('idx_leads_assigned_created', table_name='leads')
    op.drop_table('leads')

    op.drop_index('idx_claims_assigned_created', table_name='claims')
    op.drop_index('idx_claims_client_created', table_name='claims')
    op.drop_table('claims')

    op.drop_table('clients')

    op.drop_index('idx_users_supervisor_role', table_name='users')
    op.drop_table('users')
