"""create users table

Revision ID: 0001
Revises:
Create Date: 2026-10-19

This migration creates:
1. users table with profile, session and lockout state
2. auth_provider, user_role and user_status enum types
3. the initial SUPER_ADMIN account when SUPERADMIN_EMAIL and
   SUPERADMIN_PASSWORD are configured (idempotent)
"""
from typing import Sequence, Union
from datetime import datetime, UTC
import uuid

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


auth_provider = sa.Enum('LOCAL', 'GOOGLE', name='auth_provider', create_constraint=True)
user_role = sa.Enum('USER', 'ADMIN', 'SUPER_ADMIN', name='user_role', create_constraint=True)
user_status = sa.Enum(
    'ACTIVE', 'INACTIVE', 'BLOCKED', 'PENDING', name='user_status', create_constraint=True
)


def upgrade() -> None:
    """Create the users table and seed the super admin."""

    # =========================================================================
    # STEP 1: users table
    # =========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('avatar', sa.String(length=2048), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('provider', auth_provider, nullable=False),
        sa.Column('provider_id', sa.String(length=255), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('status', user_status, nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False),
        sa.Column(
            'refresh_tokens',
            sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'),
            nullable=False,
        ),
        sa.Column('login_attempts', sa.Integer(), nullable=False),
        sa.Column('lock_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('password_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('password_reset_token_hash', sa.String(length=64), nullable=True),
        sa.Column('password_reset_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('provider_id', name=op.f('uq_users_provider_id')),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_role'), 'users', ['role'], unique=False)
    op.create_index(op.f('ix_users_status'), 'users', ['status'], unique=False)
    op.create_index(op.f('ix_users_created_at'), 'users', ['created_at'], unique=False)
    op.create_index(
        op.f('ix_users_password_reset_token_hash'),
        'users',
        ['password_reset_token_hash'],
        unique=False,
    )

    # =========================================================================
    # STEP 2: Seed initial super admin (idempotent)
    # =========================================================================
    from core.config import get_settings
    from core.security import CredentialHasher

    settings = get_settings()
    if not settings.superadmin_email or not settings.superadmin_password:
        print("Skipping super admin creation: SUPERADMIN_EMAIL/SUPERADMIN_PASSWORD not set")
        return

    bind = op.get_bind()
    email = settings.superadmin_email.strip().lower()

    result = bind.execute(
        sa.text("SELECT id FROM users WHERE role = 'SUPER_ADMIN' OR email = :email LIMIT 1"),
        {"email": email},
    )
    if result.first():
        print("Skipping super admin creation: account already exists")
        return

    # Hash with the application's Argon2id parameters
    password_hash = CredentialHasher.from_settings(settings).hash(settings.superadmin_password)
    now = datetime.now(UTC)

    users = sa.table(
        'users',
        sa.column('id', sa.Uuid(as_uuid=True)),
        sa.column('email', sa.String),
        sa.column('name', sa.String),
        sa.column('password_hash', sa.String),
        sa.column('provider', auth_provider),
        sa.column('role', user_role),
        sa.column('status', user_status),
        sa.column('is_email_verified', sa.Boolean),
        sa.column('refresh_tokens', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')),
        sa.column('login_attempts', sa.Integer),
        sa.column('created_at', sa.DateTime(timezone=True)),
        sa.column('updated_at', sa.DateTime(timezone=True)),
    )
    op.bulk_insert(users, [{
        "id": uuid.uuid4(),
        "email": email,
        "name": settings.superadmin_name,
        "password_hash": password_hash,
        "provider": "LOCAL",
        "role": "SUPER_ADMIN",
        "status": "ACTIVE",
        "is_email_verified": True,
        "refresh_tokens": [],
        "login_attempts": 0,
        "created_at": now,
        "updated_at": now,
    }])
    print(f"Created super admin account: {email}")


def downgrade() -> None:
    """Drop the users table and its enum types."""
    op.drop_index(op.f('ix_users_password_reset_token_hash'), table_name='users')
    op.drop_index(op.f('ix_users_created_at'), table_name='users')
    op.drop_index(op.f('ix_users_status'), table_name='users')
    op.drop_index(op.f('ix_users_role'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    user_status.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)
    auth_provider.drop(bind, checkfirst=True)
