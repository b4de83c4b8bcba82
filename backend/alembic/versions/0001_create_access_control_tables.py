"""Create access control tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the permission catalog, custom roles, role grants, user overrides,
user role assignments and the audit trail. On PostgreSQL the ``user_role``
enum is created as well; custom roles extend it out of band with
``ALTER TYPE public.user_role ADD VALUE``.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from bnrm_access.auth.rbac_contract import AppRole

revision: str | None = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role_enum = postgresql.ENUM(*(role.value for role in AppRole), name='user_role')


def upgrade() -> None:
    """Apply schema changes."""
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        user_role_enum.create(bind, checkfirst=True)

    # Create permissions table
    op.create_table(
        'permissions',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_permissions'))
    )
    op.create_index('ix_permissions_name', 'permissions', ['name'], unique=True)
    op.create_index('ix_permissions_category', 'permissions', ['category'], unique=False)

    # Create custom_roles table
    op.create_table(
        'custom_roles',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('role_code', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_by', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_custom_roles'))
    )
    op.create_index('ix_custom_roles_role_code', 'custom_roles', ['role_code'], unique=True)

    # Create role_permissions table
    op.create_table(
        'role_permissions',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('role', sa.String(length=100), nullable=False),
        sa.Column('permission_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('granted', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], name=op.f('fk_role_permissions_permission_id_permissions'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_role_permissions')),
        sa.UniqueConstraint('role', 'permission_id', name='uq_role_permissions_role_permission_id')
    )
    op.create_index('ix_role_permissions_role', 'role_permissions', ['role'], unique=False)
    op.create_index('ix_role_permissions_permission_id', 'role_permissions', ['permission_id'], unique=False)

    # Create user_permissions table (no uniqueness: newest unexpired row wins)
    op.create_table(
        'user_permissions',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('permission_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('granted', sa.Boolean(), nullable=False),
        sa.Column('granted_by', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], name=op.f('fk_user_permissions_permission_id_permissions'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_permissions'))
    )
    op.create_index('ix_user_permissions_user_id', 'user_permissions', ['user_id'], unique=False)
    op.create_index('ix_user_permissions_permission_id', 'user_permissions', ['permission_id'], unique=False)
    op.create_index('ix_user_permissions_user_id_created_at', 'user_permissions', ['user_id', 'created_at'], unique=False)

    # Create user_roles table (one role per user)
    op.create_table(
        'user_roles',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('role', sa.String(length=100), nullable=False),
        sa.Column('granted_by', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_roles'))
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'], unique=True)
    op.create_index('ix_user_roles_role', 'user_roles', ['role'], unique=False)

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('actor_id', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('actor_type', sa.String(length=50), nullable=False),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.String(length=255), nullable=False),
        sa.Column('before', sa.JSON(), nullable=True),
        sa.Column('after', sa.JSON(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_audit_logs')),
        sa.CheckConstraint(
            "actor_type IN ('user', 'system', 'anonymous')",
            name=op.f('ck_audit_logs_valid_actor_type')
        )
    )
    for column in ('actor_id', 'actor_type', 'action', 'entity_type', 'entity_id', 'created_at'):
        op.create_index(f'ix_audit_logs_{column}', 'audit_logs', [column], unique=False)


def downgrade() -> None:
    """Revert schema changes."""
    for column in ('actor_id', 'actor_type', 'action', 'entity_type', 'entity_id', 'created_at'):
        op.drop_index(f'ix_audit_logs_{column}', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('ix_user_roles_role', table_name='user_roles')
    op.drop_index('ix_user_roles_user_id', table_name='user_roles')
    op.drop_table('user_roles')

    op.drop_index('ix_user_permissions_user_id_created_at', table_name='user_permissions')
    op.drop_index('ix_user_permissions_permission_id', table_name='user_permissions')
    op.drop_index('ix_user_permissions_user_id', table_name='user_permissions')
    op.drop_table('user_permissions')

    op.drop_index('ix_role_permissions_permission_id', table_name='role_permissions')
    op.drop_index('ix_role_permissions_role', table_name='role_permissions')
    op.drop_table('role_permissions')

    op.drop_index('ix_custom_roles_role_code', table_name='custom_roles')
    op.drop_table('custom_roles')

    op.drop_index('ix_permissions_category', table_name='permissions')
    op.drop_index('ix_permissions_name', table_name='permissions')
    op.drop_table('permissions')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        user_role_enum.drop(bind, checkfirst=True)
