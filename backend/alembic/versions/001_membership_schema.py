"""users and admin_action_logs

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == 'sqlite'

    json_type = sa.JSON() if is_sqlite else postgresql.JSONB(astext_type=sa.Text())
    timestamp_default = sa.text("(datetime('now'))") if is_sqlite else sa.text('now()')

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('name_with_initials', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('batch', sa.String(length=20), nullable=True),
        sa.Column('admission_number', sa.String(length=50), nullable=True),
        sa.Column('al_shy', sa.String(length=20), nullable=True),
        sa.Column('university', sa.String(length=255), nullable=True),
        sa.Column('faculty', sa.String(length=255), nullable=True),
        sa.Column('university_level', sa.String(length=50), nullable=True),
        sa.Column('engineering_field', sa.String(length=255), nullable=True),
        sa.Column('member_id', sa.String(length=20), nullable=True),
        sa.Column('role', sa.String(length=30), nullable=False, server_default='USER'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('account_locked_until', sa.DateTime(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('approved_by_id', sa.String(length=36), nullable=True),
        sa.Column('approval_date', sa.DateTime(), nullable=True),
        sa.Column('created_by_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['approved_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'SUSPENDED')",
            name='ck_users_status',
        ),
        sa.CheckConstraint(
            "role IN ('USER', 'MEMBER', 'MEMBER_ADMIN', 'CONTENT_ADMIN', 'NEWSLETTER_ADMIN', 'SUPER_ADMIN')",
            name='ck_users_role',
        ),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_member_id', 'users', ['member_id'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_status', 'users', ['status'])

    # ------------------------------------------------------------------
    # admin_action_logs
    # ------------------------------------------------------------------
    op.create_table(
        'admin_action_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('log_id', sa.String(length=36), nullable=False),
        sa.Column('admin_id', sa.String(length=36), nullable=True),
        sa.Column('admin_email', sa.String(length=255), nullable=False),
        sa.Column('admin_role', sa.String(length=30), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('resource_type', sa.String(length=50), nullable=True),
        sa.Column('resource_id', sa.String(length=36), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('before_state', json_type, nullable=True),
        sa.Column('after_state', json_type, nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('log_id'),
        sa.ForeignKeyConstraint(['admin_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_admin_action_logs_id', 'admin_action_logs', ['id'])
    op.create_index('ix_admin_action_logs_log_id', 'admin_action_logs', ['log_id'], unique=True)
    op.create_index('ix_admin_action_logs_admin_id', 'admin_action_logs', ['admin_id'])
    op.create_index('ix_admin_action_logs_action', 'admin_action_logs', ['action'])
    op.create_index('ix_admin_action_logs_created_at', 'admin_action_logs', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_admin_action_logs_created_at', table_name='admin_action_logs')
    op.drop_index('ix_admin_action_logs_action', table_name='admin_action_logs')
    op.drop_index('ix_admin_action_logs_admin_id', table_name='admin_action_logs')
    op.drop_index('ix_admin_action_logs_log_id', table_name='admin_action_logs')
    op.drop_index('ix_admin_action_logs_id', table_name='admin_action_logs')
    op.drop_table('admin_action_logs')

    op.drop_index('ix_users_status', table_name='users')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_member_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
