"""create_catalog_tables

Revision ID: 3a1f0c9d2b7e
Revises:
Create Date: 2025-11-02 10:14:05.331842

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3a1f0c9d2b7e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_PG = sa.text('is_active = true')
ACTIVE_SQLITE = sa.text('is_active = 1')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _is_active():
    return sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true())


def _active_index(table):
    op.create_index(op.f(f'ix_{table}_is_active'), table, ['is_active'], unique=False)


def upgrade() -> None:
    op.create_table(
        'devices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=255), nullable=False),
        sa.Column('model', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('color', sa.String(length=100), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        _is_active(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    _active_index('devices')
    op.create_index(op.f('ix_devices_order_index'), 'devices', ['order_index'], unique=False)
    # Active device names are unique; archived rows may repeat a name
    op.create_index(
        'uq_devices_active_name',
        'devices',
        ['name'],
        unique=True,
        postgresql_where=ACTIVE_PG,
        sqlite_where=ACTIVE_SQLITE,
    )

    op.create_table(
        'remotes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('device_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('manufacturer', sa.String(length=255), nullable=True),
        sa.Column('model', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('layout', sa.String(length=50), nullable=False),
        sa.Column('buttons', sa.JSON(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        _is_active(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    _active_index('remotes')
    op.create_index(op.f('ix_remotes_device_id'), 'remotes', ['device_id'], unique=False)

    op.create_table(
        'problems',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('device_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=20), nullable=False, server_default='other'),
        sa.Column('icon', sa.String(length=100), nullable=False),
        sa.Column('color', sa.String(length=100), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('estimated_time', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('difficulty', sa.String(length=20), nullable=False, server_default='beginner'),
        sa.Column('success_rate', sa.Float(), nullable=False, server_default='100'),
        sa.Column('completed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        _is_active(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    _active_index('problems')
    op.create_index(op.f('ix_problems_device_id'), 'problems', ['device_id'], unique=False)
    op.create_index(
        'uq_problems_active_device_title',
        'problems',
        ['device_id', 'title'],
        unique=True,
        postgresql_where=ACTIVE_PG,
        sqlite_where=ACTIVE_SQLITE,
    )

    op.create_table(
        'tv_interfaces',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('device_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='custom'),
        sa.Column('screenshot_url', sa.String(length=500), nullable=True),
        sa.Column('screenshot_data', sa.Text(), nullable=True),
        sa.Column('clickable_areas', sa.JSON(), nullable=False),
        sa.Column('highlight_areas', sa.JSON(), nullable=False),
        _is_active(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    _active_index('tv_interfaces')
    op.create_index(
        op.f('ix_tv_interfaces_device_id'), 'tv_interfaces', ['device_id'], unique=False
    )
    op.create_index(
        'uq_tv_interfaces_active_device_name',
        'tv_interfaces',
        ['device_id', 'name'],
        unique=True,
        postgresql_where=ACTIVE_PG,
        sqlite_where=ACTIVE_SQLITE,
    )

    op.create_table(
        'diagnostic_steps',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('problem_id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.Integer(), nullable=False),
        sa.Column('step_number', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('instruction', sa.Text(), nullable=False),
        sa.Column('estimated_time', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('hint', sa.Text(), nullable=True),
        sa.Column('success_text', sa.Text(), nullable=True),
        sa.Column('warning_text', sa.Text(), nullable=True),
        sa.Column('remote_id', sa.Integer(), nullable=True),
        sa.Column('tv_interface_id', sa.Integer(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        _is_active(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['problem_id'], ['problems.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['remote_id'], ['remotes.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['tv_interface_id'], ['tv_interfaces.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    _active_index('diagnostic_steps')
    op.create_index(
        op.f('ix_diagnostic_steps_problem_id'), 'diagnostic_steps', ['problem_id'], unique=False
    )
    op.create_index(
        op.f('ix_diagnostic_steps_device_id'), 'diagnostic_steps', ['device_id'], unique=False
    )

    op.create_table(
        'diagnostic_sessions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', sa.String(length=64), nullable=False),
        sa.Column('device_id', sa.Integer(), nullable=False),
        sa.Column('problem_id', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('total_steps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_steps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('success', sa.Boolean(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('feedback', sa.JSON(), nullable=True),
        _is_active(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['problem_id'], ['problems.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    _active_index('diagnostic_sessions')
    op.create_index(
        op.f('ix_diagnostic_sessions_session_id'),
        'diagnostic_sessions',
        ['session_id'],
        unique=True,
    )
    op.create_index(
        op.f('ix_diagnostic_sessions_device_id'), 'diagnostic_sessions', ['device_id'], unique=False
    )
    op.create_index(
        op.f('ix_diagnostic_sessions_problem_id'),
        'diagnostic_sessions',
        ['problem_id'],
        unique=False,
    )

    op.create_table(
        'tv_interface_marks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tv_interface_id', sa.Integer(), nullable=False),
        sa.Column('step_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('mark_type', sa.String(length=20), nullable=False, server_default='point'),
        sa.Column('shape', sa.String(length=20), nullable=False, server_default='circle'),
        sa.Column('position', sa.JSON(), nullable=False),
        sa.Column('size', sa.JSON(), nullable=True),
        sa.Column('color', sa.String(length=50), nullable=False, server_default='#ff0000'),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        _is_active(),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['tv_interface_id'], ['tv_interfaces.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(['step_id'], ['diagnostic_steps.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    _active_index('tv_interface_marks')
    op.create_index(
        op.f('ix_tv_interface_marks_tv_interface_id'),
        'tv_interface_marks',
        ['tv_interface_id'],
        unique=False,
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='editor'),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        _is_active(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    _active_index('users')
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    op.create_table(
        'site_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_site_settings_key'), 'site_settings', ['key'], unique=True)

    op.create_table(
        'change_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_change_logs_entity_type'), 'change_logs', ['entity_type'], unique=False
    )
    op.create_index(op.f('ix_change_logs_entity_id'), 'change_logs', ['entity_id'], unique=False)
    op.create_index(
        op.f('ix_change_logs_created_at'), 'change_logs', ['created_at'], unique=False
    )


def downgrade() -> None:
    for table in (
        'change_logs',
        'site_settings',
        'users',
        'tv_interface_marks',
        'diagnostic_sessions',
        'diagnostic_steps',
        'tv_interfaces',
        'problems',
        'remotes',
        'devices',
    ):
        op.drop_table(table)
