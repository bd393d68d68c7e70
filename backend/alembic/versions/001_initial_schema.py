"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-16 09:00:00.000000

Initial schema for the booking service:
- users, branches
- individual_rooms, individual_room_participants
- teams, team_members, team_rooms
- notifications
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('profile_picture_url', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('google_maps_url', sa.Text(), nullable=True),
        sa.Column('operating_hours_start', sa.Time(), nullable=False),
        sa.Column('operating_hours_end', sa.Time(), nullable=False),
        sa.Column('contact_phone', sa.String(length=50), nullable=True),
        sa.Column('contact_email', sa.String(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'operating_hours_end > operating_hours_start', name='ck_branches_operating_hours'
        ),
    )
    op.create_index('idx_branches_active_name', 'branches', ['is_active', 'name'])

    op.create_table(
        'individual_rooms',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('total_slots', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='OPEN'),
        sa.Column('lock_version', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('end_time > start_time', name='ck_individual_rooms_time_range'),
        sa.CheckConstraint('total_slots >= 2', name='ck_individual_rooms_total_slots'),
    )
    op.create_index(
        'idx_individual_rooms_branch_date', 'individual_rooms', ['branch_id', 'scheduled_date']
    )
    op.create_index(
        'idx_individual_rooms_date_status', 'individual_rooms', ['scheduled_date', 'status']
    )

    op.create_table(
        'individual_room_participants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('room_id', sa.Integer(), sa.ForeignKey('individual_rooms.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_id', 'user_id', name='uq_individual_room_participant'),
    )
    op.create_index(
        'idx_individual_room_participants_user', 'individual_room_participants', ['user_id']
    )

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('captain_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('roster_size', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='ACTIVE'),
        sa.Column('lock_version', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('roster_size >= 2', name='ck_teams_roster_size'),
    )
    op.create_index('idx_teams_status_name', 'teams', ['status', 'name'])
    op.create_index('idx_teams_captain', 'teams', ['captain_id'])

    op.create_table(
        'team_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('team_id', 'user_id', name='uq_team_member'),
    )
    op.create_index('idx_team_members_user', 'team_members', ['user_id'])

    op.create_table(
        'team_rooms',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=False),
        sa.Column('creator_team_id', sa.Integer(), sa.ForeignKey('teams.id'), nullable=False),
        sa.Column('opponent_team_id', sa.Integer(), sa.ForeignKey('teams.id'), nullable=True),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('required_team_size', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='OPEN'),
        sa.Column('lock_version', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('end_time > start_time', name='ck_team_rooms_time_range'),
    )
    op.create_index('idx_team_rooms_creator_date', 'team_rooms', ['creator_team_id', 'scheduled_date'])
    op.create_index('idx_team_rooms_opponent_date', 'team_rooms', ['opponent_team_id', 'scheduled_date'])
    op.create_index('idx_team_rooms_date_status', 'team_rooms', ['scheduled_date', 'status'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_entity_type', sa.String(length=50), nullable=True),
        sa.Column('related_entity_id', sa.Integer(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_notifications_user_unread', 'notifications', ['user_id', 'is_read', 'created_at']
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('notifications')
    op.drop_table('team_rooms')
    op.drop_table('team_members')
    op.drop_table('teams')
    op.drop_table('individual_room_participants')
    op.drop_table('individual_rooms')
    op.drop_table('branches')
    op.drop_table('users')
