"""create user and match tables

Revision ID: 5c2a9e7d1b30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9e7d1b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('app_theme', sa.String(length=8), nullable=False, server_default='dark'),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'match' not in existing_tables:
        op.create_table(
            'match',
            sa.Column('id', sa.String(length=32), primary_key=True),
            sa.Column('owner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False, server_default='Untitled Match'),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('home_team', sa.JSON(), nullable=False),
            sa.Column('away_team', sa.JSON(), nullable=False),
            sa.Column('game_format', sa.JSON(), nullable=False),
            sa.Column('current_period', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('timer_remaining_sec', sa.Integer(), nullable=False),
            sa.Column('is_timer_running', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('timer_started_at', sa.Float(), nullable=True),
            sa.Column('is_match_ended', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('overlay_stats_visible', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('scoreboard_theme', sa.String(length=8), nullable=False, server_default='dark'),
            sa.Column('league_logo_url', sa.String(length=512), nullable=True),
            sa.Column('channel_logo_url', sa.String(length=512), nullable=True),
            sa.Column('revision', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('created_at', sa.Float(), nullable=False),
            sa.Column('updated_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_match_owner_id', 'match', ['owner_id'])
        op.create_index('ix_match_created_at', 'match', ['created_at'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'match' in existing_tables:
        op.drop_index('ix_match_created_at', table_name='match')
        op.drop_index('ix_match_owner_id', table_name='match')
        op.drop_table('match')
    if 'user' in existing_tables:
        op.drop_index('ix_user_username', table_name='user')
        op.drop_table('user')
