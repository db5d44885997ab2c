"""create user and sprint_result tables

Revision ID: a1c4e9d2b7f3
Revises:
Create Date: 2026-10-17 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e9d2b7f3'
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
            sa.Column('role', sa.String(length=16), nullable=False, server_default='player'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'sprint_result' not in existing_tables:
        op.create_table(
            'sprint_result',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.String(length=64), nullable=False),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.Column('display_name', sa.String(length=64), nullable=True),
            sa.Column('tap_count', sa.Integer(), nullable=False),
            sa.Column('rank', sa.Integer(), nullable=True),
            sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_sprint_result_session_id', 'sprint_result', ['session_id'])


def downgrade():
    op.drop_index('ix_sprint_result_session_id', table_name='sprint_result')
    op.drop_table('sprint_result')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
