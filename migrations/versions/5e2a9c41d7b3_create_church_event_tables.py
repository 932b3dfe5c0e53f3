"""create church event tables

Revision ID: 5e2a9c41d7b3
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = '5e2a9c41d7b3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'church',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'churchmember',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('church_id', sa.Integer(), nullable=False),
        sa.Column('role', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.ForeignKeyConstraint(['church_id'], ['church.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_churchmember_user_id'), 'churchmember', ['user_id'], unique=False)
    op.create_index(op.f('ix_churchmember_church_id'), 'churchmember', ['church_id'], unique=False)
    op.create_table(
        'churchevent',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('church_id', sa.Integer(), nullable=False),
        sa.Column('title', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('excerpt', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('time', sa.DateTime(), nullable=False),
        sa.Column('author_name', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('event_location', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('image_url', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('video_link', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('created_by', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('recurrence_type', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('recurrence_interval', sa.Integer(), nullable=True),
        sa.Column('recurrence_end_date', sa.DateTime(), nullable=True),
        sa.Column('recurrence_days_of_week', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['church_id'], ['church.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_churchevent_church_id'), 'churchevent', ['church_id'], unique=False)
    op.create_index(op.f('ix_churchevent_time'), 'churchevent', ['time'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_churchevent_time'), table_name='churchevent')
    op.drop_index(op.f('ix_churchevent_church_id'), table_name='churchevent')
    op.drop_table('churchevent')
    op.drop_index(op.f('ix_churchmember_church_id'), table_name='churchmember')
    op.drop_index(op.f('ix_churchmember_user_id'), table_name='churchmember')
    op.drop_table('churchmember')
    op.drop_table('church')
