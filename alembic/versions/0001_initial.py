"""Initial tables: users, appointments, appointment participants

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Пользователи
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Встречи. owner_id без ON DELETE CASCADE: встречи переживают пользователя
    op.create_table(
        'appointments',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('owner_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Scheduled'),
        sa.Column('attachment_url', sa.String(length=1024), nullable=True),
        sa.Column('attachment_filename', sa.String(length=255), nullable=True),
        sa.Column('content_preview', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_appointments_starts_at', 'appointments', ['starts_at'])
    op.create_index('ix_appointments_owner_id', 'appointments', ['owner_id'])

    # Участники, порядок хранится в position
    op.create_table(
        'appointment_participants',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'appointment_id',
            sa.String(length=64),
            sa.ForeignKey('appointments.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
    )
    op.create_index('ix_appointment_participants_appointment_id', 'appointment_participants', ['appointment_id'])
    op.create_index('ix_appointment_participants_email', 'appointment_participants', ['email'])


def downgrade() -> None:
    op.drop_index('ix_appointment_participants_email', table_name='appointment_participants')
    op.drop_index('ix_appointment_participants_appointment_id', table_name='appointment_participants')
    op.drop_table('appointment_participants')
    op.drop_index('ix_appointments_owner_id', table_name='appointments')
    op.drop_index('ix_appointments_starts_at', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
