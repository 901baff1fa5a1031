"""Deadline reminders

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

WHY: Adds the per-client filing deadline table used by the reminders
endpoints (upcoming and overdue views).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


REMINDER_TYPES = ('ITR', 'GST', 'ACCOUNTING', 'OTHER')
REMINDER_PRIORITIES = ('LOW', 'MEDIUM', 'HIGH')
REMINDER_STATUSES = ('PENDING', 'COMPLETED', 'OVERDUE')


def upgrade() -> None:
    op.create_table(
        'reminders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('reminder_type', sa.Enum(*REMINDER_TYPES, name='remindertype'), nullable=False),
        sa.Column('priority', sa.Enum(*REMINDER_PRIORITIES, name='reminderpriority'), nullable=False, server_default='MEDIUM'),
        sa.Column('status', sa.Enum(*REMINDER_STATUSES, name='reminderstatus'), nullable=False, server_default='PENDING'),
        sa.Column('notify_before', sa.Integer(), nullable=False, server_default='7'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reminders_id', 'reminders', ['id'])
    op.create_index('ix_reminders_client_id', 'reminders', ['client_id'])
    op.create_index('ix_reminders_due_date', 'reminders', ['due_date'])
    op.create_index('ix_reminders_status', 'reminders', ['status'])


def downgrade() -> None:
    op.drop_table('reminders')

    for enum_name in ('reminderstatus', 'reminderpriority', 'remindertype'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
