"""create visits table

Revision ID: 0002_create_visits
Revises: 0001_create_core_tables
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002_create_visits'
down_revision = '0001_create_core_tables'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'visits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('visit_date', sa.Date(), nullable=False),
        sa.Column('visit_time', sa.String(length=5), nullable=False, server_default='10:00'),
        sa.Column('assignment', sa.Text(), nullable=False, server_default=''),
        sa.Column('remarks', sa.Text(), nullable=False, server_default=''),
        sa.Column('notified_24h', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notified_6h', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_visits_student_id', 'visits', ['student_id'])
    op.create_index('ix_visits_visit_date', 'visits', ['visit_date'])
    op.create_index('ix_visits_reminders', 'visits', ['visit_date', 'notified_24h', 'notified_6h'])


def downgrade():
    op.drop_index('ix_visits_reminders', table_name='visits')
    op.drop_index('ix_visits_visit_date', table_name='visits')
    op.drop_index('ix_visits_student_id', table_name='visits')
    op.drop_table('visits')
