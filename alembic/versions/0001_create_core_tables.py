"""create students, exams, results, syllabus and topic status tables

Revision ID: 0001_create_core_tables
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_create_core_tables'
down_revision = None
branch_labels = None
depends_on = None

SUBJECT_KEYS = ('physics', 'chemistry', 'maths')


def _subject_columns(subject):
    return [
        sa.Column(f'{subject}_right', sa.Float(), nullable=False, server_default='0'),
        sa.Column(f'{subject}_wrong', sa.Float(), nullable=False, server_default='0'),
        sa.Column(f'{subject}_unattempted', sa.Float(), nullable=False, server_default='0'),
        sa.Column(f'{subject}_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column(f'{subject}_unattempted_questions', sa.JSON(), nullable=False),
        sa.Column(f'{subject}_negative_questions', sa.JSON(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('roll_number', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('batch', sa.String(length=100), nullable=False),
        sa.Column('parent_name', sa.String(length=150), nullable=False, server_default=''),
        sa.Column('parent_occupation', sa.String(length=150), nullable=False, server_default=''),
        sa.Column('address', sa.Text(), nullable=False, server_default=''),
        sa.Column('contact_number', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=150), nullable=False, server_default=''),
        sa.Column('general_remark', sa.Text(), nullable=False, server_default=''),
        sa.Column('source_type', sa.String(length=10), nullable=False, server_default='excel'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_students_roll_number', 'students', ['roll_number'], unique=True)
    op.create_index('ix_students_source_type', 'students', ['source_type'])

    op.create_table(
        'exams',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('max_marks', sa.Integer(), nullable=False, server_default='300'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_exams_date', 'exams', ['date'])

    subject_columns = []
    for subject in SUBJECT_KEYS:
        subject_columns.extend(_subject_columns(subject))

    op.create_table(
        'exam_results',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('exam_id', sa.Integer(), sa.ForeignKey('exams.id'), nullable=False),
        sa.Column('total_correct', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_wrong', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_unattempted', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('rank', sa.Integer(), nullable=False, server_default='0'),
        *subject_columns,
        sa.Column('remarks', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('student_id', 'exam_id', name='uq_exam_results_student_exam'),
    )
    op.create_index('ix_exam_results_student_id', 'exam_results', ['student_id'])
    op.create_index('ix_exam_results_exam_id', 'exam_results', ['exam_id'])

    op.create_table(
        'syllabus',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('subject', sa.String(length=20), nullable=False, unique=True),
        sa.Column('topics', sa.JSON(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'syllabus_state',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('seeded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cleared_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'student_topic_status',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('subject', sa.String(length=20), nullable=False),
        sa.Column('topic_name', sa.String(length=200), nullable=False),
        sa.Column('subtopic_name', sa.String(length=200), nullable=False, server_default=''),
        sa.Column('status', sa.String(length=10), nullable=True),
        sa.Column('theory_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('solving_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('negative_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unattempted_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('student_id', 'subject', 'topic_name', 'subtopic_name',
                            name='uq_student_topic_status_key'),
    )
    op.create_index('ix_student_topic_status_student_id', 'student_topic_status', ['student_id'])


def downgrade():
    op.drop_index('ix_student_topic_status_student_id', table_name='student_topic_status')
    op.drop_table('student_topic_status')
    op.drop_table('syllabus_state')
    op.drop_table('syllabus')
    op.drop_index('ix_exam_results_exam_id', table_name='exam_results')
    op.drop_index('ix_exam_results_student_id', table_name='exam_results')
    op.drop_table('exam_results')
    op.drop_index('ix_exams_date', table_name='exams')
    op.drop_table('exams')
    op.drop_index('ix_students_source_type', table_name='students')
    op.drop_index('ix_students_roll_number', table_name='students')
    op.drop_table('students')
