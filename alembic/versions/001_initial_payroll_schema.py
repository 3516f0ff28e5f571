"""Initial schema: users, coaches, students, attendance and salary settlements

Revision ID: 001_initial_payroll
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_payroll'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('user_type', sa.String(20), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'coaches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hourly_rate', sa.Numeric(12, 2), nullable=False),
        sa.Column('joining_date', sa.Date(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('outstanding_salary', sa.Numeric(18, 6), nullable=False, server_default='0'),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, unique=True),
        *_timestamps(),
        sa.CheckConstraint('hourly_rate > 0', name='ck_coaches_hourly_rate_positive'),
        sa.CheckConstraint('outstanding_salary >= 0', name='ck_coaches_outstanding_non_negative'),
    )
    op.create_index('ix_coaches_id', 'coaches', ['id'])
    op.create_index('ix_coaches_code', 'coaches', ['code'], unique=True)
    op.create_index('ix_coaches_email', 'coaches', ['email'], unique=True)

    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('joining_date', sa.Date(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('coach_id', sa.Integer(), sa.ForeignKey('coaches.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_students_id', 'students', ['id'])
    op.create_index('ix_students_code', 'students', ['code'], unique=True)
    op.create_index('ix_students_email', 'students', ['email'], unique=True)
    op.create_index('ix_students_coach_id', 'students', ['coach_id'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('session_duration', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('coach_id', sa.Integer(), sa.ForeignKey('coaches.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('student_id', 'date', name='uq_attendance_student_date'),
    )
    op.create_index('ix_attendance_records_id', 'attendance_records', ['id'])
    op.create_index('ix_attendance_records_status', 'attendance_records', ['status'])
    op.create_index('ix_attendance_coach_date', 'attendance_records', ['coach_id', 'date'])

    op.create_table(
        'salary_settlements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(18, 6), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('transaction_id', sa.String(255), nullable=True),
        sa.Column('coach_id', sa.Integer(), sa.ForeignKey('coaches.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('month >= 1 AND month <= 12', name='ck_salary_settlements_month'),
        sa.CheckConstraint('amount >= 0', name='ck_salary_settlements_amount'),
    )
    op.create_index('ix_salary_settlements_id', 'salary_settlements', ['id'])
    op.create_index('ix_salary_settlements_status', 'salary_settlements', ['status'])
    op.create_index('ix_salary_settlements_coach_period', 'salary_settlements', ['coach_id', 'month', 'year'])

    # A session may belong to at most one paid settlement
    op.create_table(
        'settlement_sessions',
        sa.Column(
            'settlement_id', sa.Integer(),
            sa.ForeignKey('salary_settlements.id', ondelete='CASCADE'), primary_key=True,
        ),
        sa.Column(
            'attendance_id', sa.Integer(),
            sa.ForeignKey('attendance_records.id', ondelete='RESTRICT'), primary_key=True, unique=True,
        ),
    )


def downgrade() -> None:
    op.drop_table('settlement_sessions')

    op.drop_index('ix_salary_settlements_coach_period', table_name='salary_settlements')
    op.drop_index('ix_salary_settlements_status', table_name='salary_settlements')
    op.drop_index('ix_salary_settlements_id', table_name='salary_settlements')
    op.drop_table('salary_settlements')

    op.drop_index('ix_attendance_coach_date', table_name='attendance_records')
    op.drop_index('ix_attendance_records_status', table_name='attendance_records')
    op.drop_index('ix_attendance_records_id', table_name='attendance_records')
    op.drop_table('attendance_records')

    op.drop_index('ix_students_coach_id', table_name='students')
    op.drop_index('ix_students_email', table_name='students')
    op.drop_index('ix_students_code', table_name='students')
    op.drop_index('ix_students_id', table_name='students')
    op.drop_table('students')

    op.drop_index('ix_coaches_email', table_name='coaches')
    op.drop_index('ix_coaches_code', table_name='coaches')
    op.drop_index('ix_coaches_id', table_name='coaches')
    op.drop_table('coaches')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
