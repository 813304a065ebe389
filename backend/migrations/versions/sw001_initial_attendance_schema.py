"""Initial attendance schema: directory, shifts, time entries, replacements, events

1. companies / employees (directory rows referenced by everything else)
2. shifts with replacement columns and watchdog index
3. time_entries with partial unique index: one open entry per employee
4. replacement_requests, unique per (shift, volunteer)
5. attendance_events change feed

Revision ID: sw001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'sw001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # STEP 1: Directory
    # ==========================================================================
    op.create_table('companies',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_companies_is_active', 'companies', ['is_active'])

    op.create_table('employees',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('last_name', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_employees_company_id', 'employees', ['company_id'])
    op.create_index('ix_employees_company_active', 'employees', ['company_id', 'is_active'])

    # ==========================================================================
    # STEP 2: Shifts
    # ==========================================================================
    op.create_table('shifts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('department_id', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='scheduled'),
        sa.Column('is_missed', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('missed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('replacement_employee_id', sa.Integer(), nullable=True),
        sa.Column('replacement_approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('replacement_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('hourly_rate', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('break_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            'replacement_approved_at IS NULL OR replacement_employee_id IS NOT NULL',
            name='ck_shifts_approved_has_replacement'
        ),
        sa.CheckConstraint(
            'replacement_started_at IS NULL OR replacement_approved_at IS NOT NULL',
            name='ck_shifts_started_was_approved'
        ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['replacement_employee_id'], ['employees.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shifts_watchdog', 'shifts', ['status', 'is_missed', 'start_time'])
    op.create_index('ix_shifts_company_missed', 'shifts', ['company_id', 'is_missed'])
    op.create_index('ix_shifts_employee_start', 'shifts', ['employee_id', 'start_time'])
    op.create_index('ix_shifts_replacement_employee_id', 'shifts', ['replacement_employee_id'])

    # ==========================================================================
    # STEP 3: Time entries
    # ==========================================================================
    op.create_table('time_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=True),
        sa.Column('clock_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('clock_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('break_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('break_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('break_duration_minutes', sa.Integer(), nullable=True),
        sa.Column('break_warning_shown_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('prior_break_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_hours', sa.Float(), nullable=True),
        sa.Column('overtime_hours', sa.Float(), nullable=True),
        sa.Column('is_replacement', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint(
            'break_end IS NULL OR (break_start IS NOT NULL AND break_end >= break_start)',
            name='ck_time_entries_break_order'
        ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_time_entries_employee_clock_in', 'time_entries', ['employee_id', 'clock_in'])
    op.create_index('ix_time_entries_shift', 'time_entries', ['shift_id'])
    op.create_index(
        'uq_time_entries_active_employee',
        'time_entries',
        ['employee_id'],
        unique=True,
        sqlite_where=sa.text('clock_out IS NULL'),
        postgresql_where=sa.text('clock_out IS NULL'),
    )

    # ==========================================================================
    # STEP 4: Replacement requests
    # ==========================================================================
    op.create_table('replacement_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('original_employee_id', sa.Integer(), nullable=False),
        sa.Column('replacement_employee_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewer_notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.ForeignKeyConstraint(['original_employee_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['replacement_employee_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shift_id', 'replacement_employee_id', name='uq_replacement_requests_shift_employee'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_replacement_requests_shift_status', 'replacement_requests', ['shift_id', 'status'])
    op.create_index('ix_replacement_requests_company_status', 'replacement_requests', ['company_id', 'status'])

    # ==========================================================================
    # STEP 5: Change feed
    # ==========================================================================
    op.create_table('attendance_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_employee_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_attendance_events_company_id', 'attendance_events', ['company_id', 'id'])
    op.create_index('ix_attendance_events_event_type', 'attendance_events', ['event_type'])


def downgrade():
    op.drop_table('attendance_events')
    op.drop_table('replacement_requests')
    op.drop_index('uq_time_entries_active_employee', table_name='time_entries')
    op.drop_table('time_entries')
    op.drop_table('shifts')
    op.drop_table('employees')
    op.drop_table('companies')
