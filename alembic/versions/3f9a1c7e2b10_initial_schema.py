"""initial schema

Revision ID: 3f9a1c7e2b10
Revises: 
Create Date: 2026-10-19 09:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c7e2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=30), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('verification_code', sa.String(length=6), nullable=True),
        sa.Column('verification_code_expires', sa.DateTime(), nullable=True),
        sa.Column('reset_token', sa.String(), nullable=True),
        sa.Column('reset_token_expires', sa.DateTime(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('department', sa.String(), nullable=True),
        sa.Column('job_title', sa.String(), nullable=True),
        sa.Column('work_start', sa.String(length=5), nullable=True),
        sa.Column('work_end', sa.String(length=5), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=True),
        sa.Column('years_worked', sa.Integer(), nullable=True),
        sa.Column('shift_flexibility', sa.Boolean(), nullable=True),
        sa.Column('emergency_contact_name', sa.String(), nullable=True),
        sa.Column('emergency_contact_relationship', sa.String(), nullable=True),
        sa.Column('emergency_contact_phone', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('profile_complete', sa.Boolean(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_profiles_id'), 'profiles', ['id'], unique=False)
    op.create_index(op.f('ix_profiles_department'), 'profiles', ['department'], unique=False)
    op.create_index(op.f('ix_profiles_job_title'), 'profiles', ['job_title'], unique=False)

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('check_in_at', sa.DateTime(), nullable=True),
        sa.Column('check_in_location', sa.String(), nullable=True),
        sa.Column('check_in_ip', sa.String(), nullable=True),
        sa.Column('check_in_device', sa.String(), nullable=True),
        sa.Column('check_out_at', sa.DateTime(), nullable=True),
        sa.Column('check_out_location', sa.String(), nullable=True),
        sa.Column('working_minutes', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('absent_reason', sa.String(length=500), nullable=True),
        sa.Column('leave_reason', sa.String(length=500), nullable=True),
        sa.Column('leave_type', sa.String(), nullable=True),
        sa.Column('is_approved', sa.Boolean(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approval_date', sa.DateTime(), nullable=True),
        sa.Column('approval_notes', sa.String(length=500), nullable=True),
        sa.Column('is_manual_entry', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'date', name='uq_attendance_user_date'),
    )
    op.create_index(op.f('ix_attendance_id'), 'attendance', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_user_id'), 'attendance', ['user_id'], unique=False)
    op.create_index(op.f('ix_attendance_date'), 'attendance', ['date'], unique=False)

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('assigned_to_id', sa.Integer(), nullable=False),
        sa.Column('original_assignee_id', sa.Integer(), nullable=True),
        sa.Column('assigned_by_id', sa.Integer(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('priority', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('estimated_duration', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('completion_notes', sa.Text(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('rated_by_id', sa.Integer(), nullable=True),
        sa.Column('is_reassigned', sa.Boolean(), nullable=False),
        sa.Column('reassignment_reason', sa.String(), nullable=True),
        sa.Column('reassigned_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['assigned_to_id'], ['users.id']),
        sa.ForeignKeyConstraint(['original_assignee_id'], ['users.id']),
        sa.ForeignKeyConstraint(['assigned_by_id'], ['users.id']),
        sa.ForeignKeyConstraint(['rated_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tasks_id'), 'tasks', ['id'], unique=False)
    op.create_index(op.f('ix_tasks_assigned_to_id'), 'tasks', ['assigned_to_id'], unique=False)
    op.create_index(op.f('ix_tasks_date'), 'tasks', ['date'], unique=False)
    op.create_index(op.f('ix_tasks_status'), 'tasks', ['status'], unique=False)

    op.create_table(
        'task_reassignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('from_user_id', sa.Integer(), nullable=False),
        sa.Column('to_user_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['from_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['to_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_task_reassignments_id'), 'task_reassignments', ['id'], unique=False)
    op.create_index(op.f('ix_task_reassignments_task_id'), 'task_reassignments', ['task_id'], unique=False)

    op.create_table(
        'secret_teams',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('team_name', sa.String(length=50), nullable=False),
        sa.Column('team_code', sa.String(length=5), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('last_rotation', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('team_code'),
    )
    op.create_index(op.f('ix_secret_teams_id'), 'secret_teams', ['id'], unique=False)
    op.create_index(op.f('ix_secret_teams_is_active'), 'secret_teams', ['is_active'], unique=False)

    op.create_table(
        'secret_team_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('assigned_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['team_id'], ['secret_teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_secret_team_members_id'), 'secret_team_members', ['id'], unique=False)
    op.create_index(op.f('ix_secret_team_members_team_id'), 'secret_team_members', ['team_id'], unique=False)
    op.create_index(op.f('ix_secret_team_members_user_id'), 'secret_team_members', ['user_id'], unique=False)

    op.create_table(
        'verification_tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('original_staff_id', sa.Integer(), nullable=False),
        sa.Column('assigned_verifier_id', sa.Integer(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('cleanliness', sa.Integer(), nullable=True),
        sa.Column('completeness', sa.Integer(), nullable=True),
        sa.Column('quality', sa.Integer(), nullable=True),
        sa.Column('overall_score', sa.Float(), nullable=True),
        sa.Column('result', sa.String(), nullable=True),
        sa.Column('comments', sa.String(length=500), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('priority', sa.String(), nullable=False),
        sa.Column('is_anonymous', sa.Boolean(), nullable=False),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('deadline', sa.DateTime(), nullable=False),
        sa.CheckConstraint('deadline > assigned_at', name='ck_verification_deadline_after_assignment'),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['original_staff_id'], ['users.id']),
        sa.ForeignKeyConstraint(['assigned_verifier_id'], ['users.id']),
        sa.ForeignKeyConstraint(['team_id'], ['secret_teams.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('task_id'),
    )
    op.create_index(op.f('ix_verification_tasks_id'), 'verification_tasks', ['id'], unique=False)
    op.create_index(op.f('ix_verification_tasks_assigned_verifier_id'), 'verification_tasks', ['assigned_verifier_id'], unique=False)
    op.create_index(op.f('ix_verification_tasks_team_id'), 'verification_tasks', ['team_id'], unique=False)
    op.create_index(op.f('ix_verification_tasks_status'), 'verification_tasks', ['status'], unique=False)

    op.create_table(
        'verification_issues',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('verification_id', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('severity', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['verification_id'], ['verification_tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_verification_issues_id'), 'verification_issues', ['id'], unique=False)
    op.create_index(op.f('ix_verification_issues_verification_id'), 'verification_issues', ['verification_id'], unique=False)

    op.create_table(
        'schedules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('shift', sa.String(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('department', sa.String(), nullable=True),
        sa.Column('assigned_by', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('swap_request_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['assigned_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_schedules_id'), 'schedules', ['id'], unique=False)
    op.create_index('ix_schedules_user_date', 'schedules', ['user_id', 'date'], unique=False)

    op.create_table(
        'shift_swaps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requester_id', sa.Integer(), nullable=False),
        sa.Column('target_user_id', sa.Integer(), nullable=False),
        sa.Column('requester_schedule_id', sa.Integer(), nullable=False),
        sa.Column('target_schedule_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('response_message', sa.String(length=500), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('admin_required', sa.Boolean(), nullable=False),
        sa.Column('admin_status', sa.String(), nullable=False),
        sa.Column('admin_id', sa.Integer(), nullable=True),
        sa.Column('admin_decided_at', sa.DateTime(), nullable=True),
        sa.Column('admin_notes', sa.String(length=500), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['requester_id'], ['users.id']),
        sa.ForeignKeyConstraint(['target_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['requester_schedule_id'], ['schedules.id']),
        sa.ForeignKeyConstraint(['target_schedule_id'], ['schedules.id']),
        sa.ForeignKeyConstraint(['admin_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_shift_swaps_id'), 'shift_swaps', ['id'], unique=False)
    op.create_index(op.f('ix_shift_swaps_requester_id'), 'shift_swaps', ['requester_id'], unique=False)
    op.create_index(op.f('ix_shift_swaps_target_user_id'), 'shift_swaps', ['target_user_id'], unique=False)
    op.create_index(op.f('ix_shift_swaps_status'), 'shift_swaps', ['status'], unique=False)
    for column in ('requester_schedule_id', 'target_schedule_id'):
        op.create_index(
            f'uq_shift_swaps_pending_{column}', 'shift_swaps', [column], unique=True,
            sqlite_where=sa.text("status = 'pending'"), postgresql_where=sa.text("status = 'pending'"),
        )

    op.create_table(
        'alerts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('message', sa.String(length=500), nullable=False),
        sa.Column('priority', sa.String(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('action_required', sa.Boolean(), nullable=False),
        sa.Column('action_url', sa.String(), nullable=True),
        sa.Column('related_id', sa.Integer(), nullable=True),
        sa.Column('related_model', sa.String(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_alerts_id'), 'alerts', ['id'], unique=False)
    op.create_index(op.f('ix_alerts_user_id'), 'alerts', ['user_id'], unique=False)
    op.create_index(op.f('ix_alerts_expires_at'), 'alerts', ['expires_at'], unique=False)
    op.create_index(op.f('ix_alerts_created_at'), 'alerts', ['created_at'], unique=False)

    op.create_table(
        'performance_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('month', sa.String(length=7), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=True),
        sa.Column('period_end', sa.Date(), nullable=True),
        sa.Column('attendance_score', sa.Integer(), nullable=False),
        sa.Column('punctuality_score', sa.Integer(), nullable=False),
        sa.Column('task_completion_rate', sa.Integer(), nullable=False),
        sa.Column('average_task_rating', sa.Float(), nullable=False),
        sa.Column('total_work_days', sa.Integer(), nullable=True),
        sa.Column('present_days', sa.Integer(), nullable=True),
        sa.Column('late_days', sa.Integer(), nullable=True),
        sa.Column('absent_days', sa.Integer(), nullable=True),
        sa.Column('leave_days', sa.Integer(), nullable=True),
        sa.Column('total_working_hours', sa.Float(), nullable=True),
        sa.Column('total_tasks', sa.Integer(), nullable=True),
        sa.Column('completed_tasks', sa.Integer(), nullable=True),
        sa.Column('pending_tasks', sa.Integer(), nullable=True),
        sa.Column('in_progress_tasks', sa.Integer(), nullable=True),
        sa.Column('cancelled_tasks', sa.Integer(), nullable=True),
        sa.Column('overall_score', sa.Integer(), nullable=False),
        sa.Column('grade', sa.String(length=2), nullable=False),
        sa.Column('performance_level', sa.String(), nullable=False),
        sa.Column('low_performance', sa.Boolean(), nullable=False),
        sa.Column('attendance_issue', sa.Boolean(), nullable=False),
        sa.Column('task_delay', sa.Boolean(), nullable=False),
        sa.Column('improvement_required', sa.Boolean(), nullable=False),
        sa.Column('review_due', sa.Boolean(), nullable=False),
        sa.Column('attendance_trend', sa.String(), nullable=False),
        sa.Column('task_trend', sa.String(), nullable=False),
        sa.Column('punctuality_trend', sa.String(), nullable=False),
        sa.Column('overall_trend', sa.String(), nullable=False),
        sa.Column('attendance_change', sa.Float(), nullable=True),
        sa.Column('task_change', sa.Float(), nullable=True),
        sa.Column('punctuality_change', sa.Float(), nullable=True),
        sa.Column('overall_change', sa.Float(), nullable=True),
        sa.Column('warnings_count', sa.Integer(), nullable=False),
        sa.Column('has_active_warnings', sa.Boolean(), nullable=False),
        sa.Column('warning_level', sa.String(), nullable=False),
        sa.Column('last_warning_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('calculated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'month', name='uq_performance_user_month'),
    )
    op.create_index(op.f('ix_performance_records_id'), 'performance_records', ['id'], unique=False)
    op.create_index(op.f('ix_performance_records_user_id'), 'performance_records', ['user_id'], unique=False)
    op.create_index(op.f('ix_performance_records_month'), 'performance_records', ['month'], unique=False)
    op.create_index(op.f('ix_performance_records_overall_score'), 'performance_records', ['overall_score'], unique=False)

    op.create_table(
        'disciplinary_actions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('action_type', sa.String(), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('warning_level', sa.String(), nullable=True),
        sa.Column('issued_by', sa.Integer(), nullable=True),
        sa.Column('effective_date', sa.DateTime(), nullable=False),
        sa.Column('expiry_date', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('auto_generated', sa.Boolean(), nullable=False),
        sa.Column('acknowledged', sa.Boolean(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('employee_comments', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['record_id'], ['performance_records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['issued_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_disciplinary_actions_id'), 'disciplinary_actions', ['id'], unique=False)
    op.create_index(op.f('ix_disciplinary_actions_record_id'), 'disciplinary_actions', ['record_id'], unique=False)

    op.create_table(
        'performance_achievements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('added_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['record_id'], ['performance_records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['added_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_performance_achievements_id'), 'performance_achievements', ['id'], unique=False)
    op.create_index(op.f('ix_performance_achievements_record_id'), 'performance_achievements', ['record_id'], unique=False)

    op.create_table(
        'performance_improvement_areas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('area', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('priority', sa.String(), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=True),
        sa.Column('progress', sa.String(), nullable=False),
        sa.Column('added_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['record_id'], ['performance_records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['added_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_performance_improvement_areas_id'), 'performance_improvement_areas', ['id'], unique=False)
    op.create_index(op.f('ix_performance_improvement_areas_record_id'), 'performance_improvement_areas', ['record_id'], unique=False)

    op.create_table(
        'performance_issues',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('severity', sa.String(), nullable=False),
        sa.Column('reported_by', sa.Integer(), nullable=True),
        sa.Column('reported_at', sa.DateTime(), nullable=True),
        sa.Column('resolved', sa.Boolean(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['record_id'], ['performance_records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reported_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_performance_issues_id'), 'performance_issues', ['id'], unique=False)
    op.create_index(op.f('ix_performance_issues_record_id'), 'performance_issues', ['record_id'], unique=False)

    op.create_table(
        'performance_improvement_plans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('objectives', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['record_id'], ['performance_records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('record_id'),
    )
    op.create_index(op.f('ix_performance_improvement_plans_id'), 'performance_improvement_plans', ['id'], unique=False)


def downgrade() -> None:
    for table in (
        'performance_improvement_plans',
        'performance_issues',
        'performance_improvement_areas',
        'performance_achievements',
        'disciplinary_actions',
        'performance_records',
        'alerts',
        'shift_swaps',
        'schedules',
        'verification_issues',
        'verification_tasks',
        'secret_team_members',
        'secret_teams',
        'task_reassignments',
        'tasks',
        'attendance',
        'profiles',
        'users',
    ):
        op.drop_table(table)
