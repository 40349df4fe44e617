"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def _json():
    return postgresql.JSONB(astext_type=sa.Text())


def upgrade() -> None:
    """Create users, profiles, catalogs, goals, classes, groups, surveys and audit tables."""
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('reset_token_hash', sa.String(length=64), nullable=True),
        sa.Column('reset_token_expires', sa.DateTime(), nullable=True),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_reset_token_hash'), 'users', ['reset_token_hash'])

    op.create_table(
        'revoked_tokens',
        *_base_columns(),
        sa.Column('jti', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
    )
    op.create_index(op.f('ix_revoked_tokens_jti'), 'revoked_tokens', ['jti'], unique=True)

    op.create_table(
        'uploaded_files',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('filename', sa.String(length=300), nullable=False),
        sa.Column('original_filename', sa.String(length=255), nullable=False),
        sa.Column('file_type', sa.String(length=100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('upload_ip', sa.String(length=45), nullable=True),
    )
    op.create_index(op.f('ix_uploaded_files_user_id'), 'uploaded_files', ['user_id'])

    op.create_table(
        'student_profiles',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('student_id_num', sa.String(length=20), nullable=True),
        sa.Column('year_level', sa.String(length=20), nullable=True),
        sa.Column('major', sa.String(length=100), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('short_term_goals', sa.Text(), nullable=True),
        sa.Column('long_term_goals', sa.Text(), nullable=True),
        sa.Column('career_aspirations', sa.Text(), nullable=True),
        sa.Column('linkedin_url', sa.String(length=500), nullable=True),
        sa.Column('portfolio_url', sa.String(length=500), nullable=True),
        sa.Column('github_url', sa.String(length=500), nullable=True),
        sa.Column('profile_completion_percentage', sa.Integer(), nullable=False),
        sa.Column(
            'profile_photo_id', sa.Uuid(),
            sa.ForeignKey('uploaded_files.id', ondelete='SET NULL'), nullable=True,
        ),
    )

    # Catalogs
    op.create_table(
        'skills',
        *_base_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.UniqueConstraint('name', 'category', name='uq_skills_name_category'),
    )
    op.create_table(
        'interests',
        *_base_columns(),
        sa.Column('name', sa.String(length=100), nullable=False, unique=True),
        sa.Column('category', sa.String(length=50), nullable=True),
    )
    op.create_table(
        'student_skills',
        *_base_columns(),
        sa.Column(
            'student_profile_id', sa.Uuid(),
            sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('skill_id', sa.Uuid(), sa.ForeignKey('skills.id', ondelete='CASCADE'), nullable=False),
        sa.Column('proficiency_level', sa.String(length=20), nullable=False),
        sa.Column('years_experience', sa.Integer(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.UniqueConstraint('student_profile_id', 'skill_id', name='uq_student_skills_student_skill'),
    )
    op.create_index(op.f('ix_student_skills_student_profile_id'), 'student_skills', ['student_profile_id'])
    op.create_table(
        'student_interests',
        *_base_columns(),
        sa.Column(
            'student_profile_id', sa.Uuid(),
            sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'interest_id', sa.Uuid(), sa.ForeignKey('interests.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('interest_level', sa.String(length=20), nullable=False),
        sa.UniqueConstraint(
            'student_profile_id', 'interest_id', name='uq_student_interests_student_interest'
        ),
    )
    op.create_index(
        op.f('ix_student_interests_student_profile_id'), 'student_interests', ['student_profile_id']
    )

    # Goals and activities
    op.create_table(
        'goals',
        *_base_columns(),
        sa.Column(
            'student_profile_id', sa.Uuid(),
            sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=True),
        sa.Column('progress_notes', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index(op.f('ix_goals_student_profile_id'), 'goals', ['student_profile_id'])
    op.create_index(op.f('ix_goals_status'), 'goals', ['status'])
    op.create_table(
        'activities',
        *_base_columns(),
        sa.Column(
            'student_profile_id', sa.Uuid(),
            sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_current', sa.Boolean(), nullable=False),
        sa.Column('hours', sa.Integer(), nullable=False),
        sa.Column('organization', sa.String(length=255), nullable=True),
        sa.Column('position', sa.String(length=255), nullable=True),
        sa.Column('achievements', sa.Text(), nullable=True),
    )
    op.create_index(op.f('ix_activities_student_profile_id'), 'activities', ['student_profile_id'])

    # Classes
    op.create_table(
        'classes',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('class_code', sa.String(length=20), nullable=False),
        sa.Column('teacher_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    op.create_index(op.f('ix_classes_class_code'), 'classes', ['class_code'], unique=True)
    op.create_index(op.f('ix_classes_teacher_id'), 'classes', ['teacher_id'])
    op.create_table(
        'class_enrollments',
        *_base_columns(),
        sa.Column('class_id', sa.Uuid(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'student_profile_id', sa.Uuid(),
            sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.UniqueConstraint('class_id', 'student_profile_id', name='uq_class_enrollments_class_student'),
    )
    op.create_index(
        op.f('ix_class_enrollments_student_profile_id'), 'class_enrollments', ['student_profile_id']
    )

    # Groups
    op.create_table(
        'groups',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('project', sa.String(length=255), nullable=True),
        sa.Column('max_size', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('formation_criteria', _json(), nullable=True),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
    )
    op.create_table(
        'group_members',
        *_base_columns(),
        sa.Column('group_id', sa.Uuid(), sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'student_profile_id', sa.Uuid(),
            sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('role', sa.String(length=50), nullable=True),
        sa.UniqueConstraint('group_id', 'student_profile_id', name='uq_group_members_group_student'),
    )
    op.create_index(op.f('ix_group_members_group_id'), 'group_members', ['group_id'])

    # Surveys
    op.create_table(
        'survey_templates',
        *_base_columns(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('template_type', sa.String(length=50), nullable=False),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    op.create_index(op.f('ix_survey_templates_created_by'), 'survey_templates', ['created_by'])
    op.create_table(
        'survey_questions',
        *_base_columns(),
        sa.Column(
            'template_id', sa.Uuid(),
            sa.ForeignKey('survey_templates.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('question_type', sa.String(length=30), nullable=False),
        sa.Column('is_required', sa.Boolean(), nullable=False),
        sa.Column('options', _json(), nullable=True),
    )
    op.create_index(op.f('ix_survey_questions_template_id'), 'survey_questions', ['template_id'])
    op.create_table(
        'survey_responses',
        *_base_columns(),
        sa.Column(
            'template_id', sa.Uuid(),
            sa.ForeignKey('survey_templates.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'student_profile_id', sa.Uuid(),
            sa.ForeignKey('student_profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('responses', _json(), nullable=False),
        sa.Column('completion_status', sa.String(length=20), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            'template_id', 'student_profile_id', name='uq_survey_responses_template_student'
        ),
    )
    op.create_index(
        op.f('ix_survey_responses_student_profile_id'), 'survey_responses', ['student_profile_id']
    )

    # Audit trail
    op.create_table(
        'activity_logs',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('resource_type', sa.String(length=50), nullable=True),
        sa.Column('resource_id', sa.String(length=64), nullable=True),
        sa.Column('details', _json(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
    )
    op.create_index(op.f('ix_activity_logs_user_id'), 'activity_logs', ['user_id'])
    op.create_index(op.f('ix_activity_logs_action'), 'activity_logs', ['action'])


def downgrade() -> None:
    """Drop every table, children first."""
    for table in (
        'activity_logs',
        'survey_responses',
        'survey_questions',
        'survey_templates',
        'group_members',
        'groups',
        'class_enrollments',
        'classes',
        'activities',
        'goals',
        'student_interests',
        'student_skills',
        'interests',
        'skills',
        'student_profiles',
        'uploaded_files',
        'revoked_tokens',
        'users',
    ):
        op.drop_table(table)
