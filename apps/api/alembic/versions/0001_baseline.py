"""Baseline migration - tenants, field work, sales entities and automations.

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

Creates:
- accounts, users, account_memberships, customers, account_settings
- jobs, visits, job_notes, time_entries, job_line_items
- estimates, invoices, leads
- automations (with dedupe unique index), automation_history
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_baseline'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _account_id():
    return sa.Column('account_id', postgresql.UUID(as_uuid=True), nullable=False)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _account_fk():
    return sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE')


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()

    # ==========================================================================
    # Tenancy
    # ==========================================================================
    op.create_table(
        'accounts',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('timezone', sa.String(50), server_default=sa.text("'America/Los_Angeles'"), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('token_version', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('TRUE'), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'account_memberships',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        _account_id(),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('TRUE'), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        _account_fk(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_memberships_user_active', 'account_memberships', ['user_id', 'is_active'])
    op.create_index('idx_memberships_account', 'account_memberships', ['account_id'])

    op.create_table(
        'customers',
        _id(),
        _account_id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        _created_at(),
        _account_fk(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_customers_account', 'customers', ['account_id'])
    op.create_index('idx_customers_user', 'customers', ['user_id'])

    op.create_table(
        'account_settings',
        _id(),
        _account_id(),
        sa.Column('ai_automation', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _updated_at(),
        _account_fk(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id'),
    )

    # ==========================================================================
    # Field work
    # ==========================================================================
    op.create_table(
        'jobs',
        _id(),
        _account_id(),
        sa.Column('job_number', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'scheduled'"), nullable=False),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('service_date', sa.Date(), nullable=True),
        _created_at(),
        _updated_at(),
        _account_fk(),
        sa.ForeignKeyConstraint(['client_id'], ['customers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['technician_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_jobs_account_status', 'jobs', ['account_id', 'status'])
    op.create_index('idx_jobs_account_technician', 'jobs', ['account_id', 'technician_id'])

    op.create_table(
        'visits',
        _id(),
        _account_id(),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'scheduled'"), nullable=False),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        _account_fk(),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['technician_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_visits_account_job', 'visits', ['account_id', 'job_id'])
    op.create_index('idx_visits_account_technician', 'visits', ['account_id', 'technician_id', 'start_at'])

    op.create_table(
        'job_notes',
        _id(),
        _account_id(),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('note', sa.Text(), nullable=False),
        _created_at(),
        _account_fk(),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['technician_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_job_notes_account_job', 'job_notes', ['account_id', 'job_id', 'created_at'])

    op.create_table(
        'time_entries',
        _id(),
        _account_id(),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_hours', sa.Numeric(8, 2), nullable=True),
        sa.Column('billable_hours', sa.Numeric(8, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        _account_fk(),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['technician_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_time_entries_account_job', 'time_entries', ['account_id', 'job_id', 'created_at'])

    op.create_table(
        'job_line_items',
        _id(),
        _account_id(),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('item_type', sa.String(30), server_default=sa.text("'material'"), nullable=False),
        sa.Column('quantity', sa.Numeric(10, 2), server_default=sa.text('1'), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), server_default=sa.text('0'), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=True),
        _created_at(),
        _account_fk(),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_job_line_items_account_job', 'job_line_items', ['account_id', 'job_id', 'created_at'])

    # ==========================================================================
    # Sales
    # ==========================================================================
    op.create_table(
        'estimates',
        _id(),
        _account_id(),
        sa.Column('estimate_number', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'draft'"), nullable=False),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('sent_date', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _account_fk(),
        sa.ForeignKeyConstraint(['client_id'], ['customers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_estimates_account_status', 'estimates', ['account_id', 'status'])

    op.create_table(
        'invoices',
        _id(),
        _account_id(),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'draft'"), nullable=False),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        _created_at(),
        _account_fk(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_invoices_account_status', 'invoices', ['account_id', 'status'])

    op.create_table(
        'leads',
        _id(),
        _account_id(),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('service_type', sa.String(100), nullable=True),
        sa.Column('service_description', sa.Text(), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        sa.Column('priority', sa.String(20), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'new'"), nullable=False),
        _created_at(),
        _account_fk(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_leads_account_status', 'leads', ['account_id', 'status'])

    # ==========================================================================
    # Automations
    # ==========================================================================
    op.create_table(
        'automations',
        _id(),
        _account_id(),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('related_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('run_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('attempts', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('last_attempt', sa.DateTime(timezone=True), nullable=True),
        sa.Column('result', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _created_at(),
        _updated_at(),
        _account_fk(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_automations_due', 'automations', ['status', 'run_at'])
    op.create_index('idx_automations_account', 'automations', ['account_id', 'run_at'])
    op.create_index(
        'uq_automations_dedupe',
        'automations',
        ['account_id', 'type', 'related_id', 'run_at'],
        unique=True,
    )

    op.create_table(
        'automation_history',
        _id(),
        sa.Column('automation_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['automation_id'], ['automations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_automation_history_automation', 'automation_history', ['automation_id', 'created_at'])


def downgrade() -> None:
    for table in (
        'automation_history',
        'automations',
        'leads',
        'invoices',
        'estimates',
        'job_line_items',
        'time_entries',
        'job_notes',
        'visits',
        'jobs',
        'account_settings',
        'customers',
        'account_memberships',
        'users',
        'accounts',
    ):
        op.drop_table(table)
