"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table('reports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('trip_destination', sa.String(255), nullable=False),
        sa.Column('trip_purpose', sa.Text(), nullable=True),
        sa.Column('trip_start_date', sa.Date(), nullable=False),
        sa.Column('trip_end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.Enum('draft', 'open', 'pending_approval', 'closed', name='reportstatus'), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('manager_approval_token', sa.String(128), nullable=True),
        sa.Column('manager_approval_requested_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reports_id', 'reports', ['id'])
    op.create_index('ix_reports_user_id', 'reports', ['user_id'])
    op.create_index('ix_reports_status', 'reports', ['status'])
    op.create_index('ix_reports_manager_id', 'reports', ['manager_id'])
    op.create_index('ix_reports_manager_approval_token', 'reports', ['manager_approval_token'], unique=True)

    op.create_table('expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('report_id', sa.Integer(), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('category', sa.Enum('flights', 'accommodation', 'food', 'transportation', 'miscellaneous', name='expensecategory'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('amount_in_base', sa.Numeric(12, 2), nullable=False),
        sa.Column('approval_status', sa.Enum('pending', 'approved', 'rejected', name='expenseapprovalstatus'), nullable=False),
        sa.Column('manager_comment', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('source', sa.Enum('employee', 'accounting', name='expensesource'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['report_id'], ['reports.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_expenses_id', 'expenses', ['id'])
    op.create_index('ix_expenses_report_id', 'expenses', ['report_id'])
    op.create_index('ix_expenses_expense_date', 'expenses', ['expense_date'])

    op.create_table('report_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('report_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.Enum('created', 'submitted', 'approved', 'rejected', 'edited', name='reportaction'), nullable=False),
        sa.Column('performed_by', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['report_id'], ['reports.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_report_history_id', 'report_history', ['id'])
    op.create_index('ix_report_history_report_id', 'report_history', ['report_id'])

    op.create_table('travel_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(100), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('destination', sa.String(255), nullable=False),
        sa.Column('purpose', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('estimated_total', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.Enum('draft', 'pending_approval', 'approved', 'partially_approved', 'rejected', 'cancelled', name='travelrequeststatus'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_travel_requests_id', 'travel_requests', ['id'])
    op.create_index('ix_travel_requests_tenant_id', 'travel_requests', ['tenant_id'])
    op.create_index('ix_travel_requests_user_id', 'travel_requests', ['user_id'])
    op.create_index('ix_travel_requests_status', 'travel_requests', ['status'])

    op.create_table('travel_request_approval_steps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('travel_request_id', sa.Integer(), nullable=False),
        sa.Column('step_order', sa.Integer(), nullable=False),
        sa.Column('approver_rule', sa.Enum('direct_manager', 'org_admin', 'accounting_manager', 'specific_user', name='approverrule'), nullable=False),
        sa.Column('approver_user_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.Enum('pending', 'approved', 'rejected', 'skipped', name='approvalstepstatus'), nullable=False),
        sa.Column('skip_if_amount_under', sa.Numeric(12, 2), nullable=True),
        sa.Column('skip_if_self_approver', sa.Boolean(), nullable=False),
        sa.Column('skip_reason', sa.Text(), nullable=True),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
        sa.Column('decided_by', sa.Integer(), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['travel_request_id'], ['travel_requests.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('travel_request_id', 'step_order', name='uq_travel_request_step_order')
    )
    op.create_index('ix_travel_request_approval_steps_id', 'travel_request_approval_steps', ['id'])
    op.create_index('ix_travel_request_approval_steps_travel_request_id', 'travel_request_approval_steps', ['travel_request_id'])
    op.create_index('ix_travel_request_approval_steps_approver_user_id', 'travel_request_approval_steps', ['approver_user_id'])

    op.create_table('approved_travels',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('travel_request_id', sa.Integer(), nullable=False),
        sa.Column('expense_report_id', sa.Integer(), nullable=True),
        sa.Column('approval_number', sa.String(50), nullable=True),
        sa.Column('approved_budget', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['travel_request_id'], ['travel_requests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['expense_report_id'], ['reports.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('travel_request_id')
    )
    op.create_index('ix_approved_travels_id', 'approved_travels', ['id'])
    op.create_index('ix_approved_travels_expense_report_id', 'approved_travels', ['expense_report_id'])

    op.create_table('travel_policy_violations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('travel_request_id', sa.Integer(), nullable=False),
        sa.Column('rule_name', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('severity', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['travel_request_id'], ['travel_requests.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_travel_policy_violations_id', 'travel_policy_violations', ['id'])
    op.create_index('ix_travel_policy_violations_travel_request_id', 'travel_policy_violations', ['travel_request_id'])

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.Enum('submitted', 'approved', 'rejected', 'skipped', 'forwarded_to_accounting', name='notificationkind'), nullable=False),
        sa.Column('entity_type', sa.Enum('report', 'travel_request', name='notificationentity'), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('recipient_user_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('action_url', sa.String(500), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_entity_type', 'notifications', ['entity_type'])
    op.create_index('ix_notifications_entity_id', 'notifications', ['entity_id'])
    op.create_index('ix_notifications_recipient_user_id', 'notifications', ['recipient_user_id'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('travel_policy_violations')
    op.drop_table('approved_travels')
    op.drop_table('travel_request_approval_steps')
    op.drop_table('travel_requests')
    op.drop_table('report_history')
    op.drop_table('expenses')
    op.drop_table('reports')

    for enum_name in (
        'notificationentity', 'notificationkind', 'approvalstepstatus', 'approverrule',
        'travelrequeststatus', 'reportaction', 'expensesource', 'expenseapprovalstatus',
        'expensecategory', 'reportstatus',
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
