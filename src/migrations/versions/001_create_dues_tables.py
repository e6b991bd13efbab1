"""Create dues tables.

Revision ID: 001_create_dues_tables
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_dues_tables'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create dues, credit ledger, transaction and audit tables."""
    # Create dues_years table
    op.create_table(
        'dues_years',
        *_timestamps(),
        sa.Column('unit_id', sa.String(50), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('scheduled_amount', sa.Integer(), nullable=False),
        sa.Column('credit_balance', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('unit_id', 'year', name='uq_dues_year_unit_year'),
    )
    op.create_index('idx_dues_year_unit', 'dues_years', ['unit_id'])

    # Create monthly_payments table
    op.create_table(
        'monthly_payments',
        *_timestamps(),
        sa.Column('dues_year_id', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('paid_amount', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('transaction_ref', sa.String(100), nullable=True),
        sa.ForeignKeyConstraint(['dues_year_id'], ['dues_years.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('dues_year_id', 'month', name='uq_monthly_payment_year_month'),
    )
    op.create_index('ix_monthly_payments_dues_year_id', 'monthly_payments', ['dues_year_id'])

    # Create dues_allocations table
    op.create_table(
        'dues_allocations',
        *_timestamps(),
        sa.Column('dues_year_id', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('transaction_ref', sa.String(100), nullable=False),
        sa.ForeignKeyConstraint(['dues_year_id'], ['dues_years.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dues_allocations_dues_year_id', 'dues_allocations', ['dues_year_id'])
    op.create_index('ix_dues_allocations_transaction_ref', 'dues_allocations', ['transaction_ref'])
    op.create_index('idx_dues_allocation_year_month', 'dues_allocations', ['dues_year_id', 'month'])

    # Create credit_ledger_entries table
    op.create_table(
        'credit_ledger_entries',
        *_timestamps(),
        sa.Column('dues_year_id', sa.Integer(), nullable=False),
        sa.Column('entry_id', sa.String(64), nullable=False),
        sa.Column('entry_type', sa.String(20), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('transaction_ref', sa.String(100), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('reversal_of_ref', sa.String(64), nullable=True),
        sa.Column('reversed_effect', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.ForeignKeyConstraint(['dues_year_id'], ['dues_years.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entry_id'),
    )
    op.create_index('ix_credit_ledger_entries_dues_year_id', 'credit_ledger_entries', ['dues_year_id'])
    op.create_index('ix_credit_ledger_entries_transaction_ref', 'credit_ledger_entries', ['transaction_ref'])
    op.create_index('idx_credit_ledger_year_time', 'credit_ledger_entries', ['dues_year_id', 'timestamp'])

    # Create dues_transactions table
    op.create_table(
        'dues_transactions',
        *_timestamps(),
        sa.Column('transaction_ref', sa.String(100), nullable=False),
        sa.Column('unit_id', sa.String(50), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('is_reversed', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_ref'),
    )
    op.create_index('idx_dues_transaction_unit_year', 'dues_transactions', ['unit_id', 'year'])
    op.create_index('idx_dues_transaction_date', 'dues_transactions', ['transaction_date'])

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        *_timestamps(),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(100), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('actor', sa.String(100), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    """Drop dues tables."""
    op.drop_table('audit_logs')
    op.drop_index('idx_dues_transaction_date', table_name='dues_transactions')
    op.drop_index('idx_dues_transaction_unit_year', table_name='dues_transactions')
    op.drop_table('dues_transactions')
    op.drop_index('idx_credit_ledger_year_time', table_name='credit_ledger_entries')
    op.drop_index('ix_credit_ledger_entries_transaction_ref', table_name='credit_ledger_entries')
    op.drop_index('ix_credit_ledger_entries_dues_year_id', table_name='credit_ledger_entries')
    op.drop_table('credit_ledger_entries')
    op.drop_index('idx_dues_allocation_year_month', table_name='dues_allocations')
    op.drop_index('ix_dues_allocations_transaction_ref', table_name='dues_allocations')
    op.drop_index('ix_dues_allocations_dues_year_id', table_name='dues_allocations')
    op.drop_table('dues_allocations')
    op.drop_index('ix_monthly_payments_dues_year_id', table_name='monthly_payments')
    op.drop_table('monthly_payments')
    op.drop_index('idx_dues_year_unit', table_name='dues_years')
    op.drop_table('dues_years')
