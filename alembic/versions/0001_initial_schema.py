"""initial schema: users, payers, categories, credit cards, expenses

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-01-10

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)

expense_type = sa.Enum(
    'ONE_TIME', 'FIXED_RECURRING', 'VARIABLE_RECURRING', 'INSTALLMENT', 'CREDIT_CARD',
    name='expensetype',
)
payment_status = sa.Enum('FUTURE', 'PENDING', 'OVERDUE', 'PAID', name='paymentstatus')


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('email', sa.String, nullable=False),
        sa.Column('hashed_password', sa.String, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False),
        sa.Column('is_superuser', sa.Boolean, nullable=False),
        sa.Column('is_verified', sa.Boolean, nullable=False),
        sa.Column('full_name', sa.String, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'payers',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('active', sa.Boolean, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'categories',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.Column('active', sa.Boolean, nullable=False),
        sa.Column('is_default', sa.Boolean, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'credit_cards',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payer_id', UUID, sa.ForeignKey('payers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('holder', sa.String(100), nullable=True),
        sa.Column('closing_day', sa.Integer, nullable=False),
        sa.Column('due_day', sa.Integer, nullable=False),
        sa.Column('limit', sa.Numeric(12, 2), nullable=True),
        sa.Column('active', sa.Boolean, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'expenses',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('supplier', sa.String(150), nullable=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('installment_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('type', expense_type, nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('due_day', sa.Integer, nullable=True),
        sa.Column('purchase_date', sa.Date, nullable=True),
        sa.Column('is_installment', sa.Boolean, nullable=False),
        sa.Column('number_of_installments', sa.Integer, nullable=True),
        sa.Column('number_of_months', sa.Integer, nullable=True),
        sa.Column('is_divided', sa.Boolean, nullable=False),
        sa.Column('payer_id', UUID, sa.ForeignKey('payers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('buyer_id', UUID, sa.ForeignKey('payers.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('category_id', UUID, sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('credit_card_id', UUID, sa.ForeignKey('credit_cards.id', ondelete='SET NULL'), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('active', sa.Boolean, nullable=False),
        sa.Column('paused', sa.Boolean, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )

    op.create_table(
        'expense_splits',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('expense_id', UUID, sa.ForeignKey('expenses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payer_id', UUID, sa.ForeignKey('payers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('percentage', sa.Numeric(7, 4), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.UniqueConstraint('expense_id', 'payer_id', name='uq_expense_split_payer'),
    )

    op.create_table(
        'expense_payments',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('expense_id', UUID, sa.ForeignKey('expenses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('month', sa.Integer, nullable=False),
        sa.Column('year', sa.Integer, nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('due_date', sa.Date, nullable=False),
        sa.Column('status', payment_status, nullable=False),
        sa.Column('paid_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('expense_id', 'month', 'year', name='uq_expense_payment_period'),
    )
    op.create_index('ix_expense_payments_due_date', 'expense_payments', ['due_date'])


def downgrade():
    op.drop_index('ix_expense_payments_due_date', table_name='expense_payments')
    op.drop_table('expense_payments')
    op.drop_table('expense_splits')
    op.drop_table('expenses')
    op.drop_table('credit_cards')
    op.drop_table('categories')
    op.drop_table('payers')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    payment_status.drop(op.get_bind(), checkfirst=True)
    expense_type.drop(op.get_bind(), checkfirst=True)
