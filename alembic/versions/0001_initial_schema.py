"""
Initial schema: users, categories, transactions, recurring transactions

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
    ]


def upgrade() -> None:
    # On SQLite this becomes a CHECK-constrained VARCHAR
    txn_type = sa.Enum('INCOME', 'EXPENSE', name='txn_type')

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False, unique=True),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        *_timestamps(),
    )

    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('type', txn_type, nullable=False),
        sa.Column('color', sa.String(length=9), nullable=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('category.id'), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'name', 'parent_id', name='uq_category_name'),
        sa.CheckConstraint('parent_id IS NULL OR parent_id != id', name='ck_category_not_own_parent'),
    )

    op.create_table(
        'recurringtransaction',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('category.id'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('type', txn_type, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('frequency', sa.String(length=16), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('next_occurrence', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_recurring_amount_non_negative'),
        sa.CheckConstraint('next_occurrence >= start_date', name='ck_recurring_next_after_start'),
    )
    op.create_index('ix_recurring_due', 'recurringtransaction', ['is_active', 'next_occurrence'])

    op.create_table(
        'transaction',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('category.id'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('type', txn_type, nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'recurring_transaction_id',
            sa.Integer(),
            sa.ForeignKey('recurringtransaction.id', ondelete='SET NULL'),
            nullable=True,
        ),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_txn_amount_non_negative'),
    )
    op.create_index('ix_txn_user_date', 'transaction', ['user_id', 'date'])


def downgrade() -> None:
    op.drop_index('ix_txn_user_date', table_name='transaction')
    op.drop_table('transaction')
    op.drop_index('ix_recurring_due', table_name='recurringtransaction')
    op.drop_table('recurringtransaction')
    op.drop_table('category')
    op.drop_table('user')
