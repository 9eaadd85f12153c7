"""Create presale ledger tables

Tracks fulfilled deposits, burns and skipped deposits for:
- Preventing double payouts (signature primary keys)
- Presale totals and burn accounting
- Audit trail

Revision ID: d4e5f6a7b8c9
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'd4e5f6a7b8c9'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create purchases, burns and skipped_deposits tables."""
    op.create_table(
        'purchases',
        sa.Column('signature', sa.String(100), primary_key=True),
        sa.Column('sender', sa.String(64), nullable=False),
        sa.Column('base_amount', sa.Numeric(20, 9), nullable=False),
        sa.Column('token_amount', sa.BigInteger(), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('base_amount > 0', name='purchase_positive_base'),
        sa.CheckConstraint('token_amount >= 0', name='purchase_non_negative_tokens'),
    )
    op.create_index('ix_purchases_sender', 'purchases', ['sender'])
    op.create_index('idx_purchases_recorded_at', 'purchases', ['recorded_at'])

    op.create_table(
        'burns',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('signature', sa.String(100), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount > 0', name='burn_positive_amount'),
    )
    op.create_index('ix_burns_signature', 'burns', ['signature'])

    op.create_table(
        'skipped_deposits',
        sa.Column('signature', sa.String(100), primary_key=True),
        sa.Column('reason', sa.String(32), nullable=False),
        sa.Column('base_amount', sa.Numeric(20, 9), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "reason IN ('below_minimum', 'above_maximum', 'zero_payout', 'burn_consumes_payout', 'warm_start')",
            name='skipped_valid_reason'
        ),
    )
    op.create_index('ix_skipped_deposits_reason', 'skipped_deposits', ['reason'])


def downgrade() -> None:
    """Drop presale ledger tables."""
    op.drop_index('ix_skipped_deposits_reason', table_name='skipped_deposits')
    op.drop_table('skipped_deposits')
    op.drop_index('ix_burns_signature', table_name='burns')
    op.drop_table('burns')
    op.drop_index('idx_purchases_recorded_at', table_name='purchases')
    op.drop_index('ix_purchases_sender', table_name='purchases')
    op.drop_table('purchases')
