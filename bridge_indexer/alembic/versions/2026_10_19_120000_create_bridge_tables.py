"""create_bridge_tables

Revision ID: 2026_10_19_120000
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '2026_10_19_120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

allow_list_status = postgresql.ENUM(
    'UNKNOWN', 'PROPOSED', 'ACCEPTED', 'REJECTED',
    name='l1_allow_list_status',
    create_type=False,
)


def upgrade() -> None:
    allow_list_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'tokens',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('symbol', sa.Text(), nullable=True),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('decimals', sa.SmallInteger(), nullable=True),
        sa.Column('l1_address', sa.String(length=42), nullable=True),
        sa.Column('l2_address', sa.String(length=66), nullable=True),
        sa.Column('l1_allow_list_status', allow_list_status, nullable=True),
        sa.Column('l1_allow_list_proposal_tx', sa.String(length=66), nullable=True),
        sa.Column('l1_allow_list_proposer', sa.String(length=42), nullable=True),
        sa.Column('l1_allow_list_approver', sa.String(length=42), nullable=True),
        sa.Column('l1_allow_list_resolution_tx', sa.String(length=66), nullable=True),
        sa.Column('l1_portal_registration_submitter', sa.String(length=42), nullable=True),
        sa.Column('l1_registration_block', sa.BigInteger(), nullable=True),
        sa.Column('l1_registration_tx', sa.String(length=66), nullable=True),
        sa.Column('l1_to_l2_message_hash', sa.String(length=66), nullable=True),
        sa.Column('l1_to_l2_message_index', sa.BigInteger(), nullable=True),
        sa.Column('l2_registration_available_block', sa.BigInteger(), nullable=True),
        sa.Column('l2_registration_block', sa.BigInteger(), nullable=True),
        sa.Column('l2_registration_tx', sa.String(length=66), nullable=True),
        sa.Column('l2_registration_tx_index', sa.Integer(), nullable=True),
        sa.Column('l2_registration_log_index', sa.Integer(), nullable=True),
        sa.Column('l2_portal_registration_submitter', sa.String(length=66), nullable=True),
        sa.Column('l2_portal_registration_fee_payer', sa.String(length=66), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('l1_address'),
        sa.UniqueConstraint('l2_address'),
        sa.UniqueConstraint('l1_to_l2_message_hash'),
    )
    op.create_index('ix_tokens_symbol', 'tokens', ['symbol'], unique=False)
    op.create_index('ix_tokens_l1_allow_list_status', 'tokens', ['l1_allow_list_status'], unique=False)

    op.create_table(
        'block_progress',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain', sa.String(length=10), nullable=False),
        sa.Column('last_scanned_block', sa.BigInteger(), nullable=False),
        sa.Column('last_scan_timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chain'),
    )

    op.create_table(
        'contract_artifacts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('artifact_hash', sa.String(length=66), nullable=False),
        sa.Column('artifact', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('contract_class_id', sa.String(length=66), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('artifact_hash'),
        sa.UniqueConstraint('contract_class_id'),
    )

    op.create_table(
        'contract_instances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('address', sa.String(length=66), nullable=False),
        sa.Column('original_contract_class_id', sa.String(length=66), nullable=True),
        sa.Column('current_contract_class_id', sa.String(length=66), nullable=True),
        sa.Column('initialization_hash', sa.String(length=66), nullable=True),
        sa.Column('deployment_params', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['original_contract_class_id'], ['contract_artifacts.contract_class_id']),
        sa.ForeignKeyConstraint(['current_contract_class_id'], ['contract_artifacts.contract_class_id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('address'),
    )


def downgrade() -> None:
    op.drop_table('contract_instances')
    op.drop_table('contract_artifacts')
    op.drop_table('block_progress')
    op.drop_index('ix_tokens_l1_allow_list_status', table_name='tokens')
    op.drop_index('ix_tokens_symbol', table_name='tokens')
    op.drop_table('tokens')
    allow_list_status.drop(op.get_bind(), checkfirst=True)
