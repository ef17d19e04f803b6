from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from bridge_indexer.app.domain.models import AllowListStatus
from bridge_indexer.app.infrastructure.db.db_base import BaseDB


class TokensDB(BaseDB):
    """
    Reconciled bridge token registry.

    One row = one token, keyed by its lowercase L1 address once observed.
    Metadata, allow-list status, L1 registration and L2 registration are
    filled independently by the collector as events arrive on either chain;
    columns only move forward (a write never resets a filled value to NULL).
    """

    __tablename__ = "tokens"
    __table_args__ = (
        Index("ix_tokens_symbol", "symbol"),
        Index("ix_tokens_l1_allow_list_status", "l1_allow_list_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # -------------------------------------------------------------------------
    # Metadata (nullable: an L2 registration may be seen before metadata)
    # -------------------------------------------------------------------------
    symbol: Mapped[str | None] = mapped_column(Text, nullable=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    decimals: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    """L1 address, 0x + 40 hex chars, lowercase."""
    l1_address: Mapped[str | None] = mapped_column(String(42), unique=True, nullable=True)

    """L2 address, 0x + 64 hex chars, lowercase."""
    l2_address: Mapped[str | None] = mapped_column(String(66), unique=True, nullable=True)

    # -------------------------------------------------------------------------
    # L1 allow list
    # -------------------------------------------------------------------------
    l1_allow_list_status: Mapped[AllowListStatus | None] = mapped_column(
        Enum(AllowListStatus, name="l1_allow_list_status"),
        nullable=True,
    )
    l1_allow_list_proposal_tx: Mapped[str | None] = mapped_column(String(66), nullable=True)
    l1_allow_list_proposer: Mapped[str | None] = mapped_column(String(42), nullable=True)
    l1_allow_list_approver: Mapped[str | None] = mapped_column(String(42), nullable=True)
    l1_allow_list_resolution_tx: Mapped[str | None] = mapped_column(String(66), nullable=True)

    # -------------------------------------------------------------------------
    # L1 portal registration + L1 -> L2 message
    # -------------------------------------------------------------------------
    l1_portal_registration_submitter: Mapped[str | None] = mapped_column(String(42), nullable=True)
    l1_registration_block: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    l1_registration_tx: Mapped[str | None] = mapped_column(String(66), nullable=True)
    l1_to_l2_message_hash: Mapped[str | None] = mapped_column(String(66), unique=True, nullable=True)
    l1_to_l2_message_index: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    """L2 block from which the registration message can be consumed."""
    l2_registration_available_block: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # -------------------------------------------------------------------------
    # L2 portal registration
    # -------------------------------------------------------------------------
    l2_registration_block: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    l2_registration_tx: Mapped[str | None] = mapped_column(String(66), nullable=True)
    l2_registration_tx_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    l2_registration_log_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    l2_portal_registration_submitter: Mapped[str | None] = mapped_column(String(66), nullable=True)
    l2_portal_registration_fee_payer: Mapped[str | None] = mapped_column(String(66), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
