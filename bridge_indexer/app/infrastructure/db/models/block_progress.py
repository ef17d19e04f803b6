from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from bridge_indexer.app.infrastructure.db.db_base import BaseDB


class BlockProgressDB(BaseDB):
    """
    Scan cursor per chain.

    One row per chain identifier ("L1" / "L2"); last_scanned_block is the
    last block whose events are durably persisted.
    """

    __tablename__ = "block_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chain: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    last_scanned_block: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_scan_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

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
