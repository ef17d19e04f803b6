from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from bridge_indexer.app.infrastructure.db.db_base import BaseDB

_JSON = JSON().with_variant(JSONB(), "postgresql")


class ContractArtifactsDB(BaseDB):
    """
    Content-addressed compiled contract interfaces.

    artifact_hash is derived from the artifact body, so an existing row is
    never rewritten; only contract_class_id may be refreshed by the upsert.
    """

    __tablename__ = "contract_artifacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    artifact_hash: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)
    artifact: Mapped[dict[str, Any]] = mapped_column(_JSON, nullable=False)
    contract_class_id: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)

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


class ContractInstancesDB(BaseDB):
    """
    Immutable L2 deployment records.

    address is a deterministic function of deployment_params and the class id;
    original/current class ids are kept apart so upgrades can be tracked later.
    """

    __tablename__ = "contract_instances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)
    original_contract_class_id: Mapped[str | None] = mapped_column(
        String(66),
        ForeignKey("contract_artifacts.contract_class_id"),
        nullable=True,
    )
    current_contract_class_id: Mapped[str | None] = mapped_column(
        String(66),
        ForeignKey("contract_artifacts.contract_class_id"),
        nullable=True,
    )
    initialization_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)

    # Constructor name/args, salt, deployer and public keys used for the derivation
    deployment_params: Mapped[dict[str, Any] | None] = mapped_column(_JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

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
