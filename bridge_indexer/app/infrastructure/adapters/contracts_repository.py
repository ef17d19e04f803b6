from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from bridge_indexer.app.domain.models import ContractInstanceRecord
from bridge_indexer.app.infrastructure.db.models.contracts import (
    ContractArtifactsDB,
    ContractInstancesDB,
)
from bridge_indexer.app.infrastructure.db.upsert import dialect_insert

logger = logging.getLogger(__name__)

_ARTIFACTS = ContractArtifactsDB.__table__
_INSTANCES = ContractInstancesDB.__table__


class SqlAlchemyContractsRepository:
    """
    Repository adapter for contract_artifacts and contract_instances.

    - Artifacts are content addressed: on conflict only contract_class_id and
      updated_at are refreshed, the artifact body is left as first written.
    - Instances are immutable: ON CONFLICT (address) DO NOTHING.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get_instance(self, address: str) -> dict[str, Any] | None:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(_INSTANCES).where(_INSTANCES.c.address == address).limit(1)
            )
            row = result.mappings().one_or_none()

        return dict(row) if row is not None else None

    async def upsert_artifact(
        self,
        *,
        artifact_hash: str,
        contract_class_id: str,
        artifact: Mapping[str, Any],
    ) -> None:
        stmt = dialect_insert(self._engine, _ARTIFACTS).values(
            artifact_hash=artifact_hash,
            artifact=dict(artifact),
            contract_class_id=contract_class_id,
            updated_at=datetime.now(timezone.utc),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["artifact_hash"],
            set_={
                "contract_class_id": stmt.excluded.contract_class_id,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        async with self._engine.begin() as conn:
            await conn.execute(stmt)

        logger.info("Stored contract artifact with hash: %s", artifact_hash)

    async def insert_instance(self, record: ContractInstanceRecord) -> None:
        stmt = (
            dialect_insert(self._engine, _INSTANCES)
            .values(**asdict(record), updated_at=datetime.now(timezone.utc))
            .on_conflict_do_nothing(index_elements=["address"])
        )

        async with self._engine.begin() as conn:
            await conn.execute(stmt)

        logger.info("Stored contract instance at address: %s", record.address)
