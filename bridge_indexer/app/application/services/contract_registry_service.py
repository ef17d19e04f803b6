from __future__ import annotations

import logging

from bridge_indexer.app.domain.addresses import normalize_l2_address
from bridge_indexer.app.domain.models import ContractInstanceRecord, TokenMetadata
from bridge_indexer.app.domain.ports.out import ContractsRepository, RollupNodeClient
from bridge_indexer.app.infrastructure.crypto.contract_instance import (
    PublicKeys,
    TokenContractInstanceDeriver,
)

logger = logging.getLogger(__name__)


class ContractRegistryService:
    """
    Records the rollup-side token contract instance behind a registration.

    The class id and public keys come from the instance the rollup node
    publishes for the address. The address is then re-derived from the token
    metadata and the portal address; the instance is only stored when the
    derived address matches the registered one.
    """

    def __init__(
        self,
        *,
        repository: ContractsRepository,
        deriver: TokenContractInstanceDeriver,
        node: RollupNodeClient,
    ) -> None:
        self._repository = repository
        self._deriver = deriver
        self._node = node
        self._stored_class_ids: set[str] = set()

    async def store_token_instance(
        self,
        rollup_address: str,
        portal_address: str,
        metadata: TokenMetadata,
    ) -> None:
        token_address = normalize_l2_address(rollup_address)
        portal = normalize_l2_address(portal_address)

        if await self._repository.get_instance(token_address) is not None:
            logger.debug("Contract instance %s already stored", token_address)
            return

        published = await self._node.get_contract(token_address)
        if published is None:
            logger.warning("Token contract %s is not published on the rollup yet", token_address)
            return

        derived = self._deriver.derive(
            name=metadata.name,
            symbol=metadata.symbol,
            decimals=metadata.decimals,
            portal_address=portal,
            contract_class_id=published.original_contract_class_id,
            public_keys=PublicKeys.from_node(published.public_keys),
        )

        if derived.address != token_address:
            logger.warning(
                "Token address mismatch: calculated %s, expected %s",
                derived.address,
                token_address,
            )
            return

        current_class_id = normalize_l2_address(published.current_contract_class_id)
        for class_id in dict.fromkeys([derived.contract_class_id, current_class_id]):
            if not await self._ensure_artifact(class_id):
                return

        await self._repository.insert_instance(
            ContractInstanceRecord(
                address=token_address,
                original_contract_class_id=derived.contract_class_id,
                current_contract_class_id=current_class_id,
                initialization_hash=derived.initialization_hash,
                deployment_params=derived.deployment_params,
                version=published.version,
            )
        )
        logger.info("Stored contract instance for token %s", token_address)

    async def _ensure_artifact(self, class_id: str) -> bool:
        if class_id in self._stored_class_ids:
            return True

        contract_class = await self._node.get_contract_class(class_id)
        if contract_class is None:
            logger.warning("Contract class %s is not registered on the rollup", class_id)
            return False

        await self._repository.upsert_artifact(
            artifact_hash=normalize_l2_address(contract_class.artifact_hash),
            contract_class_id=class_id,
            artifact=self._deriver.artifact,
        )
        self._stored_class_ids.add(class_id)
        return True
