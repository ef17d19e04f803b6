from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from bridge_indexer.app.domain.models import (
    BlockProgress,
    Chain,
    ContractInstanceRecord,
    MetadataStatus,
    TokenMetadata,
    TokenUpdate,
)
from bridge_indexer.app.domain.rollup import (
    ContractClassInfo,
    ContractInstance,
    L1ContractAddresses,
    L2Block,
    LogId,
    PublicLogsPage,
)


class BlockProgressStore(Protocol):
    """
    Port for the per-chain scan cursor.

    One row per chain identifier ("L1" / "L2") holding the last block that was
    fully scanned and persisted. Implementations perform no retries; storage
    errors propagate to the caller.
    """

    async def get_last_scanned_block(self, chain: Chain) -> int: ...

    async def update_last_scanned_block(self, chain: Chain, block_number: int) -> None: ...

    async def get_progress(self, chain: Chain) -> BlockProgress | None: ...


class TokensRepository(Protocol):
    """
    Port for the reconciled tokens table.

    Every write is an idempotent upsert keyed by a natural unique key, so
    repeated or concurrent writes from retried cycles are safe.
    """

    async def get_token_metadata(self, l1_address: str) -> dict[str, Any] | None: ...

    async def store_fetched_metadata(self, l1_address: str, metadata: TokenMetadata) -> None: ...

    async def upsert_token_updates(self, updates: Sequence[TokenUpdate]) -> int: ...


class ContractsRepository(Protocol):
    """Port for content-addressed contract artifacts and immutable contract instances."""

    async def get_instance(self, address: str) -> dict[str, Any] | None: ...

    async def upsert_artifact(
        self,
        *,
        artifact_hash: str,
        contract_class_id: str,
        artifact: Mapping[str, Any],
    ) -> None: ...

    async def insert_instance(self, record: ContractInstanceRecord) -> None: ...


class Erc20TokenMetadataFetcher(Protocol):
    """
    Low-level dependency used by the metadata service.

    Implementations read name(), symbol() and decimals() from the ERC-20
    contract and raise TokenMetadataFetchError when any of them is unavailable.
    """

    async def fetch(self, *, token_address: str) -> TokenMetadata: ...


class TokenMetadataEnsurer(Protocol):
    async def ensure_token_metadata(self, l1_address: str) -> MetadataStatus: ...

    async def get_token_metadata(self, l1_address: str) -> TokenMetadata | None: ...


class TokenInstanceRegistry(Protocol):
    async def store_token_instance(
        self,
        rollup_address: str,
        portal_address: str,
        metadata: TokenMetadata,
    ) -> None: ...


class FieldHasher(Protocol):
    """Hash of field elements used by the deterministic contract-address derivation."""

    def hash(self, inputs: Sequence[int], *, separator: int | None = None) -> int: ...

    def hash_bytes(self, data: bytes) -> int: ...


class RollupNodeClient(Protocol):
    """
    Read-only view of the rollup node.

    The node delivers public logs without an attached transaction hash; the
    hash is resolved through the block's transaction effects.
    """

    async def get_block_number(self) -> int: ...

    async def get_block(self, block_number: int) -> L2Block | None: ...

    async def get_public_logs(
        self,
        *,
        from_block: int,
        to_block: int,
        contract_address: str,
        after_log: LogId | None = None,
    ) -> PublicLogsPage: ...

    async def get_l1_contract_addresses(self) -> L1ContractAddresses: ...

    async def get_contract(self, address: str) -> ContractInstance | None: ...

    async def get_contract_class(self, class_id: str) -> ContractClassInfo | None: ...


class L1TokenScanner(Protocol):
    async def get_allow_list_events(self, from_block: int, to_block: int) -> list[TokenUpdate]: ...

    async def get_registration_events(self, from_block: int, to_block: int) -> list[TokenUpdate]: ...

    async def get_block_number(self) -> int: ...


class L2TokenScanner(Protocol):
    async def get_registration_events(self, from_block: int, to_block: int) -> list[TokenUpdate]: ...

    async def get_block_number(self) -> int: ...
