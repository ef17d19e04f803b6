from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict

from sqlalchemy.ext.asyncio import AsyncEngine
from web3 import AsyncHTTPProvider, AsyncWeb3

from bridge_indexer.app.application.services.collector_orchestrator import (
    ChainScanConfig,
    CollectorConfig,
    CollectorOrchestrator,
)
from bridge_indexer.app.application.services.contract_registry_service import ContractRegistryService
from bridge_indexer.app.application.services.l1_scanner import L1Scanner, L1ScannerConfig
from bridge_indexer.app.application.services.l2_scanner import L2Scanner, L2ScannerConfig
from bridge_indexer.app.application.services.metadata_service import MetadataService, PresenceCache
from bridge_indexer.app.config import Settings
from bridge_indexer.app.infrastructure.adapters.block_progress_store import SqlAlchemyBlockProgressStore
from bridge_indexer.app.infrastructure.adapters.contracts_repository import SqlAlchemyContractsRepository
from bridge_indexer.app.infrastructure.adapters.tokens_repository import SqlAlchemyTokensRepository
from bridge_indexer.app.infrastructure.clients.aztec_node_client import AztecNodeClient
from bridge_indexer.app.infrastructure.crypto.contract_instance import TokenContractInstanceDeriver
from bridge_indexer.app.infrastructure.crypto.field_hasher import Poseidon2FieldHasher
from bridge_indexer.app.infrastructure.decoders.aztec.register_decoder import (
    RegisterLogDecoder,
    register_event_selector,
)
from bridge_indexer.app.infrastructure.decoders.l1.events import L1EventDecoder
from bridge_indexer.app.infrastructure.factories.network_resolver import resolve_l1_bridge_addresses
from bridge_indexer.app.infrastructure.fetchers.erc20_tokens_fetcher import Web3Erc20TokenMetadataFetcher


@dataclass
class CollectorComponents:
    orchestrator: CollectorOrchestrator
    l1_scanner: L1Scanner
    l2_scanner: L2Scanner
    node: AztecNodeClient

    async def close(self) -> None:
        await self.node.close()


CollectorFactory = Callable[[AsyncEngine, Settings], Awaitable[CollectorComponents]]

_COLLECTOR_REGISTRY: Dict[str, CollectorFactory] = {}


async def _make_sqlalchemy_collector(engine: AsyncEngine, settings: Settings) -> CollectorComponents:
    """
    Wire dependencies for SQLAlchemy backend:
    - AsyncWeb3 provider (L1 RPC) and rollup node JSON-RPC client
    - one MetadataService (and presence cache) shared by both scanners
    - contract registry with the token artifact deriver (Poseidon2 hasher)
    - SQLAlchemy adapters for tokens, contracts and block progress
    """
    w3 = AsyncWeb3(
        AsyncHTTPProvider(
            settings.l1_rpc_url,
            request_kwargs={"timeout": settings.rpc_timeout_seconds},
        )
    )
    node = AztecNodeClient(
        node_url=settings.l2_node_url,
        schema_version=settings.l2_node_schema_version,
        timeout_seconds=settings.rpc_timeout_seconds,
    )

    try:
        addresses = await resolve_l1_bridge_addresses(
            w3=w3,
            node=node,
            portal_address=settings.l1_portal_address,
            allow_list_address=settings.l1_allow_list_address,
            inbox_address=settings.l1_inbox_address,
        )
    except BaseException:
        await node.close()
        raise

    hasher = Poseidon2FieldHasher()
    tokens_repository = SqlAlchemyTokensRepository(engine=engine)

    metadata_service = MetadataService(
        repository=tokens_repository,
        fetcher=Web3Erc20TokenMetadataFetcher(w3=w3),
        cache=PresenceCache(),
    )
    contract_registry = ContractRegistryService(
        repository=SqlAlchemyContractsRepository(engine=engine),
        deriver=TokenContractInstanceDeriver.from_path(hasher=hasher),
        node=node,
    )

    l1_scanner = L1Scanner(
        w3=w3,
        config=L1ScannerConfig(
            portal_address=addresses.portal,
            allow_list_address=addresses.allow_list,
            inbox_address=addresses.inbox,
        ),
        metadata_service=metadata_service,
        decoder=L1EventDecoder(),
    )

    selector = settings.l2_register_event_selector
    if selector is None:
        selector = register_event_selector(hasher)

    l2_scanner = L2Scanner(
        node=node,
        config=L2ScannerConfig(portal_address=settings.l2_portal_address),
        decoder=RegisterLogDecoder(event_selector=selector),
        metadata_service=metadata_service,
        contract_registry=contract_registry,
    )

    orchestrator = CollectorOrchestrator(
        l1_scanner=l1_scanner,
        l2_scanner=l2_scanner,
        progress_store=SqlAlchemyBlockProgressStore(engine=engine),
        tokens_repository=tokens_repository,
        config=CollectorConfig(
            l1=ChainScanConfig(
                start_block=settings.l1_start_block,
                chunk_size=settings.l1_chunk_size,
                force_start_block=settings.force_l1_start_block,
            ),
            l2=ChainScanConfig(
                start_block=settings.l2_start_block,
                chunk_size=settings.l2_chunk_size,
                force_start_block=settings.force_l2_start_block,
            ),
            polling_interval_seconds=settings.polling_interval_seconds,
        ),
    )

    return CollectorComponents(
        orchestrator=orchestrator,
        l1_scanner=l1_scanner,
        l2_scanner=l2_scanner,
        node=node,
    )


# Register backends
_COLLECTOR_REGISTRY["sqlalchemy"] = _make_sqlalchemy_collector


async def collector_factory(
    *,
    backend: str,
    engine: AsyncEngine,
    settings: Settings,
) -> CollectorComponents:
    """
    Create the collector (orchestrator plus both scanners) for the given backend.

    L1 addresses that are not configured are resolved over RPC here, so the
    factory is async.
    """
    try:
        factory = _COLLECTOR_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported collector backend: {backend!r}")

    return await factory(engine, settings)
