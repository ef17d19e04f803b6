from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict

from bridge_indexer.app.domain.addresses import normalize_l1_address
from bridge_indexer.app.domain.models import MetadataStatus, TokenMetadata
from bridge_indexer.app.domain.ports.out import Erc20TokenMetadataFetcher, TokensRepository

logger = logging.getLogger(__name__)

DEFAULT_PRESENCE_CACHE_SIZE = 10_000


class PresenceCache:
    """Bounded LRU set of L1 addresses known (or being made) to have complete metadata."""

    def __init__(self, max_size: int = DEFAULT_PRESENCE_CACHE_SIZE) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._max_size = max_size
        self._entries: OrderedDict[str, None] = OrderedDict()

    def __contains__(self, address: object) -> bool:
        if address in self._entries:
            self._entries.move_to_end(address)  # type: ignore[arg-type]
            return True
        return False

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, address: str) -> None:
        self._entries[address] = None
        self._entries.move_to_end(address)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def discard(self, address: str) -> None:
        self._entries.pop(address, None)


class MetadataService:
    """
    Makes sure name/symbol/decimals of an L1 token are stored.

    Per address:
    - a fetch already running in this process is awaited instead of repeated,
    - a cache hit returns PRESENT without touching the DB,
    - otherwise the address is marked in the cache first, then the DB is
      checked; complete rows return PRESENT,
    - missing metadata is fetched from L1 and written with set-if-null
      semantics (FETCHED),
    - any fetch/write failure unmarks the address so a later sighting retries
      (FAILED).

    The cache only saves work. The DB row is the source of truth.
    """

    def __init__(
        self,
        *,
        repository: TokensRepository,
        fetcher: Erc20TokenMetadataFetcher,
        cache: PresenceCache | None = None,
    ) -> None:
        self._repository = repository
        self._fetcher = fetcher
        self._cache = cache if cache is not None else PresenceCache()
        self._pending: dict[str, asyncio.Task[MetadataStatus]] = {}

    @property
    def cache(self) -> PresenceCache:
        return self._cache

    async def ensure_token_metadata(self, l1_address: str) -> MetadataStatus:
        addr = normalize_l1_address(l1_address)

        pending = self._pending.get(addr)
        if pending is not None:
            status = await asyncio.shield(pending)
            return MetadataStatus.FAILED if status is MetadataStatus.FAILED else MetadataStatus.PRESENT

        if addr in self._cache:
            return MetadataStatus.PRESENT

        task = asyncio.get_running_loop().create_task(self._resolve(addr))
        self._pending[addr] = task
        task.add_done_callback(lambda _: self._pending.pop(addr, None))
        return await asyncio.shield(task)

    async def get_token_metadata(self, l1_address: str) -> TokenMetadata | None:
        addr = normalize_l1_address(l1_address)
        row = await self._repository.get_token_metadata(addr)
        if not _is_complete(row):
            return None
        return TokenMetadata(name=row["name"], symbol=row["symbol"], decimals=int(row["decimals"]))

    async def _resolve(self, addr: str) -> MetadataStatus:
        # Optimistic mark; undone on failure
        self._cache.add(addr)

        try:
            row = await self._repository.get_token_metadata(addr)
            if _is_complete(row):
                return MetadataStatus.PRESENT
        except Exception as exc:
            logger.warning("Metadata DB pre-check failed for %s: %s", addr, exc)

        try:
            metadata = await self._fetcher.fetch(token_address=addr)
            await self._repository.store_fetched_metadata(addr, metadata)
        except Exception as exc:
            logger.warning("ensure_token_metadata failed for %s: %s", addr, exc)
            self._cache.discard(addr)
            return MetadataStatus.FAILED

        logger.info(
            "Stored metadata for %s: symbol=%s name=%s decimals=%s",
            addr,
            metadata.symbol,
            metadata.name,
            metadata.decimals,
        )
        return MetadataStatus.FETCHED


def _is_complete(row: dict | None) -> bool:
    return (
        row is not None
        and row.get("symbol") is not None
        and row.get("name") is not None
        and row.get("decimals") is not None
    )
